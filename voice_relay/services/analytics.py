"""
Keyword heuristics that label a finished conversation.

Both classifiers work on the space-joined transcript text and count a keyword
once when it appears anywhere in the lower-cased text (substring match), so
"thanks" also counts as a hit for "thank".
"""

from typing import Dict, Iterable, List

POSITIVE_WORDS = ["great", "good", "thanks", "thank", "excellent", "happy", "love"]
NEGATIVE_WORDS = ["bad", "poor", "terrible", "angry", "frustrated", "disappointed"]

# Checked in this order; earlier categories win ties.
TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "product": ["product", "item", "price", "cost", "buy", "purchase"],
    "order": ["order", "shipping", "delivery", "track", "status"],
    "support": ["help", "support", "problem", "issue", "question"],
    "return": ["return", "refund", "exchange", "cancel"],
}

DEFAULT_TOPIC = "general"


def count_keyword_hits(text: str, keywords: Iterable[str]) -> int:
    """Number of keywords that occur in text, case-insensitively."""
    lowered = text.lower()
    return sum(1 for keyword in keywords if keyword in lowered)


def calculate_sentiment(text: str) -> str:
    positive = count_keyword_hits(text, POSITIVE_WORDS)
    negative = count_keyword_hits(text, NEGATIVE_WORDS)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def extract_topic(text: str) -> str:
    best_topic = DEFAULT_TOPIC
    best_count = 0
    for topic, keywords in TOPIC_KEYWORDS.items():
        count = count_keyword_hits(text, keywords)
        if count > best_count:
            best_topic = topic
            best_count = count
    return best_topic
