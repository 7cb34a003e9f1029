import pytest

from voice_relay.services.analytics import (
    calculate_sentiment,
    count_keyword_hits,
    extract_topic,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Thanks, that was great", "positive"),
        ("thanks, that was great, no problems", "positive"),
        ("This is terrible and I am frustrated", "negative"),
        ("Where is my package", "neutral"),
        ("", "neutral"),
        ("good but bad", "neutral"),
    ],
)
def test_calculate_sentiment(text, expected):
    assert calculate_sentiment(text) == expected


def test_keywords_match_as_substrings():
    # "thanks" contains both "thanks" and "thank"
    assert count_keyword_hits("Thanks, that was great", ["great", "thanks", "thank"]) == 3


def test_keywords_are_counted_once_each():
    assert count_keyword_hits("good good good", ["good"]) == 1


@pytest.mark.parametrize(
    "text, expected",
    [
        ("What is the status of my order and its shipping?", "order"),
        ("How much does this item cost?", "product"),
        ("I need help with a problem", "support"),
        ("I want a refund", "return"),
        ("Hello there", "general"),
        ("", "general"),
    ],
)
def test_extract_topic(text, expected):
    assert extract_topic(text) == expected


def test_topic_ties_go_to_the_earlier_category():
    # one product keyword and one order keyword
    assert extract_topic("price of delivery") == "product"
