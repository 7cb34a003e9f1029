"""
Pydantic models for the upstream provider message structures.

This module provides type-safe models for the values exchanged with the
speech-to-text, language-model and text-to-speech providers, so that the
bridges hand typed events to the orchestrator instead of raw provider JSON.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Role of a participant in the model context."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One {role, content} entry of the model context."""
    role: MessageRole
    content: str

    def to_api(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class TranscriptEvent(BaseModel):
    """Transcription hypothesis from the speech-to-text provider."""
    text: str
    is_final: bool = False
    confidence: Optional[float] = None


class ToolCall(BaseModel):
    """Structured function-call request from the language model."""
    id: Optional[str] = None
    name: str
    arguments: str = ""

    def parsed_arguments(self) -> Dict[str, Any]:
        """Decode the JSON argument string; malformed arguments become {}."""
        try:
            value = json.loads(self.arguments) if self.arguments else {}
        except json.JSONDecodeError:
            return {}
        return value if isinstance(value, dict) else {}


class ModelReply(BaseModel):
    """Completed language-model turn: free text or a tool call."""
    text: str = ""
    tool_call: Optional[ToolCall] = None
    finish_reason: Optional[str] = None


class AudioChunk(BaseModel):
    """Independently decodable piece of synthesized audio."""
    index: int = Field(..., ge=0)
    data: bytes
    format: str = "mp3"


# Tool offered to the model when the tenant has store credentials
LOOKUP_ORDER_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "lookup_order",
        "description": (
            "Look up the status of a customer's order in the store by its order number."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "order_number": {
                    "type": "string",
                    "description": "The order number, for example 1001",
                },
                "email": {
                    "type": "string",
                    "description": "Email address the order was placed with, if the customer gave one",
                },
            },
            "required": ["order_number"],
        },
    },
}

STORE_TOOLS: List[Dict[str, Any]] = [LOOKUP_ORDER_TOOL]
