"""
Pydantic models for the client <-> relay WebSocket protocol.

This module defines structured data models for all incoming and outgoing
JSON frames exchanged with the voice widget, providing type validation and
documentation. Field names are camelCase on the wire.
"""

import base64
import binascii
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from voice_relay.config.constants import OUTPUT_AUDIO_FORMAT


# Base Model
class BaseMessage(BaseModel):
    """Base model for all WebSocket messages."""

    type: str = Field(..., description="Message type identifier")


def _validate_base64(v: str) -> str:
    if not v:
        raise ValueError("Audio cannot be empty")
    try:
        base64.b64decode(v, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 encoded audio data")
    return v


# Client -> relay
class AudioChunkMessage(BaseMessage):
    """Model for audio.chunk message: one base64 PCM16 microphone frame."""

    type: Literal["audio.chunk"]
    audio: str = Field(..., description="Base64-encoded PCM16 mono 24kHz audio")

    @field_validator("audio")
    def validate_audio(cls, v):
        """Validate that the frame is valid base64."""
        return _validate_base64(v)

    def pcm(self) -> bytes:
        return base64.b64decode(self.audio)


class TextMessage(BaseMessage):
    """Model for text.message: a typed user utterance."""

    type: Literal["text.message"]
    message: str = Field(..., description="Typed user utterance")

    @field_validator("message")
    def validate_message(cls, v):
        """Validate that the message has content."""
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v.strip()


class SessionEndMessage(BaseMessage):
    """Model for session.end: graceful termination request."""

    type: Literal["session.end"]


class CustomerInfoMessage(BaseMessage):
    """Model for customer.info: the visitor identified themselves."""

    type: Literal["customer.info"]
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)

    @field_validator("email")
    def validate_email(cls, v):
        """Validate that the email looks like an address."""
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v.strip().lower()


class ConversationRatingMessage(BaseMessage):
    """Model for conversation.rating: end-of-conversation feedback."""

    type: Literal["conversation.rating"]
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


# Relay -> client
class ConnectionEstablishedMessage(BaseMessage):
    """Model for connection.established: the session is ready."""

    type: Literal["connection.established"] = "connection.established"
    sessionId: str = Field(..., description="Session identifier")
    message: str = Field(..., description="Greeting text")


class TranscriptUpdateMessage(BaseMessage):
    """Model for transcript.update: interim or final speech-to-text result."""

    type: Literal["transcript.update"] = "transcript.update"
    text: str
    isFinal: bool


class TextResponseMessage(BaseMessage):
    """Model for text.response: the assistant reply, sent before any audio."""

    type: Literal["text.response"] = "text.response"
    text: str


class AudioResponseMessage(BaseMessage):
    """Model for audio.response: one playable chunk of synthesized audio."""

    type: Literal["audio.response"] = "audio.response"
    audio: str = Field(..., description="Base64-encoded audio chunk")
    format: str = OUTPUT_AUDIO_FORMAT

    @field_validator("audio")
    def validate_audio(cls, v):
        """Validate that the chunk is valid base64."""
        return _validate_base64(v)


class AudioCompleteMessage(BaseMessage):
    """Model for audio.complete: every chunk of the reply has been sent."""

    type: Literal["audio.complete"] = "audio.complete"
    chunks: int = Field(..., ge=0)
    bytes: int = Field(..., ge=0)


class ErrorMessage(BaseMessage):
    """Model for error: a turn failed or a frame was rejected."""

    type: Literal["error"] = "error"
    message: str


class SessionEndedMessage(BaseMessage):
    """Model for session.ended: acknowledgement of session.end."""

    type: Literal["session.ended"] = "session.ended"
    message: str = "Session ended successfully"


class CustomerInfoSavedMessage(BaseMessage):
    """Model for customer.info.saved."""

    type: Literal["customer.info.saved"] = "customer.info.saved"
    message: str = "Thanks! Your information has been saved."


class RatingSavedMessage(BaseMessage):
    """Model for rating.saved."""

    type: Literal["rating.saved"] = "rating.saved"
    message: str = "Thank you for your feedback!"


# Union type for all possible incoming messages
IncomingMessage = Union[
    AudioChunkMessage,
    TextMessage,
    SessionEndMessage,
    CustomerInfoMessage,
    ConversationRatingMessage,
]

# Union type for all possible outgoing messages
OutgoingMessage = Union[
    ConnectionEstablishedMessage,
    TranscriptUpdateMessage,
    TextResponseMessage,
    AudioResponseMessage,
    AudioCompleteMessage,
    ErrorMessage,
    SessionEndedMessage,
    CustomerInfoSavedMessage,
    RatingSavedMessage,
]

_outgoing_adapter = TypeAdapter(Annotated[OutgoingMessage, Field(discriminator="type")])


def parse_outgoing(data: Union[str, bytes, dict]) -> BaseMessage:
    """Parse a relay -> client frame, raw JSON or already decoded (used by the client side)."""
    if isinstance(data, (str, bytes)):
        return _outgoing_adapter.validate_json(data)
    return _outgoing_adapter.validate_python(data)
