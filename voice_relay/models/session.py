"""
Per-connection voice session state.

A Session is created when a client connects and lives until the connection
closes. Turn-taking is tracked with an explicit TurnState and a single
transition() method, so two overlapping model calls cannot be represented.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from voice_relay.config.constants import DEFAULT_CUSTOMER_IDENTIFIER
from voice_relay.exceptions import InvalidTransitionError
from voice_relay.models.provider_schemas import ChatMessage, MessageRole
from voice_relay.models.tenant import TenantContext


class TurnState(str, Enum):
    """Where a session is in the current turn."""
    IDLE = "idle"
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    SPEAKING = "speaking"


ALLOWED_TRANSITIONS = {
    TurnState.IDLE: {TurnState.AWAITING_MODEL_RESPONSE},
    TurnState.AWAITING_MODEL_RESPONSE: {TurnState.SPEAKING, TurnState.IDLE},
    TurnState.SPEAKING: {TurnState.IDLE},
}


class TranscriptEntry(BaseModel):
    """One immutable line of the persisted transcript."""

    model_config = ConfigDict(frozen=True)

    role: Literal["customer", "assistant", "system"]
    content: str
    timestamp: str


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Turn:
    """A claimed turn: the user's utterance and the context it was asked in."""
    utterance: str
    window: List[ChatMessage]


class Session:
    """
    State for one live client connection.

    Only the connection's own handlers mutate a Session, so no locking is
    needed. The tenant linkage is fixed at construction and the persisted
    conversation id can be assigned exactly once.
    """

    def __init__(self, session_id: str, tenant: TenantContext):
        self._session_id = session_id
        self._tenant = tenant
        self._conversation_id: Optional[str] = None
        self.history: List[ChatMessage] = []
        self._transcript: List[TranscriptEntry] = []
        self.state = TurnState.IDLE
        self.started_at = time.time()

        self.transcriber: Any = None
        self.transcript_task: Optional[asyncio.Task] = None
        self.turn_task: Optional[asyncio.Task] = None
        # First write of the conversation record, awaited by finalization
        self.record_task: Optional[asyncio.Task] = None
        # Set once the session is being torn down by the relay
        self.ending = False

        self.customer_name: Optional[str] = None
        self.customer_email: Optional[str] = None
        self.rating: Optional[int] = None
        self.feedback_text: Optional[str] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def tenant(self) -> TenantContext:
        return self._tenant

    @property
    def tenant_id(self) -> str:
        return self._tenant.tenant_id

    @property
    def shop_domain(self) -> str:
        return self._tenant.shop_domain

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @conversation_id.setter
    def conversation_id(self, value: str) -> None:
        if self._conversation_id is not None and value != self._conversation_id:
            raise ValueError(
                f"Session {self._session_id} already linked to conversation {self._conversation_id}"
            )
        self._conversation_id = value

    @property
    def transcript(self) -> List[TranscriptEntry]:
        """Copy of the transcript; entries are only added through append_transcript."""
        return list(self._transcript)

    @property
    def processing(self) -> bool:
        return self.state is not TurnState.IDLE

    @property
    def customer_identifier(self) -> str:
        return self.customer_email or DEFAULT_CUSTOMER_IDENTIFIER

    def transition(self, new_state: TurnState) -> None:
        """Move to new_state, raising InvalidTransitionError if it is not adjacent."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Session {self._session_id}: {self.state.value} -> {new_state.value} is not allowed"
            )
        self.state = new_state

    def begin_turn(self, utterance: str, window_size: int) -> Optional[Turn]:
        """
        Claim the session for a new turn.

        Returns None without touching any state when a turn is already in
        flight. Otherwise moves to awaiting_model_response, records the
        customer utterance and returns the context window taken before the
        utterance was added to the history.
        """
        if self.processing:
            return None
        self.transition(TurnState.AWAITING_MODEL_RESPONSE)
        window = self.history[-window_size:] if window_size else []
        self.append_transcript("customer", utterance)
        self.history.append(ChatMessage(role=MessageRole.USER, content=utterance))
        return Turn(utterance=utterance, window=window)

    def end_turn(self) -> None:
        """Return to idle from any state."""
        if self.state is not TurnState.IDLE:
            self.transition(TurnState.IDLE)

    def add_assistant_reply(self, text: str) -> None:
        self.history.append(ChatMessage(role=MessageRole.ASSISTANT, content=text))
        self.append_transcript("assistant", text)

    def append_transcript(self, role: str, content: str) -> TranscriptEntry:
        entry = TranscriptEntry(role=role, content=content, timestamp=utc_timestamp())
        self._transcript.append(entry)
        return entry

    def transcript_text(self) -> str:
        return " ".join(entry.content for entry in self._transcript)

    def duration_seconds(self, now: float = None) -> int:
        return int((now if now is not None else time.time()) - self.started_at)

    def __repr__(self) -> str:
        return f"Session(id={self._session_id!r}, shop={self.shop_domain!r}, state={self.state.value})"
