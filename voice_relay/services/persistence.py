"""
Conversation persistence sink.

The relay writes one record per session: it is created on the first customer
utterance, rewritten after every completed turn, and rewritten once more at
finalization with the duration, sentiment and topic. The whole transcript is
always sent; individual entries are never patched.
"""

import logging
import uuid
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from voice_relay.config.constants import DEFAULT_CUSTOMER_IDENTIFIER, LOGGER_NAME
from voice_relay.config.settings import RelaySettings
from voice_relay.models.session import Session, TranscriptEntry
from voice_relay.services.analytics import calculate_sentiment, extract_topic
from voice_relay.services.supabase_rest import SupabaseRestClient

logger = logging.getLogger(LOGGER_NAME)

CONVERSATIONS_TABLE = "voice_conversations"


class ConversationRecord(BaseModel):
    """Persisted view of a session; serializes with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tenant_id: str
    customer_identifier: str = DEFAULT_CUSTOMER_IDENTIFIER
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    duration_seconds: Optional[int] = None
    sentiment: Optional[str] = None
    topic: Optional[str] = None
    rating: Optional[int] = None
    feedback_text: Optional[str] = None


class ConversationStore(Protocol):
    """Append-only conversation record keyed by tenant and session."""

    async def upsert(self, conversation_id: Optional[str], record: ConversationRecord) -> str:
        """Create the record when conversation_id is None, else rewrite it. Returns the id."""
        ...

    async def get(self, conversation_id: str) -> Optional[ConversationRecord]:
        ...


class InMemoryConversationStore:
    """Process-local store used in development and tests."""

    def __init__(self):
        self.records: Dict[str, ConversationRecord] = {}

    async def upsert(self, conversation_id: Optional[str], record: ConversationRecord) -> str:
        if conversation_id is None:
            conversation_id = str(uuid.uuid4())
        self.records[conversation_id] = record.model_copy(deep=True)
        return conversation_id

    async def get(self, conversation_id: str) -> Optional[ConversationRecord]:
        record = self.records.get(conversation_id)
        return record.model_copy(deep=True) if record else None


class SupabaseConversationStore:
    """Store backed by the voice_conversations table."""

    def __init__(self, client: SupabaseRestClient):
        self.client = client

    @staticmethod
    def _to_row(record: ConversationRecord, include_tenant: bool) -> dict:
        row = record.model_dump(mode="json", exclude={"tenant_id"}, exclude_none=True)
        if include_tenant:
            row["shop_id"] = record.tenant_id
        return row

    async def upsert(self, conversation_id: Optional[str], record: ConversationRecord) -> str:
        if conversation_id is None:
            created = await self.client.insert(CONVERSATIONS_TABLE, self._to_row(record, include_tenant=True))
            return str(created["id"])
        await self.client.update(CONVERSATIONS_TABLE, conversation_id, self._to_row(record, include_tenant=False))
        return conversation_id

    async def get(self, conversation_id: str) -> Optional[ConversationRecord]:
        rows = await self.client.select(CONVERSATIONS_TABLE, {"id": conversation_id})
        if not rows:
            return None
        row = rows[0]
        return ConversationRecord(
            tenant_id=row["shop_id"],
            customer_identifier=row.get("customer_identifier") or DEFAULT_CUSTOMER_IDENTIFIER,
            transcript=row.get("transcript") or [],
            duration_seconds=row.get("duration_seconds"),
            sentiment=row.get("sentiment"),
            topic=row.get("topic"),
            rating=row.get("rating"),
            feedback_text=row.get("feedback_text"),
        )


def build_record(session: Session, final: bool = False) -> ConversationRecord:
    """
    Snapshot a session as a ConversationRecord.

    With final=True the duration, sentiment and topic are derived from the
    transcript as it stands.
    """
    record = ConversationRecord(
        tenant_id=session.tenant_id,
        customer_identifier=session.customer_identifier,
        transcript=session.transcript,
        rating=session.rating,
        feedback_text=session.feedback_text,
    )
    if final:
        text = session.transcript_text()
        record.duration_seconds = session.duration_seconds()
        record.sentiment = calculate_sentiment(text)
        record.topic = extract_topic(text)
    return record


async def save_session(store: ConversationStore, session: Session, final: bool = False) -> Optional[str]:
    """
    Write the session's record and link the conversation id on first write.

    Errors are logged and swallowed; losing a write never ends the call.
    """
    try:
        conversation_id = await store.upsert(session.conversation_id, build_record(session, final=final))
        if session.conversation_id is None:
            session.conversation_id = conversation_id
            logger.info(f"Conversation {conversation_id} created for session {session.session_id}")
        return conversation_id
    except Exception as e:
        logger.error(f"Error saving session {session.session_id}: {e}", exc_info=True)
        return None


def build_conversation_store(settings: RelaySettings) -> ConversationStore:
    if settings.supabase_configured:
        logger.info("Using Supabase conversation store")
        return SupabaseConversationStore(
            SupabaseRestClient(settings.supabase_url, settings.supabase_service_role_key)
        )
    logger.info("Using in-memory conversation store")
    return InMemoryConversationStore()
