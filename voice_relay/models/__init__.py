"""
Models module for data structures and state management in the voice relay.

Key components:
- message_schemas: Pydantic models for every frame exchanged with the voice
  widget, validated on the way in and serialized on the way out.
- provider_schemas: Provider-neutral values passed between the bridges
  (chat messages, transcript events, model replies, audio chunks).
- session: Per-connection Session state and the turn state machine.
- session_registry: The process-wide registry of live sessions.
- tenant: The shop and agent configuration a connection runs under.

Usage examples:
```python
from voice_relay.models import SessionRegistry, TenantContext

registry = SessionRegistry()
session = registry.create("1234", TenantContext(tenant_id="1", shop_domain="demo.myshopify.com"))
turn = session.begin_turn("Do you ship to Canada?", window_size=10)
```
"""

from voice_relay.models.message_schemas import (
    AudioChunkMessage,
    AudioCompleteMessage,
    AudioResponseMessage,
    BaseMessage,
    ConnectionEstablishedMessage,
    ConversationRatingMessage,
    CustomerInfoMessage,
    CustomerInfoSavedMessage,
    ErrorMessage,
    IncomingMessage,
    OutgoingMessage,
    RatingSavedMessage,
    SessionEndedMessage,
    SessionEndMessage,
    TextMessage,
    TextResponseMessage,
    TranscriptUpdateMessage,
)
from voice_relay.models.session import Session, TranscriptEntry, Turn, TurnState
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.models.tenant import AgentConfig, TenantContext
