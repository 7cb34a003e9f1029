"""
WebSocket connection manager for the storefront voice relay.

This module implements the server side of the voice widget protocol,
providing the infrastructure to:
- Check the connecting shop before the upgrade completes
- Create one Session per connection and attach a transcription connection
- Route incoming messages to the appropriate handler functions
- Start model turns from final transcripts and typed messages
- Finalize the session exactly once when the connection ends

The VoiceRelayManager class is the central component that wires the
transcription, language model, synthesis and persistence bridges together.
"""

import asyncio
import json
import logging
import uuid
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect, status
from fastapi.responses import PlainTextResponse
from starlette.websockets import WebSocketState

from voice_relay.bot.language_model import ChatCompletionClient
from voice_relay.bot.orchestrator import ConversationOrchestrator
from voice_relay.bot.synthesis import ElevenLabsSynthesisClient
from voice_relay.bot.transcription import DeepgramTranscriptionClient
from voice_relay.config.constants import (
    DEFAULT_GREETING,
    LOGGER_NAME,
    MESSAGE_TYPE_AUDIO_CHUNK,
    MESSAGE_TYPE_CONVERSATION_RATING,
    MESSAGE_TYPE_CUSTOMER_INFO,
    MESSAGE_TYPE_SESSION_END,
    MESSAGE_TYPE_TEXT_MESSAGE,
)
from voice_relay.config.settings import RelaySettings, load_settings
from voice_relay.exceptions import TenantUnavailableError
from voice_relay.handlers.messaging import send_message
from voice_relay.handlers.session_handlers import (
    finalize_session,
    handle_conversation_rating,
    handle_customer_info,
    handle_session_end,
)
from voice_relay.handlers.stream_handlers import consume_transcripts, handle_audio_chunk
from voice_relay.handlers.text_handlers import handle_text_message
from voice_relay.models.message_schemas import ConnectionEstablishedMessage, ErrorMessage
from voice_relay.models.session import Session
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.services.persistence import ConversationStore, build_conversation_store
from voice_relay.services.store_client import ShopifyStoreClient
from voice_relay.services.tenants import TenantDirectory, build_tenant_directory, check_tenant

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[[Dict[str, Any], WebSocket, Session, "VoiceRelayManager"], Awaitable[None]]

TRANSCRIPTION_INIT_FAILED = "Failed to initialize voice recognition. Please check your Deepgram API key."
INVALID_FORMAT_MESSAGE = "Invalid message format"


class VoiceRelayManager:
    """Manages voice widget connections and routes their messages to handlers.

    Each connection goes through the same lifecycle:
    - tenant check, refusing the upgrade with 400/403/404 when it fails
    - session creation and transcription connect
    - the receive loop, with one task relaying transcripts and at most one
      running the current model turn
    - finalization, whichever way the connection ended

    Collaborators can be injected for tests; anything omitted is built from
    the settings.
    """

    def __init__(
        self,
        settings: Optional[RelaySettings] = None,
        tenant_directory: Optional[TenantDirectory] = None,
        conversation_store: Optional[ConversationStore] = None,
        model_client=None,
        synthesizer=None,
        store_client=None,
        transcriber_factory: Optional[Callable[[RelaySettings], Any]] = None,
    ):
        self.settings = settings or load_settings()
        self.registry = SessionRegistry()
        self.tenant_directory = tenant_directory or build_tenant_directory(self.settings)
        self.conversation_store = conversation_store or build_conversation_store(self.settings)
        self.transcriber_factory = transcriber_factory or DeepgramTranscriptionClient.from_settings

        self.orchestrator = ConversationOrchestrator(
            model_client or ChatCompletionClient.from_settings(self.settings),
            synthesizer or ElevenLabsSynthesisClient.from_settings(self.settings),
            self.conversation_store,
            store_client=store_client or ShopifyStoreClient(self.settings.shopify_api_version),
            history_window=self.settings.history_window,
        )

        # Define handlers dictionary
        self.handlers: Dict[str, HandlerFunc] = {
            MESSAGE_TYPE_AUDIO_CHUNK: handle_audio_chunk,
            MESSAGE_TYPE_TEXT_MESSAGE: handle_text_message,
            MESSAGE_TYPE_SESSION_END: handle_session_end,
            MESSAGE_TYPE_CUSTOMER_INFO: handle_customer_info,
            MESSAGE_TYPE_CONVERSATION_RATING: handle_conversation_rating,
        }

    async def _refuse(self, websocket: WebSocket, error: TenantUnavailableError) -> None:
        """Refuse the upgrade with an HTTP status when the server supports it."""
        if "websocket.http.response" in websocket.scope.get("extensions", {}):
            await websocket.send_denial_response(
                PlainTextResponse(error.reason, status_code=error.status_code)
            )
        else:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=error.reason)

    async def _attach_transcriber(self, session: Session) -> bool:
        transcriber = self.transcriber_factory(self.settings)
        session.transcriber = transcriber
        return await transcriber.connect()

    def start_turn(self, session: Session, utterance: str, websocket: WebSocket) -> bool:
        """
        Claim the session for utterance and run the turn in the background.

        Returns:
            False if a turn is already in flight and the utterance was dropped
        """
        turn = self.orchestrator.begin_turn(session, utterance)
        if turn is None:
            return False
        session.turn_task = asyncio.create_task(
            self.orchestrator.run_turn(session, turn, partial(send_message, websocket))
        )
        return True

    async def dispatch(self, data: str, websocket: WebSocket, session: Session) -> bool:
        """
        Route one client frame to its handler.

        Returns:
            False once the client has ended the session
        """
        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(f"Malformed frame for session {session.session_id}: {e}")
            await send_message(websocket, ErrorMessage(message=INVALID_FORMAT_MESSAGE))
            return True

        if not isinstance(message, dict):
            logger.warning(f"Non-object frame for session {session.session_id}")
            await send_message(websocket, ErrorMessage(message=INVALID_FORMAT_MESSAGE))
            return True

        message_type = message.get("type")

        # Fast path for audio chunks to minimize processing overhead
        if message_type == MESSAGE_TYPE_AUDIO_CHUNK:
            await handle_audio_chunk(message, websocket, session, self)
            return True

        handler = self.handlers.get(message_type)
        if handler is None:
            logger.warning(f"Unknown message type received: {message_type}")
            return True

        logger.info(f"Received message type: {message_type} for session: {session.session_id}")
        await handler(message, websocket, session, self)
        return message_type != MESSAGE_TYPE_SESSION_END

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Resolves the shop and refuses the upgrade if it may not connect
        2. Accepts the connection and creates the session
        3. Connects speech-to-text, ending the connection if that fails
        4. Processes incoming messages until the client leaves or ends the session
        5. Finalizes the session and closes the socket
        """
        shop_domain = websocket.query_params.get("shop")
        try:
            tenant = await check_tenant(self.tenant_directory, shop_domain)
        except TenantUnavailableError as e:
            logger.warning(f"Refusing connection for shop {shop_domain!r}: {e.status_code} {e.reason}")
            await self._refuse(websocket, e)
            return

        await websocket.accept()
        session_id = str(uuid.uuid4())
        session = self.registry.create(session_id, tenant)
        logger.info(f"Voice session started: {session_id} for {tenant.shop_domain}")

        try:
            if not await self._attach_transcriber(session):
                logger.error(f"Transcription connection failed for session {session_id}")
                await send_message(websocket, ErrorMessage(message=TRANSCRIPTION_INIT_FAILED))
                return

            await send_message(websocket, ConnectionEstablishedMessage(
                sessionId=session_id,
                message=tenant.agent.greeting_message or DEFAULT_GREETING,
            ))
            session.transcript_task = asyncio.create_task(
                consume_transcripts(session, websocket, self)
            )

            while True:
                data = await websocket.receive_text()
                if not await self.dispatch(data, websocket, session):
                    break

        except WebSocketDisconnect:
            logger.info(f"Client disconnected: {session_id}")
        except Exception as e:
            logger.error(f"Error in WebSocket connection: {e}", exc_info=True)
        finally:
            await finalize_session(session_id, self.registry, self.conversation_store)
            if websocket.client_state != WebSocketState.DISCONNECTED:
                try:
                    await websocket.close()
                except Exception as e:
                    logger.debug(f"Error closing WebSocket: {e}")
            logger.info("WebSocket connection closed")
