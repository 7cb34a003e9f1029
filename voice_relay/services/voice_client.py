"""
WebSocket client utilities for connecting to the voice relay.

This module provides the client side of the voice widget protocol. It is
used by the command-line client and by integration tests: it handles
message formatting, validation of relay events and connection management
using the same Pydantic models as the server.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError

from voice_relay.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_AUDIO_COMPLETE,
    MESSAGE_TYPE_AUDIO_RESPONSE,
    MESSAGE_TYPE_CONNECTION_ESTABLISHED,
    MESSAGE_TYPE_SESSION_ENDED,
)
from voice_relay.models.message_schemas import (
    AudioChunkMessage,
    BaseMessage,
    ConversationRatingMessage,
    CustomerInfoMessage,
    SessionEndMessage,
    TextMessage,
    parse_outgoing,
)
from voice_relay.services.audio_codec import AudioPlaybackQueue, encode_frame, iter_frames

logger = logging.getLogger(LOGGER_NAME)

EventHandler = Callable[[BaseMessage], Awaitable[None]]


class VoiceRelayClient:
    """
    Client for interacting with the voice relay via WebSocket.

    This class connects with the shop parameter, sends formatted messages and
    dispatches relay events to registered handlers. Returned speech is fed
    into a playback queue as it arrives.
    """

    def __init__(self, url: str, shop_domain: str):
        """
        Initialize the relay client.

        Args:
            url: The relay WebSocket URL, e.g. ws://localhost:8000/ws
            shop_domain: The shop the widget is embedded in
        """
        self.url = url
        self.shop_domain = shop_domain
        self.websocket = None
        self.session_id: Optional[str] = None
        self.greeting: Optional[str] = None
        self.playback = AudioPlaybackQueue()
        self.message_handlers: Dict[str, EventHandler] = {}

    @property
    def connect_url(self) -> str:
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode({'shop': self.shop_domain})}"

    def on(self, message_type: str, handler: EventHandler) -> None:
        """Register a coroutine to be called for every event of message_type."""
        self.message_handlers[message_type] = handler

    async def connect(self) -> bool:
        """
        Connect and wait for connection.established.

        Returns:
            True if the relay accepted the session, False otherwise
        """
        try:
            self.websocket = await websockets.connect(self.connect_url, max_size=16 * 1024 * 1024)
            logger.info(f"Connected to relay at {self.url} for {self.shop_domain}")
        except Exception as e:
            logger.error(f"Failed to connect to relay: {e}")
            return False

        event = await self.receive()
        if event is None or event.type != MESSAGE_TYPE_CONNECTION_ESTABLISHED:
            logger.error(f"Session not established: {event}")
            await self.close()
            return False

        self.session_id = event.sessionId
        self.greeting = event.message
        logger.info(f"Session established: {self.session_id}")
        return True

    async def _send(self, message: BaseMessage) -> None:
        if not self.websocket:
            logger.error(f"Cannot send {message.type}: Not connected")
            return
        await self.websocket.send(message.model_dump_json(exclude_none=True))

    async def send_audio(self, pcm: bytes) -> int:
        """
        Stream PCM16 audio as audio.chunk frames.

        Returns:
            The number of frames sent
        """
        sent = 0
        for frame in iter_frames(pcm):
            await self._send(AudioChunkMessage(type="audio.chunk", audio=encode_frame(frame)))
            sent += 1
        logger.debug(f"Sent {sent} audio frame(s)")
        return sent

    async def send_text(self, text: str) -> None:
        await self._send(TextMessage(type="text.message", message=text))

    async def send_customer_info(self, name: str, email: str) -> None:
        await self._send(CustomerInfoMessage(type="customer.info", name=name, email=email))

    async def send_rating(self, rating: int, feedback: Optional[str] = None) -> None:
        await self._send(ConversationRatingMessage(type="conversation.rating", rating=rating, feedback=feedback))

    async def end_session(self) -> None:
        await self._send(SessionEndMessage(type="session.end"))

    async def receive(self) -> Optional[BaseMessage]:
        """Receive and validate one relay event; None if the connection closed."""
        try:
            data = await self.websocket.recv()
        except websockets.exceptions.ConnectionClosed:
            logger.info("WebSocket connection closed by relay")
            return None
        try:
            return parse_outgoing(data)
        except ValidationError as e:
            logger.warning(f"Unrecognized relay event: {e}")
            return None

    async def _dispatch(self, event: BaseMessage) -> None:
        if event.type == MESSAGE_TYPE_AUDIO_RESPONSE:
            self.playback.add(event.audio)
        elif event.type == MESSAGE_TYPE_AUDIO_COMPLETE:
            self.playback.mark_complete()

        handler = self.message_handlers.get(event.type)
        if handler is not None:
            await handler(event)

    async def listen(self) -> None:
        """
        Dispatch relay events until the session ends or the connection closes.
        """
        if not self.websocket:
            logger.error("Cannot listen: Not connected")
            return

        try:
            async for data in self.websocket:
                try:
                    event = parse_outgoing(data)
                except ValidationError as e:
                    logger.warning(f"Unrecognized relay event: {e}")
                    continue

                await self._dispatch(event)

                if event.type == MESSAGE_TYPE_SESSION_ENDED:
                    logger.info("Received session.ended, closing connection")
                    break
        except websockets.exceptions.ConnectionClosed:
            logger.info("WebSocket connection closed by relay")
        finally:
            await self.close()

    async def close(self) -> None:
        """Close the WebSocket connection."""
        if self.websocket:
            await self.websocket.close()
            logger.info("Closed WebSocket connection")
            self.websocket = None
            self.session_id = None
