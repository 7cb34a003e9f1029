import asyncio
import json
import logging
import time
import traceback
from typing import AsyncIterator, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from voice_relay.config.constants import INPUT_CHANNELS, INPUT_ENCODING, INPUT_SAMPLE_RATE, LOGGER_NAME
from voice_relay.config.settings import RelaySettings
from voice_relay.models.provider_schemas import TranscriptEvent

logger = logging.getLogger(LOGGER_NAME)

DEEPGRAM_LISTEN_URL = "wss://api.deepgram.com/v1/listen"

# WebSocket configuration
WS_MAX_SIZE = 1024 * 1024  # transcripts are small JSON documents
WS_PING_INTERVAL = 5


class DeepgramTranscriptionClient:
    """
    Streaming speech-to-text connection for one session.

    Audio frames go up with send_audio(); provider results come back as a lazy
    sequence of TranscriptEvent values from events(), which ends when the
    upstream connection closes.
    """
    def __init__(
        self,
        api_key: Optional[str],
        endpointing_ms: int = 300,
        connect_timeout: float = 10.0,
        keepalive_interval: float = 8.0,
        sample_rate: int = INPUT_SAMPLE_RATE,
        channels: int = INPUT_CHANNELS,
    ):
        self.api_key = api_key
        self.endpointing_ms = endpointing_ms
        self.connect_timeout = connect_timeout
        self.keepalive_interval = keepalive_interval
        self.sample_rate = sample_rate
        self.channels = channels

        self.ws = None
        self._events: asyncio.Queue = asyncio.Queue()
        self._recv_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False
        self._last_audio = 0.0

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "DeepgramTranscriptionClient":
        return cls(
            settings.deepgram_api_key,
            endpointing_ms=settings.transcription_endpointing_ms,
            connect_timeout=settings.transcription_connect_timeout,
            keepalive_interval=settings.transcription_keepalive_interval,
        )

    @property
    def is_connected(self) -> bool:
        return self._connection_active and not self._is_closing

    def build_url(self) -> str:
        params = {
            "encoding": INPUT_ENCODING,
            "sample_rate": str(self.sample_rate),
            "channels": str(self.channels),
            "interim_results": "true",
            "punctuate": "true",
            "endpointing": str(self.endpointing_ms),
        }
        return f"{DEEPGRAM_LISTEN_URL}?{urlencode(params)}"

    async def connect(self) -> bool:
        """
        Open the streaming connection, waiting at most connect_timeout seconds.

        Returns:
            bool: True if the connection is open, False otherwise. A failed
            connect is not retried.
        """
        if not self.api_key:
            logger.error("DEEPGRAM_API_KEY not configured")
            return False
        if self._is_closing:
            logger.warning("Cannot connect - transcription client is closing")
            return False

        url = self.build_url()
        headers = {"Authorization": f"Token {self.api_key}"}

        try:
            logger.debug(f"Connecting to transcription provider: {url}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    compression=None,
                    additional_headers=headers,
                ),
                timeout=self.connect_timeout,
            )
            logger.debug(f"Transcription connection established in {time.time() - connection_start:.2f} seconds")
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to transcription provider (after {self.connect_timeout}s)")
            return False
        except Exception as e:
            logger.error(f"Failed to connect to transcription provider: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            return False

        self._connection_active = True
        self._last_audio = time.time()
        self._recv_task = asyncio.create_task(self._recv_loop())
        self._keepalive_task = asyncio.create_task(self._keepalive())
        logger.info("Connected to transcription provider")
        return True

    async def send_audio(self, chunk: bytes) -> bool:
        """
        Forward one raw PCM16 frame.

        Returns:
            bool: True if the frame was sent, False if the connection is not open
        """
        if not self.is_connected or self.ws is None:
            logger.debug("Dropping audio frame - transcription connection not active")
            return False
        try:
            await self.ws.send(chunk)
            self._last_audio = time.time()
            return True
        except ConnectionClosed as e:
            logger.warning(f"Transcription connection closed while sending audio: {e}")
            self._connection_active = False
            return False

    @staticmethod
    def parse_message(message) -> Optional[TranscriptEvent]:
        """Translate one provider message into a TranscriptEvent, if it carries text."""
        if isinstance(message, bytes):
            return None
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.warning(f"Received invalid JSON from transcription provider: {message[:100]}...")
            return None

        if data.get("type") != "Results":
            logger.debug(f"Ignoring transcription message of type: {data.get('type', 'unknown')}")
            return None

        alternatives = (data.get("channel") or {}).get("alternatives") or []
        if not alternatives:
            return None
        transcript = (alternatives[0].get("transcript") or "").strip()
        if not transcript:
            return None

        return TranscriptEvent(
            text=transcript,
            is_final=bool(data.get("is_final")),
            confidence=alternatives[0].get("confidence"),
        )

    async def _recv_loop(self) -> None:
        try:
            async for message in self.ws:
                event = self.parse_message(message)
                if event is not None:
                    logger.debug(f"{'Final' if event.is_final else 'Interim'} transcript: {event.text}")
                    await self._events.put(event)
        except ConnectionClosedOK:
            logger.info("Transcription connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"Transcription connection closed unexpectedly: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in transcription receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
        finally:
            self._connection_active = False
            self._events.put_nowait(None)
            logger.debug("Transcription receive loop exited")

    async def _keepalive(self) -> None:
        """Keep the stream open while the visitor is silent or typing."""
        while self.is_connected:
            await asyncio.sleep(self.keepalive_interval)
            if not self.is_connected:
                break
            if time.time() - self._last_audio >= self.keepalive_interval:
                try:
                    await self.ws.send(json.dumps({"type": "KeepAlive"}))
                    logger.debug("Sent transcription keep-alive")
                except ConnectionClosed:
                    break

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        """Yield transcript events until the connection closes."""
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def close(self) -> None:
        """Ask the provider to flush, close the socket and stop both tasks."""
        if self._is_closing:
            return
        self._is_closing = True
        was_active = self._connection_active
        self._connection_active = False

        if self._keepalive_task:
            self._keepalive_task.cancel()

        if self.ws is not None:
            try:
                if was_active:
                    await self.ws.send(json.dumps({"type": "CloseStream"}))
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Error closing transcription connection: {e}")

        if self._recv_task and not self._recv_task.done():
            self._recv_task.cancel()
            try:
                await self._recv_task
            except asyncio.CancelledError:
                pass

        self._events.put_nowait(None)
        logger.info("Transcription client closed")
