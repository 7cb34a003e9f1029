"""
Speech synthesis bridge.

Reply text is sent to the text-to-speech provider and the streamed MP3 bytes
are regrouped into chunks of at least min_chunk_bytes (the last one may be
shorter) so that every chunk handed to the client decodes on its own.
"""

import logging
from typing import AsyncIterator, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from voice_relay.config.constants import DEFAULT_TTS_MODEL, DEFAULT_VOICE_ID, LOGGER_NAME, OUTPUT_AUDIO_FORMAT
from voice_relay.config.settings import RelaySettings
from voice_relay.exceptions import ProviderError
from voice_relay.models.provider_schemas import AudioChunk

logger = logging.getLogger(LOGGER_NAME)

ELEVENLABS_STREAM_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}/stream"
READ_SIZE = 4096

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0,
    "use_speaker_boost": True,
}


class AudioChunker:
    """Accumulates raw bytes and releases them in chunks of at least min_bytes."""

    def __init__(self, min_bytes: int):
        if min_bytes <= 0:
            raise ValueError("min_bytes must be positive")
        self.min_bytes = min_bytes
        self._buffer = bytearray()

    def feed(self, data: bytes) -> List[bytes]:
        self._buffer.extend(data)
        if len(self._buffer) < self.min_bytes:
            return []
        chunk = bytes(self._buffer)
        self._buffer.clear()
        return [chunk]

    def flush(self) -> Optional[bytes]:
        if not self._buffer:
            return None
        chunk = bytes(self._buffer)
        self._buffer.clear()
        return chunk


class ElevenLabsSynthesisClient:
    """Streaming text-to-speech requests."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_TTS_MODEL,
        default_voice_id: str = DEFAULT_VOICE_ID,
        min_chunk_bytes: int = 16384,
    ):
        self.api_key = api_key
        self.model = model
        self.default_voice_id = default_voice_id
        self.min_chunk_bytes = min_chunk_bytes

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "ElevenLabsSynthesisClient":
        return cls(
            settings.elevenlabs_api_key,
            model=settings.elevenlabs_model,
            default_voice_id=settings.default_voice_id,
            min_chunk_bytes=settings.audio_min_chunk_bytes,
        )

    async def _stream_bytes(self, text: str, voice_id: str) -> AsyncIterator[bytes]:
        if not self.api_key:
            raise ProviderError("elevenlabs", "ELEVENLABS_API_KEY not configured")

        url = ELEVENLABS_STREAM_URL.format(voice_id=voice_id)
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }
        payload = {"text": text, "model_id": self.model, "voice_settings": VOICE_SETTINGS}

        timeout = ClientTimeout(total=None, sock_connect=10, sock_read=30)
        async with aiohttp.ClientSession(timeout=timeout) as http:
            async with http.post(url, headers=headers, json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError(
                        "elevenlabs",
                        f"API error {response.status} for voice {voice_id}: {body[:200]}",
                        response.status,
                    )
                async for data in response.content.iter_chunked(READ_SIZE):
                    yield data

    async def stream(self, text: str, voice_id: Optional[str] = None) -> AsyncIterator[AudioChunk]:
        """
        Synthesize text and yield playback-ready chunks in order.

        Raises:
            ProviderError: If the provider rejects the request
        """
        voice = voice_id or self.default_voice_id
        chunker = AudioChunker(self.min_chunk_bytes)
        index = 0
        logger.debug(f"Generating speech with voice {voice} ({len(text)} characters)")

        async for data in self._stream_bytes(text, voice):
            for chunk in chunker.feed(data):
                yield AudioChunk(index=index, data=chunk, format=OUTPUT_AUDIO_FORMAT)
                index += 1

        tail = chunker.flush()
        if tail:
            yield AudioChunk(index=index, data=tail, format=OUTPUT_AUDIO_FORMAT)
