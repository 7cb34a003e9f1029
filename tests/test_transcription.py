"""
Unit tests for the streaming transcription client.

These tests verify the DeepgramTranscriptionClient connection handling,
audio forwarding and translation of provider messages into transcript events.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from voice_relay.bot.transcription import DeepgramTranscriptionClient
from voice_relay.config.settings import RelaySettings


def results(transcript, is_final=True, confidence=0.98):
    return json.dumps({
        "type": "Results",
        "is_final": is_final,
        "channel": {"alternatives": [{"transcript": transcript, "confidence": confidence}]},
    })


class ProviderSocket:
    """Async-iterable stand-in for the provider connection."""

    def __init__(self, messages):
        self.messages = messages
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


@pytest.fixture
def transcription_client():
    return DeepgramTranscriptionClient("test-api-key", endpointing_ms=300, connect_timeout=10)


def test_from_settings():
    settings = RelaySettings(deepgram_api_key="dg", transcription_endpointing_ms=500)

    client = DeepgramTranscriptionClient.from_settings(settings)

    assert client.api_key == "dg"
    assert client.endpointing_ms == 500


def test_build_url(transcription_client):
    url = transcription_client.build_url()

    assert url.startswith("wss://api.deepgram.com/v1/listen?")
    assert "encoding=linear16" in url
    assert "sample_rate=24000" in url
    assert "channels=1" in url
    assert "interim_results=true" in url
    assert "endpointing=300" in url


@pytest.mark.asyncio
async def test_connect_success(transcription_client):
    mock_ws = AsyncMock()

    with patch("websockets.connect", return_value=mock_ws):
        with patch("asyncio.wait_for", return_value=mock_ws):
            with patch("asyncio.create_task") as mock_create_task:
                result = await transcription_client.connect()

                assert result is True
                assert transcription_client.ws == mock_ws
                assert transcription_client.is_connected
                assert mock_create_task.call_count == 2  # _recv_loop and _keepalive


@pytest.mark.asyncio
async def test_connect_failure(transcription_client):
    with patch("websockets.connect", side_effect=Exception("Connection error")):
        result = await transcription_client.connect()

    assert result is False
    assert not transcription_client.is_connected


@pytest.mark.asyncio
async def test_connect_timeout(transcription_client):
    with patch("websockets.connect"):
        with patch("asyncio.wait_for", side_effect=asyncio.TimeoutError):
            result = await transcription_client.connect()

    assert result is False


@pytest.mark.asyncio
async def test_connect_without_key():
    client = DeepgramTranscriptionClient(None)

    with patch("websockets.connect") as mock_connect:
        assert await client.connect() is False

    mock_connect.assert_not_called()


@pytest.mark.asyncio
async def test_send_audio_success(transcription_client):
    transcription_client.ws = AsyncMock()
    transcription_client._connection_active = True

    result = await transcription_client.send_audio(b"\x00\x01" * 10)

    assert result is True
    transcription_client.ws.send.assert_called_once_with(b"\x00\x01" * 10)


@pytest.mark.asyncio
async def test_send_audio_when_not_connected(transcription_client):
    assert await transcription_client.send_audio(b"\x00\x01") is False


@pytest.mark.asyncio
async def test_send_audio_connection_closed(transcription_client):
    transcription_client.ws = AsyncMock()
    transcription_client.ws.send.side_effect = ConnectionClosedError(None, None)
    transcription_client._connection_active = True

    result = await transcription_client.send_audio(b"\x00\x01")

    assert result is False
    assert not transcription_client.is_connected


def test_parse_final_result():
    event = DeepgramTranscriptionClient.parse_message(results("  Where is my order?  "))

    assert event.text == "Where is my order?"
    assert event.is_final is True
    assert event.confidence == 0.98


def test_parse_interim_result():
    event = DeepgramTranscriptionClient.parse_message(results("Where is", is_final=False))

    assert event.is_final is False


@pytest.mark.parametrize(
    "message",
    [
        results("   "),
        json.dumps({"type": "Metadata", "request_id": "abc"}),
        json.dumps({"type": "Results", "channel": {"alternatives": []}}),
        "not json",
        b"\x00\x01",
    ],
)
def test_parse_ignores_messages_without_text(message):
    assert DeepgramTranscriptionClient.parse_message(message) is None


@pytest.mark.asyncio
async def test_events_end_when_connection_closes(transcription_client):
    transcription_client.ws = ProviderSocket([
        results("Where", is_final=False),
        json.dumps({"type": "Metadata"}),
        results("Where is order 1001?"),
    ])
    transcription_client._connection_active = True

    await transcription_client._recv_loop()
    events = [event async for event in transcription_client.events()]

    assert [(event.text, event.is_final) for event in events] == [
        ("Where", False),
        ("Where is order 1001?", True),
    ]
    assert not transcription_client.is_connected


@pytest.mark.asyncio
async def test_close_flushes_and_ends_events(transcription_client):
    socket = ProviderSocket([])
    transcription_client.ws = socket
    transcription_client._connection_active = True

    await transcription_client.close()

    socket.send.assert_called_once_with(json.dumps({"type": "CloseStream"}))
    socket.close.assert_called_once()
    assert [event async for event in transcription_client.events()] == []

    # A second close is a no-op
    await transcription_client.close()
    socket.close.assert_called_once()
