"""
Handles audio streaming between the voice widget and the transcription bridge.

Microphone frames from audio.chunk messages are forwarded to the session's
speech-to-text connection, and the transcript events coming back are relayed
to the client and turned into model turns.
"""

import asyncio
import base64
import binascii
import logging
import time
from functools import partial
from typing import Any, Dict

from fastapi import WebSocket

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.handlers.messaging import send_message
from voice_relay.models.message_schemas import ErrorMessage, TranscriptUpdateMessage
from voice_relay.models.session import Session

logger = logging.getLogger(LOGGER_NAME)

TRANSCRIPTION_LOST_MESSAGE = "Voice recognition was interrupted. You can keep typing your questions."


async def handle_audio_chunk(
    message: Dict[str, Any],
    websocket: WebSocket,
    session: Session,
    relay,
) -> None:
    """
    Handle the audio.chunk message from the voice widget.

    The base64 PCM16 frame is decoded and forwarded to the transcription
    provider. This is the hot path, so the frame is not run through the full
    pydantic model.

    Args:
        message: The audio.chunk message containing the `audio` field
        websocket: The client WebSocket
        session: The connection's session
        relay: The VoiceRelayManager that owns the session
    """
    audio = message.get("audio")
    if not audio:
        logger.warning("Missing audio in audio.chunk message")
        return None

    try:
        pcm = base64.b64decode(audio, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Error decoding audio chunk for session {session.session_id}: {e}")
        return None

    transcriber = session.transcriber
    if transcriber is None:
        logger.warning(f"No transcription connection for session {session.session_id}")
        return None

    start_time = time.time()
    await transcriber.send_audio(pcm)

    processing_time = (time.time() - start_time) * 1000
    if processing_time > 10:
        logger.debug(f"Audio chunk forwarding took {processing_time:.2f}ms for session: {session.session_id}")
    return None


async def consume_transcripts(session: Session, websocket: WebSocket, relay) -> None:
    """
    Relay transcript events for the lifetime of the transcription connection.

    Every hypothesis is forwarded as transcript.update. A final transcript
    starts a model turn when the session is idle and is dropped otherwise.
    """
    send = partial(send_message, websocket)
    try:
        async for event in session.transcriber.events():
            await send(TranscriptUpdateMessage(text=event.text, isFinal=event.is_final))
            if event.is_final:
                relay.start_turn(session, event.text, websocket)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Error relaying transcripts for session {session.session_id}: {e}", exc_info=True)

    if not session.ending and session.session_id in relay.registry:
        logger.warning(f"Transcription connection lost for session {session.session_id}")
        await send(ErrorMessage(message=TRANSCRIPTION_LOST_MESSAGE))
