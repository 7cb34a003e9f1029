"""
Manages the voice session lifecycle.

This module handles the client messages that change what is known about a
session rather than its audio: session.end, customer.info and
conversation.rating. It also owns finalize_session(), the single teardown
path run when a connection ends for any reason.
"""

import asyncio
import logging
from typing import Any, Dict

from fastapi import WebSocket
from pydantic import ValidationError

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.handlers.messaging import send_message
from voice_relay.models.message_schemas import (
    ConversationRatingMessage,
    CustomerInfoMessage,
    CustomerInfoSavedMessage,
    ErrorMessage,
    RatingSavedMessage,
    SessionEndedMessage,
    SessionEndMessage,
)
from voice_relay.models.session import Session
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.services.persistence import ConversationStore, save_session

logger = logging.getLogger(LOGGER_NAME)

NO_CONVERSATION_TO_RATE = "There is no conversation to rate yet"


async def handle_session_end(
    message: Dict[str, Any],
    websocket: WebSocket,
    session: Session,
    relay,
) -> None:
    """
    Handle the session.end message from the voice widget.

    The transcription connection is closed and session.ended is sent. The
    caller stops reading from the socket afterwards and the session is
    finalized by the connection's cleanup.

    Args:
        message: The session.end message
        websocket: The WebSocket connection
        session: The connection's session
        relay: The VoiceRelayManager that owns the session
    """
    try:
        SessionEndMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid session.end message: {e}")

    logger.info(f"Session end requested: {session.session_id}")
    session.ending = True

    if session.transcriber is not None:
        try:
            await session.transcriber.close()
        except Exception as e:
            logger.error(f"Error closing transcription connection: {e}", exc_info=True)

    await send_message(websocket, SessionEndedMessage())
    return None


async def handle_customer_info(
    message: Dict[str, Any],
    websocket: WebSocket,
    session: Session,
    relay,
) -> None:
    """Record who the customer is; later turns and the stored record use it."""
    try:
        info = CustomerInfoMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid customer.info message: {e}")
        await send_message(websocket, ErrorMessage(message="Invalid customer information"))
        return None

    session.customer_name = info.name
    session.customer_email = info.email
    logger.info(f"Customer identified for session {session.session_id}: {info.email}")

    if session.conversation_id is not None and not session.processing:
        await save_session(relay.conversation_store, session)

    await send_message(websocket, CustomerInfoSavedMessage())
    return None


async def handle_conversation_rating(
    message: Dict[str, Any],
    websocket: WebSocket,
    session: Session,
    relay,
) -> None:
    """Attach a 1-5 rating and optional feedback to the stored conversation."""
    try:
        rating = ConversationRatingMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid conversation.rating message: {e}")
        await send_message(websocket, ErrorMessage(message="Rating must be a number from 1 to 5"))
        return None

    if session.conversation_id is None:
        await send_message(websocket, ErrorMessage(message=NO_CONVERSATION_TO_RATE))
        return None

    session.rating = rating.rating
    session.feedback_text = rating.feedback
    logger.info(f"Session {session.session_id} rated {rating.rating}")

    if not session.processing:
        await save_session(relay.conversation_store, session)

    await send_message(websocket, RatingSavedMessage())
    return None


async def finalize_session(
    session_id: str,
    registry: SessionRegistry,
    conversation_store: ConversationStore,
) -> bool:
    """
    Tear down a session exactly once.

    Removing the session from the registry decides who finalizes: a second
    call finds nothing and returns False. The transcription connection is
    closed, the transcript and turn tasks are cancelled and, when anything was
    said, the record is written a last time with its analytics.

    Returns:
        True if this call finalized the session
    """
    session = registry.remove(session_id)
    if session is None:
        logger.debug(f"Session {session_id} already finalized")
        return False

    session.ending = True
    current = asyncio.current_task()
    pending = [
        task
        for task in (session.transcript_task, session.turn_task)
        if task is not None and task is not current and not task.done()
    ]
    for task in pending:
        task.cancel()

    if session.transcriber is not None:
        try:
            await session.transcriber.close()
        except Exception as e:
            logger.error(f"Error closing transcription connection for {session_id}: {e}", exc_info=True)

    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    if session.record_task is not None and not session.record_task.done():
        await session.record_task

    if session.transcript:
        await save_session(conversation_store, session, final=True)

    logger.info(
        f"Session finalized: {session_id} "
        f"({len(session.transcript)} transcript entries, {session.duration_seconds()}s)"
    )
    return True
