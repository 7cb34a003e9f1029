"""Handles typed input from the voice widget."""

import logging
from typing import Any, Dict

from fastapi import WebSocket
from pydantic import ValidationError

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.handlers.messaging import send_message
from voice_relay.models.message_schemas import ErrorMessage, TextMessage
from voice_relay.models.session import Session

logger = logging.getLogger(LOGGER_NAME)

BUSY_MESSAGE = "Please wait for the current response to finish."


async def handle_text_message(
    message: Dict[str, Any],
    websocket: WebSocket,
    session: Session,
    relay,
) -> None:
    """
    Handle the text.message message from the voice widget.

    Typed text follows the same turn path as a final transcript. When a turn
    is already running the text is dropped and the user is told to wait.
    """
    try:
        text_message = TextMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid text.message message: {e}")
        await send_message(websocket, ErrorMessage(message="Message text is required"))
        return None

    logger.info(f"Text message for session {session.session_id}: {text_message.message}")
    if not relay.start_turn(session, text_message.message, websocket):
        await send_message(websocket, ErrorMessage(message=BUSY_MESSAGE))
    return None
