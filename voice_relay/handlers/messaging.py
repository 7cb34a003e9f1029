"""Outbound frame helper shared by the handlers and the orchestrator."""

import logging

from fastapi import WebSocket

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.message_schemas import BaseMessage

logger = logging.getLogger(LOGGER_NAME)


async def send_message(websocket: WebSocket, message: BaseMessage) -> bool:
    """
    Serialize and send one frame to the client.

    Returns:
        False if the socket is already gone; the frame is discarded.
    """
    try:
        await websocket.send_text(message.model_dump_json(exclude_none=True))
        return True
    except Exception as e:
        logger.debug(f"Could not send {message.type} frame: {e}")
        return False
