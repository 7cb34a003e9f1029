"""
Conversation orchestrator: drives one turn from user utterance to spoken reply.

Turn states move idle -> awaiting_model_response -> speaking -> idle. A turn
is claimed synchronously with begin_turn() before its task is started, so a
session can never have two model calls in flight; input that arrives while a
turn is running is dropped by the caller.
"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from voice_relay.config.constants import FALLBACK_REPLY, HISTORY_WINDOW, LOGGER_NAME
from voice_relay.models.message_schemas import (
    AudioCompleteMessage,
    AudioResponseMessage,
    BaseMessage,
    ErrorMessage,
    TextResponseMessage,
)
from voice_relay.models.provider_schemas import STORE_TOOLS, ChatMessage, MessageRole, ToolCall
from voice_relay.models.session import Session, Turn, TurnState
from voice_relay.services.persistence import ConversationStore, save_session

logger = logging.getLogger(LOGGER_NAME)

# Sends one frame to the session's client
Send = Callable[[BaseMessage], Awaitable[None]]

GENERIC_SYSTEM_PROMPT = (
    "You are a helpful AI voice assistant for {shop_domain}.\n"
    "Keep responses concise (under 50 words) and natural for voice conversation.\n"
    "Be professional, friendly, and helpful. Answer customer questions about products, "
    "orders, and general inquiries."
)

TURN_FAILED_MESSAGE = "Failed to process request"
ORDER_NOT_FOUND_REPLY = (
    "I couldn't find order #{order_number}. Could you double-check the order number for me?"
)
ORDER_LOOKUP_UNAVAILABLE_REPLY = "I'm sorry, I can't look up orders right now."
UNKNOWN_TOOL_REPLY = "I'm sorry, I can't help with that request right now."


class ConversationOrchestrator:
    """
    Turns finalized utterances into model calls, replies and synthesized audio.

    Collaborators:
    - model_client: has `async complete(messages, tools) -> ModelReply`
    - synthesizer: has `stream(text, voice_id)` yielding AudioChunk values
    - conversation_store: the persistence sink
    - store_client: has `async lookup_order(shop, token, number, email) -> str | None`
    """

    def __init__(
        self,
        model_client,
        synthesizer,
        conversation_store: ConversationStore,
        store_client=None,
        history_window: int = HISTORY_WINDOW,
    ):
        self.model_client = model_client
        self.synthesizer = synthesizer
        self.conversation_store = conversation_store
        self.store_client = store_client
        self.history_window = history_window

    def build_system_prompt(self, session: Session) -> str:
        prompt = session.tenant.agent.system_prompt or GENERIC_SYSTEM_PROMPT.format(
            shop_domain=session.shop_domain
        )
        if session.customer_name or session.customer_email:
            who = session.customer_name or "the customer"
            if session.customer_email:
                who = f"{who} ({session.customer_email})"
            prompt += f"\n\nYou are speaking with {who}. Address them by name when it feels natural."
        return prompt

    def build_messages(self, session: Session, turn: Turn) -> List[ChatMessage]:
        return [
            ChatMessage(role=MessageRole.SYSTEM, content=self.build_system_prompt(session)),
            *turn.window,
            ChatMessage(role=MessageRole.USER, content=turn.utterance),
        ]

    def tools_for(self, session: Session) -> Optional[List[Dict[str, Any]]]:
        if self.store_client is not None and session.tenant.has_store_credentials:
            return STORE_TOOLS
        return None

    def begin_turn(self, session: Session, utterance: str) -> Optional[Turn]:
        """
        Claim the session for utterance.

        Returns:
            The claimed Turn, or None if a turn is already in flight (the
            utterance is dropped and nothing is recorded)
        """
        turn = session.begin_turn(utterance, self.history_window)
        if turn is None:
            logger.info(
                f"Dropping utterance for session {session.session_id}: "
                f"turn already {session.state.value}"
            )
        return turn

    async def run_turn(self, session: Session, turn: Turn, send: Send) -> None:
        """
        Complete a claimed turn. The session is back to idle when this returns,
        whether the turn succeeded, failed or was cancelled.
        """
        try:
            if session.conversation_id is None:
                # Finalization waits for this insert so only one record is created
                session.record_task = asyncio.ensure_future(save_session(self.conversation_store, session))
                await asyncio.shield(session.record_task)

            try:
                reply = await self.model_client.complete(
                    self.build_messages(session, turn), tools=self.tools_for(session)
                )
                if reply.tool_call is not None:
                    text = await self.dispatch_tool(session, reply.tool_call)
                else:
                    text = reply.text or FALLBACK_REPLY
            except Exception as e:
                logger.error(f"Model call failed for session {session.session_id}: {e}", exc_info=True)
                await send(ErrorMessage(message=TURN_FAILED_MESSAGE))
                return

            session.transition(TurnState.SPEAKING)
            await send(TextResponseMessage(text=text))
            session.add_assistant_reply(text)
            logger.info(f"Reply sent for session {session.session_id}: {text}")

            await self.speak(session, text, send)
            await save_session(self.conversation_store, session)
        finally:
            session.end_turn()

    async def dispatch_tool(self, session: Session, tool_call: ToolCall) -> str:
        """Run the tool the model asked for and return the sentence to say."""
        logger.info(f"Tool call for session {session.session_id}: {tool_call.name}")
        if tool_call.name != "lookup_order":
            logger.warning(f"Unknown tool requested: {tool_call.name}")
            return UNKNOWN_TOOL_REPLY

        if self.store_client is None or not session.tenant.has_store_credentials:
            return ORDER_LOOKUP_UNAVAILABLE_REPLY

        arguments = tool_call.parsed_arguments()
        order_number = str(arguments.get("order_number") or "").strip()
        if not order_number:
            return ORDER_LOOKUP_UNAVAILABLE_REPLY

        summary = await self.store_client.lookup_order(
            session.shop_domain,
            session.tenant.access_token,
            order_number,
            email=arguments.get("email"),
        )
        if summary:
            return summary
        return ORDER_NOT_FOUND_REPLY.format(order_number=order_number.lstrip("#"))

    async def speak(self, session: Session, text: str, send: Send) -> bool:
        """
        Stream synthesized audio for text to the client.

        Returns:
            True if every chunk and the completion marker were sent. Provider
            failures are logged and leave the turn text-only.
        """
        chunks = 0
        total_bytes = 0
        try:
            async for chunk in self.synthesizer.stream(text, voice_id=session.tenant.agent.voice_model):
                await send(AudioResponseMessage(
                    audio=base64.b64encode(chunk.data).decode("utf-8"),
                    format=chunk.format,
                ))
                chunks += 1
                total_bytes += len(chunk.data)
        except Exception as e:
            logger.error(
                f"Speech synthesis failed for session {session.session_id} "
                f"after {chunks} chunk(s): {e}"
            )
            return False

        await send(AudioCompleteMessage(chunks=chunks, bytes=total_bytes))
        logger.info(f"Streamed {total_bytes} bytes of audio in {chunks} chunk(s) for session {session.session_id}")
        return True
