"""
Chat-completion client for the conversation orchestrator.

Requests are streamed (server-sent events) so a dead provider connection is
noticed by the transport rather than by a client-side timeout. stream()
yields typed deltas; complete() folds them into a single ModelReply.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import aiohttp
from aiohttp import ClientTimeout
from pydantic import BaseModel

from voice_relay.config.constants import DEFAULT_CHAT_MODEL, LOGGER_NAME
from voice_relay.config.settings import RelaySettings
from voice_relay.exceptions import ProviderError
from voice_relay.models.provider_schemas import ChatMessage, ModelReply, ToolCall

logger = logging.getLogger(LOGGER_NAME)

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


class TextDelta(BaseModel):
    text: str


class ToolCallDelta(BaseModel):
    index: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


class FinishEvent(BaseModel):
    reason: Optional[str] = None


ModelEvent = Union[TextDelta, ToolCallDelta, FinishEvent]


def parse_sse_line(line: str) -> List[ModelEvent]:
    """Decode one `data: ...` line of the completion stream."""
    line = line.strip()
    if not line.startswith("data:"):
        return []
    payload = line[len("data:"):].strip()
    if not payload or payload == "[DONE]":
        return []
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug(f"Skipping invalid stream line: {payload[:100]}")
        return []

    events: List[ModelEvent] = []
    for choice in data.get("choices") or []:
        delta = choice.get("delta") or {}
        if delta.get("content"):
            events.append(TextDelta(text=delta["content"]))
        for call in delta.get("tool_calls") or []:
            function = call.get("function") or {}
            events.append(ToolCallDelta(
                index=call.get("index", 0),
                id=call.get("id"),
                name=function.get("name"),
                arguments=function.get("arguments") or "",
            ))
        if choice.get("finish_reason"):
            events.append(FinishEvent(reason=choice["finish_reason"]))
    return events


async def collect_reply(events: AsyncIterator[ModelEvent]) -> ModelReply:
    """Fold a delta stream into the final reply; only the first tool call is kept."""
    text_parts: List[str] = []
    calls: Dict[int, Dict[str, Any]] = {}
    finish_reason = None

    async for event in events:
        if isinstance(event, TextDelta):
            text_parts.append(event.text)
        elif isinstance(event, ToolCallDelta):
            call = calls.setdefault(event.index, {"id": None, "name": "", "arguments": ""})
            if event.id:
                call["id"] = event.id
            if event.name:
                call["name"] += event.name
            call["arguments"] += event.arguments
        elif isinstance(event, FinishEvent):
            finish_reason = event.reason

    tool_call = None
    if calls:
        first = calls[min(calls)]
        if first["name"]:
            tool_call = ToolCall(id=first["id"], name=first["name"], arguments=first["arguments"])

    return ModelReply(text="".join(text_parts).strip(), tool_call=tool_call, finish_reason=finish_reason)


class ChatCompletionClient:
    """Streaming chat-completion requests with optional tools."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_CHAT_MODEL,
        max_tokens: int = 150,
        temperature: float = 0.7,
        url: str = CHAT_COMPLETIONS_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.url = url

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "ChatCompletionClient":
        return cls(
            settings.openai_api_key,
            model=settings.openai_chat_model,
            max_tokens=settings.openai_max_tokens,
            temperature=settings.openai_temperature,
        )

    def build_payload(self, messages: List[ChatMessage], tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": [message.to_api() for message in messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    async def stream(
        self,
        messages: List[ChatMessage],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[ModelEvent]:
        """
        Send the request and yield deltas as they arrive.

        Raises:
            ProviderError: If the key is missing or the provider rejects the request
        """
        if not self.api_key:
            raise ProviderError("openai", "OPENAI_API_KEY not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = self.build_payload(messages, tools)
        logger.debug(f"Sending streaming completion request ({len(messages)} messages)")

        # No total timeout; only a stalled read is treated as a dead connection
        timeout = ClientTimeout(total=None, sock_connect=10, sock_read=60)
        async with aiohttp.ClientSession(timeout=timeout) as http:
            async with http.post(self.url, headers=headers, json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError("openai", f"API error {response.status}: {body[:200]}", response.status)
                async for raw_line in response.content:
                    for event in parse_sse_line(raw_line.decode("utf-8", errors="ignore")):
                        yield event

    async def complete(
        self,
        messages: List[ChatMessage],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelReply:
        reply = await collect_reply(self.stream(messages, tools))
        logger.info(
            f"Model reply complete (finish_reason={reply.finish_reason}, "
            f"tool_call={reply.tool_call.name if reply.tool_call else None})"
        )
        return reply
