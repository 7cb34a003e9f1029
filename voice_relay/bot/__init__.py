"""
Bot module: the provider bridges and the turn orchestrator.

Key components:
- DeepgramTranscriptionClient: Streaming speech-to-text over a WebSocket,
  with keep-alives and an async iterator of transcript events.
- ChatCompletionClient: Streamed chat completions with tool calls.
- ElevenLabsSynthesisClient: Streamed text-to-speech regrouped into
  playback-ready chunks.
- ConversationOrchestrator: Runs one turn from utterance to spoken reply.

Usage examples:
```python
from voice_relay.bot import ConversationOrchestrator

turn = orchestrator.begin_turn(session, "Where is my order?")
if turn is not None:
    asyncio.create_task(orchestrator.run_turn(session, turn, send))
```
"""

from voice_relay.bot.language_model import ChatCompletionClient
from voice_relay.bot.orchestrator import ConversationOrchestrator
from voice_relay.bot.synthesis import ElevenLabsSynthesisClient
from voice_relay.bot.transcription import DeepgramTranscriptionClient

__all__ = [
    "ChatCompletionClient",
    "ConversationOrchestrator",
    "DeepgramTranscriptionClient",
    "ElevenLabsSynthesisClient",
]
