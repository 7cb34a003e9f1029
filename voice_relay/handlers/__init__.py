"""
Handlers module for the voice widget WebSocket protocol.

Each handler takes the decoded message, the client WebSocket, the
connection's Session and the VoiceRelayManager that owns it.

Key components:
- session_handlers: session.end, customer.info and conversation.rating, plus
  finalize_session(), the single teardown path for a session.
- stream_handlers: Forwards audio.chunk frames to speech-to-text and relays
  transcript events back, starting a turn for each final transcript.
- text_handlers: Starts a turn from typed text.
- messaging: send_message(), the outbound frame helper.

Usage examples:
```python
from voice_relay.handlers.text_handlers import handle_text_message

await handle_text_message(
    {"type": "text.message", "message": "Where is order 1001?"},
    websocket,
    session,
    relay,
)
```
"""
