"""
Storefront Voice Relay - real-time voice assistant for e-commerce shops

This application lets a browser voice widget hold a spoken conversation with a
shop's AI assistant. The relay sits between the widget and three providers:
streaming speech-to-text, a chat-completion language model and streaming
text-to-speech.

Architecture Overview:
- FastAPI server exposing one WebSocket endpoint per shop (/ws?shop=<domain>)
- Streaming speech recognition over a provider WebSocket
- Streamed chat completions with an order-lookup tool for the shop's store
- Streamed speech synthesis sent back as playback-ready MP3 chunks
- A conversation record per session with sentiment and topic analytics

Key Components:
- bot: The transcription, language model and synthesis bridges, and the
  orchestrator that runs one conversational turn
- config: Application-wide constants, settings and logging setup
- handlers: Message handlers for the voice widget protocol
- models: Session state, the session registry and wire schemas
- services: Tenants, persistence, analytics, store lookups and the client side
- websocket_manager: Central handler for WebSocket connections and message routing

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY, DEEPGRAM_API_KEY, ELEVENLABS_API_KEY: provider keys
   - SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY, or TENANTS_FILE: tenant source
   - PORT, HOST, LOG_LEVEL: server settings

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the voice widget (or client.py) at ws://your-server:8000/ws?shop=<domain>
"""
