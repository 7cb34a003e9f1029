"""
FastAPI server for the storefront voice relay.

This module initializes and configures the FastAPI application that the
voice widget connects to. A widget opens /ws?shop=<domain>, streams
microphone audio or typed text, and receives transcripts, text replies and
synthesized speech back over the same socket.
"""

import os
from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket

from voice_relay.config.logging_config import configure_logging
from voice_relay.websocket_manager import VoiceRelayManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging(os.getenv("LOG_LEVEL"))

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")
VERSION = "1.0.0"

app = FastAPI(
    title="Storefront Voice Relay",
    description="Real-time voice assistant relay for e-commerce storefronts",
    version=VERSION,
)

websocket_manager = VoiceRelayManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for the voice widget.

    The shop is passed as the `shop` query parameter. Unknown, inactive or
    disabled shops are refused before the connection is accepted.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Provider configuration flags and the number of live sessions.
    """
    settings = websocket_manager.settings
    return {
        "status": "healthy",
        "openai_api_key_configured": bool(settings.openai_api_key),
        "deepgram_api_key_configured": bool(settings.deepgram_api_key),
        "elevenlabs_api_key_configured": bool(settings.elevenlabs_api_key),
        "supabase_configured": settings.supabase_configured,
        "active_sessions": len(websocket_manager.registry),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "name": "Storefront Voice Relay",
        "description": "Real-time voice assistant relay for e-commerce storefronts",
        "version": VERSION,
        "endpoints": {
            "/ws?shop=<domain>": "WebSocket endpoint for the voice widget",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB, large enough for audio chunks
        websocket_ping_timeout=20,
        http="h11",
    )
