"""
Environment-driven settings for the relay.

All provider credentials and tunables are read from environment variables
(optionally populated from a .env file by main.py) and collected into a single
RelaySettings model so that the bridges never call os.getenv themselves.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

from voice_relay.config.constants import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_SHOPIFY_API_VERSION,
    DEFAULT_TTS_MODEL,
    DEFAULT_VOICE_ID,
    HISTORY_WINDOW,
)


class RelaySettings(BaseModel):
    """Runtime configuration for the voice relay."""

    # Language model
    openai_api_key: Optional[str] = None
    openai_chat_model: str = DEFAULT_CHAT_MODEL
    openai_max_tokens: int = Field(150, gt=0)
    openai_temperature: float = Field(0.7, ge=0.0, le=2.0)

    # Speech-to-text
    deepgram_api_key: Optional[str] = None
    transcription_endpointing_ms: int = Field(300, gt=0)
    transcription_connect_timeout: float = Field(10.0, gt=0)
    transcription_keepalive_interval: float = Field(8.0, gt=0)

    # Text-to-speech
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_model: str = DEFAULT_TTS_MODEL
    default_voice_id: str = DEFAULT_VOICE_ID
    audio_min_chunk_bytes: int = Field(16384, gt=0)

    # Conversation
    history_window: int = Field(HISTORY_WINDOW, gt=0)

    # Collaborators
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    tenants_file: Optional[str] = None
    shopify_api_version: str = DEFAULT_SHOPIFY_API_VERSION

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


# Environment variable -> RelaySettings field
ENV_FIELDS = {
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_CHAT_MODEL": "openai_chat_model",
    "OPENAI_MAX_TOKENS": "openai_max_tokens",
    "OPENAI_TEMPERATURE": "openai_temperature",
    "DEEPGRAM_API_KEY": "deepgram_api_key",
    "TRANSCRIPTION_ENDPOINTING_MS": "transcription_endpointing_ms",
    "TRANSCRIPTION_CONNECT_TIMEOUT": "transcription_connect_timeout",
    "TRANSCRIPTION_KEEPALIVE_INTERVAL": "transcription_keepalive_interval",
    "ELEVENLABS_API_KEY": "elevenlabs_api_key",
    "ELEVENLABS_MODEL": "elevenlabs_model",
    "DEFAULT_VOICE_ID": "default_voice_id",
    "AUDIO_MIN_CHUNK_BYTES": "audio_min_chunk_bytes",
    "HISTORY_WINDOW": "history_window",
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_SERVICE_ROLE_KEY": "supabase_service_role_key",
    "TENANTS_FILE": "tenants_file",
    "SHOPIFY_API_VERSION": "shopify_api_version",
}


def load_settings() -> RelaySettings:
    """
    Build RelaySettings from the current environment.

    Unset or empty variables keep the model defaults; pydantic coerces the
    numeric ones and rejects invalid values with a ValidationError.
    """
    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        value = os.getenv(env_name)
        if value:
            values[field_name] = value
    return RelaySettings(**values)
