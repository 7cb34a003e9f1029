"""
Configuration module for the storefront voice relay.

This module provides centralized configuration management for the relay,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Application-wide constants such as wire message types, audio
  parameters and provider defaults.
- logging_config: Console and rotating-file logging for the relay logger.
- settings: The RelaySettings model, populated from environment variables.

Usage examples:
```python
from voice_relay.config.constants import LOGGER_NAME, MESSAGE_TYPE_TEXT_RESPONSE
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Using chat model {settings.openai_chat_model}")
```
"""
