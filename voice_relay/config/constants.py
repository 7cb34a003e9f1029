"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the relay,
providing a centralized location for wire message types, audio parameters and
provider defaults so that naming stays consistent throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# Input audio: mono, 24kHz, 16-bit signed little-endian PCM
INPUT_SAMPLE_RATE = 24000
INPUT_CHANNELS = 1
INPUT_ENCODING = "linear16"
# Samples per captured frame on the client side
CLIENT_FRAME_SAMPLES = 4096

# Output audio is whatever the synthesis provider streams back
OUTPUT_AUDIO_FORMAT = "mp3"

# Conversation defaults
HISTORY_WINDOW = 10
DEFAULT_CUSTOMER_IDENTIFIER = "web-customer"
DEFAULT_GREETING = "Voice assistant ready"
FALLBACK_REPLY = "I apologize, I didn't catch that."

# Provider defaults
DEFAULT_CHAT_MODEL = "gpt-4"
DEFAULT_TTS_MODEL = "eleven_turbo_v2_5"
DEFAULT_VOICE_ID = "Kft8nAqXain1XJjJLVz7"
DEFAULT_SHOPIFY_API_VERSION = "2024-01"

# Client -> relay message types
MESSAGE_TYPE_AUDIO_CHUNK = "audio.chunk"
MESSAGE_TYPE_TEXT_MESSAGE = "text.message"
MESSAGE_TYPE_SESSION_END = "session.end"
MESSAGE_TYPE_CUSTOMER_INFO = "customer.info"
MESSAGE_TYPE_CONVERSATION_RATING = "conversation.rating"

# Relay -> client message types
MESSAGE_TYPE_CONNECTION_ESTABLISHED = "connection.established"
MESSAGE_TYPE_TRANSCRIPT_UPDATE = "transcript.update"
MESSAGE_TYPE_TEXT_RESPONSE = "text.response"
MESSAGE_TYPE_AUDIO_RESPONSE = "audio.response"
MESSAGE_TYPE_AUDIO_COMPLETE = "audio.complete"
MESSAGE_TYPE_ERROR = "error"
MESSAGE_TYPE_SESSION_ENDED = "session.ended"
MESSAGE_TYPE_CUSTOMER_INFO_SAVED = "customer.info.saved"
MESSAGE_TYPE_RATING_SAVED = "rating.saved"
