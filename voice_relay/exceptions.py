"""Exceptions raised by the relay."""


class VoiceRelayError(Exception):
    """Base class for relay errors."""


class TenantUnavailableError(VoiceRelayError):
    """The connecting tenant cannot use the voice assistant.

    Carries the HTTP status used to refuse the WebSocket upgrade.
    """

    def __init__(self, status_code: int, reason: str):
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


class InvalidTransitionError(VoiceRelayError):
    """A session was asked to move between two turn states that are not adjacent."""


class ProviderError(VoiceRelayError):
    """An upstream provider (model, synthesis, store) returned an error."""

    def __init__(self, provider: str, message: str, status: int = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status
