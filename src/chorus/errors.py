"""Error taxonomy for chat generation.

Hides how provider SDK failures are classified. Every failure that can
reach the orchestrator is one of these types, so callers can tell
"never heard back" apart from "heard back with an error".
"""


class ChatError(Exception):
    """Base class for all chat engine failures."""

    category = "error"
    retryable = False

    def __init__(self, message: str, *, provider: str | None = None, model: str | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model

    def to_dict(self) -> dict[str, str | None]:
        """Structured form for diagnostics."""
        return {
            "category": self.category,
            "type": type(self).__name__,
            "message": self.message,
            "provider": self.provider,
            "model": self.model,
        }


class ConfigurationError(ChatError):
    """Missing credential or unusable model. Surfaced immediately, never retried."""

    category = "configuration"


class CredentialError(ConfigurationError):
    """No credential configured, or the provider rejected it."""


class UnknownModelError(ConfigurationError):
    """Model name is not in the catalogue."""


class ModelUnavailableError(ConfigurationError):
    """Provider reports the model does not exist or is not served."""


class TransportError(ChatError):
    """Network failure while talking to the provider."""

    category = "transport"


class MalformedResponseError(TransportError):
    """Provider sent something that could not be read as a completion chunk."""


class ProviderRefusal(ChatError):
    """Provider answered with an error payload instead of content."""

    category = "refusal"


class ValidationError(ChatError):
    """Request rejected before reaching the network layer."""

    category = "validation"


class SessionNotFoundError(ValidationError):
    """Session id does not exist in the collection."""


class GenerationTimeoutError(ChatError):
    """Provider produced no first delta within the allowed wait."""

    category = "timeout"
