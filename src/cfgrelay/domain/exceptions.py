class RelayError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Client-caused (400)
# ---------------------------------------------------------------------------


class ValidationError(RelayError):
    """Upload request rejected before admission."""


class InvalidFileType(ValidationError):
    """Uploaded file does not carry the accepted extension."""


class FileTooLarge(ValidationError):
    """Uploaded file exceeds the configured byte ceiling."""


class ContentTooLong(ValidationError):
    """Message text exceeds the platform message-length limit."""


class InvalidEmbedFormat(ValidationError):
    """Embeds field is not a JSON array holding at most one object."""


class MissingFile(ValidationError):
    """A route that needs a file received none."""


# ---------------------------------------------------------------------------
# Server-side configuration (500)
# ---------------------------------------------------------------------------


class ConfigurationError(RelayError):
    """Required configuration is missing or unusable."""


class WebhookNotConfigured(ConfigurationError):
    def __init__(self, message: str = "Webhook not configured") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Delivery / storage (recovered internally or mapped to 5xx)
# ---------------------------------------------------------------------------


class DeliveryFailed(RelayError):
    """The webhook rejected a delivery or could not be reached.

    ``status`` is None when no HTTP response was received.
    """

    def __init__(self, status: int | None, body: str) -> None:
        self.status = status
        self.body = body
        label = status if status is not None else "network"
        super().__init__(f"Discord webhook error: {label} - {body}")


class StorageUnavailable(RelayError):
    def __init__(self, message: str = "Storage API unavailable") -> None:
        super().__init__(message)


class StorageError(RelayError):
    """Storage Service answered with a non-success status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Storage API error: {status} - {body}")


class QueueClosed(RelayError):
    def __init__(self, message: str = "Upload queue is shutting down") -> None:
        super().__init__(message)
