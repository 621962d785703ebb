"""
Exception hierarchy for event publishing and parsing.

Every failure raised by this package derives from EventGridError and carries
a human-readable message plus structured details for logging.
"""
from typing import Any, Dict, Optional


class EventGridError(Exception):
    """
    Base exception for all publishing and parsing errors.

    Attributes:
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logs."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(EventGridError):
    """Raised when a publisher is built with a bad endpoint or key."""


class InvalidPayloadError(EventGridError):
    """Raised when a raw event body is not valid JSON."""


class MalformedBatchError(EventGridError):
    """
    Raised when a raw batch is not a JSON array of event objects.

    The whole parse call fails; no partial batch is returned.
    """

    def __init__(self, message: str, index: Optional[int] = None, **details: Any):
        if index is not None:
            details["index"] = index
        super().__init__(message, details)
        self.index = index


class PayloadDeserializationError(EventGridError):
    """Raised when an event's data cannot be coerced into its payload type."""

    def __init__(self, message: str, event_id: str, payload_type: Any):
        super().__init__(
            message,
            {"event_id": event_id, "payload_type": getattr(payload_type, "__name__", str(payload_type))}
        )
        self.event_id = event_id
        self.payload_type = payload_type


class PublishError(EventGridError):
    """Base class for failed publish calls."""


class PublishRejectedError(PublishError):
    """Raised when the endpoint rejects a batch with a non-transient status."""

    def __init__(self, status_code: int, body: str, attempts: int = 1):
        super().__init__(
            f"Publish rejected with HTTP {status_code}",
            {"status_code": status_code, "body": body[:500], "attempts": attempts}
        )
        self.status_code = status_code
        self.body = body
        self.attempts = attempts


class PublishExhaustedError(PublishError):
    """Raised when transient failures persist past the retry budget."""

    def __init__(
        self,
        attempts: int,
        last_status_code: Optional[int] = None,
        last_error: Optional[str] = None
    ):
        super().__init__(
            f"Publish failed after {attempts} attempt(s)",
            {"attempts": attempts, "last_status_code": last_status_code, "last_error": last_error}
        )
        self.attempts = attempts
        self.last_status_code = last_status_code
        self.last_error = last_error


class PublishCancelledError(PublishError):
    """Raised when a caller cancels a publish call between attempts."""

    def __init__(self, attempts: int):
        super().__init__(f"Publish cancelled after {attempts} attempt(s)", {"attempts": attempts})
        self.attempts = attempts
