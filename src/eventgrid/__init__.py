"""
Client for publishing events to a topic endpoint and parsing received batches.

Publishes the vendor event envelope; parses both the vendor envelope and
CloudEvents structured JSON.
"""
__version__ = "1.0.0"

from .builder import EventGridPublisherBuilder
from .exceptions import (
    ConfigurationError,
    EventGridError,
    InvalidPayloadError,
    MalformedBatchError,
    PayloadDeserializationError,
    PublishCancelledError,
    PublishError,
    PublishExhaustedError,
    PublishRejectedError,
)
from .models import CloudEvent, CloudEventV01, EventBatch, EventFormat, EventGridEvent, RawEvent, typed_event
from .parser import detect_format, parse_auto, parse_from_data, parse_typed
from .publisher import EventGridPublisher, PublishResult
from .retry import RetryPolicy

__all__ = [
    "CloudEvent",
    "CloudEventV01",
    "ConfigurationError",
    "EventBatch",
    "EventFormat",
    "EventGridError",
    "EventGridEvent",
    "EventGridPublisher",
    "EventGridPublisherBuilder",
    "InvalidPayloadError",
    "MalformedBatchError",
    "PayloadDeserializationError",
    "PublishCancelledError",
    "PublishError",
    "PublishExhaustedError",
    "PublishRejectedError",
    "PublishResult",
    "RawEvent",
    "RetryPolicy",
    "detect_format",
    "parse_auto",
    "parse_from_data",
    "parse_typed",
    "typed_event",
]
