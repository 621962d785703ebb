"""
Event models for the vendor envelope and CloudEvents structured JSON.

The vendor envelope (``EventGridEvent``) is the shape sent on publish:

    {"id", "subject", "eventType", "eventTime", "dataVersion", "data"}

Received payloads may also hold CloudEvents elements, recognised by their
version marker field (``cloudEventsVersion`` for 0.1, ``specversion`` for 1.0).

See: https://github.com/cloudevents/spec/blob/v0.1/spec.md
"""
import json
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, ValidationInfo, field_validator

from .exceptions import InvalidPayloadError, PayloadDeserializationError

DEFAULT_SUBJECT = "/"
DEFAULT_RAW_DATA_VERSION = "1.0"

# Validation context marking values handed in by a caller rather than read off the wire.
CALLER_CONTEXT = {"caller": True}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def loads_json(text: str) -> Any:
    """Decode strict JSON text; NaN and Infinity are rejected."""
    return json.loads(text, parse_constant=_reject_constant)


def dumps_json(value: Any) -> str:
    """Encode a value as strict JSON text; NaN and Infinity are rejected."""
    return json.dumps(value, allow_nan=False)


@lru_cache(maxsize=128)
def _payload_adapter(payload_type: Any) -> TypeAdapter:
    return TypeAdapter(payload_type)


class EventFormat(str, Enum):
    """Wire formats recognised in a received batch."""

    VENDOR = "vendor"
    CLOUD_EVENTS_V01 = "cloudevents-0.1"
    CLOUD_EVENTS_V1 = "cloudevents-1.0"


class EventGridEvent(BaseModel):
    """
    Event in the vendor envelope format.

    Typed events subclass this model, declare their ``payload_type`` and
    give ``event_type``/``data_version`` fixed defaults:

        class NewCarRegistered(EventGridEvent):
            payload_type: ClassVar[type] = CarEventData

            event_type: str = Field(default="Arcus.Samples.Cars.NewCarRegistered", alias="eventType")
            data_version: str = Field(default="1", alias="dataVersion")

    Instances are immutable once constructed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    payload_type: ClassVar[Optional[Any]] = None

    id: str = Field(..., min_length=1, description="Caller supplied event identifier")
    subject: str = Field(default=DEFAULT_SUBJECT, description="Publisher-defined path to the event subject")
    event_type: str = Field(..., alias="eventType", min_length=1, description="Identifies the payload schema")
    event_time: datetime = Field(default_factory=_utcnow, alias="eventTime")
    data_version: str = Field(..., alias="dataVersion", min_length=1, description="Schema version of the payload")
    data: Optional[Any] = Field(default=None, description="Opaque JSON payload")

    @field_validator("subject", mode="before")
    @classmethod
    def default_subject(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_SUBJECT
        return value

    @field_validator("data", mode="before")
    @classmethod
    def normalize_data(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json", by_alias=True)
        return value

    @classmethod
    def create(
        cls,
        id: str,
        event_type: Optional[str] = None,
        data: Any = None,
        subject: Optional[str] = None,
        data_version: Optional[str] = None,
        event_time: Optional[datetime] = None
    ) -> "EventGridEvent":
        """
        Create an event, applying defaults for every omitted attribute.

        Args:
            id: Event identifier, used as publish/receive correlation key
            event_type: Payload schema identifier (typed events supply their own)
            data: Payload, either JSON-compatible data or a pydantic model
            subject: Event subject, defaults to "/"
            data_version: Payload schema version (typed events supply their own)
            event_time: Event timestamp, defaults to now (UTC)

        Returns:
            Event instance of the class this is called on
        """
        values: Dict[str, Any] = {"id": id, "data": data, "subject": subject}
        if event_type is not None:
            values["event_type"] = event_type
        if data_version is not None:
            values["data_version"] = data_version
        if event_time is not None:
            values["event_time"] = event_time
        return cls.model_validate(values, context=CALLER_CONTEXT)

    def _payload_source(self) -> Any:
        return self.data

    def get_payload(self) -> Any:
        """
        Deserialize ``data`` into the declared payload type.

        Returns:
            Payload instance, the raw data when no payload type is declared,
            or None when the event carries no data

        Raises:
            PayloadDeserializationError: If data cannot be coerced
        """
        if self.data is None:
            return None

        source = self._payload_source()
        if self.payload_type is None:
            return source

        try:
            return _payload_adapter(self.payload_type).validate_python(source)
        except ValidationError as e:
            raise PayloadDeserializationError(
                f"Event '{self.id}' data cannot be read as {getattr(self.payload_type, '__name__', self.payload_type)}: "
                f"{e.error_count()} validation error(s)",
                event_id=self.id,
                payload_type=self.payload_type
            ) from e

    def to_envelope(self) -> Dict[str, Any]:
        """Convert to the vendor envelope dictionary (JSON-ready)."""
        return self.model_dump(mode="json", by_alias=True)


class RawEvent(EventGridEvent):
    """
    Event whose payload is pre-serialized JSON text.

    Skips typed (de)serialization on publish: the text is embedded as the
    envelope's ``data`` value.

    ``create()`` takes the payload as JSON text and validates it. Validating
    an envelope (the receive path) takes ``data`` as the JSON value it is on
    the wire and re-serializes it to text, so a string literal payload such
    as ``"hello"`` survives a publish/parse round trip.
    """

    data_version: str = Field(default=DEFAULT_RAW_DATA_VERSION, alias="dataVersion", min_length=1)
    data: Optional[str] = Field(default=None, description="JSON text of the payload")

    @field_validator("data", mode="before")
    @classmethod
    def normalize_data(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump_json(by_alias=True)

        if info.context and info.context.get("caller"):
            return cls._check_json_text(value)

        if value is None:
            return None
        try:
            return dumps_json(value)
        except (TypeError, ValueError) as e:
            raise InvalidPayloadError(f"Raw event data cannot be written as JSON: {e}") from e

    @staticmethod
    def _check_json_text(value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise InvalidPayloadError(
                "Raw event data must be non-blank JSON text",
                {"data_type": type(value).__name__}
            )

        try:
            loads_json(value)
        except ValueError as e:
            raise InvalidPayloadError(
                f"Raw event data is not valid JSON: {e}",
                {"data": value[:200]}
            ) from e
        return value

    @property
    def raw_data(self) -> Optional[str]:
        """Untouched JSON text of the payload."""
        return self.data

    def _payload_source(self) -> Any:
        return loads_json(self.data)

    def to_envelope(self) -> Dict[str, Any]:
        """Convert to the vendor envelope, embedding the JSON text as a value."""
        envelope = super().to_envelope()
        envelope["data"] = self._payload_source() if self.data is not None else None
        return envelope


@lru_cache(maxsize=None)
def typed_event(payload_type: Any) -> type:
    """
    Get an EventGridEvent subclass whose payload is read as ``payload_type``.

    Args:
        payload_type: Pydantic model (or any type pydantic can validate)

    Returns:
        Cached EventGridEvent subclass
    """
    name = f"EventGridEvent[{getattr(payload_type, '__name__', repr(payload_type))}]"
    return type(
        name,
        (EventGridEvent,),
        {
            "__module__": __name__,
            "__annotations__": {"payload_type": ClassVar[Any]},
            "payload_type": payload_type,
        }
    )


class CloudEventV01(BaseModel):
    """
    CloudEvents v0.1 structured JSON element.

    Recognised by the ``cloudEventsVersion`` attribute.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    MARKER: ClassVar[str] = "cloudEventsVersion"

    cloud_events_version: str = Field(..., alias="cloudEventsVersion", min_length=1)
    event_type: str = Field(..., alias="eventType", min_length=1)
    event_type_version: Optional[str] = Field(default=None, alias="eventTypeVersion")
    source: str = Field(..., min_length=1, description="Context in which the event happened")
    event_id: str = Field(..., alias="eventID", min_length=1)
    event_time: Optional[datetime] = Field(default=None, alias="eventTime")
    schema_url: Optional[str] = Field(default=None, alias="schemaURL")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    extensions: Dict[str, Any] = Field(default_factory=dict)
    data: Optional[Any] = None

    @property
    def id(self) -> str:
        return self.event_id

    def to_envelope(self) -> Dict[str, Any]:
        """Convert to the structured JSON dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CloudEvent(BaseModel):
    """
    CloudEvents v1.0 structured JSON element.

    Recognised by the ``specversion`` attribute. Extension attributes sit at
    the top level of the element; they are kept as extra fields and written
    back by ``to_envelope()``.

    See: https://github.com/cloudevents/spec/blob/v1.0/spec.md
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    MARKER: ClassVar[str] = "specversion"

    # Required fields
    specversion: str = Field(..., min_length=1, description="CloudEvents specification version")
    type: str = Field(..., min_length=1, description="Event type (reverse DNS notation)")
    source: str = Field(..., min_length=1, description="Event source identifier")
    id: str = Field(..., min_length=1, description="Unique event identifier")

    # Optional fields
    time: Optional[datetime] = Field(default=None, description="Event timestamp")
    datacontenttype: Optional[str] = Field(default=None, description="Content type of data field")
    dataschema: Optional[str] = Field(default=None)
    subject: Optional[str] = Field(default=None, description="Subject of the event in context")

    # Event payload
    data: Optional[Any] = Field(default=None, description="Event-specific data payload")
    data_base64: Optional[str] = Field(default=None, description="Base64 encoded binary payload")

    @property
    def extensions(self) -> Dict[str, Any]:
        """Extension attributes of the element."""
        return dict(self.model_extra or {})

    @property
    def event_type(self) -> str:
        return self.type

    @property
    def event_time(self) -> Optional[datetime]:
        return self.time

    def to_envelope(self) -> Dict[str, Any]:
        """Convert to the structured JSON dictionary."""
        return self.model_dump(mode="json", exclude_none=True)


AnyEvent = Union[EventGridEvent, CloudEventV01, CloudEvent]

TEvent = TypeVar("TEvent")


class EventBatch(BaseModel, Generic[TEvent]):
    """
    Group of events received or parsed together.

    Events keep the order of the source JSON array.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1, description="Correlation id for the whole batch")
    events: List[TEvent] = Field(default_factory=list)
