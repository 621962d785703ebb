"""
Parsing of raw event batches received from the eventing endpoint.

A batch is a JSON array of event objects. Each element is either a vendor
envelope or a CloudEvents structured JSON element; ``parse_auto`` detects the
format per element, ``parse_typed`` reads every element as one caller-chosen
event type. Parsing is atomic: any bad element fails the whole call.
"""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from .exceptions import EventGridError, MalformedBatchError
from .models import (
    AnyEvent,
    CloudEvent,
    CloudEventV01,
    EventBatch,
    EventFormat,
    EventGridEvent,
    loads_json,
    typed_event,
)

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)

# Checked in order; the first marker present decides the element format.
_FORMAT_MARKERS = (
    (CloudEventV01.MARKER, EventFormat.CLOUD_EVENTS_V01),
    (CloudEvent.MARKER, EventFormat.CLOUD_EVENTS_V1),
)

_FORMAT_MODELS: Dict[EventFormat, Type[BaseModel]] = {
    EventFormat.VENDOR: EventGridEvent,
    EventFormat.CLOUD_EVENTS_V01: CloudEventV01,
    EventFormat.CLOUD_EVENTS_V1: CloudEvent,
}


def detect_format(element: Dict[str, Any]) -> EventFormat:
    """
    Detect the wire format of a single batch element.

    Args:
        element: Decoded JSON object

    Returns:
        EventFormat of the element
    """
    for marker, event_format in _FORMAT_MARKERS:
        if marker in element:
            return event_format
    return EventFormat.VENDOR


def _resolve_session_id(session_id: Optional[str]) -> str:
    if session_id is None:
        return str(uuid4())
    if not session_id.strip():
        raise ValueError("Session id cannot be blank")
    return session_id


def _load_elements(raw_json: str) -> List[Dict[str, Any]]:
    if raw_json is None or not raw_json.strip():
        raise ValueError("Raw JSON body cannot be blank")

    try:
        document = loads_json(raw_json)
    except ValueError as e:
        raise MalformedBatchError(f"Batch is not valid JSON: {e}") from e

    if not isinstance(document, list):
        raise MalformedBatchError(
            f"Batch must be a JSON array, got {type(document).__name__}",
            found=type(document).__name__
        )

    for index, element in enumerate(document):
        if not isinstance(element, dict):
            raise MalformedBatchError(
                f"Batch element {index} is not a JSON object",
                index=index,
                found=type(element).__name__
            )

    return document


def _validate_element(model: Type[TModel], element: Dict[str, Any], index: int) -> TModel:
    try:
        return model.model_validate(element)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors() if err["type"] == "missing"]
        raise MalformedBatchError(
            f"Batch element {index} cannot be read as {model.__name__}: {e.error_count()} validation error(s)",
            index=index,
            missing_fields=missing
        ) from e
    except EventGridError as e:
        raise MalformedBatchError(
            f"Batch element {index} cannot be read as {model.__name__}: {e.message}",
            index=index
        ) from e


def parse_typed(
    raw_json: str,
    event_type: Type[TModel] = EventGridEvent,
    session_id: Optional[str] = None
) -> EventBatch:
    """
    Parse a raw batch into a custom event type.

    Args:
        raw_json: JSON array of event objects
        event_type: Model every element is read as
        session_id: Batch correlation id; a fresh one is generated if omitted

    Returns:
        EventBatch of ``event_type`` instances, in array order

    Raises:
        ValueError: If raw_json or an explicit session_id is blank
        MalformedBatchError: If the body is not an array of valid event objects
    """
    session_id = _resolve_session_id(session_id)
    elements = _load_elements(raw_json)

    events = [
        _validate_element(event_type, element, index)
        for index, element in enumerate(elements)
    ]

    logger.debug(
        "Parsed typed event batch",
        extra={"session_id": session_id, "event_type": event_type.__name__, "event_count": len(events)}
    )
    return EventBatch(session_id=session_id, events=events)


def parse_from_data(
    raw_json: str,
    payload_type: Any,
    session_id: Optional[str] = None
) -> EventBatch:
    """
    Parse a raw batch of vendor envelopes whose payload is ``payload_type``.

    ``get_payload()`` on the returned events yields ``payload_type`` instances.
    """
    return parse_typed(raw_json, typed_event(payload_type), session_id)


def parse_auto(raw_json: str, session_id: Optional[str] = None) -> EventBatch:
    """
    Parse a raw batch, detecting vendor or CloudEvents format per element.

    Args:
        raw_json: JSON array of event objects
        session_id: Batch correlation id; a fresh one is generated if omitted

    Returns:
        EventBatch of EventGridEvent, CloudEventV01 and CloudEvent instances

    Raises:
        ValueError: If raw_json or an explicit session_id is blank
        MalformedBatchError: If the body is not an array of valid event objects
    """
    session_id = _resolve_session_id(session_id)
    elements = _load_elements(raw_json)

    events: List[AnyEvent] = []
    formats = set()
    for index, element in enumerate(elements):
        event_format = detect_format(element)
        formats.add(event_format.value)
        events.append(_validate_element(_FORMAT_MODELS[event_format], element, index))

    logger.debug(
        "Parsed event batch",
        extra={"session_id": session_id, "formats": sorted(formats), "event_count": len(events)}
    )
    return EventBatch(session_id=session_id, events=events)
