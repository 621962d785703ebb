"""
Publisher for sending events to a topic endpoint.

Events are wrapped in the vendor envelope and sent as one JSON array per
call. Transient failures (network errors, 5xx, 429) are retried with backoff;
other failures surface immediately.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from pydantic import BaseModel

from . import __version__
from .exceptions import (
    InvalidPayloadError,
    PublishCancelledError,
    PublishError,
    PublishExhaustedError,
    PublishRejectedError,
)
from .models import DEFAULT_RAW_DATA_VERSION, EventGridEvent, RawEvent, dumps_json
from .retry import AttemptOutcome, PublishState, RetryPolicy, RetryState, classify_status
from .utils.logger import PerformanceLogger

logger = logging.getLogger(__name__)

AUTHENTICATION_HEADER = "aeg-sas-key"


class PublishResult(BaseModel):
    """HTTP-level outcome of a successful publish call."""

    status_code: int
    attempts: int
    event_count: int


class EventGridPublisher:
    """
    Publishes typed and raw events to a single topic endpoint.

    A publisher holds no per-call state and can be shared between threads;
    each call runs its own retry sequence.
    """

    def __init__(
        self,
        topic_endpoint: str,
        authentication_key: str,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        max_workers: int = 4
    ):
        """
        Initialize publisher.

        Prefer EventGridPublisherBuilder, which validates endpoint and key.

        Args:
            topic_endpoint: Absolute URL of the topic endpoint
            authentication_key: Topic access key
            retry_policy: Retry configuration for transient failures
            timeout_seconds: Per-request timeout
            session: HTTP session to use, one is created if omitted
            max_workers: Thread pool size for submit_many()
        """
        self.topic_endpoint = topic_endpoint
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout_seconds
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": f"eventgrid-publisher/{__version__}",
            AUTHENTICATION_HEADER: authentication_key,
        })

        logger.info(
            "Initialized event publisher",
            extra={
                "topic_endpoint": topic_endpoint,
                "max_retries": self.retry_policy.max_retries,
                "backoff": self.retry_policy.backoff.value
            }
        )

    # ------------------------------------------------------------------
    # Typed publishing
    # ------------------------------------------------------------------

    def publish(
        self,
        event: EventGridEvent,
        cancel_event: Optional[threading.Event] = None
    ) -> PublishResult:
        """
        Publish a single event.

        Args:
            event: Event to publish
            cancel_event: Set to stop retrying between attempts

        Returns:
            PublishResult of the accepted request
        """
        return self.publish_many([event], cancel_event=cancel_event)

    def publish_many(
        self,
        events: Sequence[EventGridEvent],
        cancel_event: Optional[threading.Event] = None
    ) -> PublishResult:
        """
        Publish events as one batch in a single request.

        Args:
            events: Events to publish, sent in this order
            cancel_event: Set to stop retrying between attempts

        Returns:
            PublishResult of the accepted request

        Raises:
            ValueError: If events is empty
            TypeError: If an element is not an EventGridEvent
            InvalidPayloadError: If the batch cannot be written as strict JSON
            PublishRejectedError: On a non-transient HTTP failure
            PublishExhaustedError: When transient failures outlast the retry budget
            PublishCancelledError: When cancel_event is set before success
        """
        events = list(events)
        if not events:
            raise ValueError("At least one event is required to publish")

        for event in events:
            if not isinstance(event, EventGridEvent):
                raise TypeError(f"Expected EventGridEvent, got {type(event).__name__}")

        try:
            body = dumps_json([event.to_envelope() for event in events])
        except ValueError as e:
            raise InvalidPayloadError(f"Event batch cannot be written as JSON: {e}") from e
        return self._send(body, [event.id for event in events], cancel_event)

    # ------------------------------------------------------------------
    # Raw publishing
    # ------------------------------------------------------------------

    def publish_raw(
        self,
        event: Union[str, RawEvent],
        event_type: Optional[str] = None,
        event_data: Optional[str] = None,
        subject: Optional[str] = None,
        data_version: Optional[str] = None,
        event_time: Optional[datetime] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> PublishResult:
        """
        Publish a single event whose payload is JSON text.

        Either pass a RawEvent, or its parts:

            publisher.publish_raw("id1", "Arcus.Samples.Cars.NewCarRegistered",
                                  '{"licensePlate": "1-TOM-337"}')

        Args:
            event: RawEvent, or the event id
            event_type: Payload schema identifier (when passing an id)
            event_data: JSON text of the payload (when passing an id)
            subject: Event subject, defaults to "/"
            data_version: Payload schema version, defaults to "1.0"
            event_time: Event timestamp, defaults to now
            cancel_event: Set to stop retrying between attempts

        Raises:
            InvalidPayloadError: If event_data is missing, blank or not valid JSON
        """
        if not isinstance(event, RawEvent):
            if not event_type:
                raise ValueError("Event type is required when publishing raw event parts")
            event = RawEvent.create(
                event,
                event_type=event_type,
                data=event_data,
                subject=subject,
                data_version=data_version or DEFAULT_RAW_DATA_VERSION,
                event_time=event_time
            )

        return self.publish_many_raw([event], cancel_event=cancel_event)

    def publish_many_raw(
        self,
        events: Sequence[RawEvent],
        cancel_event: Optional[threading.Event] = None
    ) -> PublishResult:
        """Publish raw events as one batch in a single request."""
        events = list(events)
        for event in events:
            if not isinstance(event, RawEvent):
                raise TypeError(f"Expected RawEvent, got {type(event).__name__}")

        return self.publish_many(events, cancel_event=cancel_event)

    # ------------------------------------------------------------------
    # Background publishing
    # ------------------------------------------------------------------

    def submit_many(
        self,
        events: Sequence[EventGridEvent],
        cancel_event: Optional[threading.Event] = None
    ) -> "Future[PublishResult]":
        """
        Publish events on the publisher's thread pool.

        Returns:
            Future resolving to the PublishResult, or raising the publish error
        """
        events = list(events)
        return self._get_executor().submit(self.publish_many, events, cancel_event)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="eventgrid-publish"
                )
            return self._executor

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _send(
        self,
        body: str,
        event_ids: List[str],
        cancel_event: Optional[threading.Event]
    ) -> PublishResult:
        state = RetryState(self.retry_policy)
        log_context: Dict[str, Any] = {
            "topic_endpoint": self.topic_endpoint,
            "event_count": len(event_ids),
            "event_ids": event_ids[:10],
        }

        while True:
            if cancel_event is not None and cancel_event.is_set():
                state.state = PublishState.FAILED
                logger.warning("Publish cancelled", extra={**log_context, "attempts": state.attempts})
                raise PublishCancelledError(state.attempts)

            attempt = state.begin_attempt()
            self._attempt(state, body, {**log_context, "attempt": attempt})

            if state.state == PublishState.SUCCEEDED:
                logger.info(
                    "Events published",
                    extra={**log_context, "attempts": attempt, "status_code": state.last_status_code}
                )
                return PublishResult(
                    status_code=state.last_status_code,
                    attempts=attempt,
                    event_count=len(event_ids)
                )

            if state.state == PublishState.FAILED:
                logger.error(
                    f"Publish rejected with HTTP {state.last_status_code}",
                    extra={
                        **log_context,
                        "attempts": attempt,
                        "status_code": state.last_status_code,
                        "response": (state.last_body or "")[:200]
                    }
                )
                raise PublishRejectedError(state.last_status_code, state.last_body or "", attempts=attempt)

            if not state.should_retry():
                logger.error(
                    f"Publish failed after {attempt} attempt(s)",
                    extra={
                        **log_context,
                        "attempts": attempt,
                        "status_code": state.last_status_code,
                        "error": state.last_error
                    }
                )
                raise PublishExhaustedError(attempt, state.last_status_code, state.last_error)

            delay = state.next_delay()
            logger.warning(
                f"Transient publish failure, retrying in {delay:.2f}s",
                extra={
                    **log_context,
                    "attempt": attempt,
                    "status_code": state.last_status_code,
                    "error": state.last_error
                }
            )
            self._wait(delay, cancel_event)

    def _attempt(self, state: RetryState, body: str, log_context: Dict[str, Any]) -> None:
        timeout = self.timeout
        remaining = state.remaining_budget()
        if remaining is not None:
            timeout = max(min(timeout, remaining), 0.001)

        try:
            with PerformanceLogger("publish_attempt", logger, **log_context):
                response = self.session.post(self.topic_endpoint, data=body, timeout=timeout)
        except requests.Timeout as e:
            state.record(AttemptOutcome.TRANSIENT, error=f"Request timed out: {e}")
            return
        except requests.ConnectionError as e:
            state.record(AttemptOutcome.TRANSIENT, error=f"Connection failed: {e}")
            return
        except requests.RequestException as e:
            logger.error(f"Publish request could not be sent: {e}", extra=log_context)
            raise PublishError(f"Publish request could not be sent: {e}") from e

        outcome = classify_status(response.status_code, self.retry_policy)
        state.record(
            outcome,
            status_code=response.status_code,
            body=response.text if outcome != AttemptOutcome.SUCCEEDED else None,
            error=f"HTTP {response.status_code}" if outcome == AttemptOutcome.TRANSIENT else None
        )

    @staticmethod
    def _wait(delay: float, cancel_event: Optional[threading.Event]) -> None:
        if delay <= 0:
            return
        if cancel_event is not None:
            cancel_event.wait(delay)
        else:
            time.sleep(delay)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close HTTP session and background workers."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.session.close()
        logger.info("Event publisher closed", extra={"topic_endpoint": self.topic_endpoint})

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
