"""
Retry policy and per-call retry state for publishing.

Each publish call walks an explicit state machine:

    CONFIGURED -> PUBLISHING -> SUCCEEDED | FAILED

Every HTTP attempt is classified as SUCCEEDED, TRANSIENT or REJECTED; only
transient outcomes are retried, with backoff, until the policy's budget is
spent.
"""
import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_RETRYABLE_STATUS_CODES = [429, 500, 502, 503, 504]


class BackoffStrategy(str, Enum):
    """Backoff schedules between attempts."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"


class AttemptOutcome(str, Enum):
    """Classification of a single HTTP attempt."""

    SUCCEEDED = "succeeded"
    TRANSIENT = "transient"
    REJECTED = "rejected"


class PublishState(str, Enum):
    """States of a publish call."""

    CONFIGURED = "configured"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RetryPolicy(BaseModel):
    """Retry configuration for transient publish failures."""

    max_retries: int = Field(default=3, ge=1, description="Retries after the first attempt")
    backoff: BackoffStrategy = Field(default=BackoffStrategy.EXPONENTIAL)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0, description="Initial retry delay")
    max_delay_seconds: float = Field(default=30.0, ge=0.0)
    total_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Budget for the whole call, including backoff"
    )
    retryable_status_codes: List[int] = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_STATUS_CODES)
    )

    @field_validator("retryable_status_codes")
    @classmethod
    def check_status_codes(cls, v):
        """Validate that retryable codes are HTTP error statuses."""
        for code in v:
            if not 400 <= code <= 599:
                raise ValueError(f"Retryable status code must be 4xx or 5xx, got {code}")
        return v

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """
        Delay before the given retry.

        Args:
            retry_number: 1 for the first retry, 2 for the second, ...

        Returns:
            Delay in seconds, capped at max_delay_seconds
        """
        if self.backoff == BackoffStrategy.EXPONENTIAL:
            delay = self.retry_delay_seconds * (2 ** (retry_number - 1))
        else:
            delay = self.retry_delay_seconds * retry_number
        return min(delay, self.max_delay_seconds)


def classify_status(status_code: int, policy: RetryPolicy) -> AttemptOutcome:
    """Map an HTTP status code to an attempt outcome."""
    if 200 <= status_code < 300:
        return AttemptOutcome.SUCCEEDED
    if status_code >= 500 or status_code in policy.retryable_status_codes:
        return AttemptOutcome.TRANSIENT
    return AttemptOutcome.REJECTED


class RetryState:
    """
    Mutable state of one publish call.

    Owned by a single call; never shared between calls.
    """

    def __init__(self, policy: RetryPolicy, clock=time.monotonic):
        self.policy = policy
        self.clock = clock
        self.state = PublishState.CONFIGURED
        self.attempts = 0
        self.last_outcome: Optional[AttemptOutcome] = None
        self.last_status_code: Optional[int] = None
        self.last_body: Optional[str] = None
        self.last_error: Optional[str] = None
        self.started_at: Optional[float] = None

    def begin_attempt(self) -> int:
        """Enter PUBLISHING and count the attempt."""
        if self.started_at is None:
            self.started_at = self.clock()
        self.state = PublishState.PUBLISHING
        self.attempts += 1
        return self.attempts

    def record(
        self,
        outcome: AttemptOutcome,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Record the outcome of the current attempt."""
        self.last_outcome = outcome
        self.last_status_code = status_code
        self.last_body = body
        self.last_error = error

        if outcome == AttemptOutcome.SUCCEEDED:
            self.state = PublishState.SUCCEEDED
        elif outcome == AttemptOutcome.REJECTED:
            self.state = PublishState.FAILED

    def remaining_budget(self) -> Optional[float]:
        """Seconds left of the total timeout, or None when unbounded."""
        if self.policy.total_timeout_seconds is None:
            return None
        elapsed = self.clock() - (self.started_at if self.started_at is not None else self.clock())
        return max(self.policy.total_timeout_seconds - elapsed, 0.0)

    def next_delay(self) -> float:
        """Backoff before the next attempt."""
        return self.policy.delay_for(self.attempts)

    def should_retry(self) -> bool:
        """
        Decide whether another attempt is allowed.

        Moves to FAILED when the outcome was transient but the attempt count
        or time budget is spent.
        """
        if self.last_outcome != AttemptOutcome.TRANSIENT:
            return False

        if self.attempts >= self.policy.max_attempts:
            self.state = PublishState.FAILED
            return False

        remaining = self.remaining_budget()
        if remaining is not None and remaining <= self.next_delay():
            self.state = PublishState.FAILED
            return False

        return True
