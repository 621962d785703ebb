"""
Unit tests for retry policy and retry state.
"""
import pytest
from pydantic import ValidationError

from eventgrid.retry import (
    AttemptOutcome,
    BackoffStrategy,
    PublishState,
    RetryPolicy,
    RetryState,
    classify_status,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestRetryPolicy:
    """Test retry policy configuration."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_retries == 3
        assert policy.max_attempts == 4
        assert policy.backoff == BackoffStrategy.EXPONENTIAL
        assert 429 in policy.retryable_status_codes

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=0)

    def test_retryable_codes_must_be_errors(self):
        with pytest.raises(ValidationError):
            RetryPolicy(retryable_status_codes=[200])

    def test_exponential_backoff(self):
        policy = RetryPolicy(retry_delay_seconds=1.0, max_delay_seconds=5.0)

        assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    def test_linear_backoff(self):
        policy = RetryPolicy(backoff="linear", retry_delay_seconds=0.5)

        assert [policy.delay_for(n) for n in range(1, 4)] == [0.5, 1.0, 1.5]


class TestClassifyStatus:
    """Test HTTP status classification."""

    @pytest.mark.parametrize("status_code,expected", [
        (200, AttemptOutcome.SUCCEEDED),
        (202, AttemptOutcome.SUCCEEDED),
        (429, AttemptOutcome.TRANSIENT),
        (500, AttemptOutcome.TRANSIENT),
        (507, AttemptOutcome.TRANSIENT),
        (400, AttemptOutcome.REJECTED),
        (401, AttemptOutcome.REJECTED),
        (404, AttemptOutcome.REJECTED),
        (413, AttemptOutcome.REJECTED),
    ])
    def test_classification(self, status_code, expected):
        assert classify_status(status_code, RetryPolicy()) == expected

    def test_custom_retryable_code(self):
        policy = RetryPolicy(retryable_status_codes=[408])

        assert classify_status(408, policy) == AttemptOutcome.TRANSIENT
        assert classify_status(429, policy) == AttemptOutcome.REJECTED


class TestRetryState:
    """Test the per-call state machine."""

    def test_starts_configured(self):
        state = RetryState(RetryPolicy())

        assert state.state == PublishState.CONFIGURED
        assert state.attempts == 0

    def test_success(self):
        state = RetryState(RetryPolicy())

        assert state.begin_attempt() == 1
        assert state.state == PublishState.PUBLISHING
        state.record(AttemptOutcome.SUCCEEDED, status_code=200)

        assert state.state == PublishState.SUCCEEDED
        assert not state.should_retry()

    def test_rejection_fails_immediately(self):
        state = RetryState(RetryPolicy())

        state.begin_attempt()
        state.record(AttemptOutcome.REJECTED, status_code=400, body="bad")

        assert state.state == PublishState.FAILED
        assert not state.should_retry()

    def test_transient_until_attempts_spent(self):
        state = RetryState(RetryPolicy(max_retries=2))

        for expected_retry in (True, True, False):
            state.begin_attempt()
            state.record(AttemptOutcome.TRANSIENT, status_code=503)
            assert state.should_retry() is expected_retry

        assert state.attempts == 3
        assert state.state == PublishState.FAILED

    def test_next_delay_follows_attempts(self):
        state = RetryState(RetryPolicy(retry_delay_seconds=1.0))

        state.begin_attempt()
        assert state.next_delay() == 1.0
        state.begin_attempt()
        assert state.next_delay() == 2.0

    def test_total_timeout_budget(self):
        """Test that no retry is scheduled past the total time budget."""
        clock = FakeClock()
        state = RetryState(
            RetryPolicy(max_retries=10, retry_delay_seconds=1.0, total_timeout_seconds=5.0),
            clock=clock
        )

        state.begin_attempt()
        state.record(AttemptOutcome.TRANSIENT, status_code=500)
        assert state.should_retry()
        assert state.remaining_budget() == 5.0

        clock.now = 4.5
        state.begin_attempt()
        state.record(AttemptOutcome.TRANSIENT, status_code=500)

        assert not state.should_retry()
        assert state.state == PublishState.FAILED

    def test_unbounded_budget(self):
        state = RetryState(RetryPolicy())
        state.begin_attempt()

        assert state.remaining_budget() is None
