"""
Fluent construction of configured publishers.

    publisher = (
        EventGridPublisherBuilder
        .for_topic("https://my-topic.westeurope-1.eventgrid.azure.net/api/events")
        .using_authentication_key(key)
        .build()
    )
"""
import logging
from typing import Any, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .publisher import EventGridPublisher
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


def _is_absolute_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class EventGridPublisherBuilder:
    """
    Two-phase builder: topic endpoint, then authentication key, then build().

    Validation happens in build(); every build() returns an independent
    publisher.
    """

    def __init__(self, topic_endpoint: Optional[str]):
        self._topic_endpoint = topic_endpoint
        self._authentication_key: Optional[str] = None
        self._retry_policy: Optional[RetryPolicy] = None
        self._timeout_seconds = 10.0

    @classmethod
    def for_topic(cls, topic_endpoint: str) -> "EventGridPublisherBuilder":
        """Start building a publisher for the given topic endpoint URL."""
        return cls(topic_endpoint)

    @classmethod
    def from_settings(cls, settings: Any) -> "EventGridPublisherBuilder":
        """
        Start from loaded configuration.

        Args:
            settings: Settings from eventgrid.utils.config_manager

        Returns:
            Builder with endpoint, key, timeout and retry policy applied
        """
        publisher_settings = settings.publisher
        return (
            cls.for_topic(publisher_settings.topic_endpoint)
            .using_authentication_key(publisher_settings.authentication_key)
            .with_retry_policy(publisher_settings.retry)
            .with_timeout(publisher_settings.timeout_seconds)
        )

    def using_authentication_key(self, authentication_key: Optional[str]) -> "EventGridPublisherBuilder":
        """Set the topic access key."""
        self._authentication_key = authentication_key
        return self

    def with_retry_policy(self, retry_policy: RetryPolicy) -> "EventGridPublisherBuilder":
        """Override the default retry policy."""
        self._retry_policy = retry_policy
        return self

    def with_timeout(self, timeout_seconds: float) -> "EventGridPublisherBuilder":
        """Override the per-request timeout."""
        self._timeout_seconds = timeout_seconds
        return self

    def build(self) -> EventGridPublisher:
        """
        Build the publisher.

        Raises:
            ConfigurationError: If the endpoint is not an absolute http(s) URL
                or the authentication key is missing
        """
        if not self._topic_endpoint or not self._topic_endpoint.strip():
            raise ConfigurationError("Topic endpoint is required")

        if not _is_absolute_http_url(self._topic_endpoint):
            raise ConfigurationError(
                f"Topic endpoint must be an absolute http(s) URL: {self._topic_endpoint}",
                {"topic_endpoint": self._topic_endpoint}
            )

        if not self._authentication_key or not self._authentication_key.strip():
            raise ConfigurationError(
                "Authentication key is required",
                {"topic_endpoint": self._topic_endpoint}
            )

        if self._timeout_seconds <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self._timeout_seconds}")

        logger.debug("Building event publisher", extra={"topic_endpoint": self._topic_endpoint})

        return EventGridPublisher(
            topic_endpoint=self._topic_endpoint,
            authentication_key=self._authentication_key,
            retry_policy=self._retry_policy.model_copy() if self._retry_policy else None,
            timeout_seconds=self._timeout_seconds
        )
