"""
Unit tests for EventGridPublisherBuilder.
"""
import pytest

from eventgrid.builder import EventGridPublisherBuilder
from eventgrid.exceptions import ConfigurationError
from eventgrid.publisher import AUTHENTICATION_HEADER, EventGridPublisher
from eventgrid.retry import RetryPolicy
from eventgrid.utils.config_manager import PublisherSettings, Settings

TOPIC = "https://cars.westeurope-1.eventgrid.azure.net/api/events"


class TestBuilder:
    """Test fluent publisher construction."""

    def test_build_publisher(self):
        publisher = EventGridPublisherBuilder.for_topic(TOPIC).using_authentication_key("secret-key").build()

        assert isinstance(publisher, EventGridPublisher)
        assert publisher.topic_endpoint == TOPIC
        assert publisher.session.headers[AUTHENTICATION_HEADER] == "secret-key"
        publisher.close()

    def test_each_build_is_independent(self):
        builder = EventGridPublisherBuilder.for_topic(TOPIC).using_authentication_key("secret-key")

        first = builder.build()
        second = builder.build()

        assert first is not second
        assert first.session is not second.session
        first.close()
        second.close()

    def test_custom_retry_policy_and_timeout(self):
        policy = RetryPolicy(max_retries=5, backoff="linear")

        publisher = (
            EventGridPublisherBuilder.for_topic(TOPIC)
            .using_authentication_key("secret-key")
            .with_retry_policy(policy)
            .with_timeout(2.5)
            .build()
        )

        assert publisher.retry_policy == policy
        assert publisher.timeout == 2.5
        publisher.close()

    @pytest.mark.parametrize("endpoint", [
        None,
        "",
        "   ",
        "not a url",
        "/api/events",
        "ftp://cars.example.com/api/events",
    ])
    def test_invalid_endpoint(self, endpoint):
        with pytest.raises(ConfigurationError):
            EventGridPublisherBuilder.for_topic(endpoint).using_authentication_key("secret-key").build()

    @pytest.mark.parametrize("key", [None, "", "  "])
    def test_missing_authentication_key(self, key):
        with pytest.raises(ConfigurationError):
            EventGridPublisherBuilder.for_topic(TOPIC).using_authentication_key(key).build()

    def test_non_positive_timeout(self):
        builder = EventGridPublisherBuilder.for_topic(TOPIC).using_authentication_key("secret-key")

        with pytest.raises(ConfigurationError):
            builder.with_timeout(0).build()

    def test_from_settings(self):
        settings = Settings(
            publisher=PublisherSettings(
                topic_endpoint=TOPIC,
                authentication_key="secret-key",
                timeout_seconds=3.0,
                retry=RetryPolicy(max_retries=2)
            )
        )

        publisher = EventGridPublisherBuilder.from_settings(settings).build()

        assert publisher.timeout == 3.0
        assert publisher.retry_policy.max_retries == 2
        publisher.close()

    def test_from_settings_without_key(self):
        settings = Settings(publisher=PublisherSettings(topic_endpoint=TOPIC))

        with pytest.raises(ConfigurationError):
            EventGridPublisherBuilder.from_settings(settings).build()
