"""
Shared pytest fixtures for event publishing and parsing tests.
"""
import json
from pathlib import Path
import sys
from unittest.mock import MagicMock, Mock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def make_response(status_code: int = 200, text: str = ""):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def fake_session():
    """HTTP session double; set ``post.side_effect`` or ``post.return_value``."""
    session = MagicMock()
    session.headers = {}
    session.post.return_value = make_response(200)
    return session


@pytest.fixture
def no_wait_policy():
    """Retry policy without backoff delays."""
    from eventgrid.retry import RetryPolicy

    return RetryPolicy(max_retries=3, retry_delay_seconds=0.0)


@pytest.fixture
def publisher(fake_session, no_wait_policy):
    """Publisher wired to the fake session."""
    from eventgrid.publisher import EventGridPublisher

    return EventGridPublisher(
        topic_endpoint="https://cars.westeurope-1.eventgrid.azure.net/api/events",
        authentication_key="secret-key",
        retry_policy=no_wait_policy,
        session=fake_session
    )


@pytest.fixture
def vendor_batch_json():
    """Two vendor envelope elements as received from a subscriber."""
    return json.dumps([
        {
            "id": "evt-1",
            "subject": "integration-test",
            "eventType": "Arcus.Samples.Cars.NewCarRegistered",
            "eventTime": "2024-05-01T10:00:00+00:00",
            "dataVersion": "1",
            "data": {"licensePlate": "1-TOM-337"}
        },
        {
            "id": "evt-2",
            "subject": "integration-test",
            "eventType": "Arcus.Samples.Cars.NewCarRegistered",
            "eventTime": "2024-05-01T10:00:01+00:00",
            "dataVersion": "1",
            "data": {"licensePlate": "1-TOM-1337"}
        }
    ])


@pytest.fixture
def cloud_event_v01():
    """CloudEvents 0.1 structured JSON element."""
    return {
        "cloudEventsVersion": "0.1",
        "eventType": "Microsoft.Storage.BlobCreated",
        "eventTypeVersion": "",
        "source": "/subscriptions/sub-1/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/acct#blobServices/default/containers/test/blobs/file.txt",
        "eventID": "173d9985-401e-0075-2497-de268c06ff25",
        "eventTime": "2018-04-28T02:18:47.128167Z",
        "contentType": "application/json",
        "extensions": {"comExampleExtension": "value"},
        "data": {"api": "PutBlockList", "contentLength": 524288}
    }
