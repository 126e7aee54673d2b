"""Fixtures for cross-domain integration tests.

These tests drive a checkout in the Ordering domain and follow the
confirmation job through the Notifications pipeline, so both contexts are
pushed explicitly rather than by a per-directory autouse fixture.
"""

import pytest
from tenacity import wait_none


@pytest.fixture
def ordering_ctx(ordering_bed):
    """Push ordering domain context for a test."""
    from ordering.domain import ordering

    with ordering_bed.domain_context():
        yield ordering


@pytest.fixture
def notifications_ctx(notifications_bed):
    """Push notifications domain context for a test."""
    from notifications.domain import notifications

    with notifications_bed.domain_context():
        yield notifications


@pytest.fixture
def primary_email():
    from notifications.channel import set_primary_transport
    from notifications.channel.fake_email import FakeEmailAdapter

    adapter = FakeEmailAdapter(name="primary")
    set_primary_transport(adapter)
    return adapter


@pytest.fixture
def live_queue(primary_email):
    """A threaded notification queue with no backoff between retries."""
    from notifications.dispatch import set_notification_queue
    from notifications.dispatch.queue import NotificationQueue

    queue = NotificationQueue(workers=1, wait=wait_none())
    set_notification_queue(queue)

    yield queue

    queue.shutdown(wait=True, timeout=5)
