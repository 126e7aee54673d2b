import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Selects the config overlay through ``PROTEAN_ENV`` and keeps the e-mail
    transports on the in-memory fake regardless of the shell's environment.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["EMAIL_ADAPTER"] = "fake"
    os.environ.pop("DEAD_LETTER_PATH", None)


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Domain beds: both contexts are initialized once per session since checkout
# hands off across them.
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session")
def notifications_bed():
    from notifications.domain import notifications

    bed = DomainFixture(notifications)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def notification_pipeline(tmp_path, monkeypatch):
    """Fresh pipeline singletons per test; jobs are recorded, not delivered."""
    from notifications.channel import reset_transports
    from notifications.dispatch import (
        reset_circuit_breaker,
        reset_dead_letter_sink,
        reset_notification_queue,
        set_notification_queue,
    )
    from notifications.dispatch.fake_queue import FakeNotificationQueue
    from notifications.invoice import reset_invoice_cache

    monkeypatch.setenv("INVOICE_CACHE_DIR", str(tmp_path / "pdfs"))
    reset_transports()
    reset_circuit_breaker()
    reset_dead_letter_sink()
    reset_invoice_cache()
    queue = FakeNotificationQueue()
    set_notification_queue(queue)

    yield queue

    reset_notification_queue()
    reset_transports()
    reset_circuit_breaker()
    reset_dead_letter_sink()
    reset_invoice_cache()


@pytest.fixture(autouse=True)
def run_around_tests(ordering_bed, notifications_bed):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    for bed in (ordering_bed, notifications_bed):
        with bed.domain_context():
            from protean import current_domain

            # Clear all databases
            for _, provider in current_domain.providers.items():
                provider._data_reset()

            # Drain event stores
            current_domain.event_store.store._data_reset()
