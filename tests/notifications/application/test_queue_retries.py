"""Tests for the queue's retry loop, run synchronously through ``run``."""

from tenacity import wait_none

from notifications.channel.email_port import TransportError
from notifications.channel.fake_email import FakeEmailAdapter
from notifications.dispatch.circuit_breaker import EmailCircuitBreaker
from notifications.dispatch.dead_letter import InMemoryDeadLetterSink
from notifications.dispatch.dispatcher import NotificationDispatcher
from notifications.dispatch.job import NotificationJob
from notifications.dispatch.queue import NotificationQueue
from notifications.invoice.pdf_cache import InvoicePdfCache
from notifications.invoice.renderer import InvoiceRenderer

SNAPSHOT = {"id": "order-5", "total_amount": 20.0, "line_items": []}


class FlakyEmailAdapter(FakeEmailAdapter):
    """Fails the first ``failures`` sends, then succeeds."""

    def __init__(self, failures, name="primary"):
        super().__init__(name=name)
        self.failures = failures

    def send(self, to, subject, html, attachments=None):
        if self.call_count < self.failures:
            self.call_count += 1
            raise TransportError(f"transient failure {self.call_count}")
        return super().send(to, subject, html, attachments)


def _queue(primary, sink, tmp_path):
    dispatcher = NotificationDispatcher(
        primary=primary,
        breaker=EmailCircuitBreaker(),
        dead_letter_sink=sink,
        renderer=InvoiceRenderer(cache=InvoicePdfCache(cache_dir=tmp_path)),
    )
    return NotificationQueue(dispatcher=dispatcher, workers=1, wait=wait_none())


def _job():
    return NotificationJob.order_confirmation("order-5", "jane@example.com", SNAPSHOT)


class TestRun:
    def test_retries_until_success(self, tmp_path):
        primary = FlakyEmailAdapter(failures=2)
        sink = InMemoryDeadLetterSink()

        result = _queue(primary, sink, tmp_path).run(_job())

        assert result.attempts == 3
        assert primary.call_count == 3
        assert sink.entries == []

    def test_gives_up_after_five_attempts(self, tmp_path):
        primary = FakeEmailAdapter(name="primary")
        primary.configure(should_succeed=False)
        sink = InMemoryDeadLetterSink()

        result = _queue(primary, sink, tmp_path).run(_job())

        assert result is None
        assert primary.call_count == 5
        assert len(sink.entries) == 1
        assert sink.entries[0]["total_attempts"] == 5

    def test_resumes_from_recorded_attempts(self, tmp_path):
        primary = FakeEmailAdapter(name="primary")
        primary.configure(should_succeed=False)
        sink = InMemoryDeadLetterSink()

        _queue(primary, sink, tmp_path).run(_job().for_attempt(3))

        assert primary.call_count == 2
        assert sink.entries[0]["total_attempts"] == 5
