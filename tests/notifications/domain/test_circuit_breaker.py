"""Tests for EmailCircuitBreaker."""

import threading
from datetime import UTC, datetime, timedelta

from notifications.dispatch import circuit_breaker
from notifications.dispatch.circuit_breaker import CircuitState, EmailCircuitBreaker


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _tripped(clock, failures=10):
    breaker = EmailCircuitBreaker(clock=clock)
    for _ in range(failures):
        breaker.record_failure()
    return breaker


class TestThreshold:
    def test_starts_closed(self):
        breaker = EmailCircuitBreaker()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request() is True

    def test_nine_failures_keep_it_closed(self):
        breaker = _tripped(FakeClock(), failures=9)
        assert breaker.failure_count == 9
        assert breaker.allow_request() is True

    def test_tenth_failure_opens(self):
        breaker = _tripped(FakeClock())
        assert breaker.state == CircuitState.OPEN
        assert breaker.allow_request() is False

    def test_success_resets_counter(self):
        breaker = _tripped(FakeClock(), failures=9)
        breaker.record_success()
        breaker.record_failure()
        assert breaker.failure_count == 1
        assert breaker.allow_request() is True


class TestCooldown:
    def test_still_open_at_exactly_five_minutes(self):
        clock = FakeClock()
        breaker = _tripped(clock)
        clock.advance(minutes=5)
        assert breaker.allow_request() is False

    def test_closes_after_five_minutes(self):
        clock = FakeClock()
        breaker = _tripped(clock)
        clock.advance(minutes=5, seconds=1)

        assert breaker.allow_request() is True
        assert breaker.failure_count == 0
        assert breaker.state == CircuitState.CLOSED

    def test_cooldown_counts_from_last_failure(self):
        clock = FakeClock()
        breaker = _tripped(clock, failures=9)
        clock.advance(minutes=4)
        breaker.record_failure()
        clock.advance(minutes=3)
        assert breaker.allow_request() is False

    def test_custom_threshold_and_timeout(self):
        clock = FakeClock()
        breaker = EmailCircuitBreaker(failure_threshold=2, reset_timeout=timedelta(seconds=10), clock=clock)
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.allow_request() is False
        clock.advance(seconds=11)
        assert breaker.allow_request() is True


class RecordingLogger:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def _record(self, event, **kw):
        with self._lock:
            self.events.append(event)

    info = warning = _record


class TestConcurrentUpdates:
    def _hammer(self, threads, action):
        barrier = threading.Barrier(threads)

        def _run():
            barrier.wait()
            action()

        workers = [threading.Thread(target=_run) for _ in range(threads)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=30)

    def test_failures_from_many_threads_are_all_counted(self, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(circuit_breaker, "logger", recorder)
        breaker = EmailCircuitBreaker(clock=FakeClock())

        def _fail_many():
            for _ in range(50):
                breaker.record_failure()

        self._hammer(8, _fail_many)

        assert breaker.failure_count == 400
        assert breaker.state == CircuitState.OPEN
        assert recorder.events.count("Email circuit breaker opened") == 1

    def test_success_and_failure_interleave_without_corruption(self):
        breaker = EmailCircuitBreaker(clock=FakeClock())

        def _mixed():
            for _ in range(100):
                breaker.record_failure()
                breaker.record_success()

        self._hammer(8, _mixed)

        # Every thread ends on a success, so nothing is left counted
        assert breaker.failure_count == 0
        assert breaker.allow_request() is True
