"""In-process notification queue with a worker pool and retry with backoff.

``enqueue`` never blocks: it puts the job on a bounded ``queue.Queue`` and
raises ``QueueFull`` at capacity. Daemon worker threads pull jobs, push the
notifications domain context and run the dispatcher under a tenacity
``Retrying`` loop. Only a retryable ``DeliveryFailed`` triggers another
attempt; each attempt carries its zero-indexed attempt number.

A job id stays in flight from ``enqueue`` until its worker lets go of it,
backoff waits included; a second ``enqueue`` of that id is ignored.
"""

import queue
import threading

import structlog
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from notifications.dispatch.dispatcher import MAX_ATTEMPTS, NotificationDispatcher
from notifications.dispatch.errors import DeliveryFailed, QueueFull
from notifications.domain import notifications

logger = structlog.get_logger(__name__)

DEFAULT_WORKERS = 2
DEFAULT_MAXSIZE = 1000

_STOP = object()


def _is_retryable(exc):
    return isinstance(exc, DeliveryFailed) and exc.retryable


class NotificationQueue:
    def __init__(
        self,
        dispatcher=None,
        workers=DEFAULT_WORKERS,
        maxsize=DEFAULT_MAXSIZE,
        wait=None,
        max_attempts=MAX_ATTEMPTS,
        domain=None,
    ):
        self.dispatcher = dispatcher or NotificationDispatcher(max_attempts=max_attempts)
        self.workers = workers
        self.max_attempts = max_attempts
        self.wait = wait or wait_exponential(multiplier=2, min=2, max=60)
        self.domain = domain or notifications
        self._jobs = queue.Queue(maxsize=maxsize)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    # -------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------
    def enqueue(self, job) -> str | None:
        """Queue ``job`` and return its id.

        Returns ``None`` without queueing when the same job id is already
        queued or being worked on, so one job never runs on two workers.
        """
        self.start()
        with self._lock:
            if job.job_id in self._in_flight:
                logger.info("Notification job already in flight, not queued again", job_id=job.job_id)
                return None
            self._in_flight.add(job.job_id)

        try:
            self._jobs.put_nowait(job)
        except queue.Full:
            self._release(job.job_id)
            raise QueueFull(f"Notification queue is full ({self._jobs.maxsize} jobs)") from None

        logger.info(
            "Notification job queued",
            job_id=job.job_id,
            order_id=job.order_id,
            attempts_made=job.attempts_made,
        )
        return job.job_id

    @property
    def pending(self) -> int:
        return self._jobs.unfinished_tasks

    def is_in_flight(self, job_id) -> bool:
        with self._lock:
            return job_id in self._in_flight

    def stats(self) -> dict:
        with self._lock:
            return {
                "pending": self.pending,
                "in_flight": len(self._in_flight),
                "workers": len(self._threads),
                "capacity": self._jobs.maxsize,
            }

    def _release(self, job_id) -> None:
        with self._lock:
            self._in_flight.discard(job_id)

    def join(self) -> None:
        """Block until every queued job has finished all of its attempts."""
        self._jobs.join()

    # -------------------------------------------------------------------
    # Worker lifecycle
    # -------------------------------------------------------------------
    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for index in range(self.workers):
                thread = threading.Thread(
                    target=self._work,
                    name=f"notification-worker-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)

    def shutdown(self, wait=True, timeout=None) -> None:
        with self._lock:
            threads, self._threads = self._threads, []
        for _ in threads:
            self._jobs.put(_STOP)
        if wait:
            for thread in threads:
                thread.join(timeout)

    def _work(self) -> None:
        while True:
            job = self._jobs.get()
            try:
                if job is _STOP:
                    return
                with self.domain.domain_context():
                    self.run(job)
            except Exception:
                logger.exception("Notification worker crashed on job", job_id=getattr(job, "job_id", None))
            finally:
                if job is not _STOP:
                    self._release(job.job_id)
                self._jobs.task_done()

    # -------------------------------------------------------------------
    # Retry loop
    # -------------------------------------------------------------------
    def run(self, job):
        """Run ``job`` to success or exhaustion in the calling thread.

        Returns the DeliveryResult, or ``None`` once the job is exhausted.
        """
        remaining = max(1, self.max_attempts - job.attempts_made)
        retrying = Retrying(
            stop=stop_after_attempt(remaining),
            wait=self.wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    number = job.attempts_made + attempt.retry_state.attempt_number - 1
                    return self.dispatcher.process(job.for_attempt(number))
        except DeliveryFailed as exc:
            logger.error(
                "Notification job gave up",
                job_id=job.job_id,
                order_id=job.order_id,
                attempts=exc.attempts,
                error=str(exc),
            )
            return None
