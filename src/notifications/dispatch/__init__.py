"""Notification pipeline registry — queue, circuit breaker and dead-letter sink.

Singletons shared by every worker in the process. ``DEAD_LETTER_PATH``
switches the dead-letter sink from in-memory to a JSON-lines file;
``NOTIFICATION_WORKERS`` and ``NOTIFICATION_QUEUE_SIZE`` size the queue.
"""

import os

_queue = None
_breaker = None
_dead_letter_sink = None


def get_notification_queue():
    """Return the process-wide notification queue (singleton)."""
    global _queue
    if _queue is None:
        from notifications.dispatch.queue import NotificationQueue

        _queue = NotificationQueue(
            workers=int(os.environ.get("NOTIFICATION_WORKERS", "2")),
            maxsize=int(os.environ.get("NOTIFICATION_QUEUE_SIZE", "1000")),
        )
    return _queue


def set_notification_queue(queue):
    global _queue
    _queue = queue


def reset_notification_queue():
    """Stop the running queue, if any, and drop the singleton."""
    global _queue
    if _queue is not None and hasattr(_queue, "shutdown"):
        _queue.shutdown(wait=False)
    _queue = None


def get_circuit_breaker():
    global _breaker
    if _breaker is None:
        from notifications.dispatch.circuit_breaker import EmailCircuitBreaker

        _breaker = EmailCircuitBreaker()
    return _breaker


def reset_circuit_breaker():
    global _breaker
    _breaker = None


def get_dead_letter_sink():
    global _dead_letter_sink
    if _dead_letter_sink is None:
        path = os.environ.get("DEAD_LETTER_PATH")
        if path:
            from notifications.dispatch.dead_letter import JsonLinesDeadLetterSink

            _dead_letter_sink = JsonLinesDeadLetterSink(path)
        else:
            from notifications.dispatch.dead_letter import InMemoryDeadLetterSink

            _dead_letter_sink = InMemoryDeadLetterSink()
    return _dead_letter_sink


def set_dead_letter_sink(sink):
    global _dead_letter_sink
    _dead_letter_sink = sink


def reset_dead_letter_sink():
    global _dead_letter_sink
    _dead_letter_sink = None
