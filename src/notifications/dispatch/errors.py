"""Errors raised by the notification pipeline."""


class DeliveryFailed(Exception):
    """One delivery attempt failed on every available transport.

    ``retryable`` is ``False`` once the job has been dead-lettered.
    """

    def __init__(self, message, job_id, attempts, retryable=True):
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts
        self.retryable = retryable


class QueueFull(Exception):
    """The notification queue is at capacity."""
