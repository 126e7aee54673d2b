"""Fake notification queue — records enqueued jobs for testing."""

from notifications.dispatch.errors import QueueFull


class FakeNotificationQueue:
    """Queue stand-in that keeps jobs in memory instead of delivering them.

    Recorded jobs never finish, so they all count as in flight.
    """

    def __init__(self):
        self.jobs = []
        self.should_accept = True

    def configure(self, should_accept: bool = True):
        self.should_accept = should_accept

    def enqueue(self, job) -> str | None:
        if not self.should_accept:
            raise QueueFull("Notification queue is full")
        if self.is_in_flight(job.job_id):
            return None
        self.jobs.append(job)
        return job.job_id

    def is_in_flight(self, job_id) -> bool:
        return any(job.job_id == job_id for job in self.jobs)

    def stats(self) -> dict:
        return {"pending": len(self.jobs), "in_flight": len(self.jobs), "workers": 0, "capacity": 0}

    def shutdown(self, wait=True, timeout=None):
        pass

    def reset(self):
        self.jobs.clear()
        self.should_accept = True
