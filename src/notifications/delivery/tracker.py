"""Delivery status tracking for the dispatcher.

Thin application service over ``DeliveryStatusRepository``: every method
loads the job's record, applies one transition and persists it.
"""

import threading

import structlog
from protean.utils.globals import current_domain

from notifications.delivery.status import DeliveryStatusRecord

logger = structlog.get_logger(__name__)

# Serializes the dead-letter check-and-set across every tracker in the process
_dead_letter_lock = threading.Lock()


class DeliveryStatusTracker:
    @property
    def repository(self):
        return current_domain.repository_for(DeliveryStatusRecord)

    def record_attempt(self, job):
        """Create the record on the first attempt; reopen it on later ones."""
        attempt_number = job.attempts_made + 1
        record = self.repository.find_by_job_id(job.job_id)
        if record is None:
            record = DeliveryStatusRecord.open(
                order_id=job.order_id,
                job_id=job.job_id,
                job_type=job.job_type,
                attempt_number=attempt_number,
                job_payload=job.to_payload(),
            )
        else:
            record.begin_attempt(attempt_number)
        self.repository.add(record)
        return record

    def mark_sent(self, job, provider, message_id):
        record = self._load(job)
        record.mark_sent(provider, message_id)
        self.repository.add(record)
        return record

    def mark_failed(self, job, error):
        record = self._load(job)
        record.mark_failed(error)
        self.repository.add(record)
        return record

    def mark_dead_lettered(self, job, final_error):
        """Flag the record as dead-lettered.

        Returns ``False`` when it already was, so the caller pushes to the
        dead-letter sink at most once per job.
        """
        with _dead_letter_lock:
            record = self._load(job)
            if record.dead_lettered:
                return False
            record.mark_dead_lettered(final_error)
            self.repository.add(record)
            return True

    def _load(self, job):
        record = self.repository.find_by_job_id(job.job_id)
        if record is None:
            logger.warning("No delivery status record for job, reopening", job_id=job.job_id)
            record = self.record_attempt(job)
        return record
