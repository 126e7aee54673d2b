"""Recovery of notification jobs interrupted by a restart.

The queue lives in memory, so jobs queued or mid-retry when the process
stopped are lost with it. Their DeliveryStatusRecords survive and keep the
job payload; this re-submits every record still ``pending`` or ``failed``
and not dead-lettered, continuing from its recorded attempt count.

Call it once at startup, inside the notifications domain context. Jobs the
queue is still working on are left alone, so a runtime call is safe too.
"""

import structlog
from protean.utils.globals import current_domain

from notifications.delivery.status import DeliveryStatus, DeliveryStatusRecord
from notifications.dispatch import get_notification_queue
from notifications.dispatch.dispatcher import MAX_ATTEMPTS
from notifications.dispatch.errors import QueueFull
from notifications.dispatch.job import NotificationJob

logger = structlog.get_logger(__name__)


def recover_unfinished_jobs(queue=None) -> list[str]:
    queue = queue or get_notification_queue()
    repo = current_domain.repository_for(DeliveryStatusRecord)

    recovered = []
    for record in repo.find_unfinished():
        if queue.is_in_flight(record.job_id):
            logger.info("Delivery still in flight, not recovered", job_id=record.job_id)
            continue

        payload = record.payload()
        if not payload:
            logger.warning("Unfinished delivery has no job payload", job_id=record.job_id)
            continue

        if record.status == DeliveryStatus.FAILED.value:
            attempts_made = record.attempts or 0
        else:
            # Interrupted mid-attempt; that attempt runs again
            attempts_made = max((record.attempts or 1) - 1, 0)
        job = NotificationJob.from_payload(payload).for_attempt(min(attempts_made, MAX_ATTEMPTS - 1))

        try:
            job_id = queue.enqueue(job)
        except QueueFull:
            logger.error("Queue full during recovery, remaining jobs left for the next run", job_id=job.job_id)
            break
        if job_id is not None:
            recovered.append(job_id)

    logger.info("Recovered unfinished notification jobs", count=len(recovered))
    return recovered
