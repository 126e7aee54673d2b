"""Tests for re-submitting unfinished jobs after a restart."""

from protean import current_domain

from notifications.delivery.status import DeliveryStatusRecord
from notifications.dispatch.job import NotificationJob
from notifications.dispatch.recovery import recover_unfinished_jobs


def _persist(job, attempts, status=None, dead=False):
    record = DeliveryStatusRecord.open(
        order_id=job.order_id,
        job_id=job.job_id,
        job_type=job.job_type,
        attempt_number=attempts,
        job_payload=job.to_payload(),
    )
    if status == "failed":
        record.mark_failed("smtp down")
    elif status == "sent":
        record.mark_sent("primary", "msg-1")
    if dead:
        record.mark_dead_lettered("smtp down")
    current_domain.repository_for(DeliveryStatusRecord).add(record)
    return record


def _job(order_id):
    return NotificationJob.order_confirmation(order_id, "jane@example.com", {"id": order_id, "line_items": []})


class TestRecovery:
    def test_requeues_unfinished_jobs(self, notification_pipeline):
        failed = _job("order-failed")
        pending = _job("order-pending")
        _persist(failed, attempts=2, status="failed")
        _persist(pending, attempts=3)
        _persist(_job("order-sent"), attempts=1, status="sent")
        _persist(_job("order-dead"), attempts=5, status="failed", dead=True)

        recovered = recover_unfinished_jobs(notification_pipeline)

        assert set(recovered) == {failed.job_id, pending.job_id}
        resumed = {job.job_id: job.attempts_made for job in notification_pipeline.jobs}
        # A failed attempt is done; an interrupted one runs again
        assert resumed == {failed.job_id: 2, pending.job_id: 2}

    def test_resumed_attempt_is_capped(self, notification_pipeline):
        job = _job("order-capped")
        _persist(job, attempts=7, status="failed")

        recover_unfinished_jobs(notification_pipeline)

        assert notification_pipeline.jobs[0].attempts_made == 4

    def test_queue_full_stops_recovery(self, notification_pipeline):
        _persist(_job("order-a"), attempts=1, status="failed")
        _persist(_job("order-b"), attempts=1, status="failed")
        notification_pipeline.configure(should_accept=False)

        assert recover_unfinished_jobs(notification_pipeline) == []

    def test_snapshot_survives_the_round_trip(self, notification_pipeline):
        job = _job("order-snapshot")
        _persist(job, attempts=1, status="failed")

        recover_unfinished_jobs(notification_pipeline)

        assert notification_pipeline.jobs[0].order_snapshot == {"id": "order-snapshot", "line_items": []}
        assert notification_pipeline.jobs[0].customer_email == "jane@example.com"

    def test_skips_jobs_the_queue_still_holds(self, notification_pipeline):
        held = _job("order-held")
        _persist(held, attempts=1, status="failed")
        notification_pipeline.enqueue(held)

        assert recover_unfinished_jobs(notification_pipeline) == []
        assert len(notification_pipeline.jobs) == 1
