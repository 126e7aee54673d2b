"""DeliveryStatusRecord aggregate — one record per notification job.

The record is created on the job's first attempt and updated in place on
every later attempt; it is never replaced. It also keeps the job payload so
unfinished jobs can be re-submitted after a restart.

State Machine:
    PENDING → SENT → DELIVERED
    PENDING → SENT → BOUNCED
    PENDING → FAILED → (next attempt) → PENDING
    FAILED + dead_lettered (terminal)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.delivery.events import DeliveryAttemptFailed, DeliveryDeadLettered, DeliverySent
from notifications.domain import notifications
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text


class DeliveryStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    BOUNCED = "bounced"


_VALID_TRANSITIONS = {
    DeliveryStatus.PENDING: {
        DeliveryStatus.PENDING,  # Re-entered after a restart mid-attempt
        DeliveryStatus.SENT,
        DeliveryStatus.FAILED,
    },
    DeliveryStatus.FAILED: {DeliveryStatus.PENDING},
    DeliveryStatus.SENT: {DeliveryStatus.DELIVERED, DeliveryStatus.BOUNCED},
    DeliveryStatus.DELIVERED: set(),  # Terminal
    DeliveryStatus.BOUNCED: set(),  # Terminal
}

UNFINISHED_STATUSES = (DeliveryStatus.PENDING.value, DeliveryStatus.FAILED.value)


@notifications.aggregate
class DeliveryStatusRecord:
    order_id: Identifier(required=True)
    job_id: String(required=True, max_length=100, unique=True)
    job_type: String(max_length=50)
    status: String(choices=DeliveryStatus, default=DeliveryStatus.PENDING.value)
    provider: String(max_length=50)
    message_id: String(max_length=255)
    error: Text()
    attempts: Integer(default=0, min_value=0)
    last_attempt: DateTime()
    dead_lettered: Boolean(default=False)
    job_payload: Text()  # JSON of the NotificationJob
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def open(cls, order_id, job_id, job_type, attempt_number, job_payload):
        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            job_id=job_id,
            job_type=job_type,
            status=DeliveryStatus.PENDING.value,
            attempts=attempt_number,
            last_attempt=now,
            dead_lettered=False,
            job_payload=json.dumps(job_payload),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target):
        current = DeliveryStatus(self.status)
        if self.dead_lettered or target not in _VALID_TRANSITIONS.get(current, set()):
            state = f"{current.value} (dead-lettered)" if self.dead_lettered else current.value
            raise ValidationError({"status": [f"Cannot transition from {state} to {target.value}"]})

    def begin_attempt(self, attempt_number):
        self._assert_can_transition(DeliveryStatus.PENDING)
        now = datetime.now(UTC)
        self.status = DeliveryStatus.PENDING.value
        self.attempts = max(self.attempts or 0, attempt_number)
        self.last_attempt = now
        self.updated_at = now

    def mark_sent(self, provider, message_id):
        self._assert_can_transition(DeliveryStatus.SENT)
        now = datetime.now(UTC)
        self.status = DeliveryStatus.SENT.value
        self.provider = provider
        self.message_id = message_id
        self.error = None
        self.updated_at = now
        self.raise_(
            DeliverySent(
                record_id=str(self.id),
                order_id=str(self.order_id),
                job_id=self.job_id,
                provider=provider,
                message_id=message_id,
                attempts=self.attempts,
                sent_at=now,
            )
        )

    def mark_failed(self, error):
        self._assert_can_transition(DeliveryStatus.FAILED)
        now = datetime.now(UTC)
        self.status = DeliveryStatus.FAILED.value
        self.error = error
        self.updated_at = now
        self.raise_(
            DeliveryAttemptFailed(
                record_id=str(self.id),
                order_id=str(self.order_id),
                job_id=self.job_id,
                error=error,
                attempts=self.attempts,
                failed_at=now,
            )
        )

    def mark_dead_lettered(self, final_error):
        if self.status != DeliveryStatus.FAILED.value or self.dead_lettered:
            raise ValidationError({"dead_lettered": ["Only a failed, live record can be dead-lettered"]})
        now = datetime.now(UTC)
        self.dead_lettered = True
        self.error = final_error
        self.updated_at = now
        self.raise_(
            DeliveryDeadLettered(
                record_id=str(self.id),
                order_id=str(self.order_id),
                job_id=self.job_id,
                final_error=final_error,
                total_attempts=self.attempts,
                dead_lettered_at=now,
            )
        )

    # Delivered and bounced come from provider webhooks, which this service does not host
    def mark_delivered(self):
        self._assert_can_transition(DeliveryStatus.DELIVERED)
        self.status = DeliveryStatus.DELIVERED.value
        self.updated_at = datetime.now(UTC)

    def mark_bounced(self, reason):
        self._assert_can_transition(DeliveryStatus.BOUNCED)
        self.status = DeliveryStatus.BOUNCED.value
        self.error = reason
        self.updated_at = datetime.now(UTC)

    @property
    def is_unfinished(self):
        return self.status in UNFINISHED_STATUSES and not self.dead_lettered

    def payload(self):
        return json.loads(self.job_payload) if self.job_payload else None

    def to_dict(self):
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "job_id": self.job_id,
            "job_type": self.job_type,
            "status": self.status,
            "provider": self.provider,
            "message_id": self.message_id,
            "error": self.error,
            "attempts": self.attempts,
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
            "dead_lettered": self.dead_lettered,
        }


@notifications.repository(part_of=DeliveryStatusRecord)
class DeliveryStatusRepository:
    def find_by_job_id(self, job_id):
        results = self._dao.query.filter(job_id=job_id).all()
        return results.first if results.items else None

    def find_by_order_id(self, order_id):
        records = self._dao.query.filter(order_id=order_id).all().items
        return sorted(records, key=lambda r: r.created_at)

    def find_unfinished(self):
        records = self._dao.query.filter(dead_lettered=False).all().items
        return sorted(
            (r for r in records if r.status in UNFINISHED_STATUSES),
            key=lambda r: r.created_at,
        )
