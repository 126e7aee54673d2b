"""NotificationJob — one confirmation e-mail to deliver."""

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

ORDER_CONFIRMATION = "order-confirmation"


def _new_job_id():
    return f"job-{uuid4().hex[:16]}"


@dataclass(frozen=True)
class NotificationJob:
    order_id: str
    customer_email: str
    order_snapshot: dict
    job_type: str = ORDER_CONFIRMATION
    job_id: str = field(default_factory=_new_job_id)
    attempts_made: int = 0  # Zero-indexed number of the attempt about to run

    @classmethod
    def order_confirmation(cls, order_id, customer_email, order_snapshot):
        # Detach from the caller's objects; the job carries the order as it was
        snapshot = json.loads(json.dumps(order_snapshot, default=str))
        return cls(
            order_id=str(order_id),
            customer_email=customer_email,
            order_snapshot=snapshot,
        )

    def for_attempt(self, attempts_made):
        return replace(self, attempts_made=attempts_made)

    def to_payload(self):
        return asdict(self)

    @classmethod
    def from_payload(cls, payload):
        return cls(
            order_id=payload["order_id"],
            customer_email=payload["customer_email"],
            order_snapshot=payload["order_snapshot"],
            job_type=payload.get("job_type", ORDER_CONFIRMATION),
            job_id=payload["job_id"],
            attempts_made=payload.get("attempts_made", 0),
        )

    def dead_letter_entry(self, final_error, total_attempts):
        return {
            **self.to_payload(),
            "original_job_id": self.job_id,
            "final_error": final_error,
            "total_attempts": total_attempts,
            "dead_lettered_at": datetime.now(UTC).isoformat(),
        }
