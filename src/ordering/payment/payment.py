"""PaymentRecord aggregate — one simulated card charge per order."""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering
from ordering.payment.simulator import generate_transaction_id


class PaymentStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    VOIDED = "voided"


@ordering.aggregate
class PaymentRecord:
    order_id = Identifier(required=True, unique=True)
    user_id = Identifier(required=True)
    saved_card_id = Identifier()
    amount_cents = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="USD")
    transaction_id = String(required=True, max_length=50, unique=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.COMPLETED.value)
    bank_name = String(max_length=100)
    created_at = DateTime()

    @classmethod
    def complete(cls, order_id, user_id, saved_card_id, charge_total, bank_name):
        return cls(
            order_id=order_id,
            user_id=user_id,
            saved_card_id=saved_card_id,
            amount_cents=int(round(float(charge_total) * 100)),
            currency="USD",
            transaction_id=generate_transaction_id(),
            status=PaymentStatus.COMPLETED.value,
            bank_name=bank_name,
            created_at=datetime.now(UTC),
        )

    def void(self):
        """Reverse a completed charge whose checkout was rolled back."""
        if self.status != PaymentStatus.COMPLETED.value:
            raise ValidationError({"status": [f"Cannot void a payment in {self.status}"]})
        self.status = PaymentStatus.VOIDED.value

    @property
    def amount(self):
        return self.amount_cents / 100
