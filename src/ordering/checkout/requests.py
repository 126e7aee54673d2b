"""Plain inputs and outputs of the checkout flow."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ShippingAddressInput:
    street: str
    city: str
    state: str
    zip_code: str
    country: str


@dataclass(frozen=True)
class CardDetails:
    card_number: str
    exp_month: int
    exp_year: int
    cvv: str


@dataclass(frozen=True)
class CustomerContact:
    """The authenticated customer, as supplied by the HTTP layer."""

    user_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class CheckoutResult:
    order: Any
    subtotal: Decimal
    gift_card_discount: Decimal
    charge_total: Decimal
    bank_name: str | None = None
    payment: Any = None
    notification_job_id: str | None = None
    snapshot: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            **self.order.to_dict(),
            "bank_name": self.bank_name,
            "gift_card_discount": float(self.gift_card_discount),
            "charge_total": float(self.charge_total),
            "transaction_id": self.payment.transaction_id if self.payment else None,
            "notification_job_id": self.notification_job_id,
        }
