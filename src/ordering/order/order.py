"""Order aggregate — a placed order and its line items.

State Machine:
    pending → processing → shipped → delivered
    cancelled (from pending, processing)

Checkout drives ``pending → processing`` after a successful card payment and
``pending → cancelled`` when a later checkout write fails. The remaining
transitions belong to back-office tooling and share the same table.

``total_amount`` is the goods value (Σ price × quantity) before any gift-card
discount. The amount actually charged lives on the PaymentRecord.
"""

import json
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderProcessing,
    OrderShipped,
)

CENT = Decimal("0.01")


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def to_money(value) -> Decimal:
    """Quantize a price or total to cents, going through ``str`` for floats."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@ordering.entity(part_of="Order")
class OrderLineItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Unit price at purchase time

    @property
    def line_total(self):
        return to_money(self.price) * self.quantity


@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    order_date = DateTime(required=True)
    total_amount = Float(required=True, min_value=0.0)
    shipping_address_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    line_items = HasMany(OrderLineItem)
    cancellation_reason = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_line_items(self):
        if not self.line_items:
            return
        if to_money(self.total_amount) != self.subtotal():
            raise ValidationError({"total_amount": ["Order total must equal the sum of its line items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, shipping_address_id, payment_method, lines):
        """Create a pending order from ``lines`` of ``(product_id, quantity, unit_price)``."""
        if not lines:
            raise ValidationError({"line_items": ["An order needs at least one line item"]})

        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            order_date=now,
            total_amount=0.0,
            shipping_address_id=shipping_address_id,
            payment_method=payment_method,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for product_id, quantity, unit_price in lines:
                order.add_line_items(
                    OrderLineItem(
                        product_id=product_id,
                        quantity=quantity,
                        price=float(to_money(unit_price)),
                    )
                )
            order.total_amount = float(order.subtotal())

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "quantity": item.quantity,
                            "price": item.price,
                        }
                        for item in order.line_items
                    ]
                ),
                item_count=len(order.line_items),
                total_amount=order.total_amount,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.line_items), Decimal("0.00"))

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

    def _transition_to(self, target):
        self._assert_can_transition(target)
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        return now

    def mark_processing(self, payment_id=None):
        now = self._transition_to(OrderStatus.PROCESSING)
        self.raise_(
            OrderProcessing(
                order_id=str(self.id),
                payment_id=str(payment_id) if payment_id else None,
                started_at=now,
            )
        )

    # ship and deliver are driven by fulfilment tooling outside checkout
    def ship(self):
        now = self._transition_to(OrderStatus.SHIPPED)
        self.raise_(OrderShipped(order_id=str(self.id), shipped_at=now))

    def deliver(self):
        now = self._transition_to(OrderStatus.DELIVERED)
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def cancel(self, reason):
        self._assert_can_transition(OrderStatus.CANCELLED)
        with atomic_change(self):
            now = self._transition_to(OrderStatus.CANCELLED)
            self.cancellation_reason = reason
        self.raise_(OrderCancelled(order_id=str(self.id), reason=reason, cancelled_at=now))

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "total_amount": self.total_amount,
            "shipping_address_id": str(self.shipping_address_id),
            "payment_method": self.payment_method,
            "status": self.status,
            "cancellation_reason": self.cancellation_reason,
            "line_items": [
                {
                    "id": str(item.id),
                    "product_id": str(item.product_id),
                    "quantity": item.quantity,
                    "price": item.price,
                }
                for item in self.line_items
            ],
        }
