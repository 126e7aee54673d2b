"""Writes already applied are reversed when a later checkout step fails."""

import pytest
from protean import current_domain

from ordering.checkout.requests import CardDetails, CartLine, ShippingAddressInput
from ordering.checkout.service import CheckoutService
from ordering.errors import InsufficientStock, PaymentProcessingFailed
from ordering.ledger.gift_card import GiftCard
from ordering.ledger.product import Product
from ordering.order.order import Order, OrderStatus
from ordering.payment.payment import PaymentRecord, PaymentStatus

ADDRESS = ShippingAddressInput(street="3 Pine Rd", city="Austin", state="TX", zip_code="73301", country="US")
CARD = CardDetails(card_number="5611112222333344", exp_month=9, exp_year=2031, cvv="777")


def _add_product(price=40.0, stock=3):
    product = Product.create(name="Kettle", price=price, stock_quantity=stock)
    current_domain.repository_for(Product).add(product)
    return product


def _only_order():
    orders = current_domain.repository_for(Order)._dao.query.all().items
    assert len(orders) == 1
    return orders[0]


class TestStockRace:
    def test_second_line_short_restocks_first(self):
        # Both lines pass the read check; the second decrement finds one unit left
        kettle = _add_product(stock=3)

        with pytest.raises(InsufficientStock):
            CheckoutService().place_order(
                user_id="user-1",
                cart_items=[CartLine(product_id=kettle.id, quantity=2), CartLine(product_id=kettle.id, quantity=2)],
                shipping_address=ADDRESS,
                payment_method="credit_card",
                card=CARD,
            )

        assert current_domain.repository_for(Product).get(kettle.id).stock_quantity == 3
        order = _only_order()
        assert order.status == OrderStatus.CANCELLED.value
        assert "Insufficient stock" in order.cancellation_reason


class TestPaymentFailure:
    @pytest.fixture(autouse=True)
    def failing_payment(self, monkeypatch):
        def _declined(cls, **kwargs):
            raise RuntimeError("processor unavailable")

        monkeypatch.setattr(PaymentRecord, "complete", classmethod(_declined))

    def test_restock_refund_and_cancel(self, notification_pipeline):
        kettle = _add_product(price=40.0, stock=3)
        card = GiftCard.issue(25, code="COMPENSATE01")
        current_domain.repository_for(GiftCard).add(card)

        with pytest.raises(PaymentProcessingFailed) as exc:
            CheckoutService().place_order(
                user_id="user-1",
                cart_items=[CartLine(product_id=kettle.id, quantity=2)],
                shipping_address=ADDRESS,
                payment_method="credit_card",
                card=CARD,
                gift_card_code="COMPENSATE01",
                gift_card_amount=25,
            )

        assert exc.value.http_status == 402
        assert current_domain.repository_for(Product).get(kettle.id).stock_quantity == 3

        refreshed = current_domain.repository_for(GiftCard).get(card.id)
        assert refreshed.balance == 25.0
        kinds = sorted(t.transaction_type for t in refreshed.transactions)
        assert kinds == ["purchase", "redemption", "refund"]

        assert _only_order().status == OrderStatus.CANCELLED.value
        assert notification_pipeline.jobs == []


class TestOrderUpdateFailure:
    def test_recorded_payment_is_voided(self, monkeypatch):
        def _broken(self, payment_id=None):
            raise RuntimeError("order store unavailable")

        monkeypatch.setattr(Order, "mark_processing", _broken)
        kettle = _add_product(stock=1)

        with pytest.raises(PaymentProcessingFailed):
            CheckoutService().place_order(
                user_id="user-1",
                cart_items=[CartLine(product_id=kettle.id, quantity=1)],
                shipping_address=ADDRESS,
                payment_method="credit_card",
                card=CARD,
            )

        payments = current_domain.repository_for(PaymentRecord)._dao.query.all().items
        assert len(payments) == 1
        assert payments[0].status == PaymentStatus.VOIDED.value
        assert current_domain.repository_for(Product).get(kettle.id).stock_quantity == 1
        assert _only_order().status == OrderStatus.CANCELLED.value
