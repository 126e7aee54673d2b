"""Tests for the order confirmation template and the template registry."""

import pytest

from notifications.dispatch.job import ORDER_CONFIRMATION
from notifications.templates import get_template
from notifications.templates.order_confirmation import OrderConfirmationTemplate


def _snapshot(**overrides):
    snapshot = {
        "id": "order-42",
        "payment_method": "credit_card",
        "bank_name": "Citibank",
        "total_amount": 100.0,
        "subtotal": 100.0,
        "gift_card_discount": 30.0,
        "charge_total": 70.0,
        "user": {"first_name": "Jane", "last_name": "Doe", "email": "jane@example.com"},
        "shipping_address": {
            "street": "1 Elm St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "country": "US",
        },
        "line_items": [
            {"product_id": "p-1", "quantity": 2, "price": 50.0, "product": {"name": "Desk Lamp"}},
        ],
    }
    snapshot.update(overrides)
    return snapshot


class TestRegistry:
    def test_order_confirmation_registered(self):
        assert get_template(ORDER_CONFIRMATION) is OrderConfirmationTemplate

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="No template registered"):
            get_template("password-reset")


class TestRender:
    def test_subject(self):
        content = OrderConfirmationTemplate.render(_snapshot())
        assert content["subject"] == "Order Confirmation - Order #order-42"

    def test_body_contents(self):
        html = OrderConfirmationTemplate.render(_snapshot())["html"]
        assert "Hi Jane" in html
        assert "Desk Lamp" in html
        assert "$100.00" in html
        assert "-$30.00" in html
        assert "Amount charged: $70.00" in html
        assert "Credit Card (Citibank)" in html
        assert "Springfield, IL 62701" in html

    def test_invoice_note(self):
        with_invoice = OrderConfirmationTemplate.render(_snapshot(), has_invoice=True)["html"]
        without = OrderConfirmationTemplate.render(_snapshot(), has_invoice=False)["html"]
        assert "attached" in with_invoice
        assert "attached" not in without

    def test_values_are_escaped(self):
        snapshot = _snapshot()
        snapshot["line_items"][0]["product"]["name"] = "<script>alert(1)</script>"
        html = OrderConfirmationTemplate.render(snapshot)["html"]
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_no_discount_line_without_gift_card(self):
        html = OrderConfirmationTemplate.render(_snapshot(gift_card_discount=0.0, charge_total=100.0))["html"]
        assert "Gift card" not in html


class TestFallback:
    def test_self_contained_summary(self):
        content = OrderConfirmationTemplate.render_fallback(_snapshot())
        assert content["subject"] == "Order Confirmation - Order #order-42"
        assert "Desk Lamp &times; 2" in content["html"]
        assert "attached" not in content["html"]
