"""End-to-end: checkout → queued job → confirmation e-mail with invoice.

Uses a real threaded NotificationQueue against the in-memory fake transport.
"""

from protean import current_domain

from notifications.delivery.status import DeliveryStatus, DeliveryStatusRecord
from notifications.dispatch import get_dead_letter_sink
from ordering.checkout.requests import CardDetails, CartLine, CustomerContact, ShippingAddressInput
from ordering.checkout.service import CheckoutService
from ordering.ledger.product import Product

ADDRESS = ShippingAddressInput(street="1 Elm St", city="Springfield", state="IL", zip_code="62701", country="US")
CARD = CardDetails(card_number="2345678901234567", exp_month=12, exp_year=2030, cvv="123")


def _place_order(email="jane@example.com"):
    lamp = Product.create(name="Desk Lamp", price=50.0, stock_quantity=5)
    current_domain.repository_for(Product).add(lamp)
    return CheckoutService().place_order(
        user_id="user-1",
        cart_items=[CartLine(product_id=lamp.id, quantity=2)],
        shipping_address=ADDRESS,
        payment_method="credit_card",
        card=CARD,
        customer=CustomerContact(user_id="user-1", email=email, first_name="Jane", last_name="Doe"),
    )


class TestCheckoutConfirmation:
    def test_confirmation_sent_with_invoice(self, ordering_ctx, live_queue, primary_email, notifications_bed):
        result = _place_order()
        live_queue.join()

        assert len(primary_email.sent_emails) == 1
        email = primary_email.sent_emails[0]
        assert email["to"] == "jane@example.com"
        assert email["subject"] == f"Order Confirmation - Order #{result.order.id}"
        assert "Desk Lamp" in email["html"]
        assert email["attachments"][0].filename == f"invoice-{result.order.id}.pdf"
        assert email["attachments"][0].content.startswith(b"%PDF")

        with notifications_bed.domain_context():
            record = current_domain.repository_for(DeliveryStatusRecord).find_by_job_id(result.notification_job_id)
            assert record.status == DeliveryStatus.SENT.value
            assert record.order_id == str(result.order.id)
            assert record.attempts == 1

    def test_exhausted_retries_dead_letter(self, ordering_ctx, live_queue, primary_email, notifications_bed):
        primary_email.configure(should_succeed=False, failure_reason="relay down")

        result = _place_order()
        live_queue.join()

        assert primary_email.call_count == 5
        entries = get_dead_letter_sink().list_entries()
        assert [e["original_job_id"] for e in entries] == [result.notification_job_id]
        assert entries[0]["order_snapshot"]["line_items"][0]["product"]["name"] == "Desk Lamp"

        with notifications_bed.domain_context():
            record = current_domain.repository_for(DeliveryStatusRecord).find_by_job_id(result.notification_job_id)
            assert record.status == DeliveryStatus.FAILED.value
            assert record.dead_lettered is True
            assert record.attempts == 5

    def test_checkout_does_not_wait_for_delivery(self, ordering_ctx, live_queue, primary_email):
        primary_email.configure(delay_seconds=0.3)

        result = _place_order()

        assert result.order.status == "processing"
        assert result.notification_job_id is not None
        live_queue.join()
        assert len(primary_email.sent_emails) == 1
