"""Checkout — turns a cart into a persisted, paid order.

Flow:
    1. Validate (reads only): cart shape, products and stock, gift card,
       card resolution and prefix check. Any failure aborts before a write.
    2. Persist the shipping address and the pending order with its lines.
    3. Take stock per line and debit the gift card, each through the
       repository's atomic check-and-write.
    4. Card payments: save a new card, record the payment, move the order
       to ``processing``.
    5. Snapshot the order and enqueue the confirmation e-mail.

If any write in steps 3-4 fails, the writes already applied are reversed
(restock, gift-card refund, order cancelled) before the error propagates.

The service runs outside a Unit of Work: stock and gift-card primitives
persist while their row lock is held.
"""

from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from notifications.dispatch import get_notification_queue
from notifications.dispatch.job import NotificationJob
from ordering.checkout.requests import CheckoutResult, CustomerContact
from ordering.checkout.snapshot import build_order_snapshot
from ordering.errors import (
    CheckoutError,
    CvvMismatch,
    GiftCardNotFound,
    InsufficientGiftCardBalance,
    InsufficientStock,
    InvalidCardDetails,
    InvalidCart,
    PaymentInformationRequired,
    PaymentMethodNotFound,
    PaymentProcessingFailed,
    ProductNotFound,
)
from ordering.ledger.address import Address
from ordering.ledger.gift_card import GiftCard
from ordering.ledger.product import Product
from ordering.ledger.saved_card import SavedCard
from ordering.order.order import Order, to_money
from ordering.payment.payment import PaymentRecord
from ordering.payment.simulator import is_card_payment, validate_card

logger = structlog.get_logger(__name__)


@dataclass
class _PricedLine:
    product: Product
    quantity: int
    unit_price: Decimal


@dataclass
class _ResolvedCard:
    bank_name: str
    saved_card: SavedCard | None = None
    new_card: object = None


@dataclass
class _AppliedWrites:
    """Ledger writes that compensation must reverse, in application order."""

    decrements: list = field(default_factory=list)
    redemption: tuple | None = None
    payment_id: str | None = None


class CheckoutService:
    def __init__(self, notification_queue=None):
        self._notification_queue = notification_queue

    @property
    def notification_queue(self):
        return self._notification_queue or get_notification_queue()

    def place_order(
        self,
        user_id,
        cart_items,
        shipping_address,
        payment_method,
        card=None,
        saved_card_id=None,
        saved_card_cvv=None,
        gift_card_code=None,
        gift_card_amount=None,
        customer=None,
    ) -> CheckoutResult:
        log = logger.bind(user_id=str(user_id), payment_method=payment_method)
        customer = customer or CustomerContact(user_id=str(user_id))

        # -- Validation: no writes before this point ---------------------
        priced_lines = self._price_cart(cart_items)
        subtotal = sum((line.unit_price * line.quantity for line in priced_lines), Decimal("0.00"))
        gift_card, discount = self._resolve_gift_card(gift_card_code, gift_card_amount, subtotal)
        resolved_card = self._resolve_card(user_id, payment_method, card, saved_card_id, saved_card_cvv)
        charge_total = subtotal - discount

        # -- Writes --------------------------------------------------------
        address = Address.record(
            user_id=user_id,
            street=shipping_address.street,
            city=shipping_address.city,
            state=shipping_address.state,
            zip_code=shipping_address.zip_code,
            country=shipping_address.country,
        )
        current_domain.repository_for(Address).add(address)

        order = Order.place(
            user_id=user_id,
            shipping_address_id=address.id,
            payment_method=payment_method,
            lines=[(line.product.id, line.quantity, line.unit_price) for line in priced_lines],
        )
        order_repo = current_domain.repository_for(Order)
        order_repo.add(order)
        log = log.bind(order_id=str(order.id))

        applied = _AppliedWrites()
        payment = None
        try:
            self._take_stock(priced_lines, applied)
            if gift_card is not None and discount > 0:
                current_domain.repository_for(GiftCard).redeem(gift_card.id, float(discount), order.id)
                applied.redemption = (gift_card.id, float(discount))
            if resolved_card is not None:
                payment = self._settle_card_payment(order.id, user_id, resolved_card, charge_total, applied)
        except Exception as exc:
            reason = exc.message if isinstance(exc, CheckoutError) else str(exc)
            log.warning("Checkout write failed, compensating", error=reason)
            self._compensate(order.id, applied, reason)
            raise

        order = order_repo.get(order.id)
        log.info(
            "Order placed",
            total_amount=order.total_amount,
            charge_total=float(charge_total),
            gift_card_discount=float(discount),
            status=order.status,
        )

        result = CheckoutResult(
            order=order,
            subtotal=subtotal,
            gift_card_discount=discount,
            charge_total=charge_total,
            bank_name=resolved_card.bank_name if resolved_card else None,
            payment=payment,
        )
        result.snapshot = build_order_snapshot(
            order,
            address,
            {str(line.product.id): line.product for line in priced_lines},
            customer,
            subtotal=subtotal,
            discount=discount,
            charge_total=charge_total,
            bank_name=result.bank_name,
        )
        result.notification_job_id = self._enqueue_confirmation(order, customer, result.snapshot, log)
        return result

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------
    def _price_cart(self, cart_items):
        if not cart_items:
            raise InvalidCart("Cart is empty")

        product_repo = current_domain.repository_for(Product)
        priced = []
        for line in cart_items:
            if line.quantity is None or line.quantity < 1:
                raise InvalidCart(f"Quantity for product {line.product_id} must be at least 1")

            product = product_repo.get_or_none(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            if not product.can_fulfil(line.quantity):
                raise InsufficientStock(
                    product.id,
                    product.name,
                    available=product.stock_quantity,
                    requested=line.quantity,
                )
            priced.append(_PricedLine(product=product, quantity=line.quantity, unit_price=to_money(product.price)))
        return priced

    def _resolve_gift_card(self, code, amount, subtotal):
        if not code or not amount or amount <= 0:
            return None, Decimal("0.00")

        gift_card = current_domain.repository_for(GiftCard).find_active_by_code(code)
        if gift_card is None:
            raise GiftCardNotFound(code)

        requested = to_money(amount)
        if to_money(gift_card.balance) < requested:
            raise InsufficientGiftCardBalance(available=gift_card.balance, requested=float(requested))

        # Any requested amount beyond the subtotal is neither applied nor debited
        return gift_card, min(requested, subtotal)

    def _resolve_card(self, user_id, payment_method, card, saved_card_id, saved_card_cvv):
        if not is_card_payment(payment_method):
            return None

        saved_card = None
        if saved_card_id and saved_card_cvv:
            saved_card = current_domain.repository_for(SavedCard).find_for_user(saved_card_id, user_id)
            if saved_card is None:
                raise PaymentMethodNotFound(saved_card_id)
            if not saved_card.cvv_matches(saved_card_cvv):
                raise CvvMismatch()
            card_number = saved_card.card_number
        elif card is not None:
            card_number = card.card_number
        else:
            raise PaymentInformationRequired()

        validation = validate_card(card_number)
        if not validation.is_valid:
            raise InvalidCardDetails()
        return _ResolvedCard(
            bank_name=validation.bank_name,
            saved_card=saved_card,
            new_card=card if saved_card is None else None,
        )

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def _take_stock(self, priced_lines, applied):
        product_repo = current_domain.repository_for(Product)
        for line in priced_lines:
            product_repo.decrement_stock(line.product.id, line.quantity)
            applied.decrements.append((line.product.id, line.quantity))

    def _settle_card_payment(self, order_id, user_id, resolved_card, charge_total, applied):
        try:
            saved_card_id = resolved_card.saved_card.id if resolved_card.saved_card else None
            if resolved_card.new_card is not None:
                new_card = resolved_card.new_card
                saved = SavedCard.save(
                    user_id=user_id,
                    card_number=new_card.card_number,
                    exp_month=new_card.exp_month,
                    exp_year=new_card.exp_year,
                    cvv=new_card.cvv,
                )
                current_domain.repository_for(SavedCard).add(saved)
                saved_card_id = saved.id

            payment = PaymentRecord.complete(
                order_id=order_id,
                user_id=user_id,
                saved_card_id=saved_card_id,
                charge_total=charge_total,
                bank_name=resolved_card.bank_name,
            )
            current_domain.repository_for(PaymentRecord).add(payment)
            applied.payment_id = payment.id

            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(order_id)
            order.mark_processing(payment.id)
            order_repo.add(order)
        except Exception as exc:
            raise PaymentProcessingFailed(order_id, str(exc)) from exc
        return payment

    def _compensate(self, order_id, applied, reason):
        """Reverse ``applied`` and cancel the order.

        Every step is attempted even if an earlier one fails; failures are
        logged with the order id for manual repair.
        """
        log = logger.bind(order_id=str(order_id))

        product_repo = current_domain.repository_for(Product)
        for product_id, quantity in reversed(applied.decrements):
            try:
                product_repo.restock(product_id, quantity)
            except Exception as exc:
                log.error("Compensation restock failed", product_id=str(product_id), quantity=quantity, error=str(exc))

        if applied.redemption is not None:
            gift_card_id, amount = applied.redemption
            try:
                current_domain.repository_for(GiftCard).refund(gift_card_id, amount, order_id)
            except Exception as exc:
                log.error("Compensation gift card refund failed", gift_card_id=str(gift_card_id), error=str(exc))

        if applied.payment_id is not None:
            try:
                payment_repo = current_domain.repository_for(PaymentRecord)
                payment = payment_repo.get(applied.payment_id)
                payment.void()
                payment_repo.add(payment)
            except Exception as exc:
                log.error("Compensation payment void failed", payment_id=str(applied.payment_id), error=str(exc))

        try:
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(order_id)
            order.cancel(reason)
            order_repo.add(order)
        except Exception as exc:
            log.error("Compensation order cancel failed", error=str(exc))

        log.info("Checkout compensated", reason=reason, restocked=len(applied.decrements))

    def _enqueue_confirmation(self, order, customer, snapshot, log):
        if not customer.email:
            log.info("No customer e-mail, confirmation skipped")
            return None

        job = NotificationJob.order_confirmation(
            order_id=str(order.id),
            customer_email=customer.email,
            order_snapshot=snapshot,
        )
        try:
            job_id = self.notification_queue.enqueue(job)
        except Exception as exc:
            log.error("Failed to enqueue order confirmation", job_id=job.job_id, error=str(exc))
            return None

        log.info("Order confirmation enqueued", job_id=job_id)
        return job_id
