"""GiftCard aggregate with its append-only transaction ledger.

Every balance change writes exactly one GiftCardTransaction:

    purchase    — written once, when the card is issued with its face value
    redemption  — balance applied to an order
    refund      — a redemption credited back because its checkout failed

so that ``balance == amount - Σredemption + Σrefund`` holds at all times.
"""

import secrets
import string
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, String, Text

from ordering.domain import ordering
from ordering.errors import GiftCardNotFound, InsufficientGiftCardBalance
from ordering.ledger.events import GiftCardIssued, GiftCardRedeemed, GiftCardRefunded
from ordering.ledger.locks import row_locks

MIN_GIFT_CARD_AMOUNT = 10
MAX_GIFT_CARD_AMOUNT = 1000
GIFT_CARD_CODE_LENGTH = 12
_CODE_ALPHABET = string.ascii_uppercase + string.digits


class GiftCardTransactionType(Enum):
    PURCHASE = "purchase"
    REDEMPTION = "redemption"
    REFUND = "refund"


def generate_gift_card_code():
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(GIFT_CARD_CODE_LENGTH))


def _cents(value):
    return int(round(float(value) * 100))


@ordering.entity(part_of="GiftCard")
class GiftCardTransaction:
    order_id = Identifier()
    amount = Float(required=True, min_value=0.01)
    transaction_type = String(choices=GiftCardTransactionType, required=True)
    created_at = DateTime()


@ordering.aggregate
class GiftCard:
    code = String(required=True, max_length=GIFT_CARD_CODE_LENGTH, unique=True)
    amount = Float(required=True, min_value=0.0)
    balance = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)
    purchased_by = Identifier()
    recipient_email = String(max_length=255)
    message = Text()
    transactions = HasMany(GiftCardTransaction)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def balance_cannot_exceed_face_value(self):
        if _cents(self.balance) > _cents(self.amount):
            raise ValidationError({"balance": ["Balance cannot exceed the gift card amount"]})

    @invariant.post
    def balance_matches_transaction_ledger(self):
        if self.transactions and _cents(self.balance) != self.ledger_balance_cents():
            raise ValidationError({"balance": ["Balance does not match the transaction ledger"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(cls, amount, purchased_by=None, recipient_email=None, message=None, code=None):
        if not MIN_GIFT_CARD_AMOUNT <= amount <= MAX_GIFT_CARD_AMOUNT:
            raise ValidationError(
                {
                    "amount": [
                        f"Gift card amount must be between ${MIN_GIFT_CARD_AMOUNT} "
                        f"and ${MAX_GIFT_CARD_AMOUNT}"
                    ]
                }
            )

        now = datetime.now(UTC)
        amount = round(float(amount), 2)
        card = cls(
            code=code or generate_gift_card_code(),
            amount=amount,
            balance=amount,
            is_active=True,
            purchased_by=purchased_by,
            recipient_email=recipient_email,
            message=message,
            created_at=now,
            updated_at=now,
        )
        card.add_transactions(
            GiftCardTransaction(
                amount=amount,
                transaction_type=GiftCardTransactionType.PURCHASE.value,
                created_at=now,
            )
        )
        card.raise_(
            GiftCardIssued(
                gift_card_id=str(card.id),
                code=card.code,
                amount=amount,
                purchased_by=str(purchased_by) if purchased_by else None,
                issued_at=now,
            )
        )
        return card

    # -------------------------------------------------------------------
    # Balance changes
    # -------------------------------------------------------------------
    def covers(self, amount):
        return self.is_active and _cents(self.balance) >= _cents(amount)

    def redeem(self, amount, order_id):
        if not self.is_active:
            raise ValidationError({"is_active": ["Gift card is not active"]})
        if _cents(amount) <= 0:
            raise ValidationError({"amount": ["Redemption amount must be positive"]})
        if not self.covers(amount):
            raise ValidationError({"balance": ["Insufficient gift card balance"]})

        now = datetime.now(UTC)
        amount = round(float(amount), 2)
        with atomic_change(self):
            self.balance = (_cents(self.balance) - _cents(amount)) / 100
            self.add_transactions(
                GiftCardTransaction(
                    order_id=order_id,
                    amount=amount,
                    transaction_type=GiftCardTransactionType.REDEMPTION.value,
                    created_at=now,
                )
            )
            self.updated_at = now

        self.raise_(
            GiftCardRedeemed(
                gift_card_id=str(self.id),
                order_id=str(order_id),
                amount=amount,
                balance=self.balance,
                redeemed_at=now,
            )
        )

    def refund(self, amount, order_id):
        """Credit back a redemption made for ``order_id``."""
        redeemed = sum(
            _cents(t.amount)
            for t in self.transactions
            if t.transaction_type == GiftCardTransactionType.REDEMPTION.value
            and str(t.order_id) == str(order_id)
        )
        refunded = sum(
            _cents(t.amount)
            for t in self.transactions
            if t.transaction_type == GiftCardTransactionType.REFUND.value
            and str(t.order_id) == str(order_id)
        )
        if _cents(amount) <= 0 or _cents(amount) > redeemed - refunded:
            raise ValidationError({"amount": ["Refund exceeds the amount redeemed for this order"]})

        now = datetime.now(UTC)
        amount = round(float(amount), 2)
        with atomic_change(self):
            self.balance = (_cents(self.balance) + _cents(amount)) / 100
            self.add_transactions(
                GiftCardTransaction(
                    order_id=order_id,
                    amount=amount,
                    transaction_type=GiftCardTransactionType.REFUND.value,
                    created_at=now,
                )
            )
            self.updated_at = now

        self.raise_(
            GiftCardRefunded(
                gift_card_id=str(self.id),
                order_id=str(order_id),
                amount=amount,
                balance=self.balance,
                refunded_at=now,
            )
        )

    def ledger_balance_cents(self):
        total = 0
        for txn in self.transactions:
            if txn.transaction_type == GiftCardTransactionType.REDEMPTION.value:
                total -= _cents(txn.amount)
            elif txn.transaction_type == GiftCardTransactionType.REFUND.value:
                total += _cents(txn.amount)
        return _cents(self.amount) + total


@ordering.repository(part_of=GiftCard)
class GiftCardRepository:
    def find_active_by_code(self, code):
        results = self._dao.query.filter(code=code, is_active=True).all()
        if not results.items:
            return None
        return self.get(results.first.id)

    def redeem(self, gift_card_id, amount, order_id):
        """Check the balance and debit ``amount`` as one step."""
        with row_locks.hold("gift_card", gift_card_id):
            card = self._load(gift_card_id)
            if not card.covers(amount):
                raise InsufficientGiftCardBalance(available=card.balance, requested=amount)
            card.redeem(amount, order_id)
            self.add(card)
            return card

    def refund(self, gift_card_id, amount, order_id):
        with row_locks.hold("gift_card", gift_card_id):
            card = self._load(gift_card_id)
            card.refund(amount, order_id)
            self.add(card)
            return card

    def _load(self, gift_card_id):
        try:
            return self.get(gift_card_id)
        except ObjectNotFoundError:
            raise GiftCardNotFound(str(gift_card_id)) from None
