"""Card payment simulator.

There is no real authorization: a card is accepted when the first two
characters of its number match one of the issuing-bank prefixes below. The
lookup is pure and deterministic, so it is used both to decide a checkout and
to print the bank name on the receipt.
"""

import secrets
import string
import time
from dataclasses import dataclass

CARD_PAYMENT_METHODS = frozenset({"credit_card", "debit_card"})

VALID_CARD_PREFIXES = {
    "23": "Citibank",
    "12": "Bank of America",
    "56": "Capital One",
    "34": "Chase Bank",
    "45": "Wells Fargo",
    "67": "PNC Bank",
    "89": "US Bank",
    "90": "TD Bank",
    "11": "BB&T",
    "22": "SunTrust",
    "33": "Regions Bank",
    "44": "Fifth Third Bank",
    "55": "Santander Bank",
}

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class CardValidation:
    is_valid: bool
    bank_name: str | None = None


def validate_card(card_number) -> CardValidation:
    if not isinstance(card_number, str) or len(card_number) < 2:
        return CardValidation(is_valid=False)

    bank_name = VALID_CARD_PREFIXES.get(card_number[:2])
    if bank_name is None:
        return CardValidation(is_valid=False)
    return CardValidation(is_valid=True, bank_name=bank_name)


def is_card_payment(payment_method) -> bool:
    return payment_method in CARD_PAYMENT_METHODS


def generate_transaction_id() -> str:
    """``TXN_<epoch-ms>_<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


def mask_card_number(card_number) -> str:
    last_four = str(card_number or "")[-4:]
    return f"****-****-****-{last_four}"
