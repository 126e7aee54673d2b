"""Saved card details for repeat checkouts.

Cards are simulator-only test instruments; no real card data is stored or
charged. The number is only ever displayed masked.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering
from ordering.payment.simulator import mask_card_number


@ordering.aggregate
class SavedCard:
    user_id = Identifier(required=True)
    card_number = String(required=True, max_length=19)
    exp_month = Integer(required=True, min_value=1, max_value=12)
    exp_year = Integer(required=True)
    cvv = String(required=True, max_length=4)
    created_at = DateTime()

    @classmethod
    def save(cls, user_id, card_number, exp_month, exp_year, cvv):
        return cls(
            user_id=user_id,
            card_number=card_number,
            exp_month=exp_month,
            exp_year=exp_year,
            cvv=cvv,
            created_at=datetime.now(UTC),
        )

    @property
    def masked_number(self):
        return mask_card_number(self.card_number)

    def cvv_matches(self, cvv):
        return cvv is not None and str(cvv) == str(self.cvv)


@ordering.repository(part_of=SavedCard)
class SavedCardRepository:
    def find_for_user(self, card_id, user_id):
        """Return the card only if it belongs to ``user_id``."""
        results = self._dao.query.filter(id=card_id, user_id=user_id).all()
        return results.first if results.items else None
