"""Shipping address recorded with each order.

Addresses are not deduplicated: every checkout persists its own snapshot so
an order keeps pointing at where it was actually shipped.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, String

from ordering.domain import ordering


@ordering.aggregate
class Address:
    user_id: Identifier(required=True)
    street: String(required=True, max_length=255)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    zip_code: String(required=True, max_length=20)
    country: String(required=True, max_length=100)
    is_default: Boolean(default=False)
    created_at: DateTime()

    @classmethod
    def record(cls, user_id, street, city, state, zip_code, country):
        return cls(
            user_id=user_id,
            street=street,
            city=city,
            state=state,
            zip_code=zip_code,
            country=country,
            is_default=False,
            created_at=datetime.now(UTC),
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }
