"""Domain events for the Order aggregate.

Events are versioned, immutable facts raised as the order moves through
its lifecycle and written to the event store when the order is persisted.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout persisted a new order in ``pending``."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, price}
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    """Payment for the order succeeded and it is being prepared."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier()
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; stock and gift-card debits were reversed."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)
