"""Domain events for the ledger aggregates (Product, GiftCard)."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Product")
class StockDecremented:
    """Units of a product were committed to an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    stock_quantity = Integer(required=True)
    in_stock = Boolean()
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockRestocked:
    """Units were returned to a product's stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    stock_quantity = Integer(required=True)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="GiftCard")
class GiftCardIssued:
    """A gift card was purchased and activated with its face value."""

    __version__ = 1

    gift_card_id = Identifier(required=True)
    code = String(required=True)
    amount = Float(required=True)
    purchased_by = Identifier()
    issued_at = DateTime(required=True)


@ordering.event(part_of="GiftCard")
class GiftCardRedeemed:
    """Part of a gift card's balance was applied to an order."""

    __version__ = 1

    gift_card_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    balance = Float(required=True)
    redeemed_at = DateTime(required=True)


@ordering.event(part_of="GiftCard")
class GiftCardRefunded:
    """A redemption was credited back after its checkout failed."""

    __version__ = 1

    gift_card_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    balance = Float(required=True)
    refunded_at = DateTime(required=True)
