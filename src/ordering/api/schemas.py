"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from the
checkout service's own inputs.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class CartLineSchema(BaseModel):
    product_id: str
    quantity: int


class CardInfoSchema(BaseModel):
    card_number: str
    exp_month: int = Field(ge=1, le=12)
    exp_year: int
    cvv: str = Field(min_length=3, max_length=4)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    user_id: str
    customer_email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    products: list[CartLineSchema]
    shipping_address: ShippingAddressSchema
    payment_method: str
    card_info: CardInfoSchema | None = None
    selected_payment_id: str | None = None
    cvv: str | None = None
    gift_card_code: str | None = None
    gift_card_amount: float | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "customer_email": "jane@example.com",
                    "first_name": "Jane",
                    "last_name": "Doe",
                    "products": [{"product_id": "prod-001", "quantity": 2}],
                    "shipping_address": {
                        "street": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "zip_code": "62701",
                        "country": "US",
                    },
                    "payment_method": "credit_card",
                    "card_info": {
                        "card_number": "2345678901234567",
                        "exp_month": 12,
                        "exp_year": 2030,
                        "cvv": "123",
                    },
                    "gift_card_code": None,
                    "gift_card_amount": None,
                }
            ]
        }
    }


class IssueGiftCardRequest(BaseModel):
    amount: float = Field(ge=10, le=1000)
    purchased_by: str | None = None
    recipient_email: str | None = None
    message: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class LineItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    price: float


class OrderResponse(BaseModel):
    id: str
    user_id: str
    order_date: str | None = None
    total_amount: float
    shipping_address_id: str
    payment_method: str
    status: str
    cancellation_reason: str | None = None
    line_items: list[LineItemResponse] = []


class PlacedOrderResponse(OrderResponse):
    bank_name: str | None = None
    gift_card_discount: float = 0.0
    charge_total: float
    transaction_id: str | None = None
    notification_job_id: str | None = None


class PlaceOrderResponse(BaseModel):
    success: bool = True
    data: PlacedOrderResponse


class GiftCardResponse(BaseModel):
    id: str
    code: str
    amount: float
    balance: float
    is_active: bool
