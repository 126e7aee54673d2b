"""FastAPI routes for the Ordering domain — checkout, orders and gift cards."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    GiftCardResponse,
    IssueGiftCardRequest,
    OrderResponse,
    PlacedOrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
)
from ordering.checkout.requests import CardDetails, CartLine, CustomerContact, ShippingAddressInput
from ordering.checkout.service import CheckoutService
from ordering.errors import CheckoutError
from ordering.ledger.gift_card import GiftCard
from ordering.order.order import Order

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=PlaceOrderResponse)
async def place_order(body: PlaceOrderRequest) -> PlaceOrderResponse:
    """Place an order from the submitted cart.

    Checkout errors come back as ``{"error": <code>, "message": ...}`` with
    the status carried by the error.
    """
    card = None
    if body.card_info is not None:
        card = CardDetails(
            card_number=body.card_info.card_number,
            exp_month=body.card_info.exp_month,
            exp_year=body.card_info.exp_year,
            cvv=body.card_info.cvv,
        )

    try:
        result = CheckoutService().place_order(
            user_id=body.user_id,
            cart_items=[CartLine(product_id=line.product_id, quantity=line.quantity) for line in body.products],
            shipping_address=ShippingAddressInput(**body.shipping_address.model_dump()),
            payment_method=body.payment_method,
            card=card,
            saved_card_id=body.selected_payment_id,
            saved_card_cvv=body.cvv,
            gift_card_code=body.gift_card_code,
            gift_card_amount=body.gift_card_amount,
            customer=CustomerContact(
                user_id=body.user_id,
                email=body.customer_email,
                first_name=body.first_name,
                last_name=body.last_name,
            ),
        )
    except CheckoutError as exc:
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    return PlaceOrderResponse(data=PlacedOrderResponse(**result.to_dict()))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    try:
        order = current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "OrderNotFound", "message": "Order not found"})
    return OrderResponse(**order.to_dict())


# ---------------------------------------------------------------------------
# Gift Card Router
# ---------------------------------------------------------------------------
gift_card_router = APIRouter(prefix="/gift-cards", tags=["gift-cards"])


@gift_card_router.post("", status_code=201, response_model=GiftCardResponse)
async def issue_gift_card(body: IssueGiftCardRequest) -> GiftCardResponse:
    try:
        card = GiftCard.issue(
            amount=body.amount,
            purchased_by=body.purchased_by,
            recipient_email=body.recipient_email,
            message=body.message,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail={"error": "InvalidGiftCard", "message": exc.messages})

    current_domain.repository_for(GiftCard).add(card)
    return GiftCardResponse(
        id=str(card.id),
        code=card.code,
        amount=card.amount,
        balance=card.balance,
        is_active=card.is_active,
    )
