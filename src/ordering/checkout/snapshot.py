"""Denormalized order snapshot handed to the notification pipeline.

The snapshot is captured once, at enqueue time, and carries everything the
confirmation e-mail and the PDF invoice print, so later changes to products,
addresses or the order itself never alter what was sent.
"""


def build_order_snapshot(
    order,
    address,
    products,
    customer,
    subtotal,
    discount,
    charge_total,
    bank_name=None,
):
    """Build the snapshot dict.

    ``products`` maps product id (as str) to the Product read during checkout.
    """
    line_items = []
    for item in order.line_items:
        product = products.get(str(item.product_id))
        line_items.append(
            {
                "product_id": str(item.product_id),
                "quantity": item.quantity,
                "price": item.price,
                "product": {
                    "id": str(item.product_id),
                    "name": product.name if product else None,
                    "description": product.description if product else None,
                    "images": product.image_urls() if product else [],
                },
            }
        )

    return {
        "id": str(order.id),
        "user_id": str(order.user_id),
        "order_date": order.order_date.isoformat(),
        "status": order.status,
        "payment_method": order.payment_method,
        "bank_name": bank_name,
        "total_amount": order.total_amount,
        "subtotal": float(subtotal),
        "gift_card_discount": float(discount),
        "charge_total": float(charge_total),
        "user": {
            "id": str(customer.user_id),
            "email": customer.email,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
        },
        "shipping_address": address.to_dict(),
        "line_items": line_items,
    }
