"""Order confirmation template — sent once an order is placed.

``render`` produces the full HTML body sent through the primary transport
with the PDF invoice attached. ``render_fallback`` produces a lighter,
self-contained body for the backup transport, which sends no attachment.
All interpolated values are HTML-escaped.
"""

from html import escape

from notifications.dispatch.job import ORDER_CONFIRMATION


def _money(value) -> str:
    return f"${float(value or 0):,.2f}"


def _customer_name(snapshot: dict) -> str:
    user = snapshot.get("user") or {}
    return escape(user.get("first_name") or "there")


def _line_rows(snapshot: dict) -> str:
    rows = []
    for item in snapshot.get("line_items", []):
        product = item.get("product") or {}
        quantity = item.get("quantity", 0)
        price = float(item.get("price") or 0)
        rows.append(
            "<tr>"
            f"<td>{escape(product.get('name') or str(item.get('product_id')))}</td>"
            f"<td style=\"text-align:right\">{quantity}</td>"
            f"<td style=\"text-align:right\">{_money(price)}</td>"
            f"<td style=\"text-align:right\">{_money(price * quantity)}</td>"
            "</tr>"
        )
    return "\n".join(rows)


def _totals(snapshot: dict) -> str:
    subtotal = snapshot.get("subtotal", snapshot.get("total_amount"))
    rows = [f"<p>Subtotal: {_money(subtotal)}</p>"]
    if snapshot.get("gift_card_discount"):
        rows.append(f"<p>Gift card: -{_money(snapshot['gift_card_discount'])}</p>")
    rows.append(f"<p><strong>Amount charged: {_money(snapshot.get('charge_total', subtotal))}</strong></p>")
    return "\n".join(rows)


def _address(snapshot: dict) -> str:
    address = snapshot.get("shipping_address") or {}
    return "<br>".join(
        escape(part)
        for part in (
            address.get("street", ""),
            f"{address.get('city', '')}, {address.get('state', '')} {address.get('zip_code', '')}",
            address.get("country", ""),
        )
    )


class OrderConfirmationTemplate:
    job_type = ORDER_CONFIRMATION

    @staticmethod
    def subject(snapshot: dict) -> str:
        return f"Order Confirmation - Order #{snapshot.get('id', 'N/A')}"

    @staticmethod
    def render(snapshot: dict, has_invoice: bool = False) -> dict:
        order_id = escape(str(snapshot.get("id", "N/A")))
        invoice_note = (
            "<p>Your invoice is attached to this e-mail as a PDF.</p>"
            if has_invoice
            else "<p>Your invoice will be available in your account.</p>"
        )
        bank = snapshot.get("bank_name")
        payment = escape((snapshot.get("payment_method") or "").replace("_", " ").title())
        if bank:
            payment += f" ({escape(bank)})"

        html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Order Confirmation</title></head>
<body style="font-family: Arial, sans-serif; color: #333;">
  <h1>Thank you for your order!</h1>
  <p>Hi {_customer_name(snapshot)},</p>
  <p>We've received order <strong>#{order_id}</strong> and are getting it ready.</p>
  <table style="width:100%; border-collapse: collapse;" border="1" cellpadding="6">
    <thead><tr><th>Item</th><th>Qty</th><th>Unit price</th><th>Total</th></tr></thead>
    <tbody>
{_line_rows(snapshot)}
    </tbody>
  </table>
  {_totals(snapshot)}
  <p>Payment: {payment}</p>
  <h3>Shipping to</h3>
  <p>{_address(snapshot)}</p>
  {invoice_note}
  <p>Thank you for shopping with Storefront!</p>
</body>
</html>"""
        return {"subject": OrderConfirmationTemplate.subject(snapshot), "html": html}

    @staticmethod
    def render_fallback(snapshot: dict) -> dict:
        order_id = escape(str(snapshot.get("id", "N/A")))
        html = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif;">
  <h2>Order #{order_id} confirmed</h2>
  <p>Hi {_customer_name(snapshot)}, thank you for your order.</p>
  <ul>
{_fallback_items(snapshot)}
  </ul>
  {_totals(snapshot)}
  <p>Your invoice will be available in your account.</p>
</body>
</html>"""
        return {"subject": OrderConfirmationTemplate.subject(snapshot), "html": html}


def _fallback_items(snapshot: dict) -> str:
    items = []
    for item in snapshot.get("line_items", []):
        name = (item.get("product") or {}).get("name") or str(item.get("product_id"))
        items.append(f"    <li>{escape(name)} &times; {item.get('quantity', 0)}</li>")
    return "\n".join(items)
