"""Invoice PDF rendering with fpdf2.

Renders a one-page (auto-breaking) A4 invoice from an order snapshot:
header, invoice number and date, bill-to and ship-to blocks, the line
table, subtotal, gift-card discount and the amount charged.
"""

from datetime import datetime

import structlog
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from notifications.invoice import get_invoice_cache

logger = structlog.get_logger(__name__)

COMPANY_NAME = "Storefront"
COMPANY_ADDRESS = "100 Commerce Way, Springfield, IL 62701"

_COLUMNS = (("Item", 90), ("Qty", 20), ("Unit price", 40), ("Total", 40))


class InvoiceRenderError(Exception):
    """The invoice PDF could not be produced."""


def _text(value) -> str:
    # Core PDF fonts only cover latin-1
    return str(value if value is not None else "").encode("latin-1", "replace").decode("latin-1")


def _money(value) -> str:
    return f"${float(value or 0):,.2f}"


def _invoice_date(snapshot) -> str:
    raw = snapshot.get("order_date")
    try:
        return datetime.fromisoformat(raw).strftime("%B %d, %Y")
    except (TypeError, ValueError):
        return _text(raw)


def render_invoice_pdf(snapshot: dict) -> bytes:
    pdf = FPDF(format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    def line(text, height=6, **kwargs):
        pdf.cell(0, height, _text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT, **kwargs)

    # Header
    pdf.set_font("Helvetica", "B", 20)
    line(COMPANY_NAME, height=10)
    pdf.set_font("Helvetica", "", 9)
    line(COMPANY_ADDRESS, height=5)
    pdf.ln(4)

    pdf.set_font("Helvetica", "B", 14)
    line(f"INVOICE #{snapshot.get('id')}", height=8)
    pdf.set_font("Helvetica", "", 10)
    line(f"Date: {_invoice_date(snapshot)}")
    line(f"Status: {snapshot.get('status', '')}")
    pdf.ln(4)

    # Parties
    user = snapshot.get("user") or {}
    address = snapshot.get("shipping_address") or {}
    pdf.set_font("Helvetica", "B", 11)
    line("Bill To")
    pdf.set_font("Helvetica", "", 10)
    line(" ".join(filter(None, [user.get("first_name"), user.get("last_name")])) or "Customer")
    line(user.get("email") or "")
    pdf.ln(2)
    pdf.set_font("Helvetica", "B", 11)
    line("Ship To")
    pdf.set_font("Helvetica", "", 10)
    line(address.get("street", ""))
    line(f"{address.get('city', '')}, {address.get('state', '')} {address.get('zip_code', '')}")
    line(address.get("country", ""))
    pdf.ln(4)

    # Line items
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_fill_color(240, 240, 240)
    for title, width in _COLUMNS:
        pdf.cell(width, 8, title, border=1, fill=True, align="L" if title == "Item" else "R")
    pdf.ln(8)

    pdf.set_font("Helvetica", "", 10)
    for item in snapshot.get("line_items", []):
        name = (item.get("product") or {}).get("name") or str(item.get("product_id"))
        quantity = item.get("quantity", 0)
        price = float(item.get("price") or 0)
        pdf.cell(_COLUMNS[0][1], 7, _text(name)[:48], border=1)
        pdf.cell(_COLUMNS[1][1], 7, str(quantity), border=1, align="R")
        pdf.cell(_COLUMNS[2][1], 7, _money(price), border=1, align="R")
        pdf.cell(_COLUMNS[3][1], 7, _money(price * quantity), border=1, align="R")
        pdf.ln(7)
    pdf.ln(4)

    # Totals
    label_width = sum(width for _, width in _COLUMNS[:3])
    totals = [("Subtotal", snapshot.get("subtotal", snapshot.get("total_amount")))]
    if snapshot.get("gift_card_discount"):
        totals.append(("Gift card", -float(snapshot["gift_card_discount"])))
    totals.append(("Amount charged", snapshot.get("charge_total", snapshot.get("total_amount"))))
    for label, amount in totals:
        pdf.set_font("Helvetica", "B" if label == "Amount charged" else "", 10)
        pdf.cell(label_width, 7, label, align="R")
        pdf.cell(_COLUMNS[3][1], 7, _money(amount), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    pdf.set_font("Helvetica", "", 9)
    method = (snapshot.get("payment_method") or "").replace("_", " ").title()
    bank = snapshot.get("bank_name")
    line(f"Payment method: {method}" + (f" ({bank})" if bank else ""))
    line("Thank you for your order!")

    return bytes(pdf.output())


class InvoiceRenderer:
    """Renders invoices through the PDF cache."""

    def __init__(self, cache=None):
        self._cache = cache

    @property
    def cache(self):
        return self._cache or get_invoice_cache()

    def render(self, snapshot: dict) -> bytes:
        cached = self.cache.get(snapshot)
        if cached is not None:
            logger.debug("Invoice PDF cache hit", order_id=snapshot.get("id"))
            return cached

        try:
            pdf = render_invoice_pdf(snapshot)
        except Exception as exc:
            raise InvoiceRenderError(f"Invoice rendering failed for order {snapshot.get('id')}: {exc}") from exc

        self.cache.set(snapshot, pdf)
        return pdf
