"""Ordering bounded context — Checkout and the storefront ledger.

Owns the ledger (products, gift cards, addresses, saved cards, orders and
payment records) and the checkout flow that turns a cart into a persisted,
paid order before handing off to the Notifications context.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
