"""Notifications bounded context — Order confirmation delivery.

Receives notification jobs from the Ordering context and delivers the
order-confirmation e-mail (HTML body plus PDF invoice) through a primary and
a backup transport. Tracks delivery status per job for audit, retry and
recovery after a restart.
"""

import structlog
from protean.domain import Domain

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
