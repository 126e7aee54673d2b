"""Storefront FastAPI application.

Serves checkout (Ordering) and delivery status (Notifications) over HTTP.
Each request is wrapped in the correct domain context based on URL prefix.
Confirmation e-mails are delivered by the notification queue's worker
threads, which push the Notifications context themselves.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notifications.domain import notifications
from ordering.domain import ordering
from ordering.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Domains are initialized at module level so uvicorn workers share them.
# PROTEAN_ENV selects the config overlay.
configure_logging()
ordering.init()
notifications.init()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/orders": ordering,
    "/gift-cards": ordering,
    "/notifications": notifications,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    from notifications.dispatch import get_notification_queue, reset_notification_queue
    from notifications.dispatch.recovery import recover_unfinished_jobs

    with notifications.domain_context():
        recovered = recover_unfinished_jobs(get_notification_queue())
    logger.info("Storefront API started", recovered_jobs=len(recovered))
    yield
    reset_notification_queue()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Checkout and order-confirmation delivery",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the correct Protean domain context for each request."""
    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    # No domain match: health check and docs pass through
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from notifications.api.routes import router as notifications_router  # noqa: E402
from ordering.api.routes import gift_card_router, order_router  # noqa: E402

app.include_router(order_router)
app.include_router(gift_card_router)
app.include_router(notifications_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
                "notifications": {"name": notifications.name},
            },
        }
    )
