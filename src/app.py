"""Rentals FastAPI application.

Web server for the inventory ledger, bookings, damage reports, media
collections and ID verification. Commands are processed synchronously; every
request runs inside the rentals domain context with its request id bound
into the structured log context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
import os
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers
from rentals.domain import rentals  # noqa: E402
from rentals.utils.logging import bind_request_context, clear_request_context, get_logger

rentals.init()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Predefined equipment must exist before the first booking comes in
    if os.environ.get("BOOTSTRAP_CATALOG", "true").lower() == "true":
        from rentals.services import get_ledger

        with rentals.domain_context():
            created = get_ledger().bootstrap_catalog()
        logger.info("startup_catalog_ready", created=len(created))
    yield


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Rentals API",
    description="Rental equipment platform — inventory ledger, bookings, damage & repair, collections, ID checks",
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
    """Push the rentals domain context and request log context for each request."""
    bind_request_context(
        request_id=request.headers.get("X-Request-ID") or uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    try:
        with rentals.domain_context():
            response = await call_next(request)
        return response
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from rentals.api import (  # noqa: E402
    booking_router,
    collection_router,
    damage_router,
    inventory_router,
    verification_router,
    register_rental_exception_handlers,
)

app.include_router(inventory_router)
app.include_router(booking_router)
app.include_router(damage_router)
app.include_router(collection_router)
app.include_router(verification_router)

register_exception_handlers(app)
register_rental_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"rentals": {"name": rentals.name}},
        }
    )
