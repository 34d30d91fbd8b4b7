"""HTTP status mapping for rentals failures.

Protean's own handlers (``register_exception_handlers``) cover plain
``ValidationError`` and friends; the handlers here add the rentals
taxonomy on top. Starlette resolves handlers along the exception's MRO,
so ``InsufficientStock`` and ``InvalidTransition`` map to 409 even though
they are ``ValidationError`` subclasses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rentals.errors import (
    AccessDenied,
    BookingNotFound,
    CollectionNotFound,
    ConcurrentUpdateConflict,
    DamageReportNotFound,
    Indeterminate,
    InsufficientStock,
    InvalidTransition,
    ItemNotFound,
    LedgerOperationFailed,
    VerificationNotFound,
)
from rentals.inventory.ledger import LedgerError
from rentals.media.port import MediaError

_LEDGER_ERROR_STATUS = {
    LedgerError.ITEM_NOT_FOUND: 404,
    LedgerError.INSUFFICIENT_STOCK: 409,
    LedgerError.CONCURRENT_UPDATE_CONFLICT: 409,
    LedgerError.INVALID_REQUEST: 400,
    LedgerError.INDETERMINATE: 503,
}


def ledger_error_status(error: LedgerError | None) -> int:
    return _LEDGER_ERROR_STATUS.get(error, 400)


async def _not_found(request: Request, exc):
    return JSONResponse(status_code=404, content={"error": exc.message})


async def _forbidden(request: Request, exc):
    return JSONResponse(status_code=403, content={"error": exc.message})


async def _conflict(request: Request, exc):
    return JSONResponse(status_code=409, content={"error": exc.message})


async def _indeterminate(request: Request, exc):
    return JSONResponse(status_code=503, content={"error": exc.message})


async def _media_rejected(request: Request, exc: MediaError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _rule_conflict(request: Request, exc):
    return JSONResponse(status_code=409, content={"error": exc.messages})


async def _ledger_failed(request: Request, exc: LedgerOperationFailed):
    result = exc.result
    return JSONResponse(
        status_code=ledger_error_status(result.error),
        content={
            "error": exc.message,
            "code": result.error.value if result.error else None,
            "item_id": result.item_id,
            "operation": result.operation,
        },
    )


def register_rental_exception_handlers(app: FastAPI) -> None:
    for not_found in (ItemNotFound, BookingNotFound, DamageReportNotFound, CollectionNotFound, VerificationNotFound):
        app.add_exception_handler(not_found, _not_found)
    app.add_exception_handler(AccessDenied, _forbidden)
    app.add_exception_handler(ConcurrentUpdateConflict, _conflict)
    app.add_exception_handler(Indeterminate, _indeterminate)
    app.add_exception_handler(InsufficientStock, _rule_conflict)
    app.add_exception_handler(InvalidTransition, _rule_conflict)
    app.add_exception_handler(LedgerOperationFailed, _ledger_failed)
    app.add_exception_handler(MediaError, _media_rejected)
