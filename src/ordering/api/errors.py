"""Exception handlers mapping domain errors to HTTP responses.

Business-rule violations come back with a structured reason. Storage and
unexpected failures come back as a generic 500 without internal detail;
the traceback is logged instead.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import (
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    Forbidden,
    InsufficientStock,
    InvalidTransition,
    PersistenceError,
    RefundExceedsTotal,
    StaleCart,
)

logger = structlog.get_logger(__name__)

GENERIC_ERROR = {"error": "Internal server error"}


def _message(exc):
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return "; ".join(str(reason) for reasons in messages.values() for reason in reasons)
    if messages:
        return str(messages)
    return str(exc)


def _body(exc, **extra):
    messages = getattr(exc, "messages", None)
    body = {"error": _message(exc), "details": messages if isinstance(messages, dict) else None}
    body.update(extra)
    return body


async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=_body(exc))


async def _insufficient_stock(request: Request, exc: InsufficientStock):
    logger.info("insufficient_stock", product_id=exc.product_id, requested=exc.requested, available=exc.available)
    return JSONResponse(
        status_code=400,
        content=_body(
            exc,
            product_id=exc.product_id,
            sku=exc.sku,
            requested=exc.requested,
            available=exc.available,
        ),
    )


async def _refund_exceeds_total(request: Request, exc: RefundExceedsTotal):
    return JSONResponse(status_code=400, content=_body(exc, refundable=exc.refundable))


async def _not_found(request: Request, exc: ObjectNotFoundError):
    return JSONResponse(status_code=404, content=_body(exc))


async def _forbidden(request: Request, exc: Forbidden):
    return JSONResponse(status_code=403, content=_body(exc))


async def _conflict(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content=_body(exc))


async def _invalid_operation(request: Request, exc: InvalidOperationError):
    return JSONResponse(status_code=400, content=_body(exc))


async def _persistence_error(request: Request, exc: PersistenceError):
    logger.error("persistence_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content=GENERIC_ERROR)


async def _unhandled(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=GENERIC_ERROR)


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then the storefront's more specific ones."""
    register_exception_handlers(app)

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(InsufficientStock, _insufficient_stock)
    app.add_exception_handler(RefundExceedsTotal, _refund_exceeds_total)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(Forbidden, _forbidden)
    app.add_exception_handler(InvalidTransition, _conflict)
    app.add_exception_handler(StaleCart, _conflict)
    app.add_exception_handler(ExpectedVersionError, _conflict)
    app.add_exception_handler(InvalidOperationError, _invalid_operation)
    app.add_exception_handler(PersistenceError, _persistence_error)
    app.add_exception_handler(Exception, _unhandled)
