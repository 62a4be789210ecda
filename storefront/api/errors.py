# storefront/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from requests import RequestException
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.errors import (
    CheckoutError,
    ConcurrencyConflict,
    DeliveryBlocked,
    EmptyCart,
    InvalidStatusTransition,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_CODES = {
    ValidationError: 422,
    DeliveryBlocked: 422,
    EmptyCart: 409,
    ConcurrencyConflict: 409,
    InvalidStatusTransition: 409,
    NotFound: 404,
    PersistenceFailure: 503,
}


def _status_for(exc: CheckoutError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    body = {"kind": exc.kind, "detail": exc.detail}
    if isinstance(exc, DeliveryBlocked):
        body["reason"] = exc.reason.value
    return JSONResponse(status_code=_status_for(exc), content=body)


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"kind": "PermissionDenied", "detail": str(exc)})


async def upstream_error_handler(request: Request, exc: RequestException) -> JSONResponse:
    logger.error(f"Upstream HTTP call failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"kind": "UpstreamUnavailable", "detail": "Usluga zewnetrzna niedostepna"},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # bledy bazy spoza checkoutu (odczyty koszyka, zamowien), ten sam kontrakt co PersistenceFailure
    logger.error(f"Storage failure for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=STATUS_CODES[PersistenceFailure],
        content={"kind": PersistenceFailure.kind, "detail": "Baza danych niedostepna"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(RequestException, upstream_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
