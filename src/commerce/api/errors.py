"""Exception handlers rendering every failure as the error envelope."""

from contextlib import contextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from sqlalchemy.exc import DisconnectionError, OperationalError

from commerce.errors import CommerceError, TransientStoreFailure

logger = structlog.get_logger(__name__)

_TRANSIENT_ERRORS = (ConnectionError, TimeoutError, OperationalError, DisconnectionError)


@contextmanager
def store_guard():
    """Surface storage outages as TransientStoreFailure."""
    try:
        yield
    except _TRANSIENT_ERRORS as exc:
        logger.error("Storage unavailable", error=str(exc))
        raise TransientStoreFailure(f"Storage unavailable, retry the request: {exc}") from exc


def error_response(status_code: int, message: str, kind: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "kind": kind},
    )


def _flatten(messages) -> str:
    if isinstance(messages, dict):
        return "; ".join(f"{field}: {', '.join(str(m) for m in errs)}" for field, errs in messages.items())
    return str(messages)


async def _commerce_error(request: Request, exc: CommerceError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.kind)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(400, _flatten(exc.messages), "ValidationError")


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(404, str(exc), "NotFound")


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return error_response(400, details, "ValidationError")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CommerceError, _commerce_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
