# app/core/exceptions.py
"""
Error kinds surfaced by the loyalty core.

Every error is an HTTPException so FastAPI can render it directly, but it
also carries a stable `kind` that callers (and tests) can match on without
looking at status codes or message text.
"""
import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LoyaltyError(HTTPException):
    kind = "Error"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=message)
        self.message = message


class NotFoundError(LoyaltyError):
    kind = "NotFound"
    status_code_default = status.HTTP_404_NOT_FOUND


class TableInactiveError(LoyaltyError):
    kind = "TableInactive"


class DuplicateKeyError(LoyaltyError):
    kind = "DuplicateKey"
    status_code_default = status.HTTP_409_CONFLICT


class InsufficientPointsError(LoyaltyError):
    kind = "InsufficientPoints"


class ValidationFailedError(LoyaltyError):
    kind = "ValidationFailed"
    status_code_default = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnauthorizedError(LoyaltyError):
    """401 when the caller is unknown, 403 when the role is not allowed."""

    kind = "Unauthorized"
    status_code_default = status.HTTP_403_FORBIDDEN


class StorageFailureError(LoyaltyError):
    kind = "StorageFailure"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(kind: str, message: str, **extra) -> dict:
    body = {"success": False, "error": kind, "message": message}
    body.update(extra)
    return body


async def handle_loyalty_error(request: Request, exc: LoyaltyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} at {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.kind} at {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"ValidationFailed at {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(
            ValidationFailedError.kind,
            "Request validation failed",
            errors=jsonable_encoder(exc.errors()),
        ),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(LoyaltyError, handle_loyalty_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
