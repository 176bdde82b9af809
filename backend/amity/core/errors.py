"""
Error taxonomy shared by repositories, services and routes.

Every error carries a machine-readable `code` and a message that is safe to
show to a user. Raw backend error strings only ever end up in logs.
"""
from __future__ import annotations

import asyncio
import errno
import logging
import socket
from typing import Any, Awaitable, Generic, TypeVar

import httpx
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette import status

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS = ("timeout", "network", "connection", "econnreset", "etimedout")
_NETWORK_ERRNOS = frozenset(
    {errno.ENETDOWN, errno.ENETUNREACH, errno.EHOSTUNREACH, errno.EHOSTDOWN, errno.ETIMEDOUT}
)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class AmityError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "UNKNOWN"
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(AmityError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "The requested resource was not found."


class NotAuthenticated(AmityError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"
    default_message = "You are not authorized to perform this action."


class Aborted(AmityError):
    http_status = status.HTTP_409_CONFLICT
    code = "ABORTED"
    default_message = "Operation was cancelled."


class RemoteUnavailable(AmityError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "REMOTE_UNAVAILABLE"
    default_message = "Network error. Please check your internet connection."


class ValidationFailed(AmityError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_FAILED"
    default_message = "Please check your input and try again."


class MediaItemsNotSaved(AmityError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "MEDIA_ITEMS_NOT_SAVED"
    default_message = "Memory saved, but some media could not be attached. Please try again."


class Unknown(AmityError):
    pass


def _looks_transient(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def classify(exc: BaseException) -> AmityError:
    if isinstance(exc, AmityError):
        return exc
    if isinstance(exc, asyncio.CancelledError):
        return Aborted()
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError, socket.gaierror, socket.herror)):
        return RemoteUnavailable()
    if isinstance(exc, OSError):
        # Local filesystem and permission failures are terminal.
        if exc.errno in _NETWORK_ERRNOS:
            return RemoteUnavailable()
        return Unknown(details={"type": type(exc).__name__})
    if isinstance(exc, (OperationalError, DisconnectionError, PoolTimeoutError, httpx.TransportError)):
        return RemoteUnavailable()
    if isinstance(exc, ValidationError):
        return ValidationFailed(details={"errors": exc.error_count()})
    if _looks_transient(exc):
        return RemoteUnavailable()
    return Unknown(details={"type": type(exc).__name__})


def is_retryable(exc: BaseException) -> bool:
    return isinstance(classify(exc), RemoteUnavailable)


# ---------------------------------------------------------------------------
# Structured results for mutating operations
# ---------------------------------------------------------------------------

class ErrorInfo(BaseModel):
    code: str
    message: str
    aborted: bool = False


class OperationResult(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, exc: BaseException) -> "OperationResult[T]":
        err = classify(exc)
        return cls(
            success=False,
            error=ErrorInfo(code=err.code, message=err.message, aborted=isinstance(err, Aborted)),
        )


async def capture(operation: Awaitable[T], label: str) -> OperationResult[T]:
    try:
        return OperationResult.ok(await operation)
    except Exception as exc:
        err = classify(exc)
        if isinstance(err, Aborted):
            logger.info("%s aborted", label)
        else:
            logger.warning("%s failed code=%s error=%r", label, err.code, exc)
        return OperationResult.failed(err)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def amity_exception_handler(request: Request, exc: AmityError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": ValidationFailed.code,
            "message": ValidationFailed.default_message,
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=Unknown().to_dict(),
    )


_STATUS_BY_CODE = {
    cls.code: cls.http_status
    for cls in (NotFound, NotAuthenticated, Aborted, RemoteUnavailable, ValidationFailed, MediaItemsNotSaved, Unknown)
}


def status_for(code: str) -> int:
    return _STATUS_BY_CODE.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
