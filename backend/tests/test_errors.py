"""
Tests for the error taxonomy: classification, structured results and
the exception classes themselves.
"""
import asyncio
import errno
import socket

import httpx
import pytest
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import OperationalError

from amity.core.errors import (
    Aborted,
    MediaItemsNotSaved,
    NotAuthenticated,
    NotFound,
    OperationResult,
    RemoteUnavailable,
    Unknown,
    ValidationFailed,
    capture,
    classify,
    is_retryable,
    status_for,
)
from amity.core.cancellation import CancellationToken


class _Strict(BaseModel):
    value: int


def _validation_error():
    try:
        _Strict(value="nope")
    except ValidationError as exc:
        return exc
    raise AssertionError("expected a validation error")


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    @pytest.mark.parametrize(
        "cls,status,code",
        [
            (NotFound, 404, "NOT_FOUND"),
            (NotAuthenticated, 401, "NOT_AUTHENTICATED"),
            (Aborted, 409, "ABORTED"),
            (RemoteUnavailable, 503, "REMOTE_UNAVAILABLE"),
            (ValidationFailed, 422, "VALIDATION_FAILED"),
            (MediaItemsNotSaved, 502, "MEDIA_ITEMS_NOT_SAVED"),
            (Unknown, 500, "UNKNOWN"),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        err = cls()
        assert err.http_status == status
        assert err.code == code
        assert err.message
        assert status_for(code) == status

    def test_remote_unavailable_message_is_actionable(self):
        assert RemoteUnavailable().message == "Network error. Please check your internet connection."

    def test_custom_message_and_details(self):
        err = NotFound("Draft not found", details={"id": "d1"})
        assert err.to_dict() == {"code": "NOT_FOUND", "message": "Draft not found", "details": {"id": "d1"}}

    def test_to_dict_without_details(self):
        assert "details" not in Unknown().to_dict()

    def test_unknown_code_maps_to_500(self):
        assert status_for("SOMETHING_ELSE") == 500


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class TestClassify:
    @pytest.mark.parametrize(
        "exc",
        [
            ConnectionResetError("reset"),
            TimeoutError(),
            asyncio.TimeoutError(),
            OperationalError("SELECT 1", {}, Exception("server closed the connection")),
            httpx.ConnectTimeout("timed out"),
            RuntimeError("ETIMEDOUT while reading"),
            RuntimeError("Network request failed"),
        ],
    )
    def test_transient_errors(self, exc):
        assert isinstance(classify(exc), RemoteUnavailable)
        assert is_retryable(exc)

    def test_application_errors_pass_through(self):
        err = NotFound()
        assert classify(err) is err
        assert not is_retryable(err)

    def test_cancellation(self):
        assert isinstance(classify(asyncio.CancelledError()), Aborted)

    def test_pydantic_validation(self):
        assert isinstance(classify(_validation_error()), ValidationFailed)

    def test_anything_else_is_unknown_without_raw_text(self):
        err = classify(KeyError("secret_column"))
        assert isinstance(err, Unknown)
        assert "secret_column" not in err.message
        assert err.details == {"type": "KeyError"}
        assert not is_retryable(KeyError("x"))

    @pytest.mark.parametrize(
        "exc",
        [
            PermissionError(13, "Permission denied"),
            FileNotFoundError(2, "No such file or directory"),
            IsADirectoryError(21, "Is a directory"),
            OSError("disk quota exceeded"),
        ],
    )
    def test_local_os_errors_are_terminal(self, exc):
        err = classify(exc)
        assert isinstance(err, Unknown)
        assert err.details == {"type": type(exc).__name__}
        assert not is_retryable(exc)

    def test_socket_level_errors_are_transient(self):
        assert is_retryable(socket.gaierror(-2, "Name or service not known"))
        assert is_retryable(OSError(errno.ENETUNREACH, "Network is unreachable"))


# ---------------------------------------------------------------------------
# Structured results
# ---------------------------------------------------------------------------

class TestOperationResult:
    async def test_capture_success(self):
        async def work():
            return {"id": "m1"}

        result = await capture(work(), "work")
        assert result.success is True
        assert result.data == {"id": "m1"}
        assert result.error is None

    async def test_capture_failure_uses_safe_message(self):
        async def work():
            raise ConnectionError("tcp reset by 10.0.0.3")

        result = await capture(work(), "work")
        assert result.success is False
        assert result.error.code == "REMOTE_UNAVAILABLE"
        assert "10.0.0.3" not in result.error.message
        assert result.error.aborted is False

    async def test_capture_flags_aborts(self):
        token = CancellationToken()
        token.cancel()

        async def work():
            token.raise_if_cancelled()

        result = await capture(work(), "work")
        assert result.success is False
        assert result.error.aborted is True

    def test_failed_dump(self):
        dumped = OperationResult.failed(NotFound()).model_dump(mode="json")
        assert dumped == {
            "success": False,
            "data": None,
            "error": {"code": "NOT_FOUND", "message": "The requested resource was not found.", "aborted": False},
        }
