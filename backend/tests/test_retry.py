"""
Tests for RetryExecutor: attempt budget, backoff schedule, error
classification and cooperative cancellation.
"""
import asyncio

import pytest

from amity.core.cancellation import CancellationToken
from amity.core.errors import Aborted, NotFound, RemoteUnavailable
from amity.services.retry import RetryExecutor


class RecordingToken(CancellationToken):
    def __init__(self):
        super().__init__()
        self.delays = []

    async def sleep(self, delay):
        self.delays.append(delay)
        await super().sleep(0)


def failing(times, exc_factory, result="ok"):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= times:
            raise exc_factory()
        return result

    return operation, calls


# ---------------------------------------------------------------------------
# Attempts and classification
# ---------------------------------------------------------------------------

class TestAttempts:
    async def test_returns_first_success(self):
        operation, calls = failing(0, ConnectionError)
        assert await RetryExecutor(0).run(operation) == "ok"
        assert calls["count"] == 1

    async def test_transient_failures_are_retried(self):
        operation, calls = failing(2, lambda: ConnectionError("connection reset"))
        assert await RetryExecutor(0).run(operation, max_attempts=3) == "ok"
        assert calls["count"] == 3

    async def test_timeout_message_is_treated_as_transient(self):
        operation, calls = failing(1, lambda: RuntimeError("upstream request timeout"))
        assert await RetryExecutor(0).run(operation, max_attempts=2) == "ok"
        assert calls["count"] == 2

    async def test_exhausted_budget_raises_remote_unavailable(self):
        operation, calls = failing(10, lambda: ConnectionError("ECONNRESET"))
        with pytest.raises(RemoteUnavailable) as info:
            await RetryExecutor(0).run(operation, max_attempts=2)
        assert calls["count"] == 2
        assert isinstance(info.value.__cause__, ConnectionError)
        assert "internet connection" in info.value.message

    async def test_terminal_error_is_not_retried(self):
        operation, calls = failing(10, lambda: KeyError("missing"))
        with pytest.raises(KeyError):
            await RetryExecutor(0).run(operation, max_attempts=5)
        assert calls["count"] == 1

    async def test_not_found_is_not_retried(self):
        operation, calls = failing(10, NotFound)
        with pytest.raises(NotFound):
            await RetryExecutor(0).run(operation, max_attempts=3)
        assert calls["count"] == 1

    async def test_zero_attempts_rejected(self):
        operation, _ = failing(0, ConnectionError)
        with pytest.raises(ValueError):
            await RetryExecutor(0).run(operation, max_attempts=0)


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------

class TestBackoff:
    async def test_delay_doubles_each_retry(self):
        token = RecordingToken()
        operation, _ = failing(3, TimeoutError)
        assert await RetryExecutor(1.0).run(operation, max_attempts=4, token=token) == "ok"
        assert token.delays == [1.0, 2.0, 4.0]

    async def test_no_wait_after_last_attempt(self):
        token = RecordingToken()
        operation, _ = failing(5, TimeoutError)
        with pytest.raises(RemoteUnavailable):
            await RetryExecutor(0.5).run(operation, max_attempts=2, token=token)
        assert token.delays == [0.5]

    async def test_per_call_delay_overrides_default(self):
        token = RecordingToken()
        operation, _ = failing(1, TimeoutError)
        await RetryExecutor(5.0).run(operation, max_attempts=2, initial_delay=0.25, token=token)
        assert token.delays == [0.25]


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancellation:
    async def test_cancelled_before_first_attempt_makes_zero_attempts(self):
        token = CancellationToken()
        token.cancel()
        operation, calls = failing(0, ConnectionError)
        with pytest.raises(Aborted):
            await RetryExecutor(0).run(operation, token=token)
        assert calls["count"] == 0

    async def test_cancel_during_backoff_aborts_without_waiting(self):
        token = CancellationToken()
        operation, calls = failing(10, ConnectionError)
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        with pytest.raises(Aborted):
            await asyncio.wait_for(RetryExecutor(30.0).run(operation, max_attempts=3, token=token), timeout=5)
        assert calls["count"] == 1

    async def test_cancel_after_failure_skips_remaining_attempts(self):
        token = CancellationToken()
        calls = {"count": 0}

        async def operation():
            calls["count"] += 1
            token.cancel()
            raise ConnectionError("connection refused")

        with pytest.raises(Aborted):
            await RetryExecutor(0).run(operation, max_attempts=3, token=token)
        assert calls["count"] == 1
