from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from amity.core.cancellation import CancellationToken
from amity.core.config import settings
from amity.core.errors import RemoteUnavailable, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """Runs an async operation with bounded retries and exponential backoff.

    Only connectivity failures are retried. Anything else is raised on the
    attempt that produced it. The token is checked before each attempt and
    around each backoff wait.

    When every attempt fails the caller gets `RemoteUnavailable` rather than
    the last underlying error itself. That error is kept as `__cause__`, so
    logs and callers that need it can still reach it.
    """

    def __init__(self, initial_delay: float | None = None):
        self.initial_delay = settings.RETRY_INITIAL_DELAY_SECONDS if initial_delay is None else initial_delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int = 3,
        initial_delay: float | None = None,
        token: CancellationToken | None = None,
        label: str = "operation",
    ) -> T:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        token = token or CancellationToken()
        delay = self.initial_delay if initial_delay is None else initial_delay

        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            token.raise_if_cancelled()
            try:
                return await operation()
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                last_error = exc
                logger.warning("%s attempt=%s/%s failed: %r", label, attempt, max_attempts, exc)
                if attempt < max_attempts:
                    await token.sleep(delay * 2 ** (attempt - 1))

        if isinstance(last_error, RemoteUnavailable):
            raise last_error
        raise RemoteUnavailable() from last_error
