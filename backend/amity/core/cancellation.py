from __future__ import annotations

import asyncio

from amity.core.errors import Aborted


class CancellationToken:
    """Cooperative cancellation flag shared by one logical operation.

    Cancelling never interrupts a remote call already in flight; holders are
    expected to check the token before starting work, after every wait and
    before publishing results.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Aborted()

    async def sleep(self, delay: float) -> None:
        self.raise_if_cancelled()
        if delay > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        self.raise_if_cancelled()
