from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from amity.core.errors import NotAuthenticated
from amity.schemas.memory import LikeState
from amity.store.remote import RemoteStore, eq

logger = logging.getLogger(__name__)


class LikeResolver:
    def __init__(self, store: RemoteStore):
        self._store = store

    async def resolve(self, memory_id: str, viewer_id: str | None) -> LikeState:
        """Aggregate call first, raw like rows second, zero state last. Never raises."""
        try:
            result = await self._store.rpc(
                "get_memory_like_status", {"memory_id": memory_id, "user_id": viewer_id}
            )
            return LikeState(
                count=max(int(result.get("count") or 0), 0),
                viewer_has_liked=bool(result.get("viewer_has_liked")),
            )
        except Exception as exc:
            logger.warning("like status rpc failed memory_id=%s: %r", memory_id, exc)

        try:
            rows = await self._store.select("memory_likes", [eq("memory_id", memory_id)])
            return LikeState(
                count=len(rows),
                viewer_has_liked=viewer_id is not None and any(row.get("user_id") == viewer_id for row in rows),
            )
        except Exception as exc:
            logger.warning("like rows fallback failed memory_id=%s: %r", memory_id, exc)

        return LikeState()

    async def resolve_many(self, memory_ids: Iterable[str], viewer_id: str | None) -> dict[str, LikeState]:
        ids = list(memory_ids)
        states = await asyncio.gather(*(self.resolve(memory_id, viewer_id) for memory_id in ids))
        return dict(zip(ids, states))

    async def toggle(self, memory_id: str, viewer_id: str | None) -> LikeState:
        if not viewer_id:
            raise NotAuthenticated()
        result = await self._store.rpc("toggle_like", {"memory_id": memory_id, "user_id": viewer_id})
        return LikeState(count=max(int(result["count"]), 0), viewer_has_liked=bool(result["viewer_has_liked"]))
