from __future__ import annotations

import logging
from typing import Sequence

from amity.core.cancellation import CancellationToken
from amity.core.config import DEFAULT_FETCH_LIMIT, settings
from amity.core.errors import MediaItemsNotSaved, NotAuthenticated, NotFound, ValidationFailed
from amity.schemas.memory import LikeState, MediaItemInput, Memory, MemoryCreate, MemoryKind, MemoryUpdate
from amity.services import record_mapper
from amity.services.background import spawn_detached
from amity.services.fanout import ChunkedFanout
from amity.services.likes import LikeResolver
from amity.services.notifications import notify_memory_created
from amity.services.retry import RetryExecutor
from amity.store.remote import RemoteStore, asc, desc, eq, in_

logger = logging.getLogger(__name__)

SINGLE_PARTITION_ATTEMPTS = 3
CHUNK_ATTEMPTS = 2
WRITE_ATTEMPTS = 3


def _require_viewer(viewer_id: str | None) -> str:
    if not viewer_id:
        raise NotAuthenticated()
    return viewer_id


def _scope(memory_id: str, access_code: str) -> list:
    return [eq("id", memory_id), eq("access_code", access_code), eq("moderation_status", "approved")]


def _check_media_url_change(kind: MemoryKind, media_url: str | None) -> None:
    if kind in (MemoryKind.PHOTO, MemoryKind.VIDEO):
        if not media_url:
            raise ValidationFailed(f"A {kind.value} needs a media url")
    elif kind == MemoryKind.NOTE:
        raise ValidationFailed("A note cannot carry media")
    else:
        raise ValidationFailed("Carousel media is changed through its media items")


class MemoryRepository:
    def __init__(
        self,
        store: RemoteStore,
        likes: LikeResolver | None = None,
        retry: RetryExecutor | None = None,
        fanout: ChunkedFanout | None = None,
        chunk_size: int | None = None,
        notify: bool = True,
    ):
        self._store = store
        self._likes = likes or LikeResolver(store)
        self._retry = retry or RetryExecutor()
        self._fanout = fanout or ChunkedFanout()
        self._chunk_size = chunk_size or settings.FETCH_CHUNK_SIZE
        self._notify = notify

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _select_partition(self, access_codes: Sequence[str], limit: int) -> list[dict]:
        return await self._store.select(
            "memories",
            [in_("access_code", access_codes), eq("moderation_status", "approved")],
            order=[desc("event_date")],
            limit=limit,
        )

    async def _media_rows(self, memory_ids: list[str]) -> dict[str, list[dict]]:
        grouped: dict[str, list[dict]] = {memory_id: [] for memory_id in memory_ids}
        if not memory_ids:
            return grouped
        try:
            rows = await self._store.select(
                "memory_media_items", [in_("memory_id", memory_ids)], order=[asc("order")]
            )
        except Exception as exc:
            logger.warning("carousel media fetch failed memories=%s: %r", len(memory_ids), exc)
            return grouped
        for row in rows:
            grouped.setdefault(row["memory_id"], []).append(row)
        return grouped

    async def _enrich(self, rows: list[dict], viewer_id: str | None) -> list[Memory]:
        carousel_ids = [
            str(row["id"]) for row in rows if record_mapper.resolve_kind(row) == MemoryKind.CAROUSEL
        ]
        media = await self._media_rows(carousel_ids)
        like_states = await self._likes.resolve_many([str(row["id"]) for row in rows], viewer_id)
        return [
            record_mapper.to_memory(row, media.get(str(row["id"]), ()), like_states.get(str(row["id"])))
            for row in rows
        ]

    async def fetch_by_access_code(
        self,
        access_code: str,
        limit: int = DEFAULT_FETCH_LIMIT,
        viewer_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> list[Memory]:
        token = token or CancellationToken()
        rows = await self._retry.run(
            lambda: self._select_partition([access_code], limit),
            max_attempts=SINGLE_PARTITION_ATTEMPTS,
            token=token,
            label=f"fetch_by_access_code code={access_code}",
        )
        memories = await self._enrich(rows, viewer_id)
        token.raise_if_cancelled()
        return memories

    async def fetch_by_access_codes(
        self,
        access_codes: Sequence[str],
        limit: int = DEFAULT_FETCH_LIMIT,
        viewer_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> list[Memory]:
        token = token or CancellationToken()
        codes = list(dict.fromkeys(code for code in access_codes if code))
        if not codes:
            return []

        async def fetch_chunk(chunk: list[str]) -> list[Memory]:
            # Per-chunk SQL limit keeps each chunk's newest rows; the global cut happens after the merge.
            rows = await self._retry.run(
                lambda: self._select_partition(chunk, limit),
                max_attempts=CHUNK_ATTEMPTS,
                token=token,
                label=f"fetch_by_access_codes chunk={','.join(chunk)}",
            )
            token.raise_if_cancelled()
            return await self._enrich(rows, viewer_id)

        merged = await self._fanout.run(codes, self._chunk_size, fetch_chunk, label="fetch_by_access_codes")
        token.raise_if_cancelled()

        unique: dict[str, Memory] = {}
        for memory in merged:
            unique.setdefault(memory.id, memory)
        ordered = sorted(unique.values(), key=lambda memory: (memory.event_date, memory.id), reverse=True)
        return ordered[:limit]

    async def get(self, memory_id: str, viewer_id: str | None = None) -> Memory:
        rows = await self._retry.run(
            lambda: self._store.select(
                "memories", [eq("id", memory_id), eq("moderation_status", "approved")], limit=1
            ),
            max_attempts=SINGLE_PARTITION_ATTEMPTS,
            label=f"get_memory id={memory_id}",
        )
        if not rows:
            raise NotFound()
        return (await self._enrich(rows, viewer_id))[0]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, payload: MemoryCreate, viewer_id: str | None) -> Memory:
        creator = _require_viewer(viewer_id)
        row = record_mapper.memory_to_row(payload, creator)
        # Upsert by the client-generated id so a retried insert cannot duplicate the memory.
        stored = await self._retry.run(
            lambda: self._store.upsert("memories", [row], conflict=["id"]),
            max_attempts=WRITE_ATTEMPTS,
            label=f"create_memory id={payload.id}",
        )
        stored_row = stored[0] if stored else row

        media_rows: list[dict] = []
        if payload.kind == MemoryKind.CAROUSEL:
            media_rows = record_mapper.media_items_to_rows(payload.id, payload.media_items)
            try:
                media_rows = await self._retry.run(
                    lambda: self._store.upsert("memory_media_items", media_rows, conflict=["id"]),
                    max_attempts=WRITE_ATTEMPTS,
                    label=f"create_memory_media id={payload.id}",
                )
            except Exception as exc:
                logger.warning(
                    "carousel media insert failed memory_id=%s items=%s: %r",
                    payload.id,
                    len(payload.media_items),
                    exc,
                )
                raise MediaItemsNotSaved(details={"memory_id": payload.id}) from exc

        if self._notify:
            spawn_detached(
                notify_memory_created(payload.id, payload.access_code, creator),
                name=f"notify_memory_created:{payload.id}",
            )
        return record_mapper.to_memory(stored_row, media_rows, LikeState())

    async def _scoped_row(self, memory_id: str, access_code: str) -> dict:
        rows = await self._retry.run(
            lambda: self._store.select("memories", _scope(memory_id, access_code), limit=1),
            max_attempts=SINGLE_PARTITION_ATTEMPTS,
            label=f"get_scoped_memory id={memory_id}",
        )
        if not rows:
            raise NotFound()
        return rows[0]

    async def update(
        self, memory_id: str, access_code: str, changes: MemoryUpdate, viewer_id: str | None
    ) -> Memory:
        _require_viewer(viewer_id)
        values = record_mapper.update_to_row(changes)
        if not values:
            return (await self._enrich([await self._scoped_row(memory_id, access_code)], viewer_id))[0]
        if "media_url" in values:
            current = await self._scoped_row(memory_id, access_code)
            _check_media_url_change(record_mapper.resolve_kind(current), values["media_url"])

        rows = await self._retry.run(
            lambda: self._store.update("memories", _scope(memory_id, access_code), values),
            max_attempts=WRITE_ATTEMPTS,
            label=f"update_memory id={memory_id}",
        )
        if not rows:
            raise NotFound()
        return (await self._enrich(rows, viewer_id))[0]

    async def delete(self, memory_id: str, access_code: str, viewer_id: str | None) -> Memory:
        _require_viewer(viewer_id)
        media = await self._media_rows([memory_id])
        rows = await self._retry.run(
            lambda: self._store.delete("memories", [eq("id", memory_id), eq("access_code", access_code)]),
            max_attempts=WRITE_ATTEMPTS,
            label=f"delete_memory id={memory_id}",
        )
        if not rows:
            raise NotFound()
        logger.info("memory deleted id=%s access_code=%s", memory_id, access_code)
        return record_mapper.to_memory(rows[0], media.get(memory_id, ()))

    async def toggle_like(
        self, memory_id: str, viewer_id: str | None, token: CancellationToken | None = None
    ) -> LikeState:
        # Not idempotent: a second attempt after an unseen success would undo it.
        return await self._retry.run(
            lambda: self._likes.toggle(memory_id, viewer_id),
            max_attempts=1,
            token=token,
            label=f"toggle_like id={memory_id}",
        )

    async def replace_media_items(
        self, memory_id: str, access_code: str, items: list[MediaItemInput], viewer_id: str | None
    ) -> Memory:
        _require_viewer(viewer_id)
        if not items:
            raise ValidationFailed("A carousel needs at least one media item")
        current = await self._scoped_row(memory_id, access_code)
        if record_mapper.resolve_kind(current) != MemoryKind.CAROUSEL:
            raise NotFound()

        rows = record_mapper.media_items_to_rows(memory_id, items)
        await self._retry.run(
            lambda: self._store.delete("memory_media_items", [eq("memory_id", memory_id)]),
            max_attempts=WRITE_ATTEMPTS,
            label=f"clear_media id={memory_id}",
        )
        try:
            await self._retry.run(
                lambda: self._store.upsert("memory_media_items", rows, conflict=["id"]),
                max_attempts=WRITE_ATTEMPTS,
                label=f"insert_media id={memory_id}",
            )
        except Exception as exc:
            logger.warning("carousel media reinsert failed memory_id=%s: %r", memory_id, exc)
            raise MediaItemsNotSaved(details={"memory_id": memory_id}) from exc

        if rows:
            await self._retry.run(
                lambda: self._store.update(
                    "memories", _scope(memory_id, access_code), {"media_url": rows[0]["url"]}
                ),
                max_attempts=WRITE_ATTEMPTS,
                label=f"update_cover id={memory_id}",
            )
        return (await self._enrich([await self._scoped_row(memory_id, access_code)], viewer_id))[0]


class MemoryFeed:
    """One in-flight fetch per logical query; starting a new one cancels the old."""

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def begin(self, key: str) -> CancellationToken:
        previous = self._tokens.get(key)
        if previous is not None:
            previous.cancel()
        token = CancellationToken()
        self._tokens[key] = token
        return token

    def finish(self, key: str, token: CancellationToken) -> None:
        if self._tokens.get(key) is token:
            del self._tokens[key]

    async def load(
        self,
        key: str,
        repository: MemoryRepository,
        access_codes: Sequence[str],
        limit: int = DEFAULT_FETCH_LIMIT,
        viewer_id: str | None = None,
    ) -> list[Memory]:
        token = self.begin(key)
        try:
            memories = await repository.fetch_by_access_codes(access_codes, limit, viewer_id, token=token)
            token.raise_if_cancelled()
            return memories
        finally:
            self.finish(key, token)
