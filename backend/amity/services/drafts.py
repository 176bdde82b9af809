from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine

from pydantic import ValidationError

from amity.core.config import settings
from amity.schemas.draft import Draft
from amity.services import record_mapper
from amity.services.background import spawn_detached
from amity.store.local import LocalStorage
from amity.store.remote import RemoteStore, desc, eq

logger = logging.getLogger(__name__)

DRAFTS_TABLE = "memory_drafts"


def _newest_first(drafts: list[Draft]) -> list[Draft]:
    return sorted(drafts, key=lambda draft: draft.last_updated, reverse=True)


class DraftStore:
    """Per-user cache of unpublished memories.

    Local reads and writes are synchronous and authoritative for the current
    session. The remote copy is a best-effort backstop: pushes run detached
    and their failures are only logged.
    """

    def __init__(
        self,
        storage: LocalStorage,
        user_id: str,
        remote: RemoteStore | None = None,
        storage_key: str | None = None,
    ):
        self._storage = storage
        self._remote = remote
        self.user_id = user_id
        self.key = f"{storage_key or settings.DRAFTS_STORAGE_KEY}:{user_id}"

    # ------------------------------------------------------------------
    # Local cache
    # ------------------------------------------------------------------

    def _read(self) -> list[Draft]:
        raw = self._storage.get_item(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.warning("draft blob unreadable key=%s: %s", self.key, exc)
            return []
        if not isinstance(data, list):
            logger.warning("draft blob is not a list key=%s", self.key)
            return []

        drafts = []
        for item in data:
            try:
                drafts.append(Draft.model_validate(item))
            except ValidationError as exc:
                logger.warning("skipping malformed draft key=%s: %s", self.key, exc.error_count())
        return drafts

    def _write(self, drafts: list[Draft]) -> None:
        self._storage.set_item(self.key, json.dumps([draft.to_blob() for draft in drafts]))

    def save(self, draft: Draft) -> Draft:
        drafts = [existing for existing in self._read() if existing.id != draft.id]
        drafts.append(draft)
        self._write(_newest_first(drafts))
        self._schedule(lambda: self.sync_to_remote(draft), f"draft_sync:{draft.id}")
        return draft

    def list(self) -> list[Draft]:
        return self._read()

    def get(self, draft_id: str) -> Draft | None:
        for draft in self._read():
            if draft.id == draft_id:
                return draft
        return None

    def delete(self, draft_id: str) -> bool:
        drafts = self._read()
        remaining = [draft for draft in drafts if draft.id != draft_id]
        if len(remaining) != len(drafts):
            self._write(remaining)
        self._schedule(lambda: self.delete_remote(draft_id), f"draft_delete:{draft_id}")
        return len(remaining) != len(drafts)

    def count(self) -> int:
        return len(self._read())

    def clear(self) -> None:
        self._storage.remove_item(self.key)

    def _schedule(self, factory: Callable[[], Coroutine[Any, Any, Any]], name: str) -> None:
        if self._remote is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run on; the periodic sync job picks the change up later.
            return
        spawn_detached(factory(), name=name)

    # ------------------------------------------------------------------
    # Remote mirror
    # ------------------------------------------------------------------

    async def sync_to_remote(self, draft: Draft) -> bool:
        if self._remote is None:
            return False
        try:
            await self._remote.upsert(DRAFTS_TABLE, [record_mapper.draft_to_row(draft, self.user_id)], conflict=["id"])
            return True
        except Exception as exc:
            logger.warning("draft sync failed user_id=%s draft_id=%s: %r", self.user_id, draft.id, exc)
            return False

    async def delete_remote(self, draft_id: str) -> bool:
        if self._remote is None:
            return False
        try:
            await self._remote.delete(DRAFTS_TABLE, [eq("id", draft_id), eq("user_id", self.user_id)])
            return True
        except Exception as exc:
            logger.warning("remote draft delete failed user_id=%s draft_id=%s: %r", self.user_id, draft_id, exc)
            return False

    async def sync_all(self) -> int:
        synced = 0
        for draft in self._read():
            if await self.sync_to_remote(draft):
                synced += 1
        return synced

    async def load(self, draft_id: str) -> Draft | None:
        """Remote copy wins when it exists; the local one is used when the remote is absent or unreachable."""
        if self._remote is not None:
            try:
                rows = await self._remote.select(
                    DRAFTS_TABLE, [eq("id", draft_id), eq("user_id", self.user_id)], limit=1
                )
                if rows:
                    return record_mapper.to_draft(rows[0])
            except Exception as exc:
                logger.warning("remote draft load failed user_id=%s draft_id=%s: %r", self.user_id, draft_id, exc)
        return self.get(draft_id)

    async def load_all(self) -> list[Draft]:
        local = self._read()
        if self._remote is None:
            return local
        try:
            rows = await self._remote.select(DRAFTS_TABLE, [eq("user_id", self.user_id)], order=[desc("updated_at")])
        except Exception as exc:
            logger.warning("remote draft list failed user_id=%s: %r", self.user_id, exc)
            return local

        merged = {draft.id: draft for draft in local}
        for row in rows:
            try:
                remote_draft = record_mapper.to_draft(row)
            except ValidationError as exc:
                logger.warning("skipping malformed remote draft id=%s: %s", row.get("id"), exc.error_count())
                continue
            merged[remote_draft.id] = remote_draft
        return _newest_first(list(merged.values()))
