from __future__ import annotations

import logging

from amity.core.config import settings
from amity.services.drafts import DraftStore
from amity.store.local import LocalStorage, get_local_storage
from amity.store.remote import RemoteStore, SqlRemoteStore

logger = logging.getLogger(__name__)


async def run_draft_sync_job(storage: LocalStorage | None = None, remote: RemoteStore | None = None) -> int:
    storage = storage or get_local_storage()
    remote = remote or SqlRemoteStore()
    prefix = f"{settings.DRAFTS_STORAGE_KEY}:"

    synced = 0
    for key in storage.keys(prefix):
        user_id = key[len(prefix):]
        if not user_id:
            continue
        count = await DraftStore(storage, user_id, remote).sync_all()
        synced += count
    logger.info("draft sync job finished synced=%s", synced)
    return synced
