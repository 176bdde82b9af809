from __future__ import annotations

from fastapi import Depends
from fastapi.responses import JSONResponse

from amity.api.auth import require_viewer_id
from amity.core.errors import OperationResult, status_for
from amity.services.boards import BoardRepository
from amity.services.drafts import DraftStore
from amity.services.memories import MemoryFeed, MemoryRepository
from amity.store.local import LocalStorage, get_local_storage
from amity.store.remote import RemoteStore, SqlRemoteStore

_remote_store = SqlRemoteStore()
_memory_feed = MemoryFeed()


def get_remote_store() -> RemoteStore:
    return _remote_store


def get_storage() -> LocalStorage:
    return get_local_storage()


def get_memory_feed() -> MemoryFeed:
    return _memory_feed


def get_memory_repository(store: RemoteStore = Depends(get_remote_store)) -> MemoryRepository:
    return MemoryRepository(store)


def get_board_repository(store: RemoteStore = Depends(get_remote_store)) -> BoardRepository:
    return BoardRepository(store)


def get_draft_store(
    viewer_id: str = Depends(require_viewer_id),
    storage: LocalStorage = Depends(get_storage),
    store: RemoteStore = Depends(get_remote_store),
) -> DraftStore:
    return DraftStore(storage, viewer_id, store)


def respond(result: OperationResult) -> JSONResponse:
    status_code = 200 if result.success else status_for(result.error.code)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
