from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from amity.api.auth import get_viewer_id, require_viewer_id
from amity.api.deps import get_board_repository, get_memory_feed, get_memory_repository, respond
from amity.core.config import DEFAULT_FETCH_LIMIT
from amity.core.errors import capture
from amity.schemas.memory import MediaItemInput, Memory, MemoryCreate, MemoryUpdate
from amity.services.boards import BoardRepository
from amity.services.memories import MemoryFeed, MemoryRepository

router = APIRouter(prefix="/memories", tags=["memories"])


class ReplaceMediaPayload(BaseModel):
    media_items: list[MediaItemInput]


@router.get("", response_model=list[Memory])
async def list_memories(
    access_code: str = Query(..., min_length=1),
    limit: int = Query(default=DEFAULT_FETCH_LIMIT, ge=1, le=500),
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return await repository.fetch_by_access_code(access_code, limit, viewer_id)


@router.get("/feed", response_model=list[Memory])
async def memory_feed(
    codes: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_FETCH_LIMIT, ge=1, le=500),
    viewer_id: str = Depends(require_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
    boards: BoardRepository = Depends(get_board_repository),
    feed: MemoryFeed = Depends(get_memory_feed),
):
    if codes:
        access_codes = [code.strip() for code in codes.split(",") if code.strip()]
    else:
        access_codes = await boards.access_codes_for_user(viewer_id)
    return await feed.load(f"feed:{viewer_id}", repository, access_codes, limit, viewer_id)


@router.get("/{memory_id}", response_model=Memory)
async def get_memory(
    memory_id: str,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return await repository.get(memory_id, viewer_id)


@router.post("")
async def create_memory(
    payload: MemoryCreate,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return respond(await capture(repository.create(payload, viewer_id), "create_memory"))


@router.patch("/{memory_id}")
async def update_memory(
    memory_id: str,
    changes: MemoryUpdate,
    access_code: str = Query(..., min_length=1),
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return respond(
        await capture(repository.update(memory_id, access_code, changes, viewer_id), "update_memory")
    )


@router.delete("/{memory_id}")
async def delete_memory(
    memory_id: str,
    access_code: str = Query(..., min_length=1),
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return respond(await capture(repository.delete(memory_id, access_code, viewer_id), "delete_memory"))


@router.post("/{memory_id}/like")
async def toggle_like(
    memory_id: str,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return respond(await capture(repository.toggle_like(memory_id, viewer_id), "toggle_like"))


@router.put("/{memory_id}/media")
async def replace_media(
    memory_id: str,
    payload: ReplaceMediaPayload,
    access_code: str = Query(..., min_length=1),
    viewer_id: str | None = Depends(get_viewer_id),
    repository: MemoryRepository = Depends(get_memory_repository),
):
    return respond(
        await capture(
            repository.replace_media_items(memory_id, access_code, payload.media_items, viewer_id),
            "replace_media",
        )
    )
