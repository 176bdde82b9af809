from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from amity.api.deps import get_draft_store, respond
from amity.core.errors import NotFound, capture
from amity.schemas.draft import Draft
from amity.services.drafts import DraftStore

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.get("")
async def list_drafts(store: DraftStore = Depends(get_draft_store)):
    drafts = await store.load_all()
    return [draft.to_blob() for draft in drafts]


@router.get("/{draft_id}")
async def get_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    draft = await store.load(draft_id)
    if draft is None:
        raise NotFound("Draft not found")
    return draft.to_blob()


async def _save(store: DraftStore, draft_id: str, payload: dict) -> dict:
    draft = Draft.model_validate({**payload, "id": draft_id})
    return store.save(draft).to_blob()


async def _delete(store: DraftStore, draft_id: str) -> dict:
    return {"deleted": store.delete(draft_id)}


@router.put("/{draft_id}")
async def save_draft(draft_id: str, payload: dict = Body(...), store: DraftStore = Depends(get_draft_store)):
    return respond(await capture(_save(store, draft_id, payload), "save_draft"))


@router.delete("/{draft_id}")
async def delete_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    return respond(await capture(_delete(store, draft_id), "delete_draft"))
