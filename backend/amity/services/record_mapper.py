"""
Row <-> domain conversion for memories, media items, boards and drafts.

Rows come from the store as plain dicts and may predate newer columns, so
every lookup here tolerates a missing or null field. Nothing in this module
does I/O.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from amity.schemas.board import Board
from amity.schemas.draft import Draft
from amity.schemas.memory import LikeState, MediaItem, MediaItemInput, Memory, MemoryCreate, MemoryKind, MemoryUpdate

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_KINDS = {kind.value for kind in MemoryKind}


def _as_utc(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def resolve_kind(row: Mapping[str, Any]) -> MemoryKind:
    explicit = row.get("memory_type")
    if isinstance(explicit, str) and explicit.lower() in _KINDS:
        return MemoryKind(explicit.lower())
    if row.get("is_video"):
        return MemoryKind.VIDEO
    return MemoryKind.PHOTO


def to_media_item(row: Mapping[str, Any], order: int | None = None) -> MediaItem:
    return MediaItem(
        id=str(row["id"]),
        memory_id=str(row["memory_id"]),
        url=row.get("url") or "",
        is_video=bool(row.get("is_video") or False),
        order=order if order is not None else max(int(row.get("order") or 0), 0),
    )


def to_media_items(rows: Iterable[Mapping[str, Any]]) -> list[MediaItem]:
    ordered = sorted(rows, key=lambda row: (row.get("order") is None, row.get("order") or 0, str(row.get("id"))))
    return [to_media_item(row, order=index) for index, row in enumerate(ordered)]


def to_memory(
    row: Mapping[str, Any],
    media_rows: Iterable[Mapping[str, Any]] = (),
    like_state: LikeState | None = None,
) -> Memory:
    kind = resolve_kind(row)
    media_items = to_media_items(media_rows) if kind == MemoryKind.CAROUSEL else []

    if kind == MemoryKind.NOTE:
        primary_media_url = None
    elif kind == MemoryKind.CAROUSEL and media_items:
        primary_media_url = media_items[0].url
    else:
        primary_media_url = row.get("media_url") or None

    if like_state is None:
        like_state = LikeState(count=max(int(row.get("likes") or 0), 0))

    return Memory(
        id=str(row["id"]),
        kind=kind,
        caption=row.get("caption"),
        event_date=_as_utc(row.get("event_date")) or _as_utc(row.get("created_at")) or _EPOCH,
        location=row.get("location"),
        access_code=row.get("access_code") or "",
        created_by=row.get("created_by"),
        like_count=like_state.count,
        viewer_has_liked=like_state.viewer_has_liked,
        primary_media_url=primary_media_url,
        media_items=media_items,
    )


def memory_to_row(payload: MemoryCreate, created_by: str) -> dict:
    media_url = payload.primary_media_url
    if payload.kind == MemoryKind.CAROUSEL:
        media_url = payload.media_items[0].url
    return {
        "id": payload.id,
        "access_code": payload.access_code,
        "memory_type": payload.kind.value,
        "is_video": payload.kind == MemoryKind.VIDEO,
        "media_url": media_url,
        "caption": payload.caption,
        "event_date": payload.event_date if payload.event_date.tzinfo else payload.event_date.replace(tzinfo=timezone.utc),
        "location": payload.location,
        "created_by": created_by,
        "likes": 0,
        "moderation_status": "approved",
    }


def media_items_to_rows(memory_id: str, items: Iterable[MediaItemInput]) -> list[dict]:
    return [
        {
            "id": item.id or str(uuid.uuid4()),
            "memory_id": memory_id,
            "url": item.url,
            "is_video": item.is_video,
            "order": index,
        }
        for index, item in enumerate(items)
    ]


def update_to_row(changes: MemoryUpdate) -> dict:
    values = changes.model_dump(exclude_unset=True)
    if "primary_media_url" in values:
        values["media_url"] = values.pop("primary_media_url")
    if values.get("event_date") is not None:
        values["event_date"] = _as_utc(values["event_date"])
    return values


def to_board(row: Mapping[str, Any], member_ids: Iterable[str] = ()) -> Board:
    return Board(
        id=str(row["id"]),
        name=row.get("name") or "",
        access_code=row.get("access_code") or "",
        share_code=(row.get("share_code") or "").upper(),
        owner_id=str(row["owner_id"]),
        member_ids=set(member_ids),
    )


def to_draft(row: Mapping[str, Any]) -> Draft:
    content = dict(row.get("content") or {})
    content["id"] = str(row["id"])
    content.setdefault("boardId", row.get("board_id"))
    if not content.get("lastUpdated"):
        content["lastUpdated"] = _as_utc(row.get("updated_at")) or _EPOCH
    return Draft.model_validate(content)


def draft_to_row(draft: Draft, user_id: str) -> dict:
    blob = draft.to_blob()
    return {
        "id": draft.id,
        "user_id": user_id,
        "board_id": draft.board_id,
        "content": {
            "memory": blob["memory"],
            "mediaItems": blob["mediaItems"],
            "lastUpdated": blob["lastUpdated"],
        },
        "updated_at": draft.last_updated,
    }
