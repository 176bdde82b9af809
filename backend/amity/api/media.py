from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, Request, UploadFile

from amity.api.auth import require_viewer_id
from amity.api.deps import respond
from amity.core.errors import RemoteUnavailable, capture
from amity.core.rate_limit import limiter
from amity.services import storage

router = APIRouter(prefix="/media", tags=["media"])


async def _upload(file: UploadFile, viewer_id: str) -> dict:
    data = await file.read()
    storage.validate_media(len(data), file.content_type)
    url = await asyncio.to_thread(storage.upload_media, data, file.content_type, viewer_id)
    if url is None:
        raise RemoteUnavailable("Failed to upload file. Please try again.")
    return {"url": url}


@router.post("")
@limiter.limit("30/minute")
async def upload_media(
    request: Request,
    file: UploadFile = File(...),
    viewer_id: str = Depends(require_viewer_id),
):
    return respond(await capture(_upload(file, viewer_id), "upload_media"))
