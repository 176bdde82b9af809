from __future__ import annotations

from fastapi import Depends, Request

from amity.core.errors import NotAuthenticated
from amity.core.security import decode_access_token, request_token


async def get_viewer_id(request: Request) -> str | None:
    token = request_token(request)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


async def require_viewer_id(viewer_id: str | None = Depends(get_viewer_id)) -> str:
    if not viewer_id:
        raise NotAuthenticated()
    return viewer_id
