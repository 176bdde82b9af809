from __future__ import annotations

import logging

import httpx

from amity.core.config import settings

_TIMEOUT_SECONDS = 10.0
logger = logging.getLogger(__name__)


def _webhook_url() -> str | None:
    if not settings.NOTIFY_WEBHOOK_URL:
        return None
    return settings.NOTIFY_WEBHOOK_URL.rstrip("/")


async def notify_memory_created(memory_id: str, access_code: str, created_by: str | None) -> bool:
    url = _webhook_url()
    if not url:
        return False

    payload = {
        "event": "memory.created",
        "memory_id": memory_id,
        "access_code": access_code,
        "created_by": created_by,
    }
    try:
        async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return True
    except httpx.HTTPError as exc:
        logger.warning("notify_memory_created failed memory_id=%s: %s", memory_id, exc)
        return False
