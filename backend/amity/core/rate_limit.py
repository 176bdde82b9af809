from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from amity.core.security import decode_access_token, request_token


def viewer_rate_limit_key(request: Request) -> str:
    token = request_token(request)
    if token:
        payload = decode_access_token(token)
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"
    return f"anon:{get_remote_address(request)}"


limiter = Limiter(key_func=viewer_rate_limit_key)
