from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from redis import Redis

from amity.core.config import settings

_redis_client: Redis | None = None


class LocalStorage(Protocol):
    """String blobs keyed by name, read and written whole."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class FileLocalStorage:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.json"

    def get_item(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + f".tmp.{os.getpid()}")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> list[str]:
        if not self.root.is_dir():
            return []
        found = [unquote(path.name[: -len(".json")]) for path in self.root.glob("*.json")]
        return sorted(key for key in found if key.startswith(prefix))


class RedisLocalStorage:
    def __init__(self, client: Redis, namespace: str = "amity"):
        self._client = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get_item(self, key: str) -> str | None:
        return self._client.get(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self._client.set(self._key(key), value)

    def remove_item(self, key: str) -> None:
        self._client.delete(self._key(key))

    def keys(self, prefix: str = "") -> list[str]:
        offset = len(self._namespace) + 1
        return sorted(key[offset:] for key in self._client.scan_iter(match=self._key(f"{prefix}*")))


class InMemoryLocalStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self._items if key.startswith(prefix))


def _get_redis_client() -> Redis | None:
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not settings.REDIS_URL:
        return None

    _redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def get_local_storage() -> LocalStorage:
    client = _get_redis_client()
    if client is not None:
        return RedisLocalStorage(client)
    return FileLocalStorage(settings.DRAFTS_DIR)
