"""
Durable key-value storage for the persisted session.

The session is persisted under two keys, `user` (serialized User JSON) and
`access_token` (bearer string). Backends never raise on I/O failure: like the
Redis client, they log and degrade to "nothing stored".
"""
import json
import logging
from pathlib import Path
from typing import Protocol

from core.redis import RedisClient

logger = logging.getLogger(__name__)

USER_KEY = "user"
ACCESS_TOKEN_KEY = "access_token"  # noqa: S105


class SessionStorage(Protocol):
    """Protocol implemented by every durable storage backend."""

    async def get(self, key: str) -> str | None:
        """Return the stored value or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    async def remove(self, key: str) -> None:
        """Remove a value (no-op when absent)."""
        ...


class MemoryStorage:
    """Process-local storage, used in tests and for throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the stored data."""
        return dict(self._data)


class FileStorage:
    """
    JSON file storage.

    The whole file is re-read on every get and rewritten on every change, so
    two clients pointed at the same file observe each other's writes.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("session_storage_read_failed path=%s error=%s", self._path, e)
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("session_storage_corrupt path=%s", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning("session_storage_write_failed path=%s error=%s", self._path, e)

    async def get(self, key: str) -> str | None:
        return self._read().get(key)

    async def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    async def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class RedisStorage:
    """Storage backed by Redis, for clients sharing one session across processes."""

    def __init__(self, redis_client: RedisClient, prefix: str = "queuedesk:session") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> str | None:
        data = await self._redis.get(self._key(key))
        if data is None:
            return None
        return data.decode("utf-8") if isinstance(data, bytes) else str(data)

    async def set(self, key: str, value: str) -> None:
        if not await self._redis.set(self._key(key), value):
            logger.warning("session_storage_redis_unavailable operation=set key=%s", key)

    async def remove(self, key: str) -> None:
        await self._redis.delete(self._key(key))
