"""Redis-backed key-value store using redis-py."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import redis

from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.secrets.interface import SecretsInterface


class RedisKeyValueStore(KeyValueStore):
    """Shares rate tables and cached conversions between processes.

    Keys are namespaced with ``KV_REDIS_PREFIX`` (default ``fx:``) so the
    store can live in a database other services also use.
    """

    def __init__(self, secrets: SecretsInterface) -> None:
        self._url = secrets.get_or_default("KV_REDIS_URL", "redis://localhost:6379/0")
        self._prefix = secrets.get_or_default("KV_REDIS_PREFIX", "fx:")
        self._client: redis.Redis | None = None  # type: ignore[type-arg]

    def connect(self) -> None:
        import redis

        self._client = redis.Redis.from_url(self._url, decode_responses=True)

    def disconnect(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def _ensure_connected(self) -> redis.Redis:  # type: ignore[type-arg]
        if self._client is None:
            self.connect()
        return self._client  # type: ignore[return-value]

    def get(self, key: str) -> str | None:
        return self._ensure_connected().get(self._prefix + key)

    def set(self, key: str, value: str) -> None:
        self._ensure_connected().set(self._prefix + key, value)

    def remove(self, key: str) -> bool:
        return self._ensure_connected().delete(self._prefix + key) > 0

    def keys(self, prefix: str = "") -> list[str]:
        client = self._ensure_connected()
        skip = len(self._prefix)
        return sorted(k[skip:] for k in client.scan_iter(match=f"{self._prefix}{prefix}*"))
