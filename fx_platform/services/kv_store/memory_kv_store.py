from __future__ import annotations

from fx_platform.services.kv_store.interface import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and one-shot CLI runs."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))
