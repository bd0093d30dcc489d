"""Key-value store persisted as a single JSON object on local disk.

The whole file is rewritten on every mutation (atomic temp file + rename), so
it suits the small, infrequently written maps this platform keeps: rate tables
and the conversion cache.
"""

from __future__ import annotations

import json
from pathlib import Path

from fx_platform.services.filesystem.local_filesystem import atomic_write
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.secrets.interface import SecretsInterface


class LocalKeyValueStore(KeyValueStore):
    def __init__(self, secrets: SecretsInterface) -> None:
        self._path = Path(secrets.get_or_default("KV_LOCAL_PATH", ".fx_platform/kv.json"))
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            if self._path.exists():
                raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
                if not isinstance(raw, dict):
                    raise ValueError(f"KV file {self._path} must contain a JSON object")
                self._data = {str(k): str(v) for k, v in raw.items()}
            else:
                self._data = {}
        return self._data

    def _flush(self) -> None:
        payload = json.dumps(self._load(), sort_keys=True).encode("utf-8")
        atomic_write(self._path, payload)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._flush()

    def remove(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._flush()
        return True

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._load() if k.startswith(prefix))
