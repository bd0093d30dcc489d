from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Durable string-to-string store. No transactions; last write wins.

    Values are opaque strings; callers serialize JSON themselves.
    """

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Delete *key*. Returns True if it existed."""
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """All keys starting with *prefix*, sorted."""
        ...
