from abc import ABC, abstractmethod


class FileSystemInterface(ABC):
    """Where job modules read their input batches and write their reports."""

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read file contents. Raises FileNotFoundError if missing."""
        ...

    @abstractmethod
    def write(self, path: str, data: bytes) -> None:
        """Write data to a file. Creates intermediate directories."""
        ...

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete a file. Returns True if deleted, False if it didn't exist."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool: ...
