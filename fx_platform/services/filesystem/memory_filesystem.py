from fx_platform.services.filesystem.interface import FileSystemInterface


class MemoryFileSystem(FileSystemInterface):
    """Dict-backed file system for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def read(self, path: str) -> bytes:
        if path not in self._files:
            raise FileNotFoundError(f"File not found: {path}")
        return self._files[path]

    def write(self, path: str, data: bytes) -> None:
        self._files[path] = data

    def delete(self, path: str) -> bool:
        return self._files.pop(path, None) is not None

    def exists(self, path: str) -> bool:
        return path in self._files
