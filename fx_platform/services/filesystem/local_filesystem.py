import os
import tempfile
from pathlib import Path

from fx_platform.services.filesystem.interface import FileSystemInterface
from fx_platform.services.secrets.interface import SecretsInterface


def atomic_write(target: Path, data: bytes) -> None:
    """Write *data* to *target* via a temp file in the same directory plus rename."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=target.parent)
    closed = False
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp, target)
    except BaseException:
        if not closed:
            os.close(fd)
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class LocalFileSystem(FileSystemInterface):
    """Local disk, rooted at ``FS_LOCAL_ROOT`` (default: the working directory)."""

    def __init__(self, secrets: SecretsInterface) -> None:
        self._root = Path(secrets.get_or_default("FS_LOCAL_ROOT", "."))

    def _resolve(self, path: str) -> Path:
        if ".." in Path(path).parts:
            raise ValueError(f"Path traversal not allowed: {path}")
        return self._root / path

    def read(self, path: str) -> bytes:
        full = self._resolve(path)
        if not full.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return full.read_bytes()

    def write(self, path: str, data: bytes) -> None:
        atomic_write(self._resolve(path), data)

    def delete(self, path: str) -> bool:
        full = self._resolve(path)
        if full.exists():
            full.unlink()
            return True
        return False

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()
