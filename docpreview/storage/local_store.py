import os
import tempfile
from pathlib import Path

from docpreview.logging.logger import Log
from docpreview.processor.exceptions import StorageError
from docpreview.storage.base import BaseObjectStore


class LocalObjectStore(BaseObjectStore):
    """Filesystem-backed object store rooted at ``storage_root``."""

    DEFAULT_ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = (root if root is not None else self.DEFAULT_ROOT).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Object not found: {path}")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Download failed for {path}: {exc}") from exc

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        """Write atomically (temp file + rename); existing objects are replaced."""
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Upload failed for {path}: {exc}") from exc
        Log.debug("Stored object", path=path, bytes=len(data), content_type=content_type)
        return path

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except StorageError:
            return False

    def _resolve(self, path: str) -> Path:
        if not path:
            raise StorageError("Storage path is empty")
        target = (self._root / path.lstrip("/")).resolve()
        if not target.is_relative_to(self._root):
            raise StorageError(f"Storage path escapes the store root: {path}")
        return target
