"""
Durable key/value storage

Client-side persistence in the shape of the browser's localStorage:
string keys, string values, one writer per session.
"""

import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a storage backend cannot read or write a key"""
    pass


class KeyValueStorage(Protocol):
    """Read/write port to durable client storage"""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """In-memory storage, lost when the process exits"""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """
    File-backed storage.

    Each key is stored as its own file inside ``directory``. Writes go to a
    temporary file first and are moved into place, so a crash mid-write
    never leaves a truncated value behind.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string")
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {key!r}: {e}") from e
        logger.debug(f"Stored {key} in {self.directory}")

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove {key!r}: {e}") from e
