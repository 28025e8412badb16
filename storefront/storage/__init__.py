# Client-side storage backends

from .backends import KeyValueStorage, MemoryStorage, FileStorage, StorageError

__all__ = ["KeyValueStorage", "MemoryStorage", "FileStorage", "StorageError"]
