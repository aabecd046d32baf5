"""Pluggable storage backends.

Provides one raw key/value contract over different storage mechanisms:

- **MemoryBackend**: In-process dict for tests and ephemeral runs
- **FileBackend**: One JSON document rewritten atomically on every mutation
- **SQLiteBackend**: Embedded database with transactional updates

Backends see qualified keys only; namespaces, counters and lists are
layered on top by the state facade.
"""

from hookstate.config import StoreConfig

from .base import SEPARATOR, BaseBackend
from .filesystem import FileBackend
from .memory import MemoryBackend
from .sqlite import SQLiteBackend


def create_backend(config: StoreConfig) -> BaseBackend:
    """Open the backend selected by config."""
    if config.storage == "sqlite":
        return SQLiteBackend(config.path)
    if config.storage == "file":
        return FileBackend(config.path)
    return MemoryBackend()


__all__ = [
    "SEPARATOR",
    "BaseBackend",
    "FileBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "create_backend",
]
