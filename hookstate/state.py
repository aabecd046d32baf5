"""Persistent key/value state for hook handlers.

``PersistentState`` is the public store. It sits on one backend and adds
namespaces, counters and list operations on top of the backend's raw
read/write contract, so every backend behaves the same way.

Example:
    state = PersistentState(storage="sqlite", path=".hooks/state.db")
    state.set("last_sync", 1700000000)
    state.increment("requests")
    state.append("errors", {"message": "Failed"})

    session = state.namespace("session-123")
    session.set("turns", 5)
    state.close()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from hookstate.backends import SEPARATOR, BaseBackend, create_backend
from hookstate.config import StorageType, StoreConfig
from hookstate.exceptions import (
    ClosedStoreError,
    ReservedCharacterError,
    StateError,
    TypeMismatchError,
)

logger = logging.getLogger(__name__)


def check_name(kind: str, name: Any) -> str:
    """Validate a key or namespace identifier."""
    if not isinstance(name, str) or not name or SEPARATOR in name:
        raise ReservedCharacterError(kind, name, SEPARATOR)
    return name


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class _Connection:
    """Backend shared by a store and every namespace view derived from it."""

    def __init__(self, backend: BaseBackend):
        self.backend = backend
        self.lock = threading.RLock()
        self.closed = False


class PersistentState:
    """Durable key/value store with namespaces, counters and lists.

    Every operation runs under a lock shared with all namespace views, and
    read-modify-write operations run inside a backend transaction, so
    concurrent increments and appends within a process never lose updates.
    """

    def __init__(
        self,
        storage: StorageType = "memory",
        path: Path | str | None = None,
        namespace: str | None = None,
        *,
        backend: BaseBackend | None = None,
    ):
        """Open a store.

        Args:
            storage: Backend type: "memory", "file" or "sqlite".
            path: Storage file; required for "file" and "sqlite".
            namespace: Optional namespace applied to every key.
            backend: Already-opened backend to use instead of ``storage``.
        """
        if namespace is not None:
            check_name("namespace", namespace)

        if backend is None:
            config = StoreConfig(
                storage=storage,
                path=str(path) if path is not None else None,
                namespace=namespace,
            )
            backend = create_backend(config)

        self._connection = _Connection(backend)
        self._prefix = f"{namespace}{SEPARATOR}" if namespace else ""
        self._owner = True
        logger.debug(f"Opened {type(backend).__name__} state store")

    @classmethod
    def from_config(cls, config: StoreConfig) -> PersistentState:
        """Open a store described by a StoreConfig."""
        return cls(config.storage, config.path, config.namespace)

    @classmethod
    def _view(cls, connection: _Connection, prefix: str) -> PersistentState:
        view = cls.__new__(cls)
        view._connection = connection
        view._prefix = prefix
        view._owner = False
        return view

    @property
    def backend(self) -> BaseBackend:
        """The backend this store reads and writes."""
        return self._connection.backend

    @property
    def name(self) -> str | None:
        """Full namespace of this view, or None for the root."""
        return self._prefix[: -len(SEPARATOR)] or None

    @property
    def prefix(self) -> str:
        """Prefix this view adds to every key (empty for the root)."""
        return self._prefix

    @property
    def closed(self) -> bool:
        """Whether the underlying connection has been closed."""
        return self._connection.closed

    def _qualify(self, key: str) -> str:
        return self._prefix + check_name("key", key)

    @contextmanager
    def _locked(self) -> Iterator[BaseBackend]:
        with self._connection.lock:
            if self._connection.closed:
                raise ClosedStoreError()
            yield self._connection.backend

    def _update(self, key: str, transform: Callable[[Any], Any]) -> Any:
        """Read, transform and write one key as a single unit."""
        qualified = self._qualify(key)
        with self._locked() as backend, backend.begin_transaction():
            value = transform(backend.read(qualified))
            backend.write(qualified, value)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value at key, or default when absent."""
        qualified = self._qualify(key)
        with self._locked() as backend:
            value = backend.read(qualified)
            if value is None and default is not None and not backend.exists(qualified):
                return default
            return value

    def set(self, key: str, value: Any) -> None:
        """Set key to value, replacing any previous value."""
        qualified = self._qualify(key)
        with self._locked() as backend:
            backend.write(qualified, value)

    def delete(self, key: str) -> None:
        """Delete key. Deleting an absent key does nothing."""
        qualified = self._qualify(key)
        with self._locked() as backend:
            backend.delete(qualified)

    def has(self, key: str) -> bool:
        """Check if key exists."""
        qualified = self._qualify(key)
        with self._locked() as backend:
            return backend.exists(qualified)

    def clear(self) -> None:
        """Remove every key under this namespace, nested namespaces included."""
        with self._locked() as backend:
            backend.clear(self._prefix)
        logger.debug(f"Cleared namespace {self.name or '<root>'}")

    def keys(self) -> list[str]:
        """Keys stored directly in this namespace, without the prefix."""
        with self._locked() as backend:
            qualified = backend.keys(self._prefix)
        start = len(self._prefix)
        return [k[start:] for k in qualified if SEPARATOR not in k[start:]]

    def size(self) -> int:
        """Number of keys stored directly in this namespace."""
        return len(self.keys())

    def increment(self, key: str, by: int | float = 1) -> int | float:
        """Add ``by`` to the counter at key and return the new value.

        An absent key counts as 0. A non-numeric value raises
        TypeMismatchError and is left unchanged.
        """
        if not _is_number(by):
            raise TypeError(f"Counter step must be a number, got {by!r}")

        def bump(current: Any) -> int | float:
            if current is None:
                current = 0
            elif not _is_number(current):
                raise TypeMismatchError(key, "a number", current)
            return current + by

        return self._update(key, bump)

    def decrement(self, key: str, by: int | float = 1) -> int | float:
        """Subtract ``by`` from the counter at key and return the new value."""
        if not _is_number(by):
            raise TypeError(f"Counter step must be a number, got {by!r}")
        return self.increment(key, -by)

    def append(self, key: str, item: Any) -> list[Any]:
        """Append item to the list at key and return the new list."""
        return self._update(key, lambda current: [*self._as_list(key, current), item])

    def prepend(self, key: str, item: Any) -> list[Any]:
        """Insert item at the front of the list at key and return the new list."""
        return self._update(key, lambda current: [item, *self._as_list(key, current)])

    @staticmethod
    def _as_list(key: str, current: Any) -> list[Any]:
        if current is None:
            return []
        if not isinstance(current, list):
            raise TypeMismatchError(key, "a list", current)
        return current

    def namespace(self, namespace: str) -> PersistentState:
        """Get a view whose keys all live under ``namespace``.

        Views share this store's connection and lock. They are cheap and
        may be created repeatedly.
        """
        check_name("namespace", namespace)
        with self._locked():
            return self._view(
                self._connection, f"{self._prefix}{namespace}{SEPARATOR}"
            )

    def close(self) -> None:
        """Release the backend. Later calls on this store or its views fail."""
        if not self._owner:
            raise StateError("Namespace views cannot close the store they belong to")

        with self._connection.lock:
            if self._connection.closed:
                return
            self._connection.backend.close()
            self._connection.closed = True
        logger.debug("Closed state store")

    def __enter__(self) -> PersistentState:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        backend = type(self._connection.backend).__name__
        return f"PersistentState(backend={backend}, namespace={self.name!r})"
