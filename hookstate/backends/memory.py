"""In-memory storage backend for tests and ephemeral runs."""

from collections.abc import Iterator
from contextlib import contextmanager
from copy import deepcopy
from typing import Any

from .base import BaseBackend, to_builtins

# Marks a key that did not exist before the transaction touched it.
_ABSENT = object()


class MemoryBackend(BaseBackend):
    """In-memory storage backend.

    State lives in a plain dict and is lost when the process exits. Values
    are normalized to JSON builtins on write so reads match what the file
    and SQLite backends would return.

    Transactions keep an undo journal holding the previous value of each
    key they touch, so a rollback restores those keys and nothing else.
    Stored values are never mutated in place, which lets the journal hold
    references instead of copies.
    """

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._undo: dict[str, Any] | None = None

    def initialize(self) -> None:
        """Initialize the backend (no-op for memory)."""
        pass

    def read(self, key: str) -> Any | None:
        """Read data by key."""
        if key in self._data:
            return deepcopy(self._data[key])
        return None

    def write(self, key: str, value: Any) -> None:
        """Write data with key."""
        value = to_builtins(key, value)
        self._journal(key)
        self._data[key] = value

    def delete(self, key: str) -> bool:
        """Delete data by key."""
        if key not in self._data:
            return False
        self._journal(key)
        del self._data[key]
        return True

    def exists(self, key: str) -> bool:
        """Check if key exists."""
        return key in self._data

    def keys(self, prefix: str = "") -> list[str]:
        """Get all keys under prefix."""
        return sorted(k for k in self._data if k.startswith(prefix))

    def clear(self, prefix: str = "") -> None:
        """Clear all data under prefix."""
        if not prefix and self._undo is None:
            self._data.clear()
            return
        for key in [k for k in self._data if k.startswith(prefix)]:
            self._journal(key)
            del self._data[key]

    def close(self) -> None:
        """Close backend (no-op for memory)."""
        pass

    def supports_transactions(self) -> bool:
        """Memory backend supports transactions."""
        return True

    @contextmanager
    def begin_transaction(self) -> Iterator[None]:
        """Run the block as a unit, undoing its changes if it raises."""
        if self._undo is not None:
            raise RuntimeError("Already in a transaction")

        undo = self._undo = {}
        try:
            yield
        except Exception:
            for key, previous in undo.items():
                if previous is _ABSENT:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous
            raise
        finally:
            self._undo = None

    def _journal(self, key: str) -> None:
        """Record the value key held before the current transaction changed it."""
        if self._undo is not None and key not in self._undo:
            self._undo[key] = self._data.get(key, _ABSENT)
