"""Single-document JSON file storage backend."""

import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

import msgspec

from hookstate.exceptions import BackendUnavailableError, CorruptDataError

from .base import BaseBackend, now_ms, to_builtins

logger = logging.getLogger(__name__)

T = TypeVar("T")

Document = dict[str, dict[str, Any]]


class FileBackend(BaseBackend):
    """Whole key space persisted as one JSON object.

    Each top-level key is a qualified key mapped to a record holding
    ``value``, ``created_at`` and ``updated_at`` (milliseconds). Every
    mutation loads the document, applies the change and rewrites the
    file atomically. Reads load the document too, so two stores opened
    on the same path in one process see each other's writes.

    There is no cross-process locking: concurrent writers in separate
    processes may lose updates.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._transaction_doc: Document | None = None
        self.initialize()

    def initialize(self) -> None:
        """Create the parent directory and validate any existing document."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendUnavailableError(str(self.path), str(e)) from e

        if self.path.is_dir():
            raise BackendUnavailableError(str(self.path), "path is a directory")

        doc = self._load()
        logger.info(f"Opened state file {self.path} ({len(doc)} keys)")

    def _load(self) -> Document:
        """Load the document, or an empty one if the file does not exist."""
        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise BackendUnavailableError(str(self.path), str(e)) from e

        if not raw.strip():
            return {}

        try:
            doc = msgspec.json.decode(raw)
        except msgspec.DecodeError as e:
            logger.error(f"State file {self.path} is not valid JSON: {e}")
            raise CorruptDataError(str(self.path), str(e)) from e

        if not isinstance(doc, dict):
            raise CorruptDataError(str(self.path), "top level is not an object")

        for key, record in doc.items():
            if not isinstance(record, dict) or "value" not in record:
                raise CorruptDataError(
                    str(self.path), f"record for {key!r} has no value field"
                )
        return doc

    def _save(self, doc: Document) -> None:
        """Write the document atomically."""
        data = msgspec.json.format(msgspec.json.encode(doc), indent=2)

        try:
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            logger.error(f"Cannot create temp file next to {self.path}: {e}")
            raise BackendUnavailableError(str(self.path), str(e)) from e

        try:
            with open(temp_fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

            Path(temp_path).replace(self.path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise BackendUnavailableError(str(self.path), str(e)) from e
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def _current(self) -> Document:
        """Document visible to reads."""
        if self._transaction_doc is not None:
            return self._transaction_doc
        return self._load()

    def _mutate(self, change: Callable[[Document], T]) -> T:
        """Apply change to the document and persist it."""
        with self._lock:
            if self._transaction_doc is not None:
                return change(self._transaction_doc)

            doc = self._load()
            result = change(doc)
            self._save(doc)
            return result

    def read(self, key: str) -> Any | None:
        """Read value from the document."""
        with self._lock:
            record = self._current().get(key)
            if record is None:
                return None
            return record["value"]

    def write(self, key: str, value: Any) -> None:
        """Write value into the document."""
        value = to_builtins(key, value)

        def apply(doc: Document) -> None:
            now = now_ms()
            existing = doc.get(key)
            doc[key] = {
                "value": value,
                "created_at": existing.get("created_at", now) if existing else now,
                "updated_at": now,
            }

        self._mutate(apply)
        logger.debug(f"Wrote {key} to {self.path}")

    def delete(self, key: str) -> bool:
        """Delete key from the document."""
        with self._lock:
            if key not in self._current():
                return False
            return self._mutate(lambda doc: doc.pop(key, None) is not None)

    def exists(self, key: str) -> bool:
        """Check if key exists."""
        with self._lock:
            return key in self._current()

    def keys(self, prefix: str = "") -> list[str]:
        """Get all keys under prefix."""
        with self._lock:
            return sorted(k for k in self._current() if k.startswith(prefix))

    def clear(self, prefix: str = "") -> None:
        """Remove all keys under prefix."""

        def apply(doc: Document) -> None:
            for key in [k for k in doc if k.startswith(prefix)]:
                del doc[key]

        self._mutate(apply)
        logger.debug(f"Cleared {prefix!r} in {self.path}")

    def close(self) -> None:
        """Nothing to release; every mutation is already on disk."""
        logger.info(f"Closed state file {self.path}")

    def supports_transactions(self) -> bool:
        """File backend groups mutations into one rewrite."""
        return True

    @contextmanager
    def begin_transaction(self) -> Iterator[None]:
        """Load once, apply all mutations, rewrite once on success."""
        with self._lock:
            if self._transaction_doc is not None:
                raise RuntimeError("Already in a transaction")

            self._transaction_doc = self._load()
            try:
                yield
                self._save(self._transaction_doc)
            finally:
                self._transaction_doc = None
