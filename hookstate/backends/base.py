"""Base storage backend interface."""

import math
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import msgspec

from hookstate.exceptions import CorruptDataError, SerializationError

#: Separator between a namespace and a key inside a qualified key.
SEPARATOR = ":"


class BaseBackend(ABC):
    """Abstract base class for storage backends.

    Backends operate on qualified keys only. They know nothing about
    namespaces, counters or lists; the facade builds those on top of
    the primitives below.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the backend."""
        pass

    @abstractmethod
    def read(self, key: str) -> Any | None:
        """Read the value stored at key, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """Write value at key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns True if it existed."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """Get all qualified keys starting with prefix, sorted."""
        pass

    @abstractmethod
    def clear(self, prefix: str = "") -> None:
        """Remove every key starting with prefix."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release backend resources."""
        pass

    def count(self, prefix: str = "") -> int:
        """Count keys starting with prefix."""
        return len(self.keys(prefix))

    def supports_transactions(self) -> bool:
        """Check if backend supports transactions."""
        return False

    @contextmanager
    def begin_transaction(self) -> Iterator[None]:
        """Begin a transaction (if supported)."""
        yield


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _reject_non_finite(key: str, value: Any) -> None:
    """Raise SerializationError for NaN or infinite floats anywhere in value."""
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(key, f"non-finite number {value!r} has no JSON form")
    elif isinstance(value, dict):
        for item in value.values():
            _reject_non_finite(key, item)
    elif isinstance(value, list):
        for item in value:
            _reject_non_finite(key, item)


def to_builtins(key: str, value: Any) -> Any:
    """Normalize a value to the JSON builtin types it would round-trip to.

    Every backend stores values through this, so a value that JSON cannot
    represent exactly is rejected the same way everywhere.
    """
    try:
        normalized = msgspec.to_builtins(value, str_keys=True)
    except (TypeError, ValueError) as e:
        raise SerializationError(key, str(e)) from e
    _reject_non_finite(key, normalized)
    return normalized


def encode_value(key: str, value: Any) -> str:
    """Serialize a value to JSON text."""
    normalized = to_builtins(key, value)
    try:
        return msgspec.json.encode(normalized).decode("utf-8")
    except (TypeError, ValueError, msgspec.EncodeError) as e:
        raise SerializationError(key, str(e)) from e


def decode_value(location: str, raw: str | bytes) -> Any:
    """Deserialize JSON text produced by encode_value."""
    try:
        return msgspec.json.decode(raw)
    except msgspec.DecodeError as e:
        raise CorruptDataError(location, str(e)) from e
