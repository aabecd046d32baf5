"""Durable key/value state for event-driven hook handlers.

Provides one store API over interchangeable backends:

- **Memory**: volatile, for tests and ephemeral runs
- **File**: a single JSON document on disk
- **SQLite**: an embedded database with transactional updates

Namespaces partition the key space, and counters and lists are updated
atomically within a process.
"""

from hookstate.config import StoreConfig, load_config
from hookstate.exceptions import (
    BackendUnavailableError,
    ClosedStoreError,
    ConfigError,
    CorruptDataError,
    ReservedCharacterError,
    SerializationError,
    StateError,
    TypeMismatchError,
)
from hookstate.state import PersistentState

__version__ = "0.1.0"

__all__ = [
    "PersistentState",
    "StoreConfig",
    "load_config",
    # Errors
    "StateError",
    "BackendUnavailableError",
    "CorruptDataError",
    "TypeMismatchError",
    "ClosedStoreError",
    "ReservedCharacterError",
    "SerializationError",
    "ConfigError",
    "__version__",
]
