"""SQLite storage backend with transactional read-modify-write."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from hookstate.exceptions import (
    BackendUnavailableError,
    ClosedStoreError,
    CorruptDataError,
)

from .base import SEPARATOR, BaseBackend, decode_value, encode_value, now_ms

logger = logging.getLogger(__name__)

# Qualified form of a row, used for prefix matching and key listing.
QUALIFIED_KEY = (
    f"CASE WHEN namespace = '' THEN key ELSE namespace || '{SEPARATOR}' || key END"
)


def split_key(qualified: str) -> tuple[str, str]:
    """Split a qualified key into (namespace, key) at the last separator."""
    namespace, _, key = qualified.rpartition(SEPARATOR)
    return namespace, key


class SQLiteBackend(BaseBackend):
    """SQLite-based storage, one row per key.

    Rows live in ``state(namespace, key, value, created_at, updated_at)``
    with primary key ``(namespace, key)``. Values are JSON text.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._transaction_active = threading.local()
        self.conn: sqlite3.Connection | None = None
        self.initialize()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the connection, ensuring it is open."""
        if self.conn is None:
            raise ClosedStoreError(f"Database {self.db_path} is closed")
        return self.conn

    def initialize(self) -> None:
        """Open the database and create the schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self._migrate_legacy_table()
            self.conn.executescript("""
                CREATE TABLE IF NOT EXISTS state (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY (namespace, key)
                );

                CREATE INDEX IF NOT EXISTS idx_state_updated_at ON state(updated_at);
            """)
            self.conn.commit()
        except CorruptDataError as e:
            self.close()
            logger.error(f"Cannot migrate state database {self.db_path}: {e}")
            raise
        except (OSError, sqlite3.Error) as e:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
            logger.error(f"Cannot open state database {self.db_path}: {e}")
            raise BackendUnavailableError(str(self.db_path), str(e)) from e

        logger.info(f"Opened state database {self.db_path}")

    def _migrate_legacy_table(self) -> None:
        """Split keys of a single-column-key ``state`` table into namespaces.

        The rename, copy and drop run in one transaction, so a failure
        leaves the legacy table exactly as it was.
        """
        conn = self.connection
        columns = [row["name"] for row in conn.execute("PRAGMA table_info(state)")]
        if not columns or "namespace" in columns:
            return

        logger.info(f"Migrating legacy state table in {self.db_path}")
        rows = conn.execute(
            "SELECT key, value, created_at, updated_at FROM state"
        ).fetchall()

        seen: dict[tuple[str, str], str] = {}
        for row in rows:
            target = split_key(row["key"])
            if target in seen:
                raise CorruptDataError(
                    str(self.db_path),
                    f"legacy keys {seen[target]!r} and {row['key']!r} "
                    "map to the same entry",
                )
            seen[target] = row["key"]

        conn.execute("BEGIN")
        try:
            conn.execute("ALTER TABLE state RENAME TO state_legacy")
            conn.execute("""
                CREATE TABLE state (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
            """)
            conn.executemany(
                "INSERT INTO state VALUES (?, ?, ?, ?, ?)",
                [
                    (*split_key(row["key"]), row["value"], row["created_at"], row["updated_at"])
                    for row in rows
                ],
            )
            conn.execute("DROP TABLE state_legacy")
        except sqlite3.Error:
            conn.rollback()
            raise
        conn.commit()

    @contextmanager
    def _guard(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock and report operational failures as unavailability."""
        with self._lock:
            try:
                yield self.connection
            except sqlite3.OperationalError as e:
                logger.error(f"State database {self.db_path} failed: {e}")
                raise BackendUnavailableError(str(self.db_path), str(e)) from e

    def _commit(self) -> None:
        if not getattr(self._transaction_active, "active", False):
            self.connection.commit()

    def read(self, key: str) -> Any | None:
        """Read value from database."""
        with self._guard() as conn:
            row = conn.execute(
                "SELECT value FROM state WHERE namespace = ? AND key = ?",
                split_key(key),
            ).fetchone()

        if row is None:
            return None
        return decode_value(f"{self.db_path}#{key}", row["value"])

    def write(self, key: str, value: Any) -> None:
        """Upsert value in database."""
        data = encode_value(key, value)
        now = now_ms()

        with self._guard() as conn:
            conn.execute(
                """
                INSERT INTO state (namespace, key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """,
                (*split_key(key), data, now, now),
            )
            self._commit()

        logger.debug(f"Wrote {key} to {self.db_path}")

    def delete(self, key: str) -> bool:
        """Delete row from database."""
        with self._guard() as conn:
            cursor = conn.execute(
                "DELETE FROM state WHERE namespace = ? AND key = ?", split_key(key)
            )
            self._commit()
            return cursor.rowcount > 0

    def exists(self, key: str) -> bool:
        """Check if row exists."""
        with self._guard() as conn:
            cursor = conn.execute(
                "SELECT 1 FROM state WHERE namespace = ? AND key = ? LIMIT 1",
                split_key(key),
            )
            return cursor.fetchone() is not None

    def keys(self, prefix: str = "") -> list[str]:
        """Get all qualified keys under prefix."""
        with self._guard() as conn:
            cursor = conn.execute(
                f"""
                SELECT {QUALIFIED_KEY} AS qualified FROM state
                WHERE substr({QUALIFIED_KEY}, 1, ?) = ?
                ORDER BY qualified
            """,
                (len(prefix), prefix),
            )
            return [row["qualified"] for row in cursor]

    def count(self, prefix: str = "") -> int:
        """Count rows under prefix."""
        with self._guard() as conn:
            cursor = conn.execute(
                f"SELECT COUNT(*) AS count FROM state "
                f"WHERE substr({QUALIFIED_KEY}, 1, ?) = ?",
                (len(prefix), prefix),
            )
            return cursor.fetchone()["count"]

    def clear(self, prefix: str = "") -> None:
        """Delete all rows under prefix."""
        with self._guard() as conn:
            if prefix:
                conn.execute(
                    f"DELETE FROM state WHERE substr({QUALIFIED_KEY}, 1, ?) = ?",
                    (len(prefix), prefix),
                )
            else:
                conn.execute("DELETE FROM state")
            self._commit()

        logger.debug(f"Cleared {prefix!r} in {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.commit()
                self.conn.close()
                self.conn = None
                logger.info(f"Closed state database {self.db_path}")

    def supports_transactions(self) -> bool:
        """SQLite supports transactions."""
        return True

    @contextmanager
    def begin_transaction(self) -> Iterator[None]:
        """Transaction context manager."""
        with self._guard() as conn:
            self._transaction_active.active = True
            in_transaction = conn.in_transaction

            if not in_transaction:
                conn.execute("BEGIN IMMEDIATE")

            try:
                yield
                if not in_transaction:
                    conn.commit()
            except Exception:
                if not in_transaction:
                    conn.rollback()
                raise
            finally:
                self._transaction_active.active = False
