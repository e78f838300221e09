"""
Storage Backend Module

Provides the key-value storage interface the ledger persists into, with an
in-memory implementation (testing) and a SQLite implementation (persistence).
Values are JSON documents; balances inside them are stored as decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union
from datetime import datetime, timezone
import copy
import sqlite3
import json
import re
import threading
from pathlib import Path
from contextlib import contextmanager


_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_table(table: str) -> str:
    """Table names are interpolated into SQL, so only identifiers are allowed"""
    if not _TABLE_NAME.match(table):
        raise ValueError(f"Invalid table name: {table!r}")
    return table


class StorageInterface(ABC):
    """Abstract interface for key-value storage backends"""

    @abstractmethod
    def get(self, table: str, key: str) -> Optional[Dict[str, Any]]:
        """Load a value, or None if the key is absent"""
        pass

    @abstractmethod
    def put(self, table: str, key: str, value: Dict[str, Any]) -> None:
        """Insert or replace a value"""
        pass

    @abstractmethod
    def delete(self, table: str, key: str) -> bool:
        """Delete a key, returning whether it existed"""
        pass

    @abstractmethod
    def items(self, table: str) -> List[Tuple[str, Dict[str, Any]]]:
        """All (key, value) pairs of a table, in insertion order"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count keys in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Remove every key from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def exists(self, table: str, key: str) -> bool:
        """Check if a key is present"""
        return self.get(table, key) is not None

    def begin_transaction(self) -> None:
        """Start a transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager grouping several writes into one commit"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing and ephemeral ledgers"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._snapshot: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None
        self._depth = 0

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(_check_table(table), {})

    def get(self, table: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._table(table).get(key)
            if value is None:
                return None
            # Copy out so callers cannot mutate stored state
            return json.loads(json.dumps(value))

    def put(self, table: str, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._table(table)[key] = json.loads(json.dumps(value, default=str))

    def delete(self, table: str, key: str) -> bool:
        with self._lock:
            return self._table(table).pop(key, None) is not None

    def items(self, table: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return [(key, json.loads(json.dumps(value)))
                    for key, value in self._table(table).items()]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._data[_check_table(table)] = {}

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def begin_transaction(self) -> None:
        with self._lock:
            # Nested atomic blocks share the outermost snapshot
            if self._depth == 0:
                self._snapshot = copy.deepcopy(self._data)
            self._depth += 1

    def commit(self) -> None:
        with self._lock:
            if self._depth == 0:
                return
            self._depth -= 1
            if self._depth == 0:
                self._snapshot = None

    def rollback(self) -> None:
        with self._lock:
            if self._depth == 0:
                return
            self._depth -= 1
            if self._depth == 0 and self._snapshot is not None:
                self._data = self._snapshot
                self._snapshot = None

    def dump(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Get all data for debugging/inspection"""
        with self._lock:
            return json.loads(json.dumps(self._data, default=str))


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self._known_tables = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    @property
    def _in_transaction(self) -> bool:
        return self._depth > 0

    def _ensure_table(self, table: str) -> str:
        table = _check_table(table)
        if table in self._known_tables:
            return table
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                seq INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        if not self._in_transaction:
            self._connection.commit()
        self._known_tables.add(table)
        return table

    def get(self, table: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            table = self._ensure_table(table)
            row = self._connection.execute(
                f"SELECT value FROM {table} WHERE key = ?", (key,)
            ).fetchone()
            if row:
                return json.loads(row['value'])
            return None

    def put(self, table: str, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            table = self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            # Keep the original insertion sequence on update so items() stays stable
            self._connection.execute(f"""
                INSERT INTO {table} (key, value, seq, updated_at)
                VALUES (?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM {table}), ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, json.dumps(value, default=str), now))

            if not self._in_transaction:
                self._connection.commit()

    def delete(self, table: str, key: str) -> bool:
        with self._lock:
            table = self._ensure_table(table)
            cursor = self._connection.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
            if not self._in_transaction:
                self._connection.commit()
            return cursor.rowcount > 0

    def items(self, table: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            table = self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT key, value FROM {table} ORDER BY seq")
            return [(row['key'], json.loads(row['value'])) for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        with self._lock:
            table = self._ensure_table(table)
            row = self._connection.execute(f"SELECT COUNT(*) AS count FROM {table}").fetchone()
            return row['count']

    def clear_table(self, table: str) -> None:
        with self._lock:
            table = self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            if not self._in_transaction:
                self._connection.commit()

    def begin_transaction(self) -> None:
        # The connection opens a DEFERRED transaction on the first write;
        # we only track nesting so intermediate writes are not committed.
        with self._lock:
            self._depth += 1

    def commit(self) -> None:
        with self._lock:
            if self._depth == 0:
                return
            self._depth -= 1
            if self._depth == 0:
                self._connection.commit()

    def rollback(self) -> None:
        with self._lock:
            if self._depth == 0:
                return
            self._depth -= 1
            if self._depth == 0:
                self._connection.rollback()
                # Tables created inside the transaction are gone again
                self._known_tables.clear()

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a URL

    Supported forms:
        memory://                 in-memory, lost on exit
        sqlite:///relative.db     SQLite file relative to the working directory
        sqlite:////abs/path.db    SQLite file with an absolute path
        sqlite://:memory:         SQLite in-memory database
    """
    if database_url in ("memory://", "memory"):
        return InMemoryStorage()
    if database_url.startswith("sqlite://"):
        path = database_url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        return SQLiteStorage(path or ":memory:")
    raise ValueError(f"Unsupported database URL: {database_url}")
