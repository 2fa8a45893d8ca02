"""
Key-value storage for profiles, session history and plans.

The engine only needs load/save plus an atomic read-modify-write. Values
are JSON-compatible structures (our dataclasses' to_dict output).

Backends:
- MemoryStore: process-local, for tests and one-off runs
- FileStore: one JSON file, the CLI default
- PostgresStore: a single JSONB table
"""

import asyncio
import copy
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import psycopg2
from psycopg2.extras import Json

logger = logging.getLogger(__name__)

PROFILE_KEY = "profile"
HISTORY_KEY = "workoutHistory"
ACTIVE_PLAN_KEY = "activePlan"
SAVED_PLANS_KEY = "savedPlans"
PENDING_ADAPTATIONS_KEY = "pendingAdaptations"


def user_key(user_id: str, base_key: str) -> str:
    """Namespace a storage key to one user."""
    return f"user_{user_id}_{base_key}"


class KeyValueStore(ABC):
    """Async key-value collaborator."""

    @abstractmethod
    async def load(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def save(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        """
        Atomically replace the value at key with fn(current).

        Args:
            key: Storage key
            fn: Receives the current value (None if absent), returns the new one

        Returns:
            The value written
        """

    def close(self):
        pass


class MemoryStore(KeyValueStore):
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = asyncio.Lock()

    async def load(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        async with self._lock:
            new_value = fn(copy.deepcopy(self._data.get(key)))
            self._data[key] = copy.deepcopy(new_value)
            return new_value


class FileStore(KeyValueStore):
    """
    Single JSON file holding every key. Suits the CLI on one machine.

    Writes go to a temp file first and are renamed into place.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def _write_all(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def _load(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read_all().get(key)

    def _save(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def _delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)

    def _update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        with self._lock:
            data = self._read_all()
            new_value = fn(data.get(key))
            data[key] = new_value
            self._write_all(data)
            return new_value

    async def load(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._load, key)

    async def save(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._save, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        return await asyncio.to_thread(self._update, key, fn)


class PostgresStore(KeyValueStore):
    """
    JSONB key-value table in Postgres.

    psycopg2 is blocking, so each call runs in a worker thread. update()
    holds a transaction-scoped advisory lock on the key for the whole
    read-modify-write.
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """

    def __init__(self, dsn: str):
        """
        Args:
            dsn: Postgres connection string (POSTGRES_DSN)
        """
        self.dsn = dsn
        self._conn = None
        self._lock = threading.Lock()
        self._schema_ready = False

    @property
    def conn(self):
        """Lazy connection."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.dsn)
            self._schema_ready = False
        return self._conn

    def close(self):
        """Close connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _ensure_schema(self):
        if self._schema_ready:
            return
        with self.conn:
            with self.conn.cursor() as cur:
                cur.execute(self.SCHEMA)
        self._schema_ready = True

    def _load(self, key: str) -> Optional[Any]:
        with self._lock:
            self._ensure_schema()
            with self.conn:
                with self.conn.cursor() as cur:
                    cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                    row = cur.fetchone()
            return row[0] if row else None

    def _save(self, key: str, value: Any) -> None:
        with self._lock:
            self._ensure_schema()
            with self.conn:
                with self.conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO kv_store (key, value) VALUES (%s, %s)
                        ON CONFLICT (key) DO UPDATE
                        SET value = EXCLUDED.value, updated_at = now()
                        """,
                        (key, Json(value))
                    )

    def _delete(self, key: str) -> None:
        with self._lock:
            self._ensure_schema()
            with self.conn:
                with self.conn.cursor() as cur:
                    cur.execute("DELETE FROM kv_store WHERE key = %s", (key,))

    def _update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        with self._lock:
            self._ensure_schema()
            with self.conn:
                with self.conn.cursor() as cur:
                    cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,))
                    cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                    row = cur.fetchone()
                    new_value = fn(row[0] if row else None)
                    cur.execute(
                        """
                        INSERT INTO kv_store (key, value) VALUES (%s, %s)
                        ON CONFLICT (key) DO UPDATE
                        SET value = EXCLUDED.value, updated_at = now()
                        """,
                        (key, Json(new_value))
                    )
            return new_value

    async def load(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._load, key)

    async def save(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._save, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def update(self, key: str, fn: Callable[[Optional[Any]], Any]) -> Any:
        return await asyncio.to_thread(self._update, key, fn)


def create_store(
    backend: str,
    dsn: Optional[str] = None,
    path: Optional[str] = None
) -> KeyValueStore:
    """Build a store from settings ('memory', 'file' or 'postgres')."""
    if backend == "postgres":
        if not dsn:
            raise ValueError("POSTGRES_DSN must be set for the postgres store")
        logger.info("Using Postgres store")
        return PostgresStore(dsn)
    if backend == "file":
        if not path:
            raise ValueError("VITALITY_DATA must be set for the file store")
        logger.info(f"Using file store at {path}")
        return FileStore(path)
    if backend != "memory":
        raise ValueError(f"Unknown store backend: {backend}")
    return MemoryStore()
