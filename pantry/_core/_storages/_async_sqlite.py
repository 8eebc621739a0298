from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from typing import (
    List,
    Optional,
    Union,
)

import anyio
import anysqlite

from pantry._core._storages._async_base import AsyncBaseRegistry, AsyncBaseStore
from pantry._core._storages._packing import pack, unpack
from pantry._core.models import Entry, EntryMeta, RequestKey, Response
from pantry._exceptions import StoreNotFound
from pantry._utils import ensure_cache_dict

logger = logging.getLogger("pantry.storages")


class AsyncSqliteStore(AsyncBaseStore):
    def __init__(self, registry: AsyncSqliteRegistry, name: str) -> None:
        self.registry = registry
        self.name = name

    def __repr__(self) -> str:
        return f"<AsyncSqliteStore name={self.name!r}>"

    async def get(self, key: RequestKey) -> Optional[Entry]:
        connection = await self.registry._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute(
            "SELECT id, data, body FROM entries WHERE store_name = ? AND method = ? AND url = ?",
            (self.name, key.method, key.url),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return unpack(row[1], id_=uuid.UUID(bytes=row[0]), key=key, body=row[2])

    async def put(self, key: RequestKey, response: Response, id_: uuid.UUID | None = None) -> Entry:
        body = await response.aread()
        entry = Entry(
            id=id_ if id_ is not None else uuid.uuid4(),
            key=key,
            response=response,
            meta=EntryMeta(created_at=time.time()),
        )

        connection = await self.registry._ensure_connection()
        async with self.registry._lock:
            cursor = await connection.cursor()
            await cursor.execute("SELECT 1 FROM stores WHERE name = ?", (self.name,))
            if await cursor.fetchone() is None:
                raise StoreNotFound(f"Store {self.name!r} does not exist")

            # The (store_name, method, url) uniqueness constraint makes this last-write-wins.
            await cursor.execute(
                "INSERT OR REPLACE INTO entries (id, store_name, method, url, data, body, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (entry.id.bytes, self.name, key.method, key.url, pack(entry), body, entry.meta.created_at),
            )
            await connection.commit()
        return entry

    async def keys(self) -> List[RequestKey]:
        connection = await self.registry._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute(
            "SELECT method, url FROM entries WHERE store_name = ? ORDER BY created_at",
            (self.name,),
        )
        return [RequestKey(method=row[0], url=row[1]) for row in await cursor.fetchall()]


class AsyncSqliteRegistry(AsyncBaseRegistry):
    def __init__(
        self,
        *,
        connection: Optional[anysqlite.Connection] = None,
        database_path: Union[str, Path] = "pantry_cache.db",
    ) -> None:
        self.connection = connection
        self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
        self._initialized = False
        self._lock = anyio.Lock()

    async def _ensure_connection(self) -> anysqlite.Connection:
        """Ensure connection is established and database is initialized."""
        if self.connection is None:
            # Create cache directory and resolve full path on first connection
            parent = self.database_path.parent if self.database_path.parent != Path(".") else None
            full_path = ensure_cache_dict(parent) / self.database_path.name
            self.connection = await anysqlite.connect(str(full_path))
        if not self._initialized:
            await self._initialize_database()
            self._initialized = True
        return self.connection

    async def _initialize_database(self) -> None:
        """Initialize the database schema."""
        assert self.connection is not None
        cursor = await self.connection.cursor()

        # One row per named store; deleting the row is what unregisters a store
        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS stores (
                name TEXT PRIMARY KEY,
                created_at REAL NOT NULL
            )
        """)

        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                id BLOB PRIMARY KEY,
                store_name TEXT NOT NULL,
                method TEXT NOT NULL,
                url TEXT NOT NULL,
                data BLOB NOT NULL,
                body BLOB NOT NULL,
                created_at REAL NOT NULL,
                UNIQUE (store_name, method, url)
            )
        """)

        await cursor.execute("CREATE INDEX IF NOT EXISTS idx_entries_store_name ON entries(store_name)")

        await self.connection.commit()

    async def open(self, name: str) -> AsyncSqliteStore:
        connection = await self._ensure_connection()
        async with self._lock:
            cursor = await connection.cursor()
            await cursor.execute(
                "INSERT OR IGNORE INTO stores (name, created_at) VALUES (?, ?)",
                (name, time.time()),
            )
            await connection.commit()
        return AsyncSqliteStore(self, name)

    async def lookup(self, name: str) -> Optional[AsyncSqliteStore]:
        if not await self.has(name):
            return None
        return AsyncSqliteStore(self, name)

    async def has(self, name: str) -> bool:
        connection = await self._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute("SELECT 1 FROM stores WHERE name = ?", (name,))
        return await cursor.fetchone() is not None

    async def names(self) -> List[str]:
        connection = await self._ensure_connection()
        cursor = await connection.cursor()
        await cursor.execute("SELECT name FROM stores ORDER BY created_at, name")
        return [row[0] for row in await cursor.fetchall()]

    async def delete(self, name: str) -> bool:
        connection = await self._ensure_connection()
        async with self._lock:
            cursor = await connection.cursor()
            await cursor.execute("SELECT 1 FROM stores WHERE name = ?", (name,))
            if await cursor.fetchone() is None:
                return False
            await cursor.execute("DELETE FROM entries WHERE store_name = ?", (name,))
            await cursor.execute("DELETE FROM stores WHERE name = ?", (name,))
            await connection.commit()
        logger.debug(f"Deleted store {name!r}")
        return True

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            self._initialized = False
