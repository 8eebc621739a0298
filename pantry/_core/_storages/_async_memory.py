from __future__ import annotations

import logging
import time
import typing as tp
import uuid

from anyio.lowlevel import checkpoint

from pantry._core._storages._async_base import AsyncBaseRegistry, AsyncBaseStore
from pantry._core._storages._packing import pack, unpack
from pantry._core.models import Entry, EntryMeta, RequestKey, Response
from pantry._exceptions import StoreNotFound

logger = logging.getLogger("pantry.storages")

# key -> (id, packed head, body)
StoredEntry = tp.Tuple[uuid.UUID, bytes, bytes]


class AsyncInMemoryStore(AsyncBaseStore):
    """
    A store living in the memory of an ``AsyncInMemoryRegistry``.

    Entries are kept packed, so every ``get()`` hands out a new response
    with its own stream and its own headers.
    """

    def __init__(self, registry: AsyncInMemoryRegistry, name: str) -> None:
        self.registry = registry
        self.name = name

    def __repr__(self) -> str:
        return f"<AsyncInMemoryStore name={self.name!r}>"

    async def get(self, key: RequestKey) -> tp.Optional[Entry]:
        await checkpoint()
        entries = self.registry._stores.get(self.name)
        if entries is None or key not in entries:
            return None
        id_, data, body = entries[key]
        return unpack(data, id_=id_, key=key, body=body)

    async def put(self, key: RequestKey, response: Response, id_: uuid.UUID | None = None) -> Entry:
        body = await response.aread()
        entry = Entry(
            id=id_ if id_ is not None else uuid.uuid4(),
            key=key,
            response=response,
            meta=EntryMeta(created_at=time.time()),
        )
        await checkpoint()
        entries = self.registry._stores.get(self.name)
        if entries is None:
            raise StoreNotFound(f"Store {self.name!r} does not exist")
        entries[key] = (entry.id, pack(entry), body)
        return entry

    async def keys(self) -> tp.List[RequestKey]:
        await checkpoint()
        return list(self.registry._stores.get(self.name, {}))


class AsyncInMemoryRegistry(AsyncBaseRegistry):
    """
    A registry of stores kept in a dictionary.

    Nothing survives the process. Every operation still yields to the event
    loop, so concurrent tasks interleave the same way they do with a real
    database behind the registry.
    """

    def __init__(self) -> None:
        self._stores: tp.Dict[str, tp.Dict[RequestKey, StoredEntry]] = {}

    async def open(self, name: str) -> AsyncInMemoryStore:
        await checkpoint()
        self._stores.setdefault(name, {})
        return AsyncInMemoryStore(self, name)

    async def lookup(self, name: str) -> tp.Optional[AsyncInMemoryStore]:
        await checkpoint()
        if name not in self._stores:
            return None
        return AsyncInMemoryStore(self, name)

    async def has(self, name: str) -> bool:
        await checkpoint()
        return name in self._stores

    async def names(self) -> tp.List[str]:
        await checkpoint()
        return list(self._stores)

    async def delete(self, name: str) -> bool:
        await checkpoint()
        if self._stores.pop(name, None) is None:
            return False
        logger.debug(f"Deleted store {name!r}")
        return True
