from __future__ import annotations

import abc
import typing as tp

from pantry._core.models import Entry, RequestKey, Response


class AsyncBaseStore(abc.ABC):
    """
    One named store: a mapping from request keys to response snapshots.

    Stores are append-only from the worker's point of view. Entries are never
    removed one by one; the whole store is deleted through its registry.
    """

    name: str

    @abc.abstractmethod
    async def get(self, key: RequestKey) -> tp.Optional[Entry]:
        """
        Retrieve the entry stored under ``key``.

        Args:
            key: The request key to look up.

        Returns:
            The entry with a fresh, unconsumed response stream, or None when
            nothing is stored under the key or the store no longer exists.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def put(self, key: RequestKey, response: Response) -> Entry:
        """
        Store a response under ``key``, replacing any previous entry (last write wins).

        The response body is read completely before anything is written.

        Args:
            key: The request key to store the response under.
            response: The response to store.

        Returns:
            The created entry.

        Raises:
            StoreNotFound: The store was deleted from its registry.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def keys(self) -> tp.List[RequestKey]:
        """
        List the keys of every entry in the store.
        """
        raise NotImplementedError()


class AsyncBaseRegistry(abc.ABC):
    """
    Enumerates, opens and deletes named stores.
    """

    @abc.abstractmethod
    async def open(self, name: str) -> AsyncBaseStore:
        """
        Open the store called ``name``, creating an empty one if it does not exist.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def lookup(self, name: str) -> tp.Optional[AsyncBaseStore]:
        """
        Return the store called ``name`` without creating it, or None if it is not registered.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def has(self, name: str) -> bool:
        raise NotImplementedError()

    @abc.abstractmethod
    async def names(self) -> tp.List[str]:
        """
        List the names of every store currently registered.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, name: str) -> bool:
        """
        Delete a store and every entry in it.

        Returns:
            True if a store was deleted, False if none was registered under ``name``.
        """
        raise NotImplementedError()

    async def close(self) -> None:
        pass
