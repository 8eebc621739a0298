from __future__ import annotations

import logging
import types
from typing import Awaitable, Callable, Optional

import anyio
from anyio.abc import TaskGroup
from typing_extensions import assert_never

from pantry._async_generations import AsyncGenerationManager
from pantry._core._interception import (
    AnyRequestState,
    CouldNotBeStored,
    FromStore,
    Intercept,
    LookupStore,
    PassThrough,
    StoreAndUse,
    StoreMiss,
)
from pantry._core._storages._async_base import AsyncBaseRegistry
from pantry._core.models import Entry, Request, RequestKey, Response
from pantry._exceptions import (
    LookupDegradation,
    NetworkFailure,
    PopulationWriteError,
    StoreNotFound,
)

logger = logging.getLogger("pantry.interceptor")


class AsyncInterceptor:
    """
    Answers requests from the current generation's store, falling back to the network.

    Misses that come back with a 2xx status are written to the store in the
    background, in the task group the interceptor opens when it is entered as
    an async context manager. They outlive the request that triggered them and
    are all finished when the context exits, so requests are only handled while
    the interceptor is entered.

    Args:
        request_sender: Callable that sends requests to the network.
        registry: The registry holding the generation's store.
        generations: The manager that decides whether the generation serves traffic.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        registry: AsyncBaseRegistry,
        generations: AsyncGenerationManager,
    ) -> None:
        self.send_request = request_sender
        self.registry = registry
        self.generations = generations
        self.options = generations.options
        self._task_group: Optional[TaskGroup] = None

    async def __aenter__(self) -> "AsyncInterceptor":
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> bool | None:
        task_group, self._task_group = self._task_group, None
        assert task_group is not None
        # Pending writes are awaited either way; an error from the body propagates unwrapped.
        await task_group.__aexit__(None, None, None)
        return None

    async def handle_request(self, request: Request) -> Response:
        if self._task_group is None:
            raise RuntimeError("The cache worker is not running, enter it with `async with` before handling requests")
        state: AnyRequestState = Intercept(options=self.options)

        while state:
            logger.debug(f"Handling state: {state.__class__.__name__}")
            if isinstance(state, Intercept):
                state = state.next(request, serving=self.generations.serving)
            elif isinstance(state, PassThrough):
                logger.debug(f"Forwarding {request.method} {request.url} without caching ({state.reason})")
                return await self._send(state.request)
            elif isinstance(state, LookupStore):
                state = state.next(await self._lookup(state.key))
            elif isinstance(state, StoreMiss):
                state = state.next(await self._send(state.request))
            elif isinstance(state, StoreAndUse):
                return await self._handle_store_and_use(state)
            elif isinstance(state, CouldNotBeStored):
                return state.response
            elif isinstance(state, FromStore):
                return state.entry.response
            else:
                assert_never(state)

        raise RuntimeError("Unreachable")

    async def _send(self, request: Request) -> Response:
        try:
            return await self.send_request(request)
        except NetworkFailure:
            raise
        except Exception as exc:
            raise NetworkFailure(f"Could not fetch {request.method} {request.url}") from exc

    async def _lookup(self, key: RequestKey) -> Optional[Entry]:
        try:
            return await self._read_entry(key)
        except LookupDegradation as exc:
            logger.warning(f"{exc}, falling back to the network", exc_info=exc)
            return None

    async def _read_entry(self, key: RequestKey) -> Optional[Entry]:
        try:
            store = await self.registry.lookup(self.options.store_name)
            if store is None:
                raise StoreNotFound(f"Store {self.options.store_name!r} does not exist")
            return await store.get(key)
        except Exception as exc:
            raise LookupDegradation(f"Could not read {key.method} {key.url} from the store") from exc

    async def _handle_store_and_use(self, state: StoreAndUse) -> Response:
        for_caller, for_store = await state.response.tee()
        assert self._task_group is not None
        self._task_group.start_soon(self._populate, state.key, for_store)
        return for_caller

    async def _populate(self, key: RequestKey, response: Response) -> None:
        # The body is already in memory; cancelling the caller must not cut the write short.
        with anyio.CancelScope(shield=True):
            try:
                await self._write_entry(key, response)
            except PopulationWriteError as exc:
                logger.warning(str(exc), exc_info=exc)

    async def _write_entry(self, key: RequestKey, response: Response) -> None:
        try:
            store = await self.registry.lookup(self.options.store_name)
            if store is None:
                raise StoreNotFound(f"Store {self.options.store_name!r} does not exist")
            await store.put(key, response)
        except Exception as exc:
            raise PopulationWriteError(f"Could not store {key.method} {key.url}") from exc
        logger.debug(f"Stored response for {key.method} {key.url}")
