from __future__ import annotations

import logging
import types
from typing import Any, Awaitable, Callable, Optional

from pantry._async_control import AsyncControlChannel, Reply, ReplyChannel, StatusResponse
from pantry._async_generations import AsyncGenerationManager
from pantry._async_interceptor import AsyncInterceptor
from pantry._core._lifecycle import AnyGenerationState, WorkerOptions
from pantry._core._storages._async_base import AsyncBaseRegistry
from pantry._core._storages._async_sqlite import AsyncSqliteRegistry
from pantry._core.models import Manifest, Request, Response

logger = logging.getLogger("pantry.worker")


class AsyncCacheWorker:
    """
    An offline cache sitting between an application and the network.

    This class is independent of any specific HTTP library and works only with internal models.
    It delegates network access to a user-provided callable, making it compatible with any
    HTTP client.

    Args:
        request_sender: Callable that sends requests to the network and returns responses.
        options: Worker options, most importantly the generation identifier.
        registry: Registry of named stores. Defaults to AsyncSqliteRegistry.

    Example:
    ```python
        worker = AsyncCacheWorker(send, options=WorkerOptions(generation="v2"))
        async with worker:
            await worker.install(Manifest(["/", "/app.js"], base_url="https://tasks.example.com/"))
            await worker.activate()
            response = await worker.handle_request(Request("GET", "https://tasks.example.com/app.js"))
    ```
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        options: WorkerOptions,
        registry: AsyncBaseRegistry | None = None,
    ) -> None:
        self.send_request = request_sender
        self.options = options
        self.registry = registry if registry is not None else AsyncSqliteRegistry()
        self.generations = AsyncGenerationManager(request_sender, self.registry, options)
        self.interceptor = AsyncInterceptor(request_sender, self.registry, self.generations)
        self.control = AsyncControlChannel(self.generations)
        logger.info(f"Cache worker for generation {options.generation!r} loaded")

    @property
    def state(self) -> AnyGenerationState:
        return self.generations.state

    async def __aenter__(self) -> "AsyncCacheWorker":
        await self.interceptor.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        await self.interceptor.__aexit__(exc_type, exc_value, traceback)

    async def install(self, manifest: Manifest) -> None:
        await self.generations.install(manifest)

    async def activate(self) -> None:
        await self.generations.activate()

    async def force_activate(self) -> None:
        await self.generations.force_activate()

    async def handle_request(self, request: Request) -> Response:
        return await self.interceptor.handle_request(request)

    async def handle_message(self, message: Any, reply: Optional[ReplyChannel] = None) -> Optional[Reply]:
        return await self.control.handle_message(message, reply)

    async def status(self) -> StatusResponse:
        return await self.control.status()

    async def aclose(self) -> None:
        await self.registry.close()
