from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Tuple

import anyio

from pantry._core._lifecycle import (
    AnyGenerationState,
    Installing,
    Uninstalled,
    WorkerOptions,
    stale_store_names,
)
from pantry._core._storages._async_base import AsyncBaseRegistry
from pantry._core.models import Manifest, Request, RequestKey, Response
from pantry._exceptions import ActivationError, InstallError

logger = logging.getLogger("pantry.generations")


class AsyncGenerationManager:
    """
    Owns the store of one generation: warms it on install and evicts every other store on activation.

    Args:
        request_sender: Callable that sends requests to the network.
        registry: The registry holding every named store.
        options: Worker options; ``options.generation`` names the generation managed here.

    Note:
        Activation only runs once the generation is installed, and a forced
        activation waits for an install that is still running. Callers that
        share one registry between several managers have to make sure that no
        manager activates while another one's install is in progress.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        registry: AsyncBaseRegistry,
        options: WorkerOptions,
    ) -> None:
        self.send_request = request_sender
        self.registry = registry
        self.options = options
        self.state: AnyGenerationState = Uninstalled(options=options)
        self._install_lock = anyio.Lock()

    @property
    def generation(self) -> str:
        return self.options.generation

    @property
    def store_name(self) -> str:
        return self.options.store_name

    @property
    def serving(self) -> bool:
        return self.state.serving

    async def install(self, manifest: Manifest) -> None:
        """
        Warm the generation's store with every resource of ``manifest``.

        All resources are fetched before anything is written. A single failed
        fetch (transport error or non-2xx status) aborts the whole install.

        Raises:
            InstallError: A resource could not be fetched or stored. A store
                created by this install is discarded; stores of other
                generations are never touched.
        """
        async with self._install_lock:
            if not isinstance(self.state, Uninstalled):
                logger.debug(f"Generation {self.generation!r} is already installed")
                return

            installing = self.state.next()
            self.state = installing
            logger.debug(f"Handling state: {installing.__class__.__name__}")

            created = not await self.registry.has(self.store_name)
            try:
                await self._warm(manifest)
            except InstallError:
                await self._abort_install(installing, created)
                raise
            except Exception as exc:
                await self._abort_install(installing, created)
                raise InstallError(f"Could not install generation {self.generation!r}") from exc
            except BaseException:
                await self._abort_install(installing, created)
                raise

            self.state = installing.next(succeeded=True)
            logger.debug(f"Handling state: {self.state.__class__.__name__}")

        if not self.options.wait_for_handoff:
            await self.activate()

    async def _warm(self, manifest: Manifest) -> None:
        fetched: List[Tuple[RequestKey, Response]] = []
        for key in manifest.keys():
            logger.debug(f"Fetching {key.method} {key.url}")
            try:
                response = await self.send_request(key.to_request())
            except Exception as exc:
                raise InstallError(f"Could not fetch {key.url}") from exc
            if not response.ok:
                raise InstallError(f"Fetching {key.url} failed with status {response.status_code}")
            await response.aread()
            fetched.append((key, response))

        store = await self.registry.open(self.store_name)
        for key, response in fetched:
            await store.put(key, response)
        logger.debug(f"Stored {len(fetched)} resources in {self.store_name!r}")

    async def _abort_install(self, installing: Installing, created: bool) -> None:
        self.state = installing.next(succeeded=False)
        logger.debug(f"Handling state: {self.state.__class__.__name__}")
        if not created:
            return
        # A half-filled store must never be taken for a warmed one.
        with anyio.CancelScope(shield=True):
            try:
                await self.registry.delete(self.store_name)
            except Exception:
                logger.warning(f"Could not discard incomplete store {self.store_name!r}", exc_info=True)

    async def activate(self) -> None:
        """
        Make this generation's store the only one in the registry and start serving from it.

        Stale stores are deleted concurrently and every deletion has finished
        when this returns. A deletion that fails is logged and retried by the
        next activation; it never prevents the generation from serving.
        """
        if not self.state.can_activate:
            logger.warning(
                f"Generation {self.generation!r} cannot be activated "
                f"while {self.state.__class__.__name__.lower()}"
            )
            return

        stale = stale_store_names(await self.registry.names(), self.options)
        errors: List[ActivationError] = []
        async with anyio.create_task_group() as task_group:
            for name in stale:
                task_group.start_soon(self._evict, name, errors)

        for error in errors:
            logger.warning(str(error), exc_info=error)

        self.state = self.state.next()
        logger.debug(f"Handling state: {self.state.__class__.__name__}")

    async def _evict(self, name: str, errors: List[ActivationError]) -> None:
        try:
            await self.registry.delete(name)
        except Exception as exc:
            error = ActivationError(f"Could not delete stale store {name!r}")
            error.__cause__ = exc
            errors.append(error)
            return
        logger.debug(f"Evicted stale store {name!r}")

    async def force_activate(self) -> None:
        """
        Activate without waiting for a natural handoff.

        An install that is still running is allowed to finish first.
        """
        logger.debug(f"Forcing activation of generation {self.generation!r}")
        async with self._install_lock:
            pass
        await self.activate()

    async def entry_count(self) -> int:
        store = await self.registry.lookup(self.store_name)
        if store is None:
            return 0
        return len(await store.keys())
