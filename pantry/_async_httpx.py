from __future__ import annotations

import types
import typing as t
from typing import AsyncIterator

import httpx

from pantry._async_worker import AsyncCacheWorker
from pantry._core._headers import Headers
from pantry._core._lifecycle import WorkerOptions
from pantry._core._storages._async_base import AsyncBaseRegistry
from pantry._core.models import Request, Response, extract_metadata_from_headers
from pantry._exceptions import NetworkFailure
from pantry._utils import filter_mapping, make_async_iterator


class _BodyStream(httpx.AsyncByteStream):
    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            yield chunk


async def _read_request_body(request: httpx.Request) -> AsyncIterator[bytes]:
    async for chunk in t.cast(httpx.AsyncByteStream, request.stream):
        yield chunk


def _pantry_headers(headers: httpx.Headers) -> Headers:
    # httpx decides the framing itself when the message is sent again
    return Headers(filter_mapping(dict(headers.items()), ["Transfer-Encoding"]))


def _from_httpx_request(request: httpx.Request) -> Request:
    metadata = extract_metadata_from_headers(request.headers)
    if "pantry_bypass" in request.extensions:
        metadata["pantry_bypass"] = request.extensions["pantry_bypass"]

    return Request(
        method=request.method,
        url=str(request.url),
        headers=_pantry_headers(request.headers),
        stream=_read_request_body(request),
        metadata=metadata,
    )


def _from_httpx_response(response: httpx.Response) -> Response:
    headers = _pantry_headers(response.headers)
    if not response.is_stream_consumed:
        return Response(status_code=response.status_code, headers=headers, stream=response.aiter_raw())

    # Only the decoded body is left
    body = response.content
    headers = Headers({**filter_mapping(headers, ["Content-Encoding"]), "content-length": str(len(body))})
    return Response(status_code=response.status_code, headers=headers, stream=make_async_iterator([body]))


def _to_httpx_request(request: Request) -> httpx.Request:
    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        stream=_BodyStream(request._aiter_stream()),
    )


def _to_httpx_response(response: Response) -> httpx.Response:
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=_BodyStream(response._aiter_stream()),
        extensions=dict(response.metadata),
    )


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    An httpx transport that routes every request through an ``AsyncCacheWorker``.

    The wrapped ``next_transport`` is the network: it warms the store on
    install and answers every request the store cannot. Errors it raises,
    such as ``httpx.ConnectError``, reach the client unchanged.

    Example:
    ```python
        transport = AsyncCacheTransport(
            next_transport=httpx.AsyncHTTPTransport(),
            options=WorkerOptions(generation="v2"),
        )
        async with httpx.AsyncClient(transport=transport) as client:
            await transport.worker.install(Manifest(["/", "/app.js"], base_url="https://tasks.example.com/"))
            await transport.worker.activate()
            response = await client.get("https://tasks.example.com/app.js")
    ```
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport,
        options: WorkerOptions,
        registry: AsyncBaseRegistry | None = None,
    ) -> None:
        self.next_transport = next_transport
        self.worker = AsyncCacheWorker(
            request_sender=self.request_sender,
            options=options,
            registry=registry,
        )
        self.registry = self.worker.registry

    async def __aenter__(self) -> "AsyncCacheTransport":
        await self.next_transport.__aenter__()
        await self.worker.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        # Pending store writes finish before the network transport goes away
        await self.worker.__aexit__(exc_type, exc_value, traceback)
        await super().__aexit__(exc_type, exc_value, traceback)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await self.worker.handle_request(_from_httpx_request(request))
        except NetworkFailure as exc:
            if isinstance(exc.__cause__, httpx.HTTPError):
                raise exc.__cause__ from None
            raise
        return _to_httpx_response(response)

    async def aclose(self) -> None:
        await self.next_transport.aclose()
        await self.worker.aclose()

    async def request_sender(self, request: Request) -> Response:
        response = await self.next_transport.handle_async_request(_to_httpx_request(request))
        return _from_httpx_response(response)


class AsyncCacheClient(httpx.AsyncClient):
    """
    An ``httpx.AsyncClient`` whose requests go through an ``AsyncCacheWorker``.

    Takes the usual client arguments plus ``options`` (required) and
    ``registry``. The transports httpx builds, proxied ones included, are
    wrapped in an ``AsyncCacheTransport``; an explicit ``transport`` is used
    as given.
    """

    def __init__(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.registry: AsyncBaseRegistry | None = kwargs.pop("registry", None)
        options: WorkerOptions | None = kwargs.pop("options", None)
        if options is None:
            raise TypeError("AsyncCacheClient requires an 'options' argument naming the generation")
        self.options = options
        super().__init__(*args, **kwargs)

    @property
    def worker(self) -> AsyncCacheWorker:
        transport = self._transport
        if not isinstance(transport, AsyncCacheTransport):
            raise RuntimeError("The client was created with a custom transport that does not cache")
        return transport.worker

    def _init_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.AsyncBaseTransport:
        transport = super()._init_transport(*args, **kwargs)
        if kwargs.get("transport") is not None:
            return transport
        return AsyncCacheTransport(next_transport=transport, options=self.options, registry=self.registry)

    def _init_proxy_transport(self, *args: t.Any, **kwargs: t.Any) -> httpx.AsyncBaseTransport:
        transport = super()._init_proxy_transport(*args, **kwargs)
        return AsyncCacheTransport(next_transport=transport, options=self.options, registry=self.registry)
