from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypedDict,
    cast,
)

from pantry._core._headers import Headers
from pantry._utils import make_async_iterator, normalize_url, parse_flag


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "pantry_" to avoid collisions with user data
    pantry_bypass: bool | None
    """
    When True, the request is forwarded to the network untouched, even if it is cacheable.
    """


def extract_metadata_from_headers(
    headers: Mapping[str, str],
) -> RequestMetadata:
    metadata: RequestMetadata = {}
    if "X-Pantry-Bypass" in headers:
        flag = parse_flag(headers["X-Pantry-Bypass"])
        if flag is not None:
            metadata["pantry_bypass"] = flag
    return metadata


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
            return
        raise TypeError("Request stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire request body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Request stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "pantry_" to avoid collisions with user data
    pantry_from_cache: bool
    """Indicates whether the response was served from the store."""

    pantry_stored: bool
    """Indicates whether the response was scheduled to be written to the store."""

    pantry_generation: str | None
    """The generation whose store answered or received the response."""

    pantry_created_at: float
    """Timestamp when the response was written to the store."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
        else:
            raise TypeError("Response stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Response stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected

    async def tee(self) -> Tuple["Response", "Response"]:
        """
        Read the body once and return two responses that can be consumed independently.

        A body stream can only be read once, so a response that has to be both
        returned to the caller and written to a store is duplicated first and
        each side gets its own copy of the bytes, headers and metadata.
        """
        body = await self.aread()
        return self._copy_with_body(body), self._copy_with_body(body)

    def _copy_with_body(self, body: bytes) -> "Response":
        return replace(
            self,
            headers=self.headers.copy(),
            stream=make_async_iterator([body]),
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class RequestKey:
    """
    Identity of a stored response: the request method and the URL without its fragment.
    """

    method: str
    url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "url", normalize_url(self.url))

    @classmethod
    def from_request(cls, request: Request) -> "RequestKey":
        return cls(method=request.method, url=str(request.url))

    def to_request(self) -> Request:
        return Request(method=self.method, url=self.url)


@dataclass
class EntryMeta:
    created_at: float = field(default_factory=time.time)


@dataclass
class Entry:
    id: uuid.UUID
    key: RequestKey
    response: Response
    meta: EntryMeta = field(default_factory=EntryMeta)


@dataclass
class Manifest:
    """
    The fixed list of resources a generation needs to work offline.

    Paths may be absolute URLs or relative to ``base_url``. The list is read
    in order and repeated resources are only fetched once.

    Example:
    ```python
        manifest = Manifest(
            ["/", "/index.html", "/styles.css", "/app.js", "/manifest.json", "/icons/icon-192.png"],
            base_url="https://tasks.example.com/",
        )
    ```
    """

    resources: Sequence[str]
    base_url: Optional[str] = None

    def keys(self) -> List[RequestKey]:
        seen: set[RequestKey] = set()
        keys: List[RequestKey] = []
        for resource in self.resources:
            key = RequestKey("GET", normalize_url(resource, self.base_url))
            if key in seen:
                continue
            seen.add(key)
            keys.append(key)
        return keys

    def __iter__(self) -> Iterator[RequestKey]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())
