from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from pantry._core._lifecycle import WorkerOptions
from pantry._core.models import Entry, Request, RequestKey, Response, ResponseMetadata


@dataclass
class RequestState(ABC):
    options: WorkerOptions

    @abstractmethod
    def next(self, *args: Any, **kwargs: Any) -> Union["RequestState", None]:
        raise NotImplementedError("Subclasses must implement this method")


@dataclass
class Intercept(RequestState):
    """
    Entry point of the per-request decision procedure.

    State Transitions:
    -----------------
    - PassThrough: the request is not a cacheable read, asked to bypass the
      store, or the generation is not serving yet
    - LookupStore: the request may be answered from the current store
    """

    def next(self, request: Request, serving: bool) -> Union["PassThrough", "LookupStore"]:
        if not self.options.is_cacheable(request.method):
            return PassThrough(request=request, reason="method", options=self.options)

        if request.metadata.get("pantry_bypass"):
            return PassThrough(request=request, reason="bypass", options=self.options)

        if not serving:
            return PassThrough(request=request, reason="inactive", options=self.options)

        return LookupStore(request=request, key=RequestKey.from_request(request), options=self.options)


@dataclass
class PassThrough(RequestState):
    """
    The request goes to the network as is and its response is never stored.
    """

    request: Request
    reason: str

    def next(self) -> None:
        return None


@dataclass
class LookupStore(RequestState):
    """
    The request is looked up in the current generation's store.

    State Transitions:
    -----------------
    - FromStore: an entry exists for the request key
    - StoreMiss: no entry, or the store could not be read
    """

    request: Request
    key: RequestKey

    def next(self, entry: Optional[Entry]) -> Union["FromStore", "StoreMiss"]:
        # Strict cache-first: a stored entry always wins over the network,
        # staleness is only resolved by replacing the whole generation.
        if entry is not None:
            return FromStore(entry=entry, options=self.options)
        return StoreMiss(request=self.request, key=self.key, options=self.options)


@dataclass
class StoreMiss(RequestState):
    """
    The request was sent to the network and the response decides what happens next.

    State Transitions:
    -----------------
    - StoreAndUse: the response is ok (2xx) and is written to the store
    - CouldNotBeStored: any other status; returned but never stored
    """

    request: Request
    key: RequestKey

    def next(self, response: Response) -> Union["StoreAndUse", "CouldNotBeStored"]:
        if response.ok:
            return StoreAndUse(key=self.key, response=response, options=self.options)
        return CouldNotBeStored(response=response, options=self.options)


class StoreAndUse(RequestState):
    """
    The response is returned to the caller and a copy is written to the store.

    Attributes:
    ----------
    key : RequestKey
        The key the copy is stored under.
    response : Response
        The network response.
    """

    def __init__(self, key: RequestKey, response: Response, options: WorkerOptions) -> None:
        super().__init__(options)
        self.key = key
        self.response = response
        response_meta = ResponseMetadata(
            pantry_created_at=time.time(),
            pantry_from_cache=False,
            pantry_stored=True,
            pantry_generation=options.generation,
        )
        self.response.metadata.update(response_meta)  # type: ignore

    def next(self) -> None:
        return None


class CouldNotBeStored(RequestState):
    """
    The response is returned to the caller and nothing is written.
    """

    def __init__(self, response: Response, options: WorkerOptions) -> None:
        super().__init__(options)
        self.response = response
        response_meta = ResponseMetadata(
            pantry_from_cache=False,
            pantry_stored=False,
            pantry_generation=options.generation,
        )
        self.response.metadata.update(response_meta)  # type: ignore

    def next(self) -> None:
        return None


class FromStore(RequestState):
    def __init__(self, entry: Entry, options: WorkerOptions) -> None:
        super().__init__(options)
        self.entry = entry
        response_meta = ResponseMetadata(
            pantry_created_at=entry.meta.created_at,
            pantry_from_cache=True,
            pantry_stored=False,
            pantry_generation=options.generation,
        )
        self.entry.response.metadata.update(response_meta)  # type: ignore

    def next(self) -> None:
        return None


AnyRequestState = Union[Intercept, PassThrough, LookupStore, StoreMiss, StoreAndUse, CouldNotBeStored, FromStore]
