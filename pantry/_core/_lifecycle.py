"""
The generation lifecycle as a state machine.

A worker is built for exactly one generation. Its store is warmed by
``install()``, promoted by ``activate()`` and serves requests from then on::

    Uninstalled --install()--> Installing --ok--> Installed --activate()--> Active
                                   |                                         |
                                   +--failed--> Uninstalled          activate() (no-op)

There is no way back to ``Installing`` for the same generation: a new
deploy means a new generation identifier and a new worker.

States here are pure. They never touch a store or the network; the
``AsyncGenerationManager`` performs the I/O and feeds the outcome back
through ``next()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass
class WorkerOptions:
    """
    Configuration shared by every component of a worker.

    Attributes:
    ----------
    generation : str
        Build-time identifier of the generation this worker serves. It must
        change on every deploy; it is the only thing that makes a new store
        instead of reusing the existing one.

    store_prefix : str
        Prefix of every store name owned by this application. The current
        store is named ``f"{store_prefix}-{generation}"``.

        Examples:
        --------
        >>> WorkerOptions(generation="v1").store_name
        'pantry-v1'
        >>> WorkerOptions(generation="2024.06.1", store_prefix="tasks").store_name
        'tasks-2024.06.1'

    cacheable_methods : list[str]
        Methods whose requests are looked up in and written to the store.
        Only safe methods without request bodies belong here. Everything
        else is forwarded to the network untouched.

        Default: ["GET"]

    wait_for_handoff : bool
        When True, a successful ``install()`` leaves the generation
        ``Installed`` until ``activate()`` (or a ``ForceActivate`` control
        message) promotes it. When False, ``install()`` activates right away.

        Default: True
    """

    generation: str
    store_prefix: str = "pantry"
    cacheable_methods: list[str] = field(default_factory=lambda: ["GET"])
    wait_for_handoff: bool = True

    @property
    def store_name(self) -> str:
        return f"{self.store_prefix}-{self.generation}"

    def is_cacheable(self, method: str) -> bool:
        return method.upper() in {m.upper() for m in self.cacheable_methods}


@dataclass
class GenerationState(ABC):
    options: WorkerOptions

    @abstractmethod
    def next(self, *args: Any, **kwargs: Any) -> "GenerationState":
        raise NotImplementedError("Subclasses must implement this method")

    @property
    def serving(self) -> bool:
        return False

    @property
    def can_activate(self) -> bool:
        return False


@dataclass
class Uninstalled(GenerationState):
    """
    Nothing has been warmed for this generation, or the last install failed.

    State Transitions:
    -----------------
    - Installing: an install has started
    """

    def next(self) -> "Installing":
        return Installing(options=self.options)


@dataclass
class Installing(GenerationState):
    """
    The manifest is being fetched and written to the generation's store.

    State Transitions:
    -----------------
    - Installed: every manifest resource was fetched and stored
    - Uninstalled: any fetch or write failed; the caller may retry
    """

    def next(self, succeeded: bool) -> Union["Installed", "Uninstalled"]:
        if succeeded:
            return Installed(options=self.options)
        return Uninstalled(options=self.options)


@dataclass
class Installed(GenerationState):
    """
    The store is fully warmed but not serving yet.

    State Transitions:
    -----------------
    - Active: stale generations were evicted
    """

    def next(self) -> "Active":
        return Active(options=self.options)

    @property
    def can_activate(self) -> bool:
        return True


@dataclass
class Active(GenerationState):
    """
    The generation's store is the only one left and answers requests.

    State Transitions:
    -----------------
    - Active: activating again only retries eviction of stores that survived
      the previous attempt
    """

    def next(self) -> "Active":
        return self

    @property
    def serving(self) -> bool:
        return True

    @property
    def can_activate(self) -> bool:
        return True


AnyGenerationState = Union[Uninstalled, Installing, Installed, Active]


def stale_store_names(names: list[str], options: WorkerOptions) -> list[str]:
    """
    Every registered store except the current generation's one.

    Examples:
    --------
    >>> stale_store_names(["pantry-v1", "pantry-v2", "other"], WorkerOptions(generation="v2"))
    ['pantry-v1', 'other']
    """
    return [name for name in names if name != options.store_name]
