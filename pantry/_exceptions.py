__all__ = (
    "PantryError",
    "InstallError",
    "ActivationError",
    "PopulationWriteError",
    "LookupDegradation",
    "NetworkFailure",
    "StoreNotFound",
)


class PantryError(Exception): ...


class InstallError(PantryError):
    """
    Raised when warming a generation fails.

    The currently serving generation (if any) is not affected and the
    install can be retried as a whole.
    """


class ActivationError(PantryError):
    """A stale store could not be deleted during activation. Logged, never raised to callers."""


class PopulationWriteError(PantryError):
    """An opportunistic write after a cache miss failed. Logged, never raised to callers."""


class LookupDegradation(PantryError):
    """A store read failed while handling a request. Treated as a cache miss."""


class NetworkFailure(PantryError):
    """
    The network could not produce a response and there was nothing in the store.

    The original exception is available as ``__cause__``.
    """


class StoreNotFound(PantryError): ...
