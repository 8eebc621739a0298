from pantry._core._headers import Headers as Headers
from pantry._core._interception import (
    AnyRequestState as AnyRequestState,
    CouldNotBeStored as CouldNotBeStored,
    FromStore as FromStore,
    Intercept as Intercept,
    LookupStore as LookupStore,
    PassThrough as PassThrough,
    RequestState as RequestState,
    StoreAndUse as StoreAndUse,
    StoreMiss as StoreMiss,
)
from pantry._core._lifecycle import (
    Active as Active,
    AnyGenerationState as AnyGenerationState,
    GenerationState as GenerationState,
    Installed as Installed,
    Installing as Installing,
    Uninstalled as Uninstalled,
    WorkerOptions as WorkerOptions,
)
from pantry._core._storages import (
    AsyncBaseRegistry as AsyncBaseRegistry,
    AsyncBaseStore as AsyncBaseStore,
    AsyncInMemoryRegistry as AsyncInMemoryRegistry,
    AsyncInMemoryStore as AsyncInMemoryStore,
    AsyncSqliteRegistry as AsyncSqliteRegistry,
    AsyncSqliteStore as AsyncSqliteStore,
)
from pantry._core.models import (
    Entry as Entry,
    EntryMeta as EntryMeta,
    Manifest as Manifest,
    Request as Request,
    RequestKey as RequestKey,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from pantry._exceptions import (
    ActivationError as ActivationError,
    InstallError as InstallError,
    LookupDegradation as LookupDegradation,
    NetworkFailure as NetworkFailure,
    PantryError as PantryError,
    PopulationWriteError as PopulationWriteError,
    StoreNotFound as StoreNotFound,
)
from pantry._async_generations import AsyncGenerationManager as AsyncGenerationManager
from pantry._async_interceptor import AsyncInterceptor as AsyncInterceptor
from pantry._async_control import (
    Ack as Ack,
    AsyncControlChannel as AsyncControlChannel,
    ForceActivate as ForceActivate,
    QueryStatus as QueryStatus,
    StatusResponse as StatusResponse,
)
from pantry._async_worker import AsyncCacheWorker as AsyncCacheWorker

__version__ = "0.1.0"

__all__ = (
    ## Generation states
    "AnyGenerationState",
    "GenerationState",
    "Uninstalled",
    "Installing",
    "Installed",
    "Active",
    "WorkerOptions",
    ## Request states
    "AnyRequestState",
    "RequestState",
    "Intercept",
    "PassThrough",
    "LookupStore",
    "StoreMiss",
    "StoreAndUse",
    "CouldNotBeStored",
    "FromStore",
    ## Models
    "Request",
    "Response",
    "RequestKey",
    "Entry",
    "EntryMeta",
    "Manifest",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers
    "Headers",
    ## Storages
    "AsyncBaseStore",
    "AsyncBaseRegistry",
    "AsyncInMemoryStore",
    "AsyncInMemoryRegistry",
    "AsyncSqliteStore",
    "AsyncSqliteRegistry",
    ## Errors
    "PantryError",
    "InstallError",
    "ActivationError",
    "PopulationWriteError",
    "LookupDegradation",
    "NetworkFailure",
    "StoreNotFound",
    ## Components
    "AsyncGenerationManager",
    "AsyncInterceptor",
    "AsyncControlChannel",
    "AsyncCacheWorker",
    ## Control messages
    "ForceActivate",
    "QueryStatus",
    "Ack",
    "StatusResponse",
)
