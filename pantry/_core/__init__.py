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
