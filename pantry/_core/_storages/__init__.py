from pantry._core._storages._async_base import (
    AsyncBaseRegistry as AsyncBaseRegistry,
    AsyncBaseStore as AsyncBaseStore,
)
from pantry._core._storages._async_memory import (
    AsyncInMemoryRegistry as AsyncInMemoryRegistry,
    AsyncInMemoryStore as AsyncInMemoryStore,
)
from pantry._core._storages._async_sqlite import (
    AsyncSqliteRegistry as AsyncSqliteRegistry,
    AsyncSqliteStore as AsyncSqliteStore,
)
