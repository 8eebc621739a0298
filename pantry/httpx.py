from ._async_httpx import AsyncCacheClient as AsyncCacheClient, AsyncCacheTransport as AsyncCacheTransport

__all__ = ("AsyncCacheClient", "AsyncCacheTransport")
