#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "pantry",
# ]
#
# [tool.uv.sources]
# pantry = { path = "../", editable = true }
# ///

import asyncio
import logging
from typing import cast

from pantry import AsyncInMemoryRegistry, Manifest, ResponseMetadata, WorkerOptions
from pantry.httpx import AsyncCacheClient

SHELL = Manifest(
    ["/", "/index.html", "/styles.css", "/app.js", "/manifest.json"],
    base_url="https://tasks.example.com/",
)


async def fetch_and_print(client: AsyncCacheClient, url: str) -> None:
    print(f"\n➡ Sending request to {url}...")
    response = await client.get(url)
    meta = cast(ResponseMetadata, response.extensions)

    print(f"🚀 Was Stored: {meta.get('pantry_stored')}")
    print(f"🔄 From Cache: {meta.get('pantry_from_cache')}")
    print(f"🏷  Generation: {meta.get('pantry_generation')}")


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    async with AsyncCacheClient(
        options=WorkerOptions(generation="2024.06.1"),
        registry=AsyncInMemoryRegistry(),
    ) as client:
        await client.worker.install(SHELL)
        print(await client.worker.handle_message({"type": "ForceActivate"}))
        print(await client.worker.handle_message({"type": "QueryStatus"}))

        await fetch_and_print(client, "https://tasks.example.com/app.js")
        await fetch_and_print(client, "https://tasks.example.com/icons/icon-192.png")


if __name__ == "__main__":
    asyncio.run(main())
