from typing import Any, List

import pytest
from inline_snapshot import snapshot

from pantry import AsyncBaseRegistry, AsyncCacheWorker, AsyncInMemoryRegistry, Manifest, WorkerOptions
from pantry._async_control import Reply
from tests.conftest import BASE_URL, SHELL, FakeNetwork


class RecordingReply:
    def __init__(self) -> None:
        self.replies: List[Reply] = []

    async def __call__(self, reply: Reply) -> None:
        self.replies.append(reply)


def create_worker(registry: AsyncBaseRegistry, generation: str = "v2") -> AsyncCacheWorker:
    return AsyncCacheWorker(FakeNetwork.serving(*SHELL), WorkerOptions(generation=generation), registry=registry)


@pytest.mark.anyio
async def test_query_status_counts_entries(registry: AsyncBaseRegistry) -> None:
    worker = create_worker(registry)
    await worker.install(Manifest(SHELL, base_url=BASE_URL))
    reply = RecordingReply()

    response = await worker.handle_message({"type": "QueryStatus"}, reply)

    assert response == snapshot({"type": "StatusResponse", "storeName": "pantry-v2", "entryCount": 5})
    assert reply.replies == [response]


@pytest.mark.anyio
async def test_query_status_before_install_does_not_create_store(registry: AsyncBaseRegistry) -> None:
    worker = create_worker(registry)

    response = await worker.handle_message({"type": "QueryStatus"})

    assert response == snapshot({"type": "StatusResponse", "storeName": "pantry-v2", "entryCount": 0})
    assert await registry.names() == []


@pytest.mark.anyio
async def test_force_activate_is_acknowledged(registry: AsyncBaseRegistry) -> None:
    await registry.open("pantry-v1")
    worker = create_worker(registry)
    await worker.install(Manifest(SHELL, base_url=BASE_URL))
    reply = RecordingReply()

    response = await worker.handle_message({"type": "ForceActivate"}, reply)

    assert response == snapshot({"type": "Ack", "generation": "v2"})
    assert reply.replies == [{"type": "Ack", "generation": "v2"}]
    assert worker.generations.serving
    assert await registry.names() == ["pantry-v2"]


@pytest.mark.anyio
async def test_skip_waiting_alias() -> None:
    registry = AsyncInMemoryRegistry()
    worker = create_worker(registry)
    await worker.install(Manifest(SHELL, base_url=BASE_URL))

    response = await worker.handle_message({"type": "SKIP_WAITING"})

    assert response == {"type": "Ack", "generation": "v2"}
    assert worker.generations.serving


@pytest.mark.anyio
async def test_force_activate_before_install_is_still_acknowledged(caplog: pytest.LogCaptureFixture) -> None:
    worker = create_worker(AsyncInMemoryRegistry())

    with caplog.at_level("DEBUG", logger="pantry"):
        response = await worker.handle_message({"type": "ForceActivate"})

    assert response == {"type": "Ack", "generation": "v2"}
    assert not worker.generations.serving
    assert caplog.messages == snapshot(
        [
            "Control message received: ForceActivate",
            "Forcing activation of generation 'v2'",
            "Generation 'v2' cannot be activated while uninstalled",
        ]
    )


@pytest.mark.anyio
async def test_unknown_message_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    worker = create_worker(AsyncInMemoryRegistry())
    reply = RecordingReply()

    with caplog.at_level("INFO", logger="pantry"):
        response = await worker.handle_message({"type": "ClearEverything"}, reply)

    assert response is None
    assert reply.replies == []
    assert caplog.messages == snapshot(["Ignoring unknown control message type: 'ClearEverything'"])


@pytest.mark.anyio
@pytest.mark.parametrize("message", [None, "ForceActivate", 42, {}, {"type": 1}, ["QueryStatus"]])
async def test_malformed_message_is_ignored(message: Any) -> None:
    worker = create_worker(AsyncInMemoryRegistry())
    reply = RecordingReply()

    assert await worker.handle_message(message, reply) is None
    assert reply.replies == []
    assert not worker.generations.serving


@pytest.mark.anyio
async def test_status_follows_the_generation() -> None:
    registry = AsyncInMemoryRegistry()
    old = create_worker(registry, generation="v1")
    await old.install(Manifest(SHELL, base_url=BASE_URL))
    await old.activate()

    new = create_worker(registry, generation="v2")
    await new.install(Manifest(SHELL[:2], base_url=BASE_URL))

    assert await old.status() == {"type": "StatusResponse", "storeName": "pantry-v1", "entryCount": 5}
    assert await new.status() == {"type": "StatusResponse", "storeName": "pantry-v2", "entryCount": 2}

    await new.handle_message({"type": "ForceActivate"})

    assert await old.status() == {"type": "StatusResponse", "storeName": "pantry-v1", "entryCount": 0}
    assert await new.status() == {"type": "StatusResponse", "storeName": "pantry-v2", "entryCount": 2}
