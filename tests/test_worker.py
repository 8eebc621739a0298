import pytest
from inline_snapshot import snapshot

from pantry import (
    Active,
    AsyncCacheWorker,
    AsyncInMemoryRegistry,
    AsyncSqliteRegistry,
    Installed,
    Manifest,
    Request,
    Uninstalled,
    WorkerOptions,
)
from tests.conftest import BASE_URL, SHELL, FakeNetwork


def test_worker_logs_its_generation(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("INFO", logger="pantry"):
        AsyncCacheWorker(FakeNetwork(), WorkerOptions(generation="2024.06.1"), registry=AsyncInMemoryRegistry())

    assert caplog.messages == snapshot(["Cache worker for generation '2024.06.1' loaded"])


def test_worker_defaults_to_sqlite_registry() -> None:
    worker = AsyncCacheWorker(FakeNetwork(), WorkerOptions(generation="v1"))

    assert isinstance(worker.registry, AsyncSqliteRegistry)


@pytest.mark.anyio
async def test_deploy_flow(tmp_path) -> None:
    """Two deploys sharing one database: the second replaces the first."""
    database_path = tmp_path / "pantry_cache.db"

    v1 = AsyncCacheWorker(
        FakeNetwork.serving(*SHELL),
        WorkerOptions(generation="v1"),
        registry=AsyncSqliteRegistry(database_path=database_path),
    )
    assert isinstance(v1.state, Uninstalled)
    await v1.install(Manifest(SHELL, base_url=BASE_URL))
    assert isinstance(v1.state, Installed)
    await v1.activate()
    assert isinstance(v1.state, Active)
    await v1.aclose()

    network = FakeNetwork.serving(*SHELL)
    v2 = AsyncCacheWorker(
        network,
        WorkerOptions(generation="v2"),
        registry=AsyncSqliteRegistry(database_path=database_path),
    )
    try:
        await v2.install(Manifest(SHELL, base_url=BASE_URL))
        assert sorted(await v2.registry.names()) == ["pantry-v1", "pantry-v2"]

        await v2.handle_message({"type": "ForceActivate"})
        assert await v2.registry.names() == ["pantry-v2"]

        network.calls.clear()
        async with v2:
            response = await v2.handle_request(Request("GET", "https://tasks.example.com/manifest.json"))
        assert await response.aread() == b"body of /manifest.json"
        assert network.calls == []
        assert await v2.status() == {"type": "StatusResponse", "storeName": "pantry-v2", "entryCount": 5}
    finally:
        await v2.aclose()
