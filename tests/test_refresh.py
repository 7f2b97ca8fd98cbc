import asyncio

import httpx
import pytest

from config_client.common.exceptions import (
    ConfigError,
    FetchError,
    FetchErrorKind,
    ValidationFailure,
)
from config_client.services.config.properties import CLIENT_APP_SCHEMA
from config_client.services.config.refresh import RefreshCoordinator
from config_client.services.config.store import ConfigStore


def make_coordinator(server, store=None):
    return RefreshCoordinator(
        fetcher=server.fetcher(),
        schema=CLIENT_APP_SCHEMA,
        store=store or ConfigStore(),
        app_name="client-app",
        profile="default",
    )


@pytest.mark.asyncio
async def test_bootstrap_installs_first_snapshot(server):
    coordinator = make_coordinator(server)

    snapshot = await coordinator.bootstrap()

    assert snapshot == {"name": "svc-a", "number": 42, "enabled": True, "tags": ("a", "b")}
    assert snapshot.version == "v1"
    assert coordinator.store.current() is snapshot
    assert coordinator.store.generation == 1


@pytest.mark.asyncio
async def test_bootstrap_fails_on_violations_and_installs_nothing(server):
    server.publish(**{"client-app.number": 150, "client-app.name": ""})
    coordinator = make_coordinator(server)
    notified = []
    coordinator.store.subscribe(notified.append, weak=False)

    with pytest.raises(ValidationFailure) as exc_info:
        await coordinator.bootstrap()

    assert [v.key for v in exc_info.value.violations] == ["name", "number"]
    assert coordinator.store.current() is None
    assert not coordinator.bootstrapped
    assert notified == []


@pytest.mark.asyncio
async def test_bootstrap_propagates_fetch_errors(server):
    server.status_code = 404
    coordinator = make_coordinator(server)

    with pytest.raises(FetchError) as exc_info:
        await coordinator.bootstrap()

    assert exc_info.value.kind is FetchErrorKind.NOT_FOUND
    assert not coordinator.store.initialized


@pytest.mark.asyncio
async def test_bootstrap_twice_is_an_error(server):
    coordinator = make_coordinator(server)
    await coordinator.bootstrap()

    with pytest.raises(ConfigError):
        await coordinator.bootstrap()


@pytest.mark.asyncio
async def test_refresh_before_bootstrap_is_an_error(server):
    with pytest.raises(ConfigError):
        await make_coordinator(server).refresh()


@pytest.mark.asyncio
async def test_refresh_applies_new_values_and_notifies_once(server):
    coordinator = make_coordinator(server)
    await coordinator.bootstrap()
    notified = []
    coordinator.store.subscribe(notified.append, weak=False)

    server.publish(**{"client-app.number": "43"})
    result = await coordinator.refresh()

    assert result.applied
    assert result.changed == ["number"]
    assert coordinator.store.current()["number"] == 43
    assert notified == [result.snapshot]
    assert notified[0] is coordinator.store.current()


@pytest.mark.asyncio
async def test_refresh_with_violations_keeps_previous_snapshot(server):
    coordinator = make_coordinator(server)
    before = await coordinator.bootstrap()
    notified = []
    coordinator.store.subscribe(notified.append, weak=False)

    server.publish(**{
        "client-app.tags[2]": "c", "client-app.tags[3]": "d",
        "client-app.tags[4]": "e", "client-app.tags[5]": "f",
    })
    result = await coordinator.refresh()

    assert not result.applied
    assert [v.key for v in result.violations] == ["tags"]
    assert coordinator.store.current() is before
    assert coordinator.store.generation == 1
    assert notified == []


@pytest.mark.asyncio
async def test_refresh_fetch_error_keeps_previous_snapshot(server):
    coordinator = make_coordinator(server)
    before = await coordinator.bootstrap()

    server.error = httpx.ConnectError("connection refused")
    with pytest.raises(FetchError) as exc_info:
        await coordinator.refresh()

    assert exc_info.value.kind is FetchErrorKind.UNREACHABLE
    assert coordinator.store.current() is before


@pytest.mark.asyncio
async def test_refresh_cancelled_before_swap_has_no_effect(server):
    coordinator = make_coordinator(server)
    before = await coordinator.bootstrap()

    server.gate = asyncio.Event()
    server.publish(**{"client-app.number": 99})
    task = asyncio.create_task(coordinator.refresh())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert coordinator.store.current() is before
    assert coordinator.store.generation == 1


@pytest.mark.asyncio
async def test_concurrent_refreshes_are_serialised(server):
    coordinator = make_coordinator(server)
    await coordinator.bootstrap()
    installed = []
    coordinator.store.subscribe(lambda s: installed.append(s.version), weak=False)

    server.publish(**{"client-app.number": 50})
    first, second = await asyncio.gather(coordinator.refresh(), coordinator.refresh())

    assert first.applied and second.applied
    assert installed == ["v2", "v2"]
    assert second.changed == []
    assert coordinator.store.generation == 3
