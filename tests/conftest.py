"""Shared fixtures: a demo schema and an in-memory config server."""

import asyncio

import httpx
import pytest

from config_client.common.logging_setup import client_loggers
from config_client.services.config.schema import (
    FieldKind,
    FieldSpec,
    Schema,
    not_empty,
    size,
    value_range,
)
from config_client.services.config.sync import RemoteFetcher

SERVER_URL = "http://config-server.test"


def environment_body(properties: dict, version: str | None = "v1", name: str = "client-app") -> dict:
    """Environment document as returned by the config server"""
    return {
        "name": name,
        "profiles": ["default"],
        "label": None,
        "version": version,
        "state": None,
        "propertySources": [
            {"name": f"git:{name}.yml", "source": dict(properties)},
        ],
    }


class FakeConfigServer:
    """MockTransport handler serving whatever properties it currently holds"""

    def __init__(self, properties: dict | None = None):
        self.properties = dict(properties or {})
        self.version = 1
        self.status_code = 200
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.requests: list[httpx.Request] = []

    def publish(self, **updates) -> None:
        """Change properties the way a commit to the config repo would"""
        self.properties.update(updates)
        self.version += 1

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "nope"})
        return httpx.Response(
            200,
            json=environment_body(self.properties, version=f"v{self.version}"),
        )

    def fetcher(self, timeout_s: float = 5.0) -> RemoteFetcher:
        return RemoteFetcher(
            SERVER_URL,
            timeout_s=timeout_s,
            transport=httpx.MockTransport(self),
        )


@pytest.fixture(autouse=True)
def capture_client_logs(caplog):
    """Client loggers do not propagate; hand their records to caplog directly"""
    loggers = client_loggers()
    for logger in loggers:
        logger.addHandler(caplog.handler)
    yield
    for logger in loggers:
        logger.removeHandler(caplog.handler)


@pytest.fixture
def demo_schema() -> Schema:
    return Schema([
        FieldSpec("name", FieldKind.STRING, [not_empty()]),
        FieldSpec("number", FieldKind.INTEGER, [value_range(0, 100)]),
        FieldSpec("enabled", FieldKind.BOOLEAN),
        FieldSpec("tags", FieldKind.STRING_LIST, [size(0, 5)]),
    ])


@pytest.fixture
def valid_raw() -> dict:
    return {"name": "svc-a", "number": "42", "enabled": "true", "tags": ["a", "b"]}


@pytest.fixture
def server() -> FakeConfigServer:
    return FakeConfigServer({
        "client-app.name": "svc-a",
        "client-app.number": 42,
        "client-app.enabled": True,
        "client-app.tags[0]": "a",
        "client-app.tags[1]": "b",
    })
