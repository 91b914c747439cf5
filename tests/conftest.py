"""
Shared fixtures: in-process fake mirrors behind httpx.MockTransport.
"""

import asyncio
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from radiodir.datasource import RadioBrowserSource
from radiodir.services import DirectoryClient, Provider
from radiodir.settings import Settings

PROBE_PATH = "/json/stations/topvote/1"


def make_providers(count: int) -> list[Provider]:
    return [
        Provider(name=f"Mirror {i}", base_url=f"https://m{i}.test")
        for i in range(1, count + 1)
    ]


def make_stations(prefix: str, count: int, start: int = 0) -> list[dict[str, Any]]:
    return [
        {"stationuuid": f"{prefix}{i}", "name": f"Station {prefix}{i}"}
        for i in range(start, start + count)
    ]


class FakeMirrors:
    """
    Serves canned JSON per path for every mirror host.

    Hosts listed in `down` refuse connections; `delays` slows a host down.
    Route values may be a callable taking the request.
    """

    def __init__(self):
        self.routes: dict[str, Any] = {PROBE_PATH: [{"stationuuid": "probe"}]}
        self.down: set[str] = set()
        self.status_errors: dict[str, int] = {}
        self.delays: dict[str, float] = {}
        self.requests: list[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        delay = self.delays.get(host, 0)
        if delay:
            await asyncio.sleep(delay)

        if host in self.down:
            raise httpx.ConnectError(f"{host} is down", request=request)
        if host in self.status_errors:
            return httpx.Response(self.status_errors[host], text="mirror error")

        body = self.routes.get(request.url.path)
        if callable(body):
            body = body(request)
        if body is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(
        self, path: str, predicate: Callable[[httpx.Request], bool] | None = None
    ) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.path == path and (predicate is None or predicate(r))
        ]

    def hosts_for(self, path: str) -> list[str]:
        return [r.url.host for r in self.requests_to(path)]


@pytest.fixture
def settings():
    return Settings(debug=True)


@pytest.fixture
def mirrors():
    return FakeMirrors()


@pytest_asyncio.fixture
async def client(settings, mirrors):
    """Client over three fake mirrors, initialized with Mirror 1 current."""
    client = DirectoryClient(
        settings, providers=make_providers(3), transport=mirrors.transport()
    )
    await client.wait_for_initialization()
    await client.prober.wait_pending()
    assert await client.switch_to_provider("Mirror 1")
    mirrors.requests.clear()
    yield client
    await client.close()


@pytest.fixture
def source(client):
    return RadioBrowserSource(client)
