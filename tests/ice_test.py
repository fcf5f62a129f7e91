"""IceServerProvider tests."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from ice.provider import IceServerProvider

URL = 'https://turn.example.test/api/v1/turn/credentials'
TURN = [
    {
        'urls': 'turn:turn.example.test:443',
        'username': 'user',
        'credential': 'secret',
    },
]
STUN = [
    {'urls': 'stun:stun.l.google.com:19302'},
    {'urls': 'stun:stun1.l.google.com:19302'},
]


class CredentialEndpoint:
    """Mock credential service whose answer can be changed mid-test."""

    def __init__(self, status: int = 200, **body) -> None:
        self.status = status
        self.body = body
        self.calls = 0
        self.last_request: httpx.Request | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.last_request = request
        return httpx.Response(self.status, **self.body)


def _provider(endpoint, refresh_interval=3600.0) -> IceServerProvider:
    return IceServerProvider(
        url=URL,
        api_key='key123',
        refresh_interval=refresh_interval,
        transport=httpx.MockTransport(endpoint),
    )


@pytest.mark.asyncio
async def test_unconfigured_serves_stun_only() -> None:
    provider = IceServerProvider(url='')
    await provider.start()
    assert not provider.configured
    assert not provider.stale
    assert await provider.get_ice_servers() == STUN
    assert not await provider.refresh()


@pytest.mark.asyncio
async def test_fetch_on_start() -> None:
    endpoint = CredentialEndpoint(json=TURN)
    provider = _provider(endpoint)
    await provider.start()

    assert endpoint.calls == 1
    assert endpoint.last_request.url.params['apiKey'] == 'key123'
    assert await provider.get_ice_servers() == STUN + TURN
    # Fresh cache, no refetch
    assert endpoint.calls == 1


@pytest.mark.asyncio
async def test_stale_cache_is_refetched() -> None:
    endpoint = CredentialEndpoint(json=TURN)
    provider = _provider(endpoint, refresh_interval=-1)
    await provider.start()
    assert provider.stale

    await provider.get_ice_servers()
    assert endpoint.calls == 2


@pytest.mark.asyncio
async def test_failure_keeps_previous_cache() -> None:
    endpoint = CredentialEndpoint(json=TURN)
    provider = _provider(endpoint, refresh_interval=-1)
    await provider.start()

    endpoint.status = 503
    assert not await provider.refresh()
    assert await provider.get_ice_servers() == STUN + TURN

    endpoint.status = 200
    endpoint.body = {'json': {'not': 'a list'}}
    assert not await provider.refresh()
    assert await provider.get_ice_servers() == STUN + TURN


@pytest.mark.asyncio
async def test_failure_before_first_fetch() -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    provider = _provider(unreachable)
    await provider.start()
    assert provider.stale
    assert await provider.get_ice_servers() == STUN


@pytest.mark.asyncio
async def test_malformed_json() -> None:
    endpoint = CredentialEndpoint(content=b'<html>')
    provider = _provider(endpoint)
    assert not await provider.refresh()
    assert await provider.get_ice_servers() == STUN


@pytest.mark.asyncio
async def test_concurrent_callers_share_failed_fetch() -> None:
    calls = 0

    async def slow_outage(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.2)
        return httpx.Response(500)

    provider = _provider(slow_outage)
    results = await asyncio.gather(
        *(provider.get_ice_servers() for _ in range(5)),
    )

    assert calls == 1
    assert all(servers == STUN for servers in results)
    # A later caller still retries the outage
    await provider.get_ice_servers()
    assert calls == 2
