"""Tests for transports."""

import asyncio
import pytest
import aiohttp
from aiohttp import test_utils, web
from pagelens.errors import NetworkErrorOther
from pagelens.fetcher import Fetcher
from pagelens.transport import (
    AiohttpTransport,
    CircuitBreakerTransport,
    CircuitOpenError,
    CircuitState,
)

URL = "https://example.com/"


def make_app() -> web.Application:
    async def big(request):
        return web.Response(body=b"x" * 200_000, content_type="text/html")

    async def small(request):
        return web.Response(text="<p>ok</p>", content_type="text/html")

    async def missing(request):
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/big", big)
    app.router.add_get("/small", small)
    app.router.add_get("/missing", missing)
    return app


@pytest.mark.asyncio
class TestAiohttpTransport:
    """Test the aiohttp backed transport against a local server."""

    async def test_get(self):
        async with test_utils.TestServer(make_app()) as server:
            async with AiohttpTransport(user_agent="pagelens-test") as transport:
                response = await transport.get(str(server.make_url("/small")))

        assert response.status == 200
        assert response.body == b"<p>ok</p>"
        assert response.headers["Content-Type"].startswith("text/html")

    async def test_body_cap(self):
        async with test_utils.TestServer(make_app()) as server:
            async with AiohttpTransport() as transport:
                capped = await transport.get(str(server.make_url("/big")), max_body=1000)
                empty = await transport.get(str(server.make_url("/big")), max_body=0)

        assert capped.body == b"x" * 1000
        assert empty.status == 200
        assert empty.body == b""

    async def test_status_passthrough(self):
        async with test_utils.TestServer(make_app()) as server:
            async with AiohttpTransport() as transport:
                response = await transport.get(str(server.make_url("/missing")))

        assert response.status == 404

    async def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            await AiohttpTransport().get(URL)


@pytest.mark.asyncio
class TestCircuitBreakerTransport:
    """Test circuit breaking."""

    async def test_passes_through_when_healthy(self, fake_transport):
        inner = fake_transport({URL: 200})
        breaker = CircuitBreakerTransport(inner)

        for _ in range(5):
            response = await breaker.get(URL)
            assert response.status == 200

        assert breaker.state == CircuitState.CLOSED
        assert len(inner.calls) == 5

    async def test_opens_after_failures(self, fake_transport):
        inner = fake_transport({URL: aiohttp.ClientConnectionError("refused")})
        breaker = CircuitBreakerTransport(inner, min_requests=3, failure_ratio=0.6)

        for _ in range(3):
            with pytest.raises(aiohttp.ClientConnectionError):
                await breaker.get(URL)

        assert breaker.state == CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            await breaker.get(URL)
        assert len(inner.calls) == 3

    async def test_server_errors_count_as_failures(self, fake_transport):
        inner = fake_transport({URL: 503})
        breaker = CircuitBreakerTransport(inner, min_requests=3)

        for _ in range(3):
            response = await breaker.get(URL)
            assert response.status == 503

        assert breaker.state == CircuitState.OPEN

    async def test_not_found_is_not_a_failure(self, fake_transport):
        inner = fake_transport({URL: 404})
        breaker = CircuitBreakerTransport(inner, min_requests=3)

        for _ in range(5):
            await breaker.get(URL)

        assert breaker.state == CircuitState.CLOSED

    async def test_half_open_recovery(self, fake_transport):
        inner = fake_transport({URL: aiohttp.ClientConnectionError("refused")})
        breaker = CircuitBreakerTransport(inner, min_requests=3, reset_timeout=0.05)

        for _ in range(3):
            with pytest.raises(aiohttp.ClientConnectionError):
                await breaker.get(URL)
        assert breaker.state == CircuitState.OPEN

        await asyncio.sleep(0.1)
        inner.routes[URL] = 200

        response = await breaker.get(URL)
        assert response.status == 200
        assert breaker.state == CircuitState.CLOSED

    async def test_half_open_failure_reopens(self, fake_transport):
        inner = fake_transport({URL: aiohttp.ClientConnectionError("refused")})
        breaker = CircuitBreakerTransport(inner, min_requests=3, reset_timeout=0.05)

        for _ in range(3):
            with pytest.raises(aiohttp.ClientConnectionError):
                await breaker.get(URL)

        await asyncio.sleep(0.1)
        with pytest.raises(aiohttp.ClientConnectionError):
            await breaker.get(URL)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.get(URL)

    async def test_context_manager_wraps_inner(self, fake_transport):
        inner = fake_transport({URL: 200})

        async with CircuitBreakerTransport(inner) as breaker:
            await breaker.get(URL)

        assert inner.calls == [URL]

    async def test_open_circuit_is_a_network_error(self, fake_transport):
        inner = fake_transport({URL: 500})
        breaker = CircuitBreakerTransport(inner, min_requests=3)
        fetcher = Fetcher(breaker)

        for _ in range(3):
            await fetcher.fetch(URL)

        with pytest.raises(NetworkErrorOther) as exc_info:
            await fetcher.fetch(URL)
        assert isinstance(exc_info.value.__cause__, CircuitOpenError)
