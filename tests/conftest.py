"""Pytest configuration and fixtures."""

import asyncio
from typing import Optional
import pytest
import structlog

from pagelens.transport import Transport, TransportResponse


class FakeTransport(Transport):
    """
    In-memory transport that records every URL it is asked for.

    Routes map a URL to a status code, a TransportResponse or an exception
    to raise. Unknown URLs answer with ``default``.
    """

    def __init__(
        self,
        routes: Optional[dict] = None,
        default=404,
        delays: Optional[dict] = None,
    ):
        self.routes = routes or {}
        self.default = default
        self.delays = delays or {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def count(self, url: str) -> int:
        return self.calls.count(url)

    async def get(self, url, timeout=None, max_body=None):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(url, 0)
            if delay:
                await asyncio.sleep(delay)

            route = self.routes.get(url, self.default)
            if isinstance(route, BaseException):
                raise route
            if isinstance(route, int):
                route = TransportResponse(status=route)

            body = route.body if max_body is None else route.body[:max_body]
            return TransportResponse(status=route.status, headers=route.headers, body=body)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def sample_html():
    """Sample HTML for testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>  Test Page  </title>
        <meta name="description" content="A test page">
    </head>
    <body>
        <h1>Welcome</h1>
        <h2>First</h2>
        <h2>Second</h2>
        <p>This is a test page with some content.</p>
        <a href="/page1">Page 1</a>
        <a href="page2">Page 2</a>
        <a href="#top">Top</a>
        <a href="https://external.com/about">External</a>
        <a href="">Empty</a>
        <a>No href</a>
    </body>
    </html>
    """


@pytest.fixture
def sample_url():
    """Sample base URL for testing."""
    return "https://example.com/"


@pytest.fixture
def five_link_html():
    """Page with the five classic link kinds."""
    return """
    <!DOCTYPE html>
    <html>
    <head><title>Test Page</title></head>
    <body>
        <h1>Test Page</h1>
        <a href="/internal-page">Internal Link</a>
        <a href="relative-page">Relative Link</a>
        <a href="#fragment">Fragment Link</a>
        <a href="mailto:test@example.com">Email Link</a>
        <a href="tel:+1234567890">Phone Link</a>
    </body>
    </html>
    """


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
