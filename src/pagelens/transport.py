"""Pluggable HTTP transports used for page fetches and link probes."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional
import aiohttp
import structlog

logger = structlog.get_logger()


@dataclass
class TransportResponse:
    """Status, headers and (possibly truncated) body of one GET."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(ABC):
    """Abstract outbound HTTP client."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def get(
        self, url: str, timeout: Optional[float] = None, max_body: Optional[int] = None
    ) -> TransportResponse:
        """
        Issue a GET request.

        Args:
            url: Absolute URL to fetch
            timeout: Total request timeout in seconds, None for the transport default
            max_body: Read at most this many body bytes, None for no cap

        Returns:
            TransportResponse with status, headers and body

        Raises:
            Exception: Whatever the underlying client raises on failure
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


class AiohttpTransport(Transport):
    """Transport backed by an aiohttp client session."""

    def __init__(self, user_agent: str = "pagelens/0.1.0", timeout: float = 30.0):
        self.user_agent = user_agent
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Create session on context enter."""
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent, "Accept": "*/*"},
            timeout=self.timeout,
        )
        return self

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def get(
        self, url: str, timeout: Optional[float] = None, max_body: Optional[int] = None
    ) -> TransportResponse:
        if not self._session:
            raise RuntimeError("AiohttpTransport must be used as async context manager")

        request_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else self.timeout
        async with self._session.get(url, timeout=request_timeout) as response:
            body = await self._read_body(response, max_body)
            logger.debug("transport_get", url=url, status=response.status, size=len(body))
            return TransportResponse(
                status=response.status,
                headers=dict(response.headers),
                body=body,
            )

    async def _read_body(self, response: aiohttp.ClientResponse, max_body: Optional[int]) -> bytes:
        """Read the body up to max_body bytes; the rest is left unread."""
        if max_body is None:
            return await response.read()
        if max_body == 0:
            return b""

        chunks = []
        remaining = max_body
        async for chunk in response.content.iter_chunked(64 * 1024):
            chunks.append(chunk[:remaining])
            remaining -= len(chunks[-1])
            if remaining <= 0:
                break
        return b"".join(chunks)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(aiohttp.ClientError):
    """Raised without touching the network while the circuit is open."""


class CircuitBreakerTransport(Transport):
    """
    Wrap another transport and stop calling it once it keeps failing.

    The circuit opens when at least ``min_requests`` calls were made in the
    current window and the failure ratio reaches ``failure_ratio``. While
    open every call fails fast with CircuitOpenError. After
    ``reset_timeout`` seconds up to ``half_open_max_calls`` trial calls are
    let through; a success closes the circuit again, a failure re-opens it.
    """

    def __init__(
        self,
        inner: Transport,
        min_requests: int = 3,
        failure_ratio: float = 0.6,
        reset_timeout: float = 30.0,
        half_open_max_calls: int = 3,
        window: float = 60.0,
    ):
        self.inner = inner
        self.min_requests = min_requests
        self.failure_ratio = failure_ratio
        self.reset_timeout = reset_timeout
        self.half_open_max_calls = half_open_max_calls
        self.window = window

        self.state = CircuitState.CLOSED
        self.requests = 0
        self.failures = 0
        self._opened_at = 0.0
        self._window_started = time.monotonic()
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

    async def __aenter__(self):
        await self.inner.__aenter__()
        return self

    async def close(self) -> None:
        await self.inner.close()

    async def get(
        self, url: str, timeout: Optional[float] = None, max_body: Optional[int] = None
    ) -> TransportResponse:
        await self._before_call(url)
        try:
            response = await self.inner.get(url, timeout=timeout, max_body=max_body)
        except asyncio.CancelledError:
            raise
        except Exception:
            await self._record(success=False)
            raise
        # 5xx counts against the upstream the same way a transport failure does
        await self._record(success=response.status < 500)
        return response

    async def _before_call(self, url: str) -> None:
        async with self._lock:
            now = time.monotonic()
            if self.state == CircuitState.OPEN:
                if now - self._opened_at < self.reset_timeout:
                    raise CircuitOpenError(f"circuit breaker is open, refusing {url}")
                self._set_state(CircuitState.HALF_OPEN)
                self._half_open_calls = 0

            if self.state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(f"too many requests while half-open, refusing {url}")
                self._half_open_calls += 1
            elif now - self._window_started >= self.window:
                self._reset_counts(now)

    async def _record(self, success: bool) -> None:
        async with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                if success:
                    self._set_state(CircuitState.CLOSED)
                    self._reset_counts(time.monotonic())
                else:
                    self._trip()
                return

            self.requests += 1
            if not success:
                self.failures += 1
            if (
                self.requests >= self.min_requests
                and self.failures / self.requests >= self.failure_ratio
            ):
                self._trip()

    def _trip(self) -> None:
        self._opened_at = time.monotonic()
        self._set_state(CircuitState.OPEN)
        self._reset_counts(self._opened_at)

    def _reset_counts(self, now: float) -> None:
        self.requests = 0
        self.failures = 0
        self._window_started = now

    def _set_state(self, state: CircuitState) -> None:
        if state != self.state:
            logger.info("circuit_breaker_state_changed", from_state=self.state.value, to_state=state.value)
            self.state = state
