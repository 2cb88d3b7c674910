"""HTTP fetcher with transport error classification."""

import asyncio
import errno
import socket
import ssl
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional
import aiohttp
import structlog

from pagelens.errors import (
    ConnectionRefused,
    DNSNotFound,
    FetchCanceled,
    FetchError,
    FetchTimeout,
    NetworkErrorOther,
    NetworkUnreachable,
    TLSError,
)
from pagelens.models import MAX_CONTENT_SIZE
from pagelens.transport import Transport

logger = structlog.get_logger()

STATUS_MESSAGES = {
    400: "bad request",
    401: "authentication required",
    403: "website blocked access (likely bot protection)",
    404: "page not found",
    429: "rate limit exceeded",
    500: "server error",
    502: "server error",
    503: "server error",
    504: "server error",
}

DNS_MESSAGES = (
    "no such host",
    "name resolution",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
)

# aiohttp connector errors always print "ssl:default", so a bare "ssl" says nothing
TLS_MESSAGES = (
    "tls",
    "certificate",
    "ssl error",
    "[ssl: ",
)


@dataclass
class FetchResult:
    """Body and status of a fetched page."""

    body: bytes
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def http_status_message(status_code: int) -> str:
    """Human readable reason for a non-2xx status code."""
    return STATUS_MESSAGES.get(status_code, f"HTTP {status_code}")


def _error_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield exc and everything it wraps, each once."""
    seen = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(
            [
                current.__context__,
                current.__cause__,
                getattr(current, "os_error", None),
            ]
        )


def classify_error(exc: BaseException, url: str) -> FetchError:
    """
    Map a transport failure to a FetchError subclass.

    The whole exception chain is inspected, type first and message second,
    because aiohttp wraps OS and SSL errors and timeouts surface under
    several different types.

    Args:
        exc: Exception raised by the transport
        url: URL that was being fetched

    Returns:
        A classified FetchError carrying the URL
    """
    if isinstance(exc, FetchError):
        return exc

    chain = list(_error_chain(exc))
    messages = " | ".join(str(e) for e in chain if str(e)).lower()

    if "deadline exceeded" in messages:
        return FetchTimeout(url)
    if "canceled" in messages or "cancelled" in messages:
        return FetchCanceled(url)

    for error in chain:
        if isinstance(error, (TimeoutError, asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
            return FetchTimeout(url)
        if isinstance(error, (ssl.SSLError, ssl.CertificateError, aiohttp.ClientSSLError)):
            return TLSError(url, str(error) or None)
        if isinstance(error, socket.gaierror):
            return DNSNotFound(url)
        if isinstance(error, ConnectionRefusedError):
            return ConnectionRefused(url)
        if isinstance(error, OSError) and error.errno == errno.ENETUNREACH:
            return NetworkUnreachable(url)

    if any(message in messages for message in DNS_MESSAGES):
        return DNSNotFound(url)
    if "connection refused" in messages:
        return ConnectionRefused(url)
    if "network is unreachable" in messages:
        return NetworkUnreachable(url)
    if "timeout" in messages or "timed out" in messages:
        return FetchTimeout(url)
    if any(message in messages for message in TLS_MESSAGES):
        return TLSError(url)
    return NetworkErrorOther(url, str(exc) or type(exc).__name__)


class Fetcher:
    """Fetches pages through an injected transport."""

    def __init__(
        self,
        transport: Transport,
        timeout: float = 30.0,
        max_content_size: int = MAX_CONTENT_SIZE,
    ):
        self.transport = transport
        self.timeout = timeout
        self.max_content_size = max_content_size

    async def fetch(self, url: str, timeout: Optional[float] = None) -> FetchResult:
        """
        Fetch a URL.

        Non-2xx responses are returned, not raised; the caller decides what
        a bad status means.

        Args:
            url: The URL to fetch
            timeout: Override for the configured timeout in seconds

        Returns:
            FetchResult with the body capped at max_content_size

        Raises:
            FetchError: Classified transport failure
        """
        timeout = self.timeout if timeout is None else timeout

        try:
            response = await asyncio.wait_for(
                self.transport.get(url, timeout=timeout, max_body=self.max_content_size),
                timeout,
            )
        except asyncio.CancelledError:
            logger.warning("fetch_cancelled", url=url)
            raise
        except FetchError:
            raise
        except Exception as e:
            error = classify_error(e, url)
            logger.error("fetch_error", url=url, error=str(error), kind=type(error).__name__)
            raise error from e

        body = response.body[: self.max_content_size]
        logger.info("fetched_url", url=url, status=response.status, size=len(body))
        return FetchResult(body=body, status_code=response.status, headers=response.headers)
