"""Link classification and concurrent reachability probing."""

import asyncio
from typing import Awaitable, Callable, Optional
from urllib.parse import urldefrag, urljoin, urlparse
import structlog

from pagelens.models import Link, LinkSummary
from pagelens.transport import Transport

logger = structlog.get_logger()

SUPPORTED_SCHEMES = ("http", "https")

# Never probed, always reported as accessible
UNPROBED_PREFIXES = ("#", "?", "mailto:", "tel:")


def _host_key(url: str) -> tuple[str, Optional[int]]:
    parsed = urlparse(url)
    return (parsed.hostname or "", parsed.port)


def is_internal(href: str, base_url: str) -> bool:
    """
    Whether href points at the same host as base_url.

    Fragment, query and root-relative hrefs are internal, as is any href
    without scheme and host. Hosts are compared case-insensitively,
    together with any explicit port. Malformed hrefs are never internal.
    """
    if href.startswith(("#", "?", "/")):
        return True

    try:
        parsed = urlparse(href)
        if not parsed.scheme and not parsed.netloc:
            return True
        return _host_key(href) == _host_key(base_url)
    except ValueError:
        return False


def probe_target(href: str, base_url: str) -> Optional[str]:
    """
    Absolute URL to probe for href, or None when href is never probed.

    Relative references are resolved against base_url. The fragment is
    dropped, since it never reaches the server.

    Raises:
        ValueError: If href cannot be parsed as a URL
    """
    if href.startswith(UNPROBED_PREFIXES):
        return None

    parsed = urlparse(href)
    if not parsed.scheme:
        target = urljoin(base_url, href)
    elif parsed.scheme.lower() not in SUPPORTED_SCHEMES:
        return None
    else:
        target = href

    target = urldefrag(target).url
    _host_key(target)  # raises ValueError on a malformed host or port
    return target


def external_host(href: str) -> str:
    """Host (and port) of href, lowercased, without credentials."""
    try:
        netloc = urlparse(href).netloc
    except ValueError:
        return ""
    return netloc.rpartition("@")[2].lower()


class AccessibilityCache:
    """
    Per-run memo of probe results keyed by resolved URL.

    Each URL maps to a single probe task, so concurrent lookups for the
    same URL share one network call.
    """

    def __init__(self):
        self._entries: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    async def get(self, url: str, probe: Callable[[str], Awaitable[bool]]) -> bool:
        async with self._lock:
            task = self._entries.get(url)
            if task is None:
                task = asyncio.create_task(probe(url))
                self._entries[url] = task
        return await asyncio.shield(task)

    async def cancel_pending(self) -> int:
        """Cancel probes still in flight and return how many there were."""
        pending = [task for task in self._entries.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)


class LinkProber:
    """Checks links on one page with bounded parallelism."""

    def __init__(
        self,
        transport: Transport,
        timeout: float = 10.0,
        max_concurrency: int = 10,
        max_links: Optional[int] = None,
    ):
        """
        Initialize prober.

        Args:
            transport: Transport used for probe requests
            timeout: Per-probe timeout in seconds
            max_concurrency: Max probes in flight at once
            max_links: Probe only the first max_links links, None for all
        """
        self.transport = transport
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.max_links = max_links
        self.cache = AccessibilityCache()

    async def probe(self, url: str) -> bool:
        """GET url and report whether it answered with 2xx or 3xx."""
        try:
            response = await asyncio.wait_for(
                self.transport.get(url, timeout=self.timeout, max_body=0),
                self.timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("link_probe_failed", url=url, error=str(e) or type(e).__name__)
            return False

        accessible = 200 <= response.status < 400
        logger.debug("link_probed", url=url, status=response.status, accessible=accessible)
        return accessible

    async def is_accessible(self, href: str, base_url: str) -> bool:
        try:
            target = probe_target(href, base_url)
        except ValueError:
            logger.debug("malformed_link", href=href)
            return False

        if target is None:
            return True
        return await self.cache.get(target, self.probe)

    async def summarize(
        self,
        links: list[Link],
        base_url: str,
        timeout: Optional[float] = None,
    ) -> LinkSummary:
        """
        Probe links concurrently and aggregate the outcome.

        Each link's ``is_accessible`` is set once its check finishes. Links
        still being probed when timeout expires are dropped from the
        summary; whatever finished is returned.

        Args:
            links: Links in document order, as produced by the analyzer
            base_url: URL of the page the links were found on
            timeout: Overall budget in seconds, None to wait for every probe

        Returns:
            LinkSummary
        """
        summary = LinkSummary()
        broken: list[tuple[int, str]] = []
        hosts: dict[str, int] = {}
        semaphore = asyncio.Semaphore(self.max_concurrency)
        lock = asyncio.Lock()

        async def worker(index: int, link: Link) -> None:
            if self.max_links is not None and index >= self.max_links:
                accessible = True
            else:
                async with semaphore:
                    accessible = await self.is_accessible(link.url, base_url)

            async with lock:
                link.is_accessible = accessible
                if link.is_internal:
                    summary.internal += 1
                else:
                    summary.external += 1
                    host = external_host(link.url)
                    if host and (host not in hosts or index < hosts[host]):
                        hosts[host] = index
                if not accessible:
                    summary.inaccessible += 1
                    broken.append((index, link.url))

        tasks = [asyncio.create_task(worker(index, link)) for index, link in enumerate(links)]
        try:
            if tasks:
                done, pending = await asyncio.wait(tasks, timeout=timeout)
                if pending:
                    logger.warning(
                        "link_checks_abandoned",
                        url=base_url,
                        pending=len(pending),
                        completed=len(done),
                    )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.cache.cancel_pending()

        # workers finish out of order; report in document order
        summary.broken_links = [url for _, url in sorted(broken)]
        summary.external_hosts = sorted(hosts, key=hosts.__getitem__)

        logger.info(
            "links_checked",
            url=base_url,
            internal=summary.internal,
            external=summary.external,
            inaccessible=summary.inaccessible,
            probes=len(self.cache),
        )
        return summary
