"""Analysis orchestration: validate, fetch, parse, check links."""

import time
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse
import structlog

from pagelens.analyzer import HTMLAnalyzer
from pagelens.errors import AnalysisError, HTTPStatusError, InvalidURL
from pagelens.fetcher import Fetcher, http_status_message
from pagelens.links import SUPPORTED_SCHEMES, LinkProber
from pagelens.models import AnalysisReport, AnalysisResult, AnalysisStage, AnalyzerConfig
from pagelens.transport import AiohttpTransport, Transport

logger = structlog.get_logger()


class PageAnalyzer:
    """Analyzes a single web page."""

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize analyzer with configuration.

        Args:
            config: Analyzer configuration, uses defaults if None
            transport: Transport for the page fetch and link probes. If None
                an AiohttpTransport is opened for each analysis
        """
        self.config = config or AnalyzerConfig()
        self.transport = transport
        self.html_analyzer = HTMLAnalyzer(
            max_depth=self.config.max_html_depth,
            max_content_size=self.config.max_content_size,
        )

    def validate_url(self, url: str) -> None:
        """
        Check that url is something we are willing to fetch.

        Raises:
            InvalidURL: With a message describing the problem
        """
        if not url:
            raise InvalidURL("URL cannot be empty")

        if len(url) > self.config.max_url_length:
            raise InvalidURL(f"URL too long (max {self.config.max_url_length} characters)")

        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
            parsed.port  # raises ValueError for a bad port
        except ValueError as e:
            raise InvalidURL(f"invalid URL format: {e}") from e

        if not parsed.scheme or not parsed.netloc:
            raise InvalidURL("URL must include scheme and host")

        if parsed.scheme not in SUPPORTED_SCHEMES:
            raise InvalidURL(f"only {', '.join(SUPPORTED_SCHEMES)} schemes are supported")

        if not hostname or ".." in hostname:
            raise InvalidURL("invalid hostname format")

    async def analyze_url(self, url: str, timeout: Optional[float] = None) -> AnalysisResult:
        """
        Fetch url and analyze it.

        Args:
            url: Page to analyze
            timeout: Overall budget in seconds. The page fetch gets the
                shorter of this and the configured request timeout; link
                checks still running when it runs out are abandoned and
                the partial link summary is returned.

        Returns:
            AnalysisResult

        Raises:
            InvalidURL: If url fails validation
            FetchError: If the page could not be fetched
            HTTPStatusError: If the page answered with a non-2xx status;
                ``result`` holds the status code and elapsed time
            EmptyContent, ContentTooLarge, ParseError: If the body cannot be analyzed
        """
        if self.transport is not None:
            return await self._analyze(url, self.transport, timeout)

        async with AiohttpTransport(
            user_agent=self.config.user_agent,
            timeout=self.config.request_timeout,
        ) as transport:
            return await self._analyze(url, transport, timeout)

    async def report(self, url: str, timeout: Optional[float] = None) -> AnalysisReport:
        """
        Analyze url and wrap the outcome, success or failure, in a report.

        Only AnalysisError is turned into a failed report; anything else
        propagates.
        """
        try:
            result = await self.analyze_url(url, timeout=timeout)
        except HTTPStatusError as e:
            return AnalysisReport(
                url=url, status="failed", error=str(e), error_kind=type(e).__name__, result=e.result
            )
        except AnalysisError as e:
            return AnalysisReport(url=url, status="failed", error=str(e), error_kind=type(e).__name__)

        return AnalysisReport(url=url, result=result)

    async def _analyze(
        self, url: str, transport: Transport, timeout: Optional[float]
    ) -> AnalysisResult:
        start = time.monotonic()
        deadline = start + timeout if timeout is not None else None
        log = logger.bind(url=url)
        stage = AnalysisStage.VALIDATING

        def remaining() -> Optional[float]:
            if deadline is None:
                return None
            return max(0.0, deadline - time.monotonic())

        def advance(next_stage: AnalysisStage) -> AnalysisStage:
            log.debug("analysis_stage", stage=next_stage.value)
            return next_stage

        log.info("analysis_started")
        try:
            self.validate_url(url)

            stage = advance(AnalysisStage.FETCHING)
            fetch_timeout = self.config.request_timeout
            if deadline is not None:
                fetch_timeout = min(fetch_timeout, remaining())
            fetcher = Fetcher(
                transport,
                timeout=self.config.request_timeout,
                max_content_size=self.config.max_content_size,
            )
            fetched = await fetcher.fetch(url, timeout=fetch_timeout)

            if not fetched.ok:
                partial = AnalysisResult(
                    status_code=fetched.status_code,
                    load_time=timedelta(seconds=time.monotonic() - start),
                )
                raise HTTPStatusError(
                    fetched.status_code,
                    http_status_message(fetched.status_code),
                    result=partial,
                )

            stage = advance(AnalysisStage.PARSING)
            parsed = self.html_analyzer.parse(fetched.body, url)

            stage = advance(AnalysisStage.CLASSIFYING_LINKS)
            prober = LinkProber(
                transport,
                timeout=self.config.link_check_timeout,
                max_concurrency=self.config.max_concurrent_link_checks,
                max_links=self.config.max_links_to_check,
            )
            link_summary = await prober.summarize(parsed.links, url, timeout=remaining())

        except AnalysisError as e:
            log.error(
                "analysis_failed",
                stage=stage.value,
                error=str(e),
                kind=type(e).__name__,
            )
            advance(AnalysisStage.FAILED)
            raise

        result = AnalysisResult(
            html_version=parsed.html_version,
            title=parsed.title,
            headings=parsed.headings,
            links=link_summary,
            has_login_form=parsed.has_login_form,
            load_time=timedelta(seconds=time.monotonic() - start),
            content_length=parsed.content_length,
            status_code=fetched.status_code,
        )
        advance(AnalysisStage.DONE)

        log.info(
            "analysis_completed",
            status=result.status_code,
            version=result.html_version,
            links=result.links.total,
            inaccessible=result.links.inaccessible,
            load_time=result.load_time.total_seconds(),
        )
        return result
