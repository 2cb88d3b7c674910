"""Exceptions raised by pagelens."""

from typing import Optional

from pagelens.models import AnalysisResult


class AnalysisError(Exception):
    """Base class for every error an analysis can end with."""


class InvalidURL(AnalysisError):
    """The URL handed to the analyzer is not something we can fetch."""


class EmptyContent(AnalysisError):
    """The fetched document has no content."""


class ContentTooLarge(AnalysisError):
    """The document is larger than the configured content cap."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"HTML content too large ({size} bytes, max {limit} bytes)")
        self.size = size
        self.limit = limit


class ParseError(AnalysisError):
    """The HTML parser rejected the document."""


class FetchError(AnalysisError):
    """
    A transport-level failure while fetching the page.

    Subclasses are chosen once, at the fetch boundary, and carry the URL
    that was being fetched.
    """

    reason = "network error"

    def __init__(self, url: str, detail: Optional[str] = None):
        message = f"{self.reason} while accessing {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.url = url
        self.detail = detail


class FetchTimeout(FetchError):
    reason = "connection timeout exceeded"


class FetchCanceled(FetchError):
    reason = "request was canceled"


class DNSNotFound(FetchError):
    reason = "domain not found"


class ConnectionRefused(FetchError):
    reason = "connection refused by server"


class NetworkUnreachable(FetchError):
    reason = "network is unreachable"


class TLSError(FetchError):
    reason = "SSL/TLS error"


class NetworkErrorOther(FetchError):
    reason = "network error"


class HTTPStatusError(AnalysisError):
    """
    The page answered with a non-2xx status.

    Carries the partial result (status code and elapsed time) so callers
    can still record what happened.
    """

    def __init__(self, status_code: int, message: str, result: Optional[AnalysisResult] = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.result = result
