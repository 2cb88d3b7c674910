"""
pagelens - single page structure and link analysis.

Fetch a page, report its HTML version, title, headings, login forms and
the health of every link on it.
"""

from pagelens.service import PageAnalyzer
from pagelens.analyzer import HTMLAnalyzer
from pagelens.links import LinkProber, is_internal
from pagelens.models import AnalysisResult, AnalyzerConfig, Link, LinkSummary, ParsedHTML
from pagelens.transport import AiohttpTransport, CircuitBreakerTransport, Transport, TransportResponse

__version__ = "0.1.0"
__all__ = [
    "PageAnalyzer",
    "HTMLAnalyzer",
    "LinkProber",
    "is_internal",
    "AnalysisResult",
    "AnalyzerConfig",
    "Link",
    "LinkSummary",
    "ParsedHTML",
    "AiohttpTransport",
    "CircuitBreakerTransport",
    "Transport",
    "TransportResponse",
]
