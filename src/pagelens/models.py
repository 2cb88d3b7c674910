"""Data models for pagelens."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

MAX_CONTENT_SIZE = 10 * 1024 * 1024


class AnalysisStage(str, Enum):
    """Stages an analysis moves through."""

    VALIDATING = "validating"
    FETCHING = "fetching"
    PARSING = "parsing"
    CLASSIFYING_LINKS = "classifying_links"
    DONE = "done"
    FAILED = "failed"


class Link(BaseModel):
    """A hyperlink discovered on the analyzed page."""

    url: str
    is_internal: bool
    is_accessible: bool = True


class LinkSummary(BaseModel):
    """Aggregated link analysis for one page."""

    internal: int = 0
    external: int = 0
    inaccessible: int = 0
    broken_links: list[str] = Field(default_factory=list)
    external_hosts: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.internal + self.external


class ParsedHTML(BaseModel):
    """Everything the HTML analyzer extracts from a document."""

    html_version: str
    title: str = ""
    headings: dict[str, int] = Field(default_factory=dict)
    links: list[Link] = Field(default_factory=list)
    has_login_form: bool = False
    content_length: int = 0


class AnalysisResult(BaseModel):
    """Result of analyzing a single URL."""

    model_config = ConfigDict(frozen=True)

    html_version: str = ""
    title: str = ""
    headings: dict[str, int] = Field(default_factory=dict)
    links: LinkSummary = Field(default_factory=LinkSummary)
    has_login_form: bool = False
    load_time: timedelta = timedelta(0)
    content_length: int = 0
    status_code: int = 0


class AnalysisReport(BaseModel):
    """Outcome of analyzing one URL, successful or not."""

    url: str
    status: str = "completed"
    error: Optional[str] = None
    error_kind: Optional[str] = None
    result: Optional[AnalysisResult] = None
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class AnalyzerConfig(BaseModel):
    """Configuration for analyzer behavior."""

    request_timeout: float = Field(default=30.0, gt=0, description="Page fetch timeout in seconds")
    link_check_timeout: float = Field(default=10.0, gt=0, description="Per-link probe timeout in seconds")
    max_concurrent_link_checks: int = Field(
        default=10, ge=1, le=100, description="Max concurrent link probes"
    )
    max_links_to_check: Optional[int] = Field(
        default=None, ge=0, description="Max links probed per page, None for no cap"
    )
    max_html_depth: int = Field(default=100, ge=1, description="Max DOM traversal depth")
    max_url_length: int = Field(default=2048, ge=1, description="Max accepted URL length")
    max_content_size: int = Field(
        default=MAX_CONTENT_SIZE, ge=1, description="Max response body size in bytes"
    )
    user_agent: str = Field(
        default="pagelens/0.1.0 (+https://github.com/pagelens/pagelens)",
        description="User agent string",
    )
