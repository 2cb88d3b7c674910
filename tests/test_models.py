"""Tests for data models."""

from datetime import timedelta
import pytest
from pagelens.models import (
    AnalysisReport,
    AnalysisResult,
    AnalyzerConfig,
    Link,
    LinkSummary,
    MAX_CONTENT_SIZE,
)


class TestAnalysisResult:
    """Test AnalysisResult model."""

    def test_defaults(self):
        """Test a partial result only needs status and load time."""
        result = AnalysisResult(status_code=404, load_time=timedelta(seconds=1))

        assert result.status_code == 404
        assert result.title == ""
        assert result.headings == {}
        assert result.links.total == 0
        assert result.has_login_form is False

    def test_frozen(self):
        """Test results cannot be modified after construction."""
        result = AnalysisResult(title="Test")

        with pytest.raises(Exception):
            result.title = "Changed"

    def test_serialization(self):
        """Test AnalysisResult JSON serialization."""
        result = AnalysisResult(
            html_version="HTML5",
            title="Test",
            headings={"h1": 1},
            links=LinkSummary(internal=2, external=1, external_hosts=["other.com"]),
            load_time=timedelta(milliseconds=1500),
            status_code=200,
        )
        data = result.model_dump(mode="json")

        assert data["html_version"] == "HTML5"
        assert data["links"]["internal"] == 2
        assert data["links"]["external_hosts"] == ["other.com"]
        assert isinstance(data["load_time"], str)


class TestLink:
    """Test Link and LinkSummary models."""

    def test_link_accessible_by_default(self):
        link = Link(url="/page", is_internal=True)

        assert link.is_accessible is True

    def test_summary_total(self):
        summary = LinkSummary(internal=3, external=2, inaccessible=1)

        assert summary.total == 5
        assert summary.broken_links == []


class TestAnalysisReport:
    """Test AnalysisReport model."""

    def test_completed_report(self):
        report = AnalysisReport(url="https://example.com", result=AnalysisResult(status_code=200))

        assert not report.failed
        data = report.model_dump(mode="json")
        assert data["status"] == "completed"
        assert isinstance(data["analyzed_at"], str)

    def test_failed_report(self):
        report = AnalysisReport(
            url="https://example.com", status="failed", error="boom", error_kind="DNSNotFound"
        )

        assert report.failed
        assert report.result is None


class TestAnalyzerConfig:
    """Test AnalyzerConfig model."""

    def test_config_defaults(self):
        """Test AnalyzerConfig default values."""
        config = AnalyzerConfig()

        assert config.request_timeout == 30.0
        assert config.link_check_timeout == 10.0
        assert config.max_concurrent_link_checks == 10
        assert config.max_links_to_check is None
        assert config.max_html_depth == 100
        assert config.max_url_length == 2048
        assert config.max_content_size == MAX_CONTENT_SIZE == 10 * 1024 * 1024

    def test_config_validation(self):
        """Test AnalyzerConfig validation."""
        config = AnalyzerConfig(max_links_to_check=0)
        assert config.max_links_to_check == 0

        with pytest.raises(Exception):
            AnalyzerConfig(max_concurrent_link_checks=0)

        with pytest.raises(Exception):
            AnalyzerConfig(request_timeout=-1)
