"""Tests for report writers."""

import io
import json
from datetime import timedelta
import pytest

from pagelens.models import AnalysisReport, AnalysisResult, LinkSummary
from pagelens.writers import Writer


@pytest.fixture
def reports():
    """One successful and one failed report."""
    result = AnalysisResult(
        html_version="HTML5",
        title="Example Domain",
        headings={"h2": 1, "h1": 2},
        links=LinkSummary(
            internal=2,
            external=1,
            inaccessible=1,
            broken_links=["/missing"],
            external_hosts=["www.iana.org"],
        ),
        load_time=timedelta(milliseconds=250),
        content_length=1256,
        status_code=200,
    )
    return [
        AnalysisReport(url="https://example.com/", result=result),
        AnalysisReport(
            url="https://example.com/gone",
            status="failed",
            error="HTTP 404: page not found",
            error_kind="HTTPStatusError",
            result=AnalysisResult(status_code=404),
        ),
    ]


def test_write_json(reports):
    """Test JSON array output."""
    output = io.StringIO()
    Writer.write_json(reports, output)

    data = json.loads(output.getvalue())
    assert len(data) == 2
    assert data[0]["result"]["title"] == "Example Domain"
    assert data[0]["result"]["links"]["broken_links"] == ["/missing"]
    assert data[1]["status"] == "failed"
    assert data[1]["result"]["status_code"] == 404


def test_write_jsonl(reports):
    """Test one JSON object per line."""
    output = io.StringIO()
    Writer.write_jsonl(reports, output)

    lines = output.getvalue().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["url"] == "https://example.com/"
    assert json.loads(lines[1])["error_kind"] == "HTTPStatusError"


def test_format_text_success(reports):
    """Test the human readable summary."""
    text = Writer.format_text(reports[0])

    assert "Title: Example Domain" in text
    assert "HTML version: HTML5" in text
    assert "Content length: 1,256 bytes" in text
    assert "Load time: 0.25s" in text
    assert "Headings: h1=2, h2=1" in text
    assert "Links: 2 internal, 1 external, 1 inaccessible" in text
    assert "External hosts: www.iana.org" in text
    assert "broken: /missing" in text


def test_format_text_failure(reports):
    """Test that failed reports show the error."""
    text = Writer.format_text(reports[1])

    assert "Status: failed (HTTPStatusError)" in text
    assert "Error: HTTP 404: page not found" in text
    assert "HTTP status: 404" in text


def test_write_to_file(reports, tmp_path):
    """Test writing each format to disk."""
    for format in ("json", "jsonl", "text"):
        path = tmp_path / f"report.{format}"
        Writer.write(reports, path, format)
        assert path.exists()
        assert "https://example.com/gone" in path.read_text(encoding="utf-8")
