"""Output writers for analysis reports."""

import json
from pathlib import Path
from typing import List, TextIO
import structlog

from pagelens.models import AnalysisReport

logger = structlog.get_logger()


class Writer:
    """Handles writing analysis reports to different formats."""

    @staticmethod
    def write_json(reports: List[AnalysisReport], output: TextIO):
        """
        Write reports as one JSON array.

        Args:
            reports: Analysis reports
            output: Open text stream
        """
        data = [report.model_dump(mode="json") for report in reports]
        json.dump(data, output, indent=2, ensure_ascii=False)
        output.write("\n")

    @staticmethod
    def write_jsonl(reports: List[AnalysisReport], output: TextIO):
        """
        Write reports as JSONL (newline-delimited JSON).

        Args:
            reports: Analysis reports
            output: Open text stream
        """
        for report in reports:
            output.write(json.dumps(report.model_dump(mode="json"), ensure_ascii=False) + "\n")

    @staticmethod
    def format_text(report: AnalysisReport) -> str:
        """Human readable summary of one report."""
        lines = [f"URL: {report.url}"]

        if report.failed:
            lines.append(f"Status: failed ({report.error_kind})")
            lines.append(f"Error: {report.error}")
            if report.result and report.result.status_code:
                lines.append(f"HTTP status: {report.result.status_code}")
            lines.append("=" * 80)
            return "\n".join(lines)

        result = report.result
        links = result.links
        lines.extend(
            [
                f"Title: {result.title or 'N/A'}",
                f"HTML version: {result.html_version}",
                f"HTTP status: {result.status_code}",
                f"Content length: {result.content_length:,} bytes",
                f"Load time: {result.load_time.total_seconds():.2f}s",
                f"Login form: {'yes' if result.has_login_form else 'no'}",
            ]
        )

        if result.headings:
            counts = ", ".join(f"{tag}={count}" for tag, count in sorted(result.headings.items()))
            lines.append(f"Headings: {counts}")
        else:
            lines.append("Headings: none")

        lines.append("-" * 80)
        lines.append(
            f"Links: {links.internal} internal, {links.external} external, "
            f"{links.inaccessible} inaccessible"
        )
        if links.external_hosts:
            lines.append(f"External hosts: {', '.join(links.external_hosts)}")
        for url in links.broken_links:
            lines.append(f"  broken: {url}")
        lines.append("=" * 80)
        return "\n".join(lines)

    @staticmethod
    def write_text(reports: List[AnalysisReport], output: TextIO):
        """
        Write human readable summaries.

        Args:
            reports: Analysis reports
            output: Open text stream
        """
        for report in reports:
            output.write(Writer.format_text(report) + "\n\n")

    @staticmethod
    def write(reports: List[AnalysisReport], output_path: Path, format: str):
        """Write reports to output_path in the given format."""
        writers = {
            "json": Writer.write_json,
            "jsonl": Writer.write_jsonl,
            "text": Writer.write_text,
        }
        with open(output_path, "w", encoding="utf-8") as f:
            writers[format](reports, f)

        logger.info(f"wrote_{format}", path=str(output_path), reports=len(reports))
