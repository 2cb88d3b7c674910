"""CLI interface for pagelens."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional
import click
import structlog

from pagelens.models import AnalysisReport, AnalyzerConfig
from pagelens.service import PageAnalyzer
from pagelens.transport import AiohttpTransport, CircuitBreakerTransport
from pagelens.writers import Writer
from pagelens import __version__


def configure_logging(verbose: bool = False):
    """Configure structured logging to stderr."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show info and debug logs")
def main(verbose: bool):
    """
    pagelens - single page structure and link analysis.
    """
    configure_logging(verbose)


async def analyze_all(
    urls: tuple,
    config: AnalyzerConfig,
    budget: Optional[float],
    circuit_breaker: bool,
) -> list[AnalysisReport]:
    """Analyze urls one after another over a shared transport."""
    transport = AiohttpTransport(user_agent=config.user_agent, timeout=config.request_timeout)
    if circuit_breaker:
        transport = CircuitBreakerTransport(transport)

    reports = []
    async with transport:
        analyzer = PageAnalyzer(config=config, transport=transport)
        for url in urls:
            reports.append(await analyzer.report(url, timeout=budget))
    return reports


@main.command()
@click.argument("urls", nargs=-1, required=True)
@click.option(
    "--timeout",
    "-t",
    default=30.0,
    envvar="PAGELENS_REQUEST_TIMEOUT",
    help="Page fetch timeout in seconds (default: 30)",
    type=float,
)
@click.option(
    "--link-timeout",
    default=10.0,
    envvar="PAGELENS_LINK_CHECK_TIMEOUT",
    help="Per-link check timeout in seconds (default: 10)",
    type=float,
)
@click.option(
    "--concurrency",
    "-c",
    default=10,
    envvar="PAGELENS_MAX_CONCURRENT_LINK_CHECKS",
    help="Number of concurrent link checks (default: 10)",
    type=int,
)
@click.option(
    "--max-links",
    envvar="PAGELENS_MAX_LINKS_TO_CHECK",
    help="Check at most this many links per page (default: all)",
    type=int,
)
@click.option(
    "--max-depth",
    default=100,
    envvar="PAGELENS_MAX_HTML_DEPTH",
    help="Maximum HTML nesting depth inspected (default: 100)",
    type=int,
)
@click.option(
    "--budget",
    "-b",
    envvar="PAGELENS_BUDGET",
    help="Overall time budget per page in seconds; unfinished link checks are dropped",
    type=float,
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["text", "json", "jsonl"], case_sensitive=False),
    default="text",
    help="Output format (default: text)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Write output to this file instead of stdout",
)
@click.option(
    "--user-agent",
    default=AnalyzerConfig.model_fields["user_agent"].default,
    envvar="PAGELENS_USER_AGENT",
    help="Custom User-Agent string",
)
@click.option(
    "--circuit-breaker",
    is_flag=True,
    help="Stop calling a failing upstream instead of waiting on every request",
)
def analyze(
    urls: tuple,
    timeout: float,
    link_timeout: float,
    concurrency: int,
    max_links: Optional[int],
    max_depth: int,
    budget: Optional[float],
    format: str,
    output: Optional[str],
    user_agent: str,
    circuit_breaker: bool,
):
    """
    Analyze one or more pages.

    Examples:

        pagelens analyze https://example.com

        pagelens analyze https://example.com --format json -o report.json

        pagelens analyze https://example.com https://example.org -c 20 --max-links 50
    """
    try:
        config = AnalyzerConfig(
            request_timeout=timeout,
            link_check_timeout=link_timeout,
            max_concurrent_link_checks=concurrency,
            max_links_to_check=max_links,
            max_html_depth=max_depth,
            user_agent=user_agent,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    try:
        reports = asyncio.run(analyze_all(urls, config, budget, circuit_breaker))
    except KeyboardInterrupt:
        click.echo("\nAnalysis interrupted by user", err=True)
        sys.exit(130)

    if output:
        output_path = Path(output)
        Writer.write(reports, output_path, format)
        click.echo(f"Wrote {len(reports)} report(s) to {output_path}", err=True)
    elif format == "json":
        Writer.write_json(reports, sys.stdout)
    elif format == "jsonl":
        Writer.write_jsonl(reports, sys.stdout)
    else:
        Writer.write_text(reports, sys.stdout)

    failed = sum(1 for report in reports if report.failed)
    if failed:
        click.echo(f"{failed} of {len(reports)} analyses failed", err=True)
        sys.exit(1)


@main.command()
def version():
    """Show version information."""
    click.echo(f"pagelens version {__version__}")
    click.echo("Single page structure and link analysis.")


if __name__ == "__main__":
    main()
