"""
Basic analysis example.

This script demonstrates the simplest way to use pagelens.
"""

import asyncio
from pagelens import PageAnalyzer


async def main():
    """Simple analysis example."""
    print("🔎 Analyzing page...")

    # Create analyzer with defaults
    analyzer = PageAnalyzer()

    # Analyze a page
    result = await analyzer.analyze_url("https://example.com")

    print(f"\n✅ Analyzed in {result.load_time.total_seconds():.2f}s\n")
    print(f"   Title: {result.title or 'No title'}")
    print(f"   HTML version: {result.html_version}")
    print(f"   Headings: {result.headings}")
    print(f"   Login form: {result.has_login_form}")
    print(
        f"   Links: {result.links.internal} internal, "
        f"{result.links.external} external, {result.links.inaccessible} broken"
    )


if __name__ == "__main__":
    asyncio.run(main())
