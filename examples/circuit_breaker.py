"""
Shared transport example.

Analyzes several pages over one aiohttp session wrapped in a circuit
breaker, and handles failures per page.
"""

import asyncio
from pagelens import AiohttpTransport, AnalyzerConfig, CircuitBreakerTransport, PageAnalyzer
from pagelens.errors import AnalysisError, HTTPStatusError


URLS = [
    "https://example.com",
    "https://www.python.org",
    "https://httpbin.org/status/404",
]


async def main():
    """Analyze a handful of pages with a tight link budget."""
    config = AnalyzerConfig(max_concurrent_link_checks=20, max_links_to_check=25)
    transport = CircuitBreakerTransport(AiohttpTransport(user_agent=config.user_agent))

    async with transport:
        analyzer = PageAnalyzer(config=config, transport=transport)

        for url in URLS:
            try:
                result = await analyzer.analyze_url(url, timeout=20)
            except HTTPStatusError as e:
                print(f"❌ {url}: {e} (after {e.result.load_time.total_seconds():.2f}s)")
                continue
            except AnalysisError as e:
                print(f"❌ {url}: {e}")
                continue

            print(f"📄 {url}")
            print(f"   Title: {result.title or 'No title'}")
            print(f"   External hosts: {', '.join(result.links.external_hosts) or 'none'}")
            for broken in result.links.broken_links:
                print(f"   broken: {broken}")

    print(f"\nCircuit state: {transport.state.value}")


if __name__ == "__main__":
    asyncio.run(main())
