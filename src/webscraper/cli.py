"""Command-line interface for the web scraper."""

import asyncio
import json
import signal
import sys
from typing import Optional

import httpx

from webscraper.config import PluginConfig, ProcessingConfig, settings
from webscraper.engine import CancellationToken, WebScraper
from webscraper.exceptions import ScraperError
from webscraper.frontier import Frontier
from webscraper.logging_config import get_logger, setup_logging
from webscraper.models import CrawlSummary, Page
from webscraper.robots import PolitenessPolicy
from webscraper.sink import get_sink
from webscraper.url_identity import normalize_url

logger = get_logger(__name__)

# Token of the running crawl, for signal handling
_cancel_token: Optional[CancellationToken] = None


def handle_interrupt(signum, frame):
    """Stop the crawl before the next page; a second signal exits at once."""
    if _cancel_token is None or _cancel_token.cancelled:
        print("\n\n⚠️  Crawl interrupted, exiting without reconciliation.")
        sys.exit(1)
    print("\n\n⚠️  Stopping after the current page (interrupt again to force exit)...")
    _cancel_token.cancel()


def print_summary(summary: CrawlSummary):
    """Print a crawl summary in a formatted way.

    Args:
        summary: CrawlSummary of the run
    """
    print(f"\n{'=' * 60}")
    print(f"Crawl summary for dataset: {summary.dataset_id}")
    print(f"{'=' * 60}")
    print(f"  • Pages sent: {summary.pages_sent}")
    print(f"  • Anchor pages sent: {summary.anchor_pages_sent}")
    print(f"  • Unchanged pages: {summary.pages_unchanged}")
    print(f"  • Redirects: {summary.pages_redirected}")
    print(f"  • Failed pages: {summary.pages_failed}")
    print(f"  • Skipped pages: {summary.pages_skipped}")
    print(f"  • Deleted pages: {summary.pages_deleted}")
    if summary.cancelled:
        print("\n⚠️  Crawl was stopped, stale pages were not deleted.")
    print(f"\n{'=' * 60}\n")


async def _run_crawl(config_path: str, config: ProcessingConfig, backend: Optional[str]) -> CrawlSummary:
    global _cancel_token

    def save_config(patched: ProcessingConfig):
        logger.info(f"writing dataset reference back to {config_path}")
        patched.save_to_file(config_path)

    _cancel_token = CancellationToken()
    async with get_sink(backend) as sink:
        scraper = WebScraper(
            config,
            PluginConfig.from_env(),
            sink,
            on_config_patch=save_config,
        )
        return await scraper.run(_cancel_token)


def run_command(args):
    """Run one incremental crawl of the configured site."""
    try:
        config = ProcessingConfig.from_file(args.config)
        signal.signal(signal.SIGINT, handle_interrupt)
        signal.signal(signal.SIGTERM, handle_interrupt)
        summary = asyncio.run(_run_crawl(args.config, config, args.backend))
    except ScraperError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.output == "json":
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary)


async def _check_url(config: ProcessingConfig, url: str) -> Optional[str]:
    plugin_config = PluginConfig.from_env()
    politeness = PolitenessPolicy(plugin_config.user_agent, plugin_config.default_crawl_delay)
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as client:
        await politeness.load(client, config.base_urls)
    frontier = Frontier(config.base_urls, politeness, config.exclude_url_patterns)
    return frontier.rejection_reason(Page(url=url))


def check_url_command(args):
    """Report whether a URL would be crawled, and under which id."""
    try:
        config = ProcessingConfig.from_file(args.config)
        reason = asyncio.run(_check_url(config, args.url))
    except ScraperError as e:
        logger.error(str(e))
        sys.exit(1)

    page = Page(url=args.url)
    print(f"URL: {args.url}")
    print(f"Normalized: {normalize_url(args.url)}")
    print(f"Id: {page.id}")
    if reason is None:
        print("✅ Would be crawled")
    else:
        print(f"❌ Would be skipped ({reason})")


def main():
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Web Scraper - Crawl a website incrementally into a data-fair dataset"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run", help="Crawl the site described by a processing configuration."
    )
    run_parser.add_argument(
        "config", help="Processing configuration file (YAML or JSON)"
    )
    run_parser.add_argument(
        "--backend",
        choices=["datafair", "local"],
        default=None,
        help=f"Dataset backend (default: {settings.SINK_BACKEND})",
    )
    run_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Summary format (default: text)",
    )
    run_parser.set_defaults(func=run_command)

    check_parser = subparsers.add_parser(
        "check-url", help="Tell whether a URL would be crawled with a configuration."
    )
    check_parser.add_argument(
        "config", help="Processing configuration file (YAML or JSON)"
    )
    check_parser.add_argument("url", help="URL to check")
    check_parser.set_defaults(func=check_url_command)

    args = parser.parse_args()

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
