"""
Command line interface for the keyword crawler service.
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import Optional

from aiohttp import web

from . import __version__
from .api import create_app
from .crawler.fetcher import WebFetcher
from .utils.config import Config, ConfigError, EXIT_INVALID_NUMBER, load_config
from .utils.logger import setup_logging, log_system_info


class CrawlerApp:
    """Main application class for the keyword crawler service."""

    def __init__(self):
        self.runner: Optional[web.AppRunner] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event: Optional[asyncio.Event] = None

    def setup_logging(self, config: Config):
        """Setup logging configuration."""
        setup_logging(config.logging)

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, shutting down...")
            self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(signal_handler, s))

    async def run(self, config: Config, dry_run: bool = False) -> int:
        """Run the keyword crawler service until a shutdown signal arrives."""
        self._shutdown_event = asyncio.Event()
        try:
            self.setup_logging(config)
            log_system_info()

            self.logger.info("=== KEYWORD CRAWLER STARTING ===")
            self.logger.info(f"Bind address: {config.service.host}:{config.service.port}")
            self.logger.info(f"Base URL: {config.crawler.base_url}")
            self.logger.info(f"Timeout: {config.crawler.timeout}s")
            self.logger.info(f"Max keywords: {config.crawler.max_keywords} ({config.crawler.capacity_mode})")

            if dry_run:
                self.logger.info("DRY RUN MODE: the service will not be started")
                await self._dry_run(config)
                return 0

            self.setup_signal_handlers()

            self.runner = web.AppRunner(create_app(config))
            await self.runner.setup()
            site = web.TCPSite(self.runner, config.service.host, config.service.port)
            await site.start()
            self.logger.info(f"Listening on http://{config.service.host}:{config.service.port}")

            await self._shutdown_event.wait()

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            if self.runner:
                await self.runner.cleanup()
            self.logger.info("=== KEYWORD CRAWLER FINISHED ===")

        return 0

    async def _dry_run(self, config: Config):
        """Check that the base URL can be fetched."""
        async with WebFetcher(
            user_agent=config.crawler.user_agent,
            request_timeout=config.crawler.request_timeout,
            max_connections=1
        ) as fetcher:
            result = await fetcher.fetch(config.crawler.base_url)
            if result.error:
                self.logger.warning(f"Test fetch failed: {result.error}")
            else:
                self.logger.info(f"✓ Test fetch successful: {result.status_code}")

        self.logger.info("Dry run completed")


EXIT_USAGE = -1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='keyword-crawler',
        description="Keyword Crawler Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  keyword-crawler 127.0.0.1 4567 http://domain.com/index.html 5 128
  keyword-crawler --config config.yaml
  keyword-crawler --host 127.0.0.1 --port 4567 --base-url http://domain.com/index.html --timeout 5 --max-keywords 128
  keyword-crawler --config config.yaml --dry-run
        """
    )

    parser.add_argument('startup', nargs='*', metavar='ARG',
                        help='[Bind IP] [Port] [BaseURL] [Timeout in seconds] [Max number of keywords]')
    parser.add_argument('--config', help='Path to configuration file (optional)')
    parser.add_argument('--host', help='Bind IP address (IPv4)')
    parser.add_argument('--port', type=int, help='Bind port')
    parser.add_argument('--base-url', help='Address of the page where every crawl starts')
    parser.add_argument('--timeout', type=int, help='Crawl duration limit in seconds')
    parser.add_argument('--max-keywords', type=int, help='Maximum number of keyword crawlers')
    parser.add_argument('--dry-run', action='store_true',
                        help='Test configuration without starting the service')
    parser.add_argument('--version', action='version',
                        version=f'Keyword Crawler Service {__version__}')

    return parser


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}", EXIT_INVALID_NUMBER) from None


def build_overrides(args: argparse.Namespace) -> dict:
    """Collect startup values from positional arguments or flags."""
    if args.startup:
        host, port, base_url, timeout, max_keywords = args.startup
        return {
            'service': {'host': host, 'port': _parse_int(port, 'port')},
            'crawler': {
                'base_url': base_url,
                'timeout': _parse_int(timeout, 'timeout'),
                'max_keywords': _parse_int(max_keywords, 'max_keywords'),
            },
        }

    return {
        'service': {'host': args.host, 'port': args.port},
        'crawler': {
            'base_url': args.base_url,
            'timeout': args.timeout,
            'max_keywords': args.max_keywords,
        },
    }


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.startup and len(args.startup) != 5:
        parser.print_usage(sys.stderr)
        print("Error: expected 5 arguments: [Bind IP] [Port] [BaseURL] [Timeout] [Max keywords]",
              file=sys.stderr)
        return EXIT_USAGE

    try:
        config = load_config(args.config, build_overrides(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
