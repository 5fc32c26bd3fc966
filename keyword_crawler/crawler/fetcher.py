"""
Web page fetcher shared by all crawl jobs.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    content: Optional[str] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    encoding: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None


class WebFetcher:
    """
    Fetches the raw text of web pages.

    Every failure (connection refused, timeout, error status, malformed
    response) is reported through FetchResult.error; fetch() never raises
    for network problems.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30,
                 max_connections: int = 100, max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_connections = max_connections
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_connections,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult with the page text, or with error set on failure
        """
        if self.session is None:
            await self.start()

        start_time = time.time()
        self.stats['total_requests'] += 1
        self.logger.debug(f"Getting URL data from {url}...")

        try:
            async with self.session.get(url) as response:
                if response.status >= 400:
                    error_msg = f"HTTP status {response.status}"
                    self.logger.warning(f"Error status fetching {url}: {response.status}")
                    self.stats['failed_requests'] += 1
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        error=error_msg,
                        fetch_time=time.time() - start_time
                    )

                content = await self._read_content_safely(response)
                if content is None:
                    self.stats['failed_requests'] += 1
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        error="Unreadable content",
                        fetch_time=time.time() - start_time
                    )

                self.stats['total_bytes_downloaded'] += len(content)
                self.stats['successful_requests'] += 1
                self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} chars)")

                return FetchResult(
                    url=url,
                    status_code=response.status,
                    content=content,
                    encoding=response.charset,
                    fetch_time=time.time() - start_time
                )

        except asyncio.TimeoutError:
            error_msg = "Request timeout"
            self.logger.warning(f"Timeout fetching {url}")

        except ClientError as e:
            error_msg = f"Client error: {str(e)}"
            self.logger.warning(f"Client error fetching {url}: {e}")

        except Exception as e:
            error_msg = f"Unexpected error: {str(e)}"
            self.logger.error(f"Unexpected error fetching {url}: {e}")

        self.stats['failed_requests'] += 1
        return FetchResult(
            url=url,
            status_code=0,
            error=error_msg,
            fetch_time=time.time() - start_time
        )

    async def _read_content_safely(self, response) -> Optional[str]:
        """
        Read the whole body as text with a size limit.

        Line breaks are dropped so the page is scanned as a single line.

        Returns:
            Content string or None if too large or unreadable
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        text = self._decode(content_bytes, response.charset)
        return text.replace('\r', '').replace('\n', '')

    @staticmethod
    def _decode(content_bytes: bytes, charset: Optional[str]) -> str:
        encoding = charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            for fallback_encoding in ['utf-8', 'latin-1']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue

        return content_bytes.decode('utf-8', errors='ignore')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
