"""
Crawl job: one keyword search over the configured site.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from .fetcher import WebFetcher
from .link_extractor import extract_links
from .url_frontier import URLFrontier
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import ServiceMetrics


class JobStatus(Enum):
    """Crawl job status. ACTIVE moves once to DONE or TIMEOUT and stays there."""
    ACTIVE = 'active'
    DONE = 'done'
    TIMEOUT = 'timeout'

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.ACTIVE


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time copy of a job's public state."""
    id: str
    status: JobStatus
    urls: Tuple[str, ...]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'status': self.status.value,
            'urls': list(self.urls)
        }


class CrawlJob:
    """
    Searches every page reachable from the base URL for a keyword.

    The traversal runs in a single asyncio task and is the only writer of
    the job's state. Readers go through snapshot(), which copies the state
    without awaiting, so it always reflects a consistent prefix of progress.
    """

    def __init__(self, job_id: str, keyword: str, base_url: str, timeout: float,
                 fetcher: WebFetcher, metrics: Optional[ServiceMetrics] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.id = job_id
        self.keyword = keyword
        self.base_url = base_url
        self.timeout = timeout

        self.fetcher = fetcher
        self.metrics = metrics
        self.clock = clock
        self.logger = get_crawler_logger(__name__, job_id=job_id, keyword=keyword)

        self._keyword_lower = keyword.lower()
        self._status = JobStatus.ACTIVE
        self._visited: Set[str] = set()
        self._matches: List[str] = []

        self.start_time = clock()
        self.task: Optional[asyncio.Task] = None

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is JobStatus.ACTIVE

    @property
    def visited(self) -> FrozenSet[str]:
        return frozenset(self._visited)

    @property
    def matches(self) -> Tuple[str, ...]:
        return tuple(self._matches)

    @property
    def elapsed_time(self) -> float:
        return self.clock() - self.start_time

    def snapshot(self) -> JobSnapshot:
        """Get a copy of the job's id, status and matching URLs."""
        return JobSnapshot(id=self.id, status=self._status, urls=tuple(self._matches))

    def start(self) -> asyncio.Task:
        """Schedule the traversal on the running event loop."""
        if self.task is None:
            self.task = asyncio.create_task(self.run(), name=f"crawl-{self.id}")
        return self.task

    def _set_status(self, status: JobStatus) -> bool:
        if self._status.is_terminal:
            return False
        self._status = status
        return True

    async def run(self):
        """Run the traversal until the site is exhausted or the timeout expires."""
        self.logger.info(f"Crawling the keyword \"{self.keyword}\" from {self.base_url}...")
        if self.metrics:
            self.metrics.job_started()

        try:
            await self._crawl()
        except asyncio.CancelledError:
            self.logger.info("Crawl cancelled")
            if self.metrics:
                self.metrics.job_finished('cancelled')
            raise
        except Exception as e:
            self.logger.error(f"Crawl aborted by unexpected error: {e}", exc_info=True)

        if self._set_status(JobStatus.DONE):
            self.logger.info(
                f"Crawl done: visited={len(self._visited)}, matches={len(self._matches)}, "
                f"elapsed={self.elapsed_time:.2f}s"
            )
        if self.metrics:
            self.metrics.job_finished(self._status.value)

    async def _crawl(self):
        frontier = URLFrontier([self.base_url])

        while not frontier.is_empty():
            if self.elapsed_time >= self.timeout:
                self._set_status(JobStatus.TIMEOUT)
                self.logger.info(
                    f"TIMEOUT after {self.elapsed_time:.2f}s: visited={len(self._visited)}, "
                    f"queued={len(frontier)}"
                )
                return

            url = frontier.pop()
            if url in self._visited:
                continue

            # Marked before fetching so a page is never requested twice
            self._visited.add(url)
            self.logger.debug(f"Crawling {url}...")

            result = await self.fetcher.fetch(url)
            if self.metrics:
                self.metrics.record_fetch(result.ok, result.fetch_time)

            if not result.ok:
                self.logger.log_url_event(logging.DEBUG, url, f"Skipping {url}: {result.error}")
                continue

            if self._keyword_lower in result.content.lower():
                self._matches.append(url)
                self.logger.log_url_event(logging.INFO, url, f"Keyword found at {url}")
                if self.metrics:
                    self.metrics.record_match()

            links = extract_links(result.content, self.base_url)
            if links is not None:
                frontier.push_all(links)

    def get_stats(self) -> Dict:
        """Get current job statistics."""
        return {
            'id': self.id,
            'keyword': self.keyword,
            'status': self._status.value,
            'visited': len(self._visited),
            'matches': len(self._matches),
            'elapsed_time': self.elapsed_time
        }
