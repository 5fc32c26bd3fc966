"""
Registry that admits, deduplicates and bounds crawl jobs by keyword.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .fetcher import WebFetcher
from .job import CrawlJob, JobStatus
from ..utils.monitoring import ServiceMetrics

MIN_KEYWORD_LENGTH = 4
MAX_KEYWORD_LENGTH = 32

ERROR_KEYWORD_NULL = "keyword is null"
ERROR_KEYWORD_SIZE = f"keyword size must be between {MIN_KEYWORD_LENGTH} and {MAX_KEYWORD_LENGTH}"
ERROR_TOO_MANY = "too many threads"
ERROR_ID_MISSING = 'parameter "id" not found'


def generate_job_id() -> str:
    """Random 8-character job id."""
    return uuid.uuid4().hex[:8]


@dataclass
class SubmitResult:
    """Outcome of an admission decision."""
    code: int
    id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.error is not None:
            return {'error': self.error}
        return {'id': self.id}


@dataclass
class LookupResult:
    """Outcome of a job lookup."""
    code: int
    job: Optional[CrawlJob] = None
    error: Optional[str] = None


class JobRegistry:
    """
    Indexes crawl jobs by keyword and by id.

    Capacity is counted either over every keyword ever admitted
    (``capacity_mode='lifetime'``, jobs are never evicted) or over jobs that
    are still active (``capacity_mode='active'``).
    """

    def __init__(self, base_url: str, timeout: float, capacity: int, fetcher: WebFetcher,
                 capacity_mode: str = 'lifetime', invalid_keyword_status: int = 200,
                 metrics: Optional[ServiceMetrics] = None,
                 id_factory: Callable[[], str] = generate_job_id):
        self.base_url = base_url
        self.timeout = timeout
        self.capacity = capacity
        self.capacity_mode = capacity_mode
        self.invalid_keyword_status = invalid_keyword_status

        self.fetcher = fetcher
        self.metrics = metrics
        self.id_factory = id_factory
        self.logger = logging.getLogger(__name__)

        self._keyword_to_id: Dict[str, str] = {}
        self._id_to_job: Dict[str, CrawlJob] = {}
        self._lock = asyncio.Lock()

    def _at_capacity(self) -> bool:
        if self.capacity_mode == 'active':
            in_use = sum(1 for job in self._id_to_job.values() if job.is_active)
        else:
            in_use = len(self._keyword_to_id)
        return in_use >= self.capacity

    def _new_id(self) -> str:
        job_id = self.id_factory()
        while job_id in self._id_to_job:
            job_id = self.id_factory()
        return job_id

    def _record(self, outcome: str):
        if self.metrics:
            self.metrics.record_submission(outcome)

    async def submit(self, keyword: Optional[str]) -> SubmitResult:
        """
        Reuse, reject or create the crawl job for a keyword.

        Returns:
            SubmitResult carrying the HTTP code and either a job id or an error
        """
        if keyword is None:
            self._record('invalid')
            return SubmitResult(400, error=ERROR_KEYWORD_NULL)

        if not MIN_KEYWORD_LENGTH <= len(keyword) <= MAX_KEYWORD_LENGTH:
            self._record('invalid')
            return SubmitResult(self.invalid_keyword_status, error=ERROR_KEYWORD_SIZE)

        # Duplicate check, capacity check and insert form one admission decision
        async with self._lock:
            job_id = self._keyword_to_id.get(keyword)
            if job_id is not None:
                self.logger.info(f"Crawler for keyword \"{keyword}\" already exists: {job_id}")
                self._record('existing')
                return SubmitResult(200, id=job_id)

            if self._at_capacity():
                self.logger.warning(f"Rejecting keyword \"{keyword}\": too many threads")
                self._record('rejected')
                return SubmitResult(529, error=ERROR_TOO_MANY)

            job_id = self._new_id()
            job = CrawlJob(
                job_id=job_id,
                keyword=keyword,
                base_url=self.base_url,
                timeout=self.timeout,
                fetcher=self.fetcher,
                metrics=self.metrics
            )
            self._keyword_to_id[keyword] = job_id
            self._id_to_job[job_id] = job
            job.start()

        self.logger.info(f"Crawler for the keyword \"{keyword}\" created: {job_id}")
        self._record('created')
        return SubmitResult(201, id=job_id)

    def lookup(self, job_id: Optional[str]) -> LookupResult:
        """Find a job by id."""
        if not job_id:
            return LookupResult(400, error=ERROR_ID_MISSING)

        job = self._id_to_job.get(job_id)
        if job is None:
            return LookupResult(404, error=f"crawler \"{job_id}\" not found")

        return LookupResult(200, job=job)

    def jobs(self) -> List[CrawlJob]:
        return list(self._id_to_job.values())

    def __len__(self) -> int:
        return len(self._id_to_job)

    async def close(self):
        """Cancel job tasks that are still running."""
        tasks = [job.task for job in self._id_to_job.values()
                 if job.task is not None and not job.task.done()]
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.info(f"Cancelled {len(tasks)} running crawl jobs")

    def get_stats(self) -> Dict:
        """Get registry statistics."""
        by_status = {status.value: 0 for status in JobStatus}
        for job in self._id_to_job.values():
            by_status[job.status.value] += 1

        return {
            'keywords': len(self._keyword_to_id),
            'capacity': self.capacity,
            'capacity_mode': self.capacity_mode,
            'jobs': by_status
        }
