"""
Prometheus metrics for the keyword crawler service.
"""

import logging
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class ServiceMetrics:
    """
    Collects service metrics in a private registry.

    A private CollectorRegistry per instance keeps several services (tests
    in particular) from colliding on metric names in the global registry.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.logger = logging.getLogger(__name__)
        self.registry = CollectorRegistry()

        self.submissions_total = Counter(
            'crawler_submissions_total',
            'Keyword submissions by admission outcome',
            ['outcome'],
            registry=self.registry
        )
        self.pages_fetched_total = Counter(
            'crawler_pages_fetched_total',
            'Pages fetched successfully',
            registry=self.registry
        )
        self.fetch_errors_total = Counter(
            'crawler_fetch_errors_total',
            'Failed page fetches',
            registry=self.registry
        )
        self.matches_total = Counter(
            'crawler_keyword_matches_total',
            'Pages that contained the searched keyword',
            registry=self.registry
        )
        self.response_time_seconds = Histogram(
            'crawler_response_time_seconds',
            'Response time for page fetches',
            registry=self.registry
        )
        self.active_jobs = Gauge(
            'crawler_active_jobs',
            'Number of crawl jobs still running',
            registry=self.registry
        )
        self.jobs_finished_total = Counter(
            'crawler_jobs_finished_total',
            'Crawl jobs that reached a terminal status',
            ['status'],
            registry=self.registry
        )

    def record_submission(self, outcome: str):
        self.submissions_total.labels(outcome=outcome).inc()

    def record_fetch(self, success: bool, response_time: float):
        if success:
            self.pages_fetched_total.inc()
        else:
            self.fetch_errors_total.inc()
        self.response_time_seconds.observe(response_time)

    def record_match(self):
        self.matches_total.inc()

    def job_started(self):
        self.active_jobs.inc()

    def job_finished(self, status: str):
        self.active_jobs.dec()
        self.jobs_finished_total.labels(status=status).inc()

    def get_sample(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Get the current value of a metric sample (0.0 when absent)."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def export(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
