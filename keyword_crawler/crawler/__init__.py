"""
Keyword crawler core components.
"""

from .link_extractor import extract_links
from .fetcher import WebFetcher, FetchResult
from .url_frontier import URLFrontier
from .job import CrawlJob, JobSnapshot, JobStatus
from .registry import JobRegistry, SubmitResult, LookupResult

__all__ = [
    'extract_links',
    'WebFetcher', 'FetchResult',
    'URLFrontier',
    'CrawlJob', 'JobSnapshot', 'JobStatus',
    'JobRegistry', 'SubmitResult', 'LookupResult'
]
