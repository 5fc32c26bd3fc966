"""
URL frontier for a single crawl job.
"""

from typing import Dict, Iterable, List, Optional


class URLFrontier:
    """
    Last-in, first-out frontier of links waiting to be visited.

    Links pushed together pop back out in the order they were given, so
    draining the frontier walks the link graph depth-first exactly like a
    recursive visit of each page's links in document order would. Dedup is
    left to the caller, at pop time, against its visited set.
    """

    def __init__(self, seeds: Optional[Iterable[str]] = None):
        self._stack: List[str] = []
        self.total_pushed = 0
        if seeds:
            self.push_all(seeds)

    def push_all(self, urls: Iterable[str]) -> int:
        """Queue a page's links. Returns count of added URLs."""
        batch = list(urls)
        self._stack.extend(reversed(batch))
        self.total_pushed += len(batch)
        return len(batch)

    def pop(self) -> Optional[str]:
        """Get the next URL to visit, or None when the frontier is drained."""
        if not self._stack:
            return None
        return self._stack.pop()

    def is_empty(self) -> bool:
        return not self._stack

    def __len__(self) -> int:
        return len(self._stack)

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        return {
            'total_queued': len(self._stack),
            'total_pushed': self.total_pushed
        }
