"""
Shared fixtures: an in-memory fetcher, a controllable clock and a small
in-process website.
"""

import asyncio

import pytest
from aiohttp import web

from keyword_crawler.crawler.fetcher import FetchResult
from keyword_crawler.utils.config import ApiConfig, Config, CrawlerConfig, MonitoringConfig


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeFetcher:
    """Serves pages from a dict; unknown URLs fail like a 404."""

    def __init__(self, pages, clock=None, step=0.0):
        self.pages = pages
        self.clock = clock
        self.step = step
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        await asyncio.sleep(0)
        if self.clock is not None:
            self.clock.now += self.step

        if url not in self.pages:
            return FetchResult(url=url, status_code=404, error="HTTP status 404")
        return FetchResult(url=url, status_code=200, content=self.pages[url])

    async def start(self):
        pass

    async def close(self):
        pass


SITE_PAGES = {
    '/': '<a href="page2.html">next</a> <a href="style.css">css</a>',
    '/index.html': '<a href="page2.html">next</a>',
    '/page2.html': '<p>Two CATS sat here</p> <a href="../index.html">home</a> <a href="missing.html">x</a>',
}

SLOW_SITE_PAGES = {
    '/': '<a href="slow.html">slow</a>',
    '/slow.html': '<a href="after.html">after</a>',
    '/after.html': '<p>cats</p>',
}


def _site_app(pages, slow_paths=(), delay=1.5) -> web.Application:
    async def serve_page(request: web.Request) -> web.Response:
        if request.path in slow_paths:
            await asyncio.sleep(delay)
        if request.path not in pages:
            raise web.HTTPNotFound()
        return web.Response(text=pages[request.path], content_type='text/html')

    app = web.Application()
    app.router.add_get('/', serve_page)
    app.router.add_get('/{name}', serve_page)
    return app


def base_url_of(server) -> str:
    return f"http://{server.host}:{server.port}"


@pytest.fixture
async def site(aiohttp_server):
    """A tiny website served on localhost."""
    return await aiohttp_server(_site_app(SITE_PAGES))


@pytest.fixture
async def slow_site(aiohttp_server):
    """A website whose second page takes longer than a one-second crawl budget."""
    return await aiohttp_server(_site_app(SLOW_SITE_PAGES, slow_paths=('/slow.html',)))


@pytest.fixture
def fake_clock():
    return FakeClock()


def make_config(base_url: str, timeout=5, max_keywords=128, capacity_mode='lifetime',
                invalid_keyword_status=200, request_timeout=10) -> Config:
    return Config(
        crawler=CrawlerConfig(
            base_url=base_url,
            timeout=timeout,
            max_keywords=max_keywords,
            capacity_mode=capacity_mode,
            request_timeout=request_timeout
        ),
        api=ApiConfig(invalid_keyword_status=invalid_keyword_status),
        monitoring=MonitoringConfig(metrics_enabled=True)
    )
