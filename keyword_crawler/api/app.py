"""
aiohttp application wiring the registry, fetcher and routes together.
"""

import logging
from typing import Optional

from aiohttp import web

from .routes import METRICS_KEY, REGISTRY_KEY, get_metrics, routes
from ..crawler.fetcher import WebFetcher
from ..crawler.registry import JobRegistry
from ..utils.config import Config
from ..utils.monitoring import ServiceMetrics

FETCHER_KEY = web.AppKey('fetcher', WebFetcher)

logger = logging.getLogger(__name__)


def compression_middleware(enabled: bool):
    @web.middleware
    async def middleware(request: web.Request, handler) -> web.StreamResponse:
        response = await handler(request)
        if enabled and isinstance(response, web.Response):
            response.enable_compression()
        return response
    return middleware


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({'error': 'internal server error'}, status=500)


def create_app(config: Config, fetcher: Optional[WebFetcher] = None) -> web.Application:
    """
    Build the web application.

    Args:
        config: Loaded service configuration
        fetcher: Optional fetcher to share (a new one is created otherwise)

    Returns:
        Configured aiohttp Application
    """
    crawler_config = config.crawler

    if fetcher is None:
        fetcher = WebFetcher(
            user_agent=crawler_config.user_agent,
            request_timeout=crawler_config.request_timeout,
            max_connections=crawler_config.max_connections
        )

    metrics = ServiceMetrics(enabled=config.monitoring.metrics_enabled)
    registry = JobRegistry(
        base_url=crawler_config.base_url,
        timeout=crawler_config.timeout,
        capacity=crawler_config.max_keywords,
        fetcher=fetcher,
        capacity_mode=crawler_config.capacity_mode,
        invalid_keyword_status=config.api.invalid_keyword_status,
        metrics=metrics
    )

    app = web.Application(middlewares=[
        error_middleware,
        compression_middleware(config.api.compress_responses),
    ])
    app[REGISTRY_KEY] = registry
    app[FETCHER_KEY] = fetcher
    app[METRICS_KEY] = metrics

    app.add_routes(routes)
    if metrics.enabled:
        app.router.add_get('/metrics', get_metrics)

    app.on_startup.append(_start_fetcher)
    app.on_cleanup.append(_shutdown)

    return app


async def _start_fetcher(app: web.Application):
    await app[FETCHER_KEY].start()
    logger.info("Keyword crawler service started")


async def _shutdown(app: web.Application):
    registry = app[REGISTRY_KEY]
    logger.info(f"Shutting down, registry stats: {registry.get_stats()}")
    await registry.close()
    await app[FETCHER_KEY].close()
