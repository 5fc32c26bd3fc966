"""
HTTP routes for keyword searches.
"""

import json
import logging
from typing import Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from ..crawler.registry import JobRegistry
from ..utils.monitoring import ServiceMetrics

REGISTRY_KEY = web.AppKey('registry', JobRegistry)
METRICS_KEY = web.AppKey('metrics', ServiceMetrics)

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


def _client(request: web.Request) -> str:
    return request.remote or 'unknown'


def _error(request: web.Request, code: int, message: str, log_message: str) -> web.Response:
    logger.error(f"{_client(request)} - {log_message}")
    return web.json_response({'error': message}, status=code)


def _parse_keyword(body: str) -> Optional[str]:
    """Extract the keyword from a JSON body; anything unusable counts as missing."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None

    if not isinstance(payload, dict):
        return None

    keyword = payload.get('keyword')
    if isinstance(keyword, str):
        return keyword

    # Scalars are read as their JSON literal: 12345 -> "12345", true -> "true"
    if isinstance(keyword, (bool, int, float)):
        return json.dumps(keyword)

    return None


@routes.post('/search')
async def post_search(request: web.Request) -> web.Response:
    """Return the current keyword search or start a new one."""
    registry = request.app[REGISTRY_KEY]
    keyword = _parse_keyword(await request.text())

    result = await registry.submit(keyword)
    if result.error is not None:
        return _error(request, result.code, result.error, f"POST /search - ERROR: {result.error}")

    logger.info(f"{_client(request)} - POST /search - {result.code} id={result.id}")
    return web.json_response(result.to_dict(), status=result.code)


@routes.get('/search/{id}')
async def get_search(request: web.Request) -> web.Response:
    """Return the matches found so far by one crawl job."""
    registry = request.app[REGISTRY_KEY]
    job_id = request.match_info.get('id')

    result = registry.lookup(job_id)
    if result.error is not None:
        return _error(request, result.code, result.error,
                      f"GET /search/{job_id or ''} - ERROR: {result.error}")

    return web.json_response(result.job.snapshot().to_dict())


@routes.get('/search')
@routes.get('/search/')
async def get_search_without_id(request: web.Request) -> web.Response:
    result = request.app[REGISTRY_KEY].lookup(None)
    return _error(request, result.code, result.error, f"GET {request.path} - ERROR: {result.error}")


async def get_metrics(request: web.Request) -> web.Response:
    """Prometheus exposition of the service metrics."""
    body = request.app[METRICS_KEY].export()
    return web.Response(body=body, headers={'Content-Type': CONTENT_TYPE_LATEST})
