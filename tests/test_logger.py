"""
Tests for utils/logger.py.
"""

import io
import json
import logging
import logging.handlers

import pytest

from keyword_crawler.utils.config import LoggingConfig
from keyword_crawler.utils.logger import (
    AiohttpAccessFilter, JSONFormatter, get_crawler_logger, setup_logging
)


@pytest.fixture
def json_stream():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())

    logger = logging.getLogger('keyword_crawler.test_job')
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield stream
    logger.removeHandler(handler)
    logger.propagate = True


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_job_context_in_json_lines(json_stream):
    logger = get_crawler_logger('keyword_crawler.test_job', job_id='abcd1234', keyword='cats')

    logger.log_url_event(logging.INFO, 'http://site.test/page2.html', 'Keyword found')

    entry = json.loads(json_stream.getvalue())
    assert entry['message'] == '[abcd1234] Keyword found'
    assert entry['level'] == 'INFO'
    assert entry['job_id'] == 'abcd1234'
    assert entry['keyword'] == 'cats'
    assert entry['url'] == 'http://site.test/page2.html'
    assert 'levelno' not in entry


def test_exception_is_included(json_stream):
    logger = get_crawler_logger('keyword_crawler.test_job', job_id='abcd1234')

    try:
        raise RuntimeError('boom')
    except RuntimeError:
        logger.error('Crawl aborted', exc_info=True)

    entry = json.loads(json_stream.getvalue())
    assert 'RuntimeError: boom' in entry['exception']


@pytest.mark.parametrize('name, level, kept', [
    ('aiohttp.access', logging.INFO, False),
    ('aiohttp.access', logging.WARNING, True),
    ('aiohttp.client', logging.DEBUG, True),
    ('keyword_crawler.api.routes', logging.INFO, True),
])
def test_access_filter(name, level, kept):
    record = logging.makeLogRecord({'name': name, 'levelno': level, 'msg': 'GET /search'})
    assert AiohttpAccessFilter().filter(record) is kept


def test_setup_logging_writes_rotating_file(tmp_path, restore_root_logger):
    log_file = tmp_path / 'logs' / 'crawler.log'
    config = LoggingConfig(level='DEBUG', file=str(log_file), json=True, max_bytes=1024, backup_count=2)

    root = setup_logging(config)

    file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024
    assert file_handlers[0].backupCount == 2

    logging.getLogger('aiohttp.access').info('GET /search 200')
    logging.getLogger('keyword_crawler').info('service started')
    for handler in root.handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    messages = [line['message'] for line in lines]
    assert 'service started' in messages
    assert 'GET /search 200' not in messages
