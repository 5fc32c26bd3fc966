"""
Logging setup for the keyword crawler service.

Crawl jobs log through a CrawlerLogAdapter so every record carries the job
id and keyword, both as a message prefix and as structured JSON fields.
"""

import logging
import logging.handlers
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from .config import LoggingConfig

# Fields every LogRecord has; anything else was passed through ``extra``
_RESERVED = frozenset(vars(logging.makeLogRecord({})).keys()) | {'message', 'asctime'}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with job context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'time': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update({key: value for key, value in vars(record).items() if key not in _RESERVED})

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class CrawlerLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the job id and attaches job context to records."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}

        job_id = self.extra.get('job_id')
        if job_id:
            msg = f"[{job_id}] {msg}"

        return msg, kwargs

    def log_url_event(self, level: int, url: str, message: str):
        """Log an event about one crawled page."""
        self.log(level, message, extra={'url': url})


class AiohttpAccessFilter(logging.Filter):
    """
    Drops aiohttp's per-request access lines below WARNING.

    The routes already log every request with its outcome.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith('aiohttp.access'):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """
    Install console and rotating file handlers on the root logger.

    Args:
        config: Logging section of the service configuration

    Returns:
        Configured root logger
    """
    log_file = Path(config.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = JSONFormatter() if config.json else logging.Formatter(config.format)
    access_filter = AiohttpAccessFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding='utf-8'
    )
    for handler in (console_handler, file_handler):
        handler.setFormatter(formatter)
        handler.addFilter(access_filter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    logging.getLogger('asyncio').setLevel(logging.WARNING)

    root_logger.info(f"Logging to {log_file} at {config.level} (json={config.json})")
    return root_logger


def get_crawler_logger(name: str, **context) -> CrawlerLogAdapter:
    """Get a logger that tags records with the given job context."""
    return CrawlerLogAdapter(logging.getLogger(name), context)


def log_system_info():
    """Log host information at startup."""
    import platform
    import psutil

    logger = logging.getLogger(__name__)
    logger.info(
        f"Host: {platform.platform()}, Python {platform.python_version()}, "
        f"{psutil.cpu_count()} CPUs, {psutil.virtual_memory().total / 1024**3:.1f} GB memory"
    )
