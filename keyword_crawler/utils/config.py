"""
Configuration management for the keyword crawler service.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, replace
from urllib.parse import urlparse


CAPACITY_MODES = ('lifetime', 'active')


# Process exit codes per failed startup check
EXIT_INVALID_CONFIG = 1
EXIT_INVALID_IP = 1
EXIT_INVALID_PORT = 2
EXIT_INVALID_TIMEOUT = 3
EXIT_INVALID_KEYWORDS = 4
EXIT_INVALID_URL = 5
EXIT_INVALID_NUMBER = 6


class ConfigError(ValueError):
    """Raised when configuration values are missing or invalid."""

    def __init__(self, message: str, exit_code: int = EXIT_INVALID_CONFIG):
        super().__init__(message)
        self.exit_code = exit_code


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ServiceConfig:
    """Configuration for the HTTP service binding."""
    host: str = '127.0.0.1'
    port: int = 4567


@dataclass
class CrawlerConfig:
    """Configuration for crawl jobs and their admission."""
    base_url: Optional[str] = None
    timeout: int = 5
    max_keywords: int = 128
    capacity_mode: str = 'lifetime'
    request_timeout: int = 30
    user_agent: str = 'KeywordCrawler/1.0'
    max_connections: int = 100


@dataclass
class ApiConfig:
    """Configuration for the HTTP API responses."""
    invalid_keyword_status: int = 200
    compress_responses: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/crawler.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = True


@dataclass
class Config:
    """Main configuration class."""
    service: ServiceConfig = field(default_factory=ServiceConfig)
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    """Build a config section dataclass, rejecting unknown keys."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in section '{name}': {', '.join(sorted(unknown))}")

    return section_cls(**data)


def validate_ipv4(address: str) -> bool:
    """Check that address is a dotted-quad IPv4 address."""
    numbers = str(address).split('.')
    if len(numbers) != 4:
        return False

    for number in numbers:
        try:
            value = int(number)
        except ValueError:
            return False
        if value < 0 or value > 255:
            return False

    return True


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
        """
        Load configuration from YAML file and apply overrides.

        Args:
            overrides: Per-section values (typically from the command line)
                that take precedence over the file. None values are ignored.

        Returns:
            Validated Config instance
        """
        config_data: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                try:
                    config_data = yaml.safe_load(file) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

            if not isinstance(config_data, dict):
                raise ConfigError(f"Configuration file must contain a mapping: {self.config_path}")

        # Parse configuration sections
        self._config = Config(
            service=_build_section(ServiceConfig, config_data.get('service'), 'service'),
            crawler=_build_section(CrawlerConfig, config_data.get('crawler'), 'crawler'),
            api=_build_section(ApiConfig, config_data.get('api'), 'api'),
            logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
            monitoring=_build_section(MonitoringConfig, config_data.get('monitoring'), 'monitoring'),
        )

        if overrides:
            self._apply_overrides(overrides)

        self._validate_config()
        return self._config

    def _apply_overrides(self, overrides: Dict[str, Dict[str, Any]]):
        for section_name, values in overrides.items():
            section = getattr(self._config, section_name)
            changes = {key: value for key, value in values.items() if value is not None}
            if changes:
                setattr(self._config, section_name, replace(section, **changes))

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        service = self._config.service
        crawler = self._config.crawler

        if not validate_ipv4(service.host):
            raise ConfigError(f"Invalid IP address: {service.host}", EXIT_INVALID_IP)

        if not isinstance(service.port, int) or isinstance(service.port, bool):
            raise ConfigError(f"port must be a number, got {service.port!r}", EXIT_INVALID_NUMBER)

        if service.port < 1 or service.port > 65535:
            raise ConfigError("Port must be between 1 and 65535", EXIT_INVALID_PORT)

        # Validate base URL
        if not isinstance(crawler.base_url, str) or not crawler.base_url:
            raise ConfigError("A base URL must be provided", EXIT_INVALID_URL)

        parsed = urlparse(crawler.base_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ConfigError(f"Invalid base URL: {crawler.base_url}", EXIT_INVALID_URL)

        # Validate numeric values
        for name in ('timeout', 'max_keywords', 'request_timeout', 'max_connections'):
            value = getattr(crawler, name)
            if not _is_number(value):
                raise ConfigError(f"{name} must be a number, got {value!r}", EXIT_INVALID_NUMBER)

        if crawler.timeout < 1:
            raise ConfigError("Timeout must be greater than 0", EXIT_INVALID_TIMEOUT)

        if crawler.max_keywords < 1:
            raise ConfigError("The number of keywords must be greater than 0", EXIT_INVALID_KEYWORDS)

        if crawler.request_timeout < 1:
            raise ConfigError("request_timeout must be greater than 0")

        if crawler.max_connections < 1:
            raise ConfigError("max_connections must be at least 1")

        if crawler.capacity_mode not in CAPACITY_MODES:
            raise ConfigError(f"capacity_mode must be one of: {', '.join(CAPACITY_MODES)}")

        status = self._config.api.invalid_keyword_status
        if not isinstance(status, int) or status < 100 or status > 599:
            raise ConfigError("invalid_keyword_status must be an HTTP status code")

        log_config = self._config.logging
        for name in ('max_bytes', 'backup_count'):
            value = getattr(log_config, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"logging.{name} must be a non-negative integer, got {value!r}")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager(None)


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: Optional[str] = "config.yaml",
                overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Config:
    """Load configuration from file (optional) and command line overrides."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config(overrides)
