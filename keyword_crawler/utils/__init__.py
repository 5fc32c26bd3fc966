"""
Utility modules for the keyword crawler service.
"""

from .config import Config, ConfigError, ConfigManager, load_config, get_config

__all__ = ['Config', 'ConfigError', 'ConfigManager', 'load_config', 'get_config']
