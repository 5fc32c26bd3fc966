"""
HTTP interface of the keyword crawler service.
"""

from .app import create_app
from .routes import REGISTRY_KEY, METRICS_KEY

__all__ = ['create_app', 'REGISTRY_KEY', 'METRICS_KEY']
