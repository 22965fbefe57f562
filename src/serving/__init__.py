"""
Serving Module
"""
from .cache import MetricsFileCache

__all__ = [
    "MetricsFileCache",
]
