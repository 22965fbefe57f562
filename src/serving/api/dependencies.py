"""
API Dependencies

Provides the cache and pipeline instances used by the endpoints. Tests swap
them through app.dependency_overrides.
"""

from fastapi import Depends

from src.config import Settings, get_settings
from src.serving.cache import MetricsFileCache
from src.transformation.pipeline import MetricsPipeline


def get_metrics_cache(settings: Settings = Depends(get_settings)) -> MetricsFileCache:
    """Dependency for the metrics cache file."""
    return MetricsFileCache.from_settings(settings.storage)


def get_metrics_pipeline(
    settings: Settings = Depends(get_settings),
    cache: MetricsFileCache = Depends(get_metrics_cache),
) -> MetricsPipeline:
    """Dependency for a pipeline bound to the configured cache."""
    return MetricsPipeline(settings=settings, cache=cache)
