"""
Data Ingestion Module
"""
from .events import Event, EventProperties
from .klaviyo_client import (
    KlaviyoClient,
    KlaviyoPurchaseSource,
    MetricIds,
    PurchaseSource,
    resolve_api_key,
)

__all__ = [
    "Event",
    "EventProperties",
    "KlaviyoClient",
    "KlaviyoPurchaseSource",
    "MetricIds",
    "PurchaseSource",
    "resolve_api_key",
]
