"""
Metrics Transformation Module
"""
from .aggregator import AggregationContext, CorrelationEngine, DerivedMetrics, derive_metrics
from .assembler import assemble_metrics_result
from .intervals import ProfileTimestampIndex
from .results import MetricsResult, OrderRecord

__all__ = [
    "AggregationContext",
    "CorrelationEngine",
    "DerivedMetrics",
    "derive_metrics",
    "assemble_metrics_result",
    "ProfileTimestampIndex",
    "MetricsResult",
    "OrderRecord",
]
