"""
Metrics Pipeline

Orchestrates one end-to-end run: resolve metric IDs, fetch submissions,
correlate purchases, derive and assemble metrics, then persist the result.
"""

import time
from typing import Optional

import httpx
import structlog
from prometheus_client import Counter, Histogram

from src.config import Settings, get_settings
from src.errors import PersistenceError, PipelineError, SwaptAnalyticsError
from src.ingestion.klaviyo_client import (
    KlaviyoClient,
    KlaviyoPurchaseSource,
    resolve_api_key,
)
from src.serving.cache import MetricsFileCache
from src.transformation.aggregator import (
    AggregationContext,
    CorrelationEngine,
    derive_metrics,
)
from src.transformation.assembler import assemble_metrics_result
from src.transformation.results import MetricsResult

logger = structlog.get_logger(__name__)

PIPELINE_RUNS = Counter(
    "swapt_pipeline_runs_total",
    "Metrics pipeline runs",
    ["status"],
)

PIPELINE_DURATION = Histogram(
    "swapt_pipeline_duration_seconds",
    "Time spent computing metrics",
)


class MetricsPipeline:
    """
    Runs the metrics aggregation pipeline against the Klaviyo API.

    Every run owns its own client and accumulator; nothing is shared between
    runs.

    Example:
        pipeline = MetricsPipeline()
        result = await pipeline.refresh(api_key)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[MetricsFileCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache or MetricsFileCache.from_settings(self.settings.storage)
        self.transport = transport

    async def run(self, api_key: Optional[str] = None) -> MetricsResult:
        """
        Compute a fresh MetricsResult without persisting it.

        Raises:
            ConfigurationError: missing key or unresolvable metric names
            UpstreamFetchError: the submission stream could not be fetched
            PipelineError: any other failure during the run
        """
        start_time = time.perf_counter()
        try:
            result = await self._compute(api_key)
        except SwaptAnalyticsError:
            PIPELINE_RUNS.labels(status="error").inc()
            raise
        except Exception as e:
            PIPELINE_RUNS.labels(status="error").inc()
            logger.exception("Metrics pipeline failed", error_type=type(e).__name__)
            raise PipelineError(f"Metrics pipeline failed: {e}") from e
        PIPELINE_RUNS.labels(status="success").inc()
        PIPELINE_DURATION.observe(time.perf_counter() - start_time)
        return result

    async def _compute(self, api_key: Optional[str]) -> MetricsResult:
        key = resolve_api_key(api_key, self.settings.klaviyo)
        metrics_settings = self.settings.metrics

        async with KlaviyoClient(key, self.settings.klaviyo, transport=self.transport) as client:
            metric_ids = await client.resolve_metric_ids(metrics_settings)
            submissions = await client.fetch_submission_events(metric_ids.submission_metric_id)

            engine = CorrelationEngine(
                KlaviyoPurchaseSource(client, metric_ids.order_metric_id),
                min_order_value=metrics_settings.min_order_value,
                progress_log_every=metrics_settings.progress_log_every,
            )
            context = await engine.correlate(submissions, AggregationContext())

        derived = derive_metrics(context)
        logger.info(
            "Final metrics",
            total_purchases=context.total_purchases,
            total_revenue=context.total_revenue,
            aov=derived.aov,
            total_swapt_submits=context.total_submissions,
            net_new_subscribers=derived.unique_submission_profiles,
            avg_swapt_submits=derived.avg_submits_per_profile,
            avg_swapt_interval_hrs=round(derived.avg_submission_interval, 2),
            avg_order_interval_hrs=round(derived.avg_order_interval, 2),
        )
        return assemble_metrics_result(context, derived)

    async def refresh(self, api_key: Optional[str] = None) -> MetricsResult:
        """
        Run the pipeline and overwrite the cache.

        A failed cache write is logged and the result is still returned.
        """
        result = await self.run(api_key)
        try:
            self.cache.save(result)
        except PersistenceError as e:
            logger.error("Metrics computed but not cached", error=str(e))
        return result
