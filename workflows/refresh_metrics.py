"""
Prefect Workflow Orchestration - Metrics Refresh

Scheduled recomputation of the dashboard metrics using the API key from the
environment (KLAVIYO_API_KEY or SWAPT_KLAVIYO_API_KEY).
"""

from typing import Optional

from prefect import flow, task, get_run_logger

from src.config import get_settings
from src.serving.cache import MetricsFileCache
from src.transformation.pipeline import MetricsPipeline

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="compute_metrics",
    description="Run the Klaviyo metrics aggregation pipeline",
)
async def compute_metrics(api_key: Optional[str] = None) -> dict:
    """Compute fresh metrics without touching the cache"""
    logger = get_run_logger()

    pipeline = MetricsPipeline(settings=settings)
    result = await pipeline.run(api_key)

    logger.info(
        f"Computed metrics: {result.metrics.total_swapt_submits} submits, "
        f"{result.detailed_metrics.orders.total} qualifying orders"
    )
    return result.to_json_dict()


@task(
    name="save_metrics",
    description="Overwrite the cached metrics file",
)
def save_metrics(payload: dict) -> str:
    """Persist the computed metrics"""
    logger = get_run_logger()

    cache = MetricsFileCache.from_settings(settings.storage)
    path = cache.save(payload)

    logger.info(f"Metrics saved to {path}")
    return str(path)


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="refresh_metrics",
    description="Recompute Swapt dashboard metrics and refresh the cache",
)
async def refresh_metrics(api_key: Optional[str] = None) -> dict:
    """
    Metrics refresh flow.

    Unlike the HTTP refresh, a failed cache write fails the flow run so the
    scheduler surfaces it.
    """
    logger = get_run_logger()
    logger.info("Starting metrics refresh")

    payload = await compute_metrics(api_key)
    path = save_metrics(payload)

    return {
        "status": "success",
        "path": path,
        "total_swapt_submits": payload["metrics"]["totalSwaptSubmits"],
        "total_orders": payload["detailedMetrics"]["orders"]["total"],
    }


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(refresh_metrics())
