"""
Metrics Data Endpoints

GET serves the cached dashboard metrics; POST recomputes them from the
Klaviyo API and refreshes the cache.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
import structlog

from src.errors import InvalidRequestError
from src.serving.api.dependencies import get_metrics_cache, get_metrics_pipeline
from src.serving.cache import MetricsFileCache
from src.transformation.pipeline import MetricsPipeline

router = APIRouter()
logger = structlog.get_logger(__name__)


class RefreshRequest(BaseModel):
    """Body of a metrics refresh; both fields are required but checked by hand"""
    model_config = ConfigDict(populate_by_name=True)

    store_id: Optional[str] = Field(default=None, alias="storeId")
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class RefreshResponse(BaseModel):
    """Successful refresh response"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    store_id: str = Field(alias="storeId")
    data: Dict[str, Any]


@router.get("/metrics-data")
async def get_metrics_data(
    cache: MetricsFileCache = Depends(get_metrics_cache),
) -> Dict[str, Any]:
    """
    Return the last computed metrics.

    404 when nothing has been cached yet, 500 when the cache is unreadable.
    """
    logger.info("get_metrics_data called", path=str(cache.path))
    return cache.load()


@router.post("/metrics-data", response_model=RefreshResponse)
async def refresh_metrics_data(
    request: RefreshRequest,
    pipeline: MetricsPipeline = Depends(get_metrics_pipeline),
) -> RefreshResponse:
    """
    Run the full pipeline with the caller's API key and cache the result.
    """
    if not request.store_id or not request.api_key:
        raise InvalidRequestError("storeId and apiKey are both required")

    logger.info("Metrics refresh requested", store_id=request.store_id)
    result = await pipeline.refresh(request.api_key)

    return RefreshResponse(
        success=True,
        store_id=request.store_id,
        data=result.to_json_dict(),
    )
