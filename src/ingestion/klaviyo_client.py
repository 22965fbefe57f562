"""
Klaviyo Events API Client

Remote access for the metrics pipeline:
- Metric identity resolution by name
- Paginated event retrieval following links.next
- Best-effort per-profile purchase lookups

Requests are strictly sequential and never retried. A failed page on the
primary submission stream aborts the run; a failed page on a profile's
purchase stream truncates that profile's results only.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import httpx
import structlog
from prometheus_client import Counter

from src.config import KlaviyoSettings, MetricsSettings
from src.errors import ConfigurationError, UpstreamFetchError
from src.ingestion.events import Event

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

EVENT_PAGES_FETCHED = Counter(
    "swapt_klaviyo_event_pages_total",
    "Klaviyo event pages requested",
    ["stream", "status"],
)


def resolve_api_key(api_key: Optional[str], settings: KlaviyoSettings) -> str:
    """
    Pick the caller's API key, falling back to the configured one.

    Raises:
        ConfigurationError: if neither is available
    """
    if api_key:
        return api_key
    if settings.api_key is not None and settings.api_key.get_secret_value():
        return settings.api_key.get_secret_value()
    raise ConfigurationError("No Klaviyo API key provided or found in environment variables")


def metric_filter(metric_id: str, profile_id: Optional[str] = None) -> str:
    """Build the events filter expression for a metric, optionally per profile."""
    expression = f'equals(metric_id,"{metric_id}")'
    if profile_id is not None:
        expression += f',equals(profile_id,"{profile_id}")'
    return expression


@dataclass(frozen=True)
class MetricIds:
    """Resolved identifiers of the two metrics the pipeline correlates"""
    submission_metric_id: str
    order_metric_id: str


class PurchaseSource(Protocol):
    """
    Supplies a profile's purchases on or after a point in time.

    Implementations must not raise for upstream failures; a partial or empty
    list is the degraded result.
    """

    async def purchases_since(self, profile_id: str, since: datetime) -> List[Event]:
        ...


class KlaviyoClient:
    """
    Async client for the Klaviyo metrics and events endpoints.

    Example:
        async with KlaviyoClient(api_key, settings.klaviyo) as client:
            ids = await client.resolve_metric_ids(settings.metrics)
            submissions = await client.fetch_submission_events(ids.submission_metric_id)
    """

    def __init__(
        self,
        api_key: str,
        settings: KlaviyoSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = httpx.AsyncClient(
            headers=self.build_headers(api_key, settings.revision),
            timeout=httpx.Timeout(settings.timeout_seconds),
            transport=transport,
        )

    @staticmethod
    def build_headers(api_key: str, revision: str) -> Dict[str, str]:
        return {
            "Authorization": f"Klaviyo-API-Key {api_key}",
            "revision": revision,
            "accept": "application/vnd.api+json",
        }

    async def __aenter__(self) -> "KlaviyoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client"""
        await self._client.aclose()

    @property
    def metrics_url(self) -> str:
        return f"{self.settings.base_url}/metrics/"

    @property
    def events_url(self) -> str:
        return f"{self.settings.base_url}/events/"

    def event_query(self, metric_id: str, profile_id: Optional[str] = None) -> Dict[str, Any]:
        """Query parameters for the first page of a filtered event collection"""
        return {
            "filter": metric_filter(metric_id, profile_id),
            "page[size]": self.settings.page_size,
        }

    async def _get_page(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self._client.get(url, params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Response body is not a JSON object")
        return payload

    async def resolve_metric_ids(self, metrics: MetricsSettings) -> MetricIds:
        """
        Look up the submission and purchase metric IDs by exact name.

        Only the first page of the metrics listing is read.

        Raises:
            UpstreamFetchError: if the listing request fails
            ConfigurationError: if either metric name is absent
        """
        logger.info("Fetching metric IDs", url=self.metrics_url)
        try:
            payload = await self._get_page(self.metrics_url)
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"Failed to list metrics: {e}", url=self.metrics_url) from e

        submission_id = ""
        order_id = ""
        for metric in payload.get("data") or []:
            name = ((metric or {}).get("attributes") or {}).get("name")
            if name == metrics.submission_metric_name:
                submission_id = metric.get("id", "")
            elif name == metrics.order_metric_name:
                order_id = metric.get("id", "")

        if not submission_id or not order_id:
            raise ConfigurationError("Required metric IDs not found in the Klaviyo account")

        logger.info("Resolved metric IDs", submission_metric_id=submission_id, order_metric_id=order_id)
        return MetricIds(submission_metric_id=submission_id, order_metric_id=order_id)

    async def fetch_all_events(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every page of an event collection, preserving order.

        Raises:
            UpstreamFetchError: on the first page that fails
        """
        events: List[Dict[str, Any]] = []
        page = 0
        next_url: Optional[str] = url
        while next_url:
            page += 1
            logger.debug("Fetching events page", page=page, url=next_url)
            try:
                payload = await self._get_page(next_url, params)
            except (httpx.HTTPError, ValueError) as e:
                EVENT_PAGES_FETCHED.labels(stream="submissions", status="error").inc()
                logger.error("Error fetching events page", page=page, error=str(e))
                raise UpstreamFetchError(
                    f"Failed to fetch events page {page}: {e}", url=next_url, page=page
                ) from e
            EVENT_PAGES_FETCHED.labels(stream="submissions", status="success").inc()
            events.extend(payload.get("data") or [])
            next_url = (payload.get("links") or {}).get("next")
            # next links already carry the query string
            params = None

        logger.info("Fetched event pages", pages=page, events=len(events))
        return events

    async def fetch_submission_events(self, metric_id: str) -> List[Event]:
        """
        Fetch the primary submission stream.

        Raises:
            UpstreamFetchError: on any page failure or malformed event
        """
        logger.info("Fetching all submission events", metric_id=metric_id)
        resources = await self.fetch_all_events(self.events_url, self.event_query(metric_id))
        try:
            events = [Event.from_api(resource) for resource in resources]
        except ValueError as e:
            raise UpstreamFetchError(f"Malformed submission event: {e}", url=self.events_url) from e
        logger.info("Fetched submission events", count=len(events))
        return events

    async def fetch_profile_purchases(
        self,
        order_metric_id: str,
        profile_id: str,
        since: datetime,
    ) -> List[Event]:
        """
        Fetch a profile's purchases on or after `since`.

        A failed page stops pagination and keeps the pages already read.
        Malformed events are skipped.
        """
        resources: List[Dict[str, Any]] = []
        page = 0
        next_url: Optional[str] = self.events_url
        params: Optional[Dict[str, Any]] = self.event_query(order_metric_id, profile_id)
        while next_url:
            page += 1
            logger.debug("Fetching purchases page", profile_id=profile_id, page=page, url=next_url)
            try:
                payload = await self._get_page(next_url, params)
            except (httpx.HTTPError, ValueError) as e:
                EVENT_PAGES_FETCHED.labels(stream="purchases", status="error").inc()
                logger.warning(
                    "Error fetching purchases page, keeping partial results",
                    profile_id=profile_id,
                    page=page,
                    error=str(e),
                )
                break
            EVENT_PAGES_FETCHED.labels(stream="purchases", status="success").inc()
            resources.extend(payload.get("data") or [])
            next_url = (payload.get("links") or {}).get("next")
            params = None

        purchases: List[Event] = []
        for resource in resources:
            try:
                purchase = Event.from_api(resource)
            except ValueError as e:
                logger.warning("Skipping malformed purchase event", profile_id=profile_id, error=str(e))
                continue
            if purchase.timestamp >= since:
                purchases.append(purchase)

        logger.debug(
            "Fetched purchases",
            profile_id=profile_id,
            raw=len(resources),
            after=since.isoformat(),
            kept=len(purchases),
        )
        return purchases


class KlaviyoPurchaseSource:
    """PurchaseSource backed by one sequential Klaviyo lookup per profile."""

    def __init__(self, client: KlaviyoClient, order_metric_id: str):
        self.client = client
        self.order_metric_id = order_metric_id

    async def purchases_since(self, profile_id: str, since: datetime) -> List[Event]:
        return await self.client.fetch_profile_purchases(self.order_metric_id, profile_id, since)
