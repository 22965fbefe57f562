"""
Correlation & Aggregation Engine

Joins each submission event to the same profile's later purchases and
accumulates revenue, frequency, category and interval statistics.

One AggregationContext is created per pipeline run, passed into the
correlation step and returned from it. Qualifying purchases update every
counter in a single place so totals and order details always agree.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Sequence

import structlog

from src.ingestion.events import Event
from src.ingestion.klaviyo_client import PurchaseSource
from src.transformation.intervals import ProfileTimestampIndex
from src.transformation.results import OrderRecord

logger = structlog.get_logger(__name__)

DEFAULT_MIN_ORDER_VALUE = 5.0


@dataclass
class AggregationContext:
    """Running counters for one pipeline run"""
    submissions: ProfileTimestampIndex = field(default_factory=ProfileTimestampIndex)
    total_submissions: int = 0
    discounted_orders: int = 0
    total_revenue: float = 0.0
    total_purchases: int = 0
    top_categories: Dict[str, int] = field(default_factory=dict)
    attribute_distribution: Dict[str, int] = field(default_factory=dict)
    items_per_order: List[int] = field(default_factory=list)
    purchase_dates: List[datetime] = field(default_factory=list)
    customer_orders: Dict[str, List[float]] = field(default_factory=dict)
    order_details: List[OrderRecord] = field(default_factory=list)

    def index_submissions(self, submissions: Sequence[Event]) -> None:
        for submission in submissions:
            self.submissions.add(submission.profile_id, submission.timestamp)
        self.total_submissions += len(submissions)

    def record_purchase(self, purchase: Event, profile_id: str) -> OrderRecord:
        """Count one qualifying purchase and append its order record."""
        props = purchase.properties
        value = props.value

        self.total_purchases += 1
        self.total_revenue += value
        if props.discounted:
            self.discounted_orders += 1

        category = props.category
        variant = props.variant
        self.top_categories[category] = self.top_categories.get(category, 0) + 1
        self.attribute_distribution[variant] = self.attribute_distribution.get(variant, 0) + 1
        self.purchase_dates.append(purchase.timestamp)

        record = OrderRecord(
            id=purchase.id,
            date=purchase.raw_datetime,
            items=props.item_count,
            value=value,
            ltv=value,
            profile_id=profile_id,
        )
        self.order_details.append(record)
        return record

    def purchase_index(self) -> ProfileTimestampIndex:
        """Qualifying purchase timestamps keyed by the ordering profile"""
        index = ProfileTimestampIndex()
        for moment, record in zip(self.purchase_dates, self.order_details):
            index.add(record.profile_id, moment)
        return index


@dataclass(frozen=True)
class DerivedMetrics:
    """Scalar statistics derived from a finished AggregationContext"""
    unique_submission_profiles: int
    avg_submits_per_profile: float
    avg_submission_interval: float
    avg_order_interval: float
    total_customers: int
    avg_orders_per_customer: float
    daily_average: float
    aov: float
    ltv: float
    avg_items_per_order: float


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def daily_purchase_average(context: AggregationContext) -> float:
    """
    Purchases per day across the first-to-last purchase span.

    The span is rounded up to whole days with a floor of one; fewer than two
    purchase dates yield 0.
    """
    if len(context.purchase_dates) < 2:
        return 0.0
    ordered = sorted(context.purchase_dates)
    span_days = (ordered[-1] - ordered[0]).total_seconds() / 86400
    return context.total_purchases / max(1, math.ceil(span_days))


def derive_metrics(context: AggregationContext) -> DerivedMetrics:
    """Compute every derived scalar; every ratio is 0 on a zero denominator."""
    unique_profiles = context.submissions.profile_count
    total_customers = len(context.customer_orders)
    return DerivedMetrics(
        unique_submission_profiles=unique_profiles,
        avg_submits_per_profile=_ratio(context.total_submissions, unique_profiles),
        avg_submission_interval=context.submissions.average_interval_hours(),
        avg_order_interval=context.purchase_index().average_interval_hours(),
        total_customers=total_customers,
        avg_orders_per_customer=_ratio(context.total_purchases, total_customers),
        daily_average=daily_purchase_average(context),
        aov=_ratio(context.total_revenue, context.total_purchases),
        ltv=_ratio(context.total_revenue, total_customers),
        avg_items_per_order=_ratio(sum(context.items_per_order), len(context.items_per_order)),
    )


class CorrelationEngine:
    """
    Correlates submissions with subsequent purchases.

    Submissions are processed in the order received and each profile lookup
    completes before the next submission starts.

    Example:
        engine = CorrelationEngine(KlaviyoPurchaseSource(client, order_metric_id))
        context = await engine.correlate(submissions, AggregationContext())
        derived = derive_metrics(context)
    """

    def __init__(
        self,
        purchase_source: PurchaseSource,
        min_order_value: float = DEFAULT_MIN_ORDER_VALUE,
        progress_log_every: int = 50,
    ):
        self.purchase_source = purchase_source
        self.min_order_value = min_order_value
        self.progress_log_every = progress_log_every

    def correlate_submission(
        self,
        context: AggregationContext,
        submission: Event,
        purchases: Sequence[Event],
    ) -> AggregationContext:
        """Fold one submission's purchases into the context."""
        order_values: List[float] = []
        for purchase in purchases:
            if not purchase.properties.value >= self.min_order_value:
                continue
            record = context.record_purchase(purchase, submission.profile_id)
            order_values.append(record.value)

        if order_values:
            context.customer_orders[submission.profile_id] = order_values
            context.items_per_order.append(len(order_values))
        return context

    async def correlate(
        self,
        submissions: Sequence[Event],
        context: AggregationContext,
    ) -> AggregationContext:
        """Index the submissions, then correlate each one with its purchases."""
        context.index_submissions(submissions)
        logger.info("Correlating submissions with purchases", submissions=len(submissions))

        for position, submission in enumerate(submissions, start=1):
            if self.progress_log_every and position % self.progress_log_every == 0:
                logger.info("Correlation progress", processed=position, total=len(submissions))

            purchases = await self.purchase_source.purchases_since(
                submission.profile_id, submission.timestamp
            )
            logger.debug(
                "Fetched purchases for profile",
                profile_id=submission.profile_id,
                purchases=len(purchases),
            )
            self.correlate_submission(context, submission, purchases)

        logger.info(
            "Completed correlation",
            total_purchases=context.total_purchases,
            customers=len(context.customer_orders),
        )
        return context
