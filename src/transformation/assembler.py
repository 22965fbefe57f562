"""
Result Assembler

Shapes an aggregation run into the MetricsResult consumed by the dashboard.
"""

from decimal import Decimal, ROUND_HALF_UP

from src.transformation.aggregator import AggregationContext, DerivedMetrics
from src.transformation.results import (
    CategoryShare,
    DetailedMetrics,
    MetricCard,
    MetricsResult,
    OrderAggregates,
    ProductBreakdown,
    SummaryMetrics,
)


def to_fixed(value: float, digits: int = 2) -> str:
    """
    Format with a fixed number of decimals.

    Rounds the exact binary value half-up, so 1.005 gives "1.00" and 0.125
    gives "0.13", matching the dashboard's own number formatting.
    """
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def share_of(count: int, total: int) -> str:
    """Percentage of total at one decimal, "0" when total is 0"""
    if total <= 0:
        return "0"
    return to_fixed(count / total * 100, 1)


def _card(value: float, label: str) -> MetricCard:
    return MetricCard(value=to_fixed(value), change=0, label=label, data=[])


def assemble_metrics_result(
    context: AggregationContext,
    derived: DerivedMetrics,
) -> MetricsResult:
    """Build the immutable MetricsResult for one finished run."""
    total = context.total_purchases
    summary = SummaryMetrics(
        purchase_frequency=_card(derived.avg_orders_per_customer, "Avg. purchases per customer"),
        customer_ltv=_card(derived.ltv, "Lifetime value per customer"),
        aov=_card(derived.aov, "Avg. revenue per order"),
        avg_swapt_submits=_card(derived.avg_submits_per_profile, "Avg. swapt submits per profile"),
        avg_swapt_interval=_card(
            derived.avg_submission_interval, "Avg. interval between swapt submits (hrs)"
        ),
        avg_order_interval=_card(derived.avg_order_interval, "Avg. interval between orders (hrs)"),
        total_swapt_submits=context.total_submissions,
        net_new_subscribers=derived.unique_submission_profiles,
    )

    products = ProductBreakdown(
        top_categories=[
            CategoryShare(name=name, count=count, percentage=share_of(count, total))
            for name, count in context.top_categories.items()
        ],
        attribute_distribution=dict(context.attribute_distribution),
        items_per_order=to_fixed(derived.avg_items_per_order),
        discount_rate=0,
    )
    orders = OrderAggregates(
        total=total,
        average_item_count=to_fixed(derived.avg_items_per_order),
        discounted_orders=context.discounted_orders,
        discounted_orders_percentage=share_of(context.discounted_orders, total),
        daily_average=to_fixed(derived.daily_average),
    )

    return MetricsResult(
        metrics=summary,
        detailed_data=[],
        detailed_metrics=DetailedMetrics(
            products=products,
            orders=orders,
            order_details=list(context.order_details),
        ),
    )
