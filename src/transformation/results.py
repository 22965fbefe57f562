"""
Metrics Result Models

Immutable output structure consumed by the dashboard. Field names are
snake_case in Python and camelCase on the wire; dump with by_alias=True.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResultModel(BaseModel):
    """Frozen base with camelCase aliases"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class OrderRecord(ResultModel):
    """A qualifying purchase, created once during aggregation"""
    id: str
    date: str
    items: int
    value: float
    ltv: float
    status: str = "Completed"
    profile_id: str


class MetricCard(ResultModel):
    """Summary metric as shown on a dashboard card"""
    value: str
    change: int = 0
    label: str
    data: List[float] = Field(default_factory=list)


class SummaryMetrics(ResultModel):
    purchase_frequency: MetricCard
    customer_ltv: MetricCard = Field(alias="customerLTV")
    aov: MetricCard
    avg_swapt_submits: MetricCard
    avg_swapt_interval: MetricCard
    avg_order_interval: MetricCard
    total_swapt_submits: int = 0
    net_new_subscribers: int = 0


class CategoryShare(ResultModel):
    name: str
    count: int
    percentage: str


class ProductBreakdown(ResultModel):
    top_categories: List[CategoryShare]
    attribute_distribution: Dict[str, int]
    # Mean qualifying orders per customer batch, not items per order
    items_per_order: str
    discount_rate: int = 0


class OrderAggregates(ResultModel):
    total: int
    average_item_count: str
    discounted_orders: int
    discounted_orders_percentage: str
    daily_average: str


class DetailedMetrics(ResultModel):
    products: ProductBreakdown
    orders: OrderAggregates
    order_details: List[OrderRecord]


class MetricsResult(ResultModel):
    """Complete pipeline output, persisted and served as-is"""
    metrics: SummaryMetrics
    detailed_data: List[dict] = Field(default_factory=list)
    detailed_metrics: DetailedMetrics

    def to_json_dict(self) -> dict:
        """Wire representation with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True)
