"""
Unit Tests - Result Assembly
"""
import pytest

from src.ingestion.events import Event
from src.transformation.aggregator import AggregationContext, CorrelationEngine, derive_metrics
from src.transformation.assembler import assemble_metrics_result, share_of, to_fixed
from tests.fakes import T0, event_resource, hours, purchase_resource


class StaticPurchaseSource:
    def __init__(self, purchases):
        self.purchases = purchases

    async def purchases_since(self, profile_id, since):
        return [p for p in self.purchases.get(profile_id, []) if p.timestamp >= since]


async def build_result(submissions, purchases):
    engine = CorrelationEngine(StaticPurchaseSource(purchases))
    context = await engine.correlate(submissions, AggregationContext())
    return assemble_metrics_result(context, derive_metrics(context)).to_json_dict()


def sub(event_id, profile_id, when):
    return Event.from_api(event_resource(event_id, profile_id, when))


def order(event_id, profile_id, when, value, **props):
    return Event.from_api(purchase_resource(event_id, profile_id, when, value=value, **props))


class TestFormatting:
    """Tests for number formatting helpers"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "0.00"),
            (10, "10.00"),
            (2 / 3, "0.67"),
            (0.125, "0.13"),
            (1.005, "1.00"),
            (1234.5, "1234.50"),
        ],
    )
    def test_to_fixed(self, value, expected):
        assert to_fixed(value) == expected

    def test_to_fixed_one_decimal(self):
        assert to_fixed(100 / 3, 1) == "33.3"

    def test_share_of_zero_total(self):
        assert share_of(0, 0) == "0"

    def test_share_of(self):
        assert share_of(1, 3) == "33.3"
        assert share_of(3, 3) == "100.0"


class TestAssembleMetricsResult:
    """Tests for the assembled output structure"""

    async def test_empty_run_shape(self):
        result = await build_result([], {})

        metrics = result["metrics"]
        assert metrics["totalSwaptSubmits"] == 0
        assert metrics["netNewSubscribers"] == 0
        for key in [
            "purchaseFrequency",
            "customerLTV",
            "aov",
            "avgSwaptSubmits",
            "avgSwaptInterval",
            "avgOrderInterval",
        ]:
            assert metrics[key]["value"] == "0.00"
            assert metrics[key]["change"] == 0
            assert metrics[key]["data"] == []
            assert metrics[key]["label"]

        assert result["detailedData"] == []
        detailed = result["detailedMetrics"]
        assert detailed["products"]["topCategories"] == []
        assert detailed["products"]["attributeDistribution"] == {}
        assert detailed["products"]["itemsPerOrder"] == "0.00"
        assert detailed["products"]["discountRate"] == 0
        assert detailed["orders"] == {
            "total": 0,
            "averageItemCount": "0.00",
            "discountedOrders": 0,
            "discountedOrdersPercentage": "0",
            "dailyAverage": "0.00",
        }
        assert detailed["orderDetails"] == []

    async def test_category_percentages(self):
        submissions = [sub("S1", "P1", T0)]
        purchases = {
            "P1": [
                order("O1", "P1", T0 + hours(1), 10, ProductCategories=["Shoes"], Discounted=True),
                order("O2", "P1", T0 + hours(2), 10, ProductCategories=["Bags"]),
                order("O3", "P1", T0 + hours(3), 10, ProductCategories=["Shoes"]),
            ]
        }

        result = await build_result(submissions, purchases)
        products = result["detailedMetrics"]["products"]

        assert products["topCategories"] == [
            {"name": "Shoes", "count": 2, "percentage": "66.7"},
            {"name": "Bags", "count": 1, "percentage": "33.3"},
        ]
        total = sum(float(c["percentage"]) for c in products["topCategories"])
        assert total == pytest.approx(100, abs=0.2)
        assert result["detailedMetrics"]["orders"]["discountedOrdersPercentage"] == "33.3"

    async def test_order_details_wire_format(self):
        result = await build_result(
            [sub("S1", "P1", T0)],
            {"P1": [order("O1", "P1", T0 + hours(1), 12.5, ProductNames=["A", "B"])]},
        )

        assert result["detailedMetrics"]["orderDetails"] == [
            {
                "id": "O1",
                "date": (T0 + hours(1)).isoformat(),
                "items": 2,
                "value": 12.5,
                "ltv": 12.5,
                "status": "Completed",
                "profileId": "P1",
            }
        ]
        assert result["detailedMetrics"]["products"]["attributeDistribution"] == {"A": 1}

    async def test_summary_cards(self):
        submissions = [sub("S1", "P1", T0), sub("S2", "P1", T0 + hours(10))]
        purchases = {"P1": [order("O1", "P1", T0 + hours(5), 20), order("O2", "P1", T0 + hours(15), 3)]}

        metrics = (await build_result(submissions, purchases))["metrics"]

        assert metrics["totalSwaptSubmits"] == 2
        assert metrics["netNewSubscribers"] == 1
        assert metrics["avgSwaptSubmits"]["value"] == "2.00"
        assert metrics["avgSwaptInterval"]["value"] == "10.00"
        assert metrics["aov"]["value"] == "20.00"
        assert metrics["customerLTV"]["value"] == "20.00"
        assert metrics["purchaseFrequency"]["value"] == "1.00"
        assert metrics["customerLTV"]["label"] == "Lifetime value per customer"
