"""
Integration Tests - Metrics API
"""
import pytest
from fastapi.testclient import TestClient

from src.config import SecuritySettings, get_settings
from src.serving.api import create_api_app
from src.serving.api.dependencies import get_metrics_pipeline
from src.transformation.pipeline import MetricsPipeline
from tests.fakes import SUBMISSIONS, T0, FakeKlaviyoAPI, event_resource, exploding_transport

REFRESH_BODY = {"storeId": "store-1", "apiKey": "pk_test"}


def build_client(settings, cache, api: FakeKlaviyoAPI) -> TestClient:
    app = create_api_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_metrics_pipeline] = lambda: MetricsPipeline(
        settings=settings, cache=cache, transport=api.transport
    )
    return TestClient(app)


@pytest.fixture
def client(test_settings, metrics_cache, p1_scenario) -> TestClient:
    return build_client(test_settings, metrics_cache, p1_scenario)


class TestMetricsData:
    """Tests for /api/v1/metrics-data"""

    def test_get_before_any_refresh(self, client):
        response = client.get("/api/v1/metrics-data")

        assert response.status_code == 404
        assert response.json()["error"] == "Data file not found"

    def test_refresh_then_get(self, client, metrics_cache):
        response = client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["storeId"] == "store-1"
        assert body["data"]["metrics"]["totalSwaptSubmits"] == 2
        assert metrics_cache.exists()

        cached = client.get("/api/v1/metrics-data")
        assert cached.status_code == 200
        assert cached.json() == body["data"]

    @pytest.mark.parametrize(
        "body",
        [
            {"storeId": "store-1"},
            {"apiKey": "pk_test"},
            {"storeId": "", "apiKey": "pk_test"},
            {},
        ],
    )
    def test_refresh_requires_store_and_key(self, client, p1_scenario, body):
        response = client.post("/api/v1/metrics-data", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameters"
        assert p1_scenario.requests == []

    def test_corrupt_cache(self, client, metrics_cache):
        metrics_cache.path.parent.mkdir(parents=True, exist_ok=True)
        metrics_cache.path.write_text("{", encoding="utf-8")

        response = client.get("/api/v1/metrics-data")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch data"

    def test_upstream_failure(self, test_settings, metrics_cache):
        api = FakeKlaviyoAPI(
            submissions=[event_resource("S1", "P1", T0)],
            failing_pages=[(SUBMISSIONS, 1)],
        )
        client = build_client(test_settings, metrics_cache, api)

        response = client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch store data"
        assert not metrics_cache.exists()

    def test_unexpected_failure_is_structured(self, test_settings, metrics_cache):
        app = create_api_app(test_settings)
        app.dependency_overrides[get_settings] = lambda: test_settings
        app.dependency_overrides[get_metrics_pipeline] = lambda: MetricsPipeline(
            settings=test_settings,
            cache=metrics_cache,
            transport=exploding_transport(RuntimeError("boom")),
        )
        client = TestClient(app)

        response = client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error"] == "Failed to fetch store data"
        assert "boom" in response.json()["message"]

    def test_failed_cache_write_still_returns_result(self, client, metrics_cache):
        # A directory in place of the cache file makes every save fail
        metrics_cache.path.mkdir(parents=True)

        response = client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert response.status_code == 200
        assert response.json()["data"]["metrics"]["totalSwaptSubmits"] == 2

    def test_refresh_is_rate_limited(self, test_settings, metrics_cache, p1_scenario):
        settings = test_settings.model_copy(
            update={"security": SecuritySettings(RATE_LIMIT_REQUESTS=1)}
        )
        client = build_client(settings, metrics_cache, p1_scenario)

        assert client.post("/api/v1/metrics-data", json=REFRESH_BODY).status_code == 200
        limited = client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert limited.status_code == 429
        # Reads are never limited
        assert client.get("/api/v1/metrics-data").status_code == 200


class TestHealth:
    """Tests for health and info endpoints"""

    def test_health_without_cache(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["cache"]["status"] == "empty"
        assert body["checks"]["credentials"]["status"] == "missing"

    def test_health_after_refresh(self, client):
        client.post("/api/v1/metrics-data", json=REFRESH_BODY)

        assert client.get("/api/v1/health").json()["status"] == "healthy"

    def test_liveness_and_readiness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}
        assert client.get("/api/v1/health/ready").json() == {"status": "ready"}

    def test_info(self, client):
        body = client.get("/api/v1/info").json()

        assert body["name"] == "Swapt Analytics API"
        assert body["environment"] == "testing"

    def test_security_headers(self, client):
        response = client.get("/api/v1/health/live")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in response.headers
