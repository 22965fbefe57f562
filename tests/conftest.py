"""
Test Suite Configuration
"""
from typing import Optional

import pytest

from src.config import KlaviyoSettings, Settings, StorageSettings
from src.serving.cache import MetricsFileCache
from src.transformation.pipeline import MetricsPipeline
from tests.fakes import (
    BASE_URL,
    T0,
    FakeKlaviyoAPI,
    event_resource,
    hours,
    purchase_resource,
)


@pytest.fixture(autouse=True)
def _no_env_api_key(monkeypatch):
    """Keep a developer's real Klaviyo key out of the test run"""
    monkeypatch.delenv("KLAVIYO_API_KEY", raising=False)
    monkeypatch.delenv("SWAPT_KLAVIYO_API_KEY", raising=False)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at the fake API and a temporary exports directory"""
    return Settings(
        app_env="testing",
        debug=True,
        klaviyo=KlaviyoSettings(api_key=None, base_url=BASE_URL),
        storage=StorageSettings(exports_path=str(tmp_path / "exports")),
    )


@pytest.fixture
def metrics_cache(test_settings) -> MetricsFileCache:
    return MetricsFileCache.from_settings(test_settings.storage)


@pytest.fixture
def make_pipeline(test_settings, metrics_cache):
    """Factory building a pipeline wired to a FakeKlaviyoAPI"""
    def _make(api: FakeKlaviyoAPI, settings: Optional[Settings] = None) -> MetricsPipeline:
        return MetricsPipeline(
            settings=settings or test_settings,
            cache=metrics_cache,
            transport=api.transport,
        )
    return _make


@pytest.fixture
def p1_scenario() -> FakeKlaviyoAPI:
    """
    P1 submits at t0 and t0+10h, buys for 20 at t0+5h and for 3 at t0+15h.
    """
    return FakeKlaviyoAPI(
        submissions=[
            event_resource("S1", "P1", T0),
            event_resource("S2", "P1", T0 + hours(10)),
        ],
        purchases={
            "P1": [
                purchase_resource("O1", "P1", T0 + hours(5), value=20),
                purchase_resource("O2", "P1", T0 + hours(15), value=3),
            ],
        },
    )
