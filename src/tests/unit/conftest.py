"""Shared fixtures for joblife unit tests."""

from collections.abc import Iterator
from unittest.mock import AsyncMock

import pytest

from joblife.app.config import GeneratorConfig, get_settings
from joblife.core.generators import GeneratorRegistry, LatestJobGenerator, PivotJobGenerator
from joblife.core.interfaces import JobBackend
from joblife.core.models import JobDefinition
from joblife.core.retryable import RetryPolicy


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Settings are cached; env changes in a test must not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def retry_policy(fake_sleep: FakeSleep) -> RetryPolicy:
    """3 retries, no jitter, no real waiting."""
    return RetryPolicy(
        max_retries=3, base_delay=1.0, max_delay=30.0, jitter=False, sleep=fake_sleep
    )


@pytest.fixture
def mock_backend() -> AsyncMock:
    """JobBackend mock."""
    backend = AsyncMock(spec=JobBackend)
    backend.put = AsyncMock(return_value=None)
    backend.preview = AsyncMock(return_value={"preview": [], "generated_dest_index": {}})
    backend.start = AsyncMock(return_value=None)
    backend.stop = AsyncMock(return_value=None)
    backend.delete = AsyncMock(return_value=None)
    return backend


@pytest.fixture
def generator_config() -> GeneratorConfig:
    return GeneratorConfig(job_id_prefix="slo", default_frequency="1m", default_sync_delay="60s")


@pytest.fixture
def registry(generator_config: GeneratorConfig) -> GeneratorRegistry:
    return GeneratorRegistry(
        [PivotJobGenerator(generator_config), LatestJobGenerator(generator_config)]
    )


@pytest.fixture
def pivot_definition() -> JobDefinition:
    return JobDefinition(
        id="checkout-latency",
        revision=2,
        kind="pivot",
        params={
            "source_index": "traces-apm*",
            "dest_index": ".slo-observability.sli-v2",
            "group_by": {"service": "service.name"},
            "aggregations": {
                "good": {"filter": {"range": {"transaction.duration.us": {"lte": 500000}}}},
                "total": {"value_count": {"field": "transaction.duration.us"}},
            },
            "sync_field": "@timestamp",
        },
    )
