"""Shared fixtures: the fake rate provider and wired-up rate sources."""

from __future__ import annotations

import pytest
from aiohttp.test_utils import TestServer

from fx_platform.fx.provider import RateProviderClient
from fx_platform.fx.rate_limiter import RateLimiter
from fx_platform.fx.rate_source import RateSource
from fx_platform.fx.tests.fakes import FakeProvider, make_secrets
from fx_platform.services.kv_store.memory_kv_store import MemoryKeyValueStore
from fx_platform.services.logger.memory_logger import MemoryLogger
from fx_platform.services.metrics.memory_metrics import MemoryMetrics


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
async def provider_url(provider: FakeProvider):
    server = TestServer(provider.app())
    await server.start_server()
    yield str(server.make_url("")).rstrip("/")
    await server.close()


@pytest.fixture
def log() -> MemoryLogger:
    return MemoryLogger()


@pytest.fixture
def metrics() -> MemoryMetrics:
    return MemoryMetrics()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
async def client(provider_url: str, log: MemoryLogger, metrics: MemoryMetrics):
    c = RateProviderClient(make_secrets(provider_url), log, metrics)
    yield c
    await c.aclose()


@pytest.fixture
async def source(client: RateProviderClient, kv: MemoryKeyValueStore, log: MemoryLogger):
    s = RateSource(client, RateLimiter(interval=0), kv, log)
    yield s
    await s.aclose()
