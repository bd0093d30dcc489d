from __future__ import annotations

from datetime import date

import pytest

from fx_platform.fx.dto import HISTORICAL, IDENTITY, LIVE, STATIC, UNAVAILABLE
from fx_platform.fx.fallback import FallbackChain
from fx_platform.fx.rate_source import RateSource
from fx_platform.fx.tests.fakes import FakeProvider
from fx_platform.services.logger.memory_logger import MemoryLogger
from fx_platform.services.metrics.memory_metrics import MemoryMetrics

PAST = date(2024, 1, 15)


@pytest.fixture
def chain(source: RateSource, log: MemoryLogger, metrics: MemoryMetrics) -> FallbackChain:
    return FallbackChain(source, log, metrics)


class _BrokenSource:
    async def get_historical_rates(self, base, day):
        raise RuntimeError("boom")

    async def get_live_rates(self, base):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_same_currency_is_identity_without_lookup(chain: FallbackChain,
                                                        provider: FakeProvider) -> None:
    quote = await chain.get_rate("EUR", "EUR", PAST)
    assert quote.rate == 1.0
    assert quote.tier == IDENTITY
    assert provider.count() == 0


@pytest.mark.asyncio
async def test_past_date_uses_historical(chain: FallbackChain, provider: FakeProvider,
                                         metrics: MemoryMetrics) -> None:
    provider.historical[PAST.isoformat()] = {"EUR": 0.9}
    quote = await chain.get_rate("USD", "EUR", PAST)
    assert quote.tier == HISTORICAL
    assert quote.rate == pytest.approx(0.9)
    assert quote.as_of == PAST.isoformat()
    assert metrics.tagged["fx_rate_tier{tier=historical}"] == 1


@pytest.mark.asyncio
async def test_historical_table_missing_currency_escalates_to_live(
    chain: FallbackChain, provider: FakeProvider,
) -> None:
    provider.historical[PAST.isoformat()] = {"EUR": 0.9}
    quote = await chain.get_rate("USD", "GBP", PAST)
    assert quote.tier == LIVE
    assert quote.rate == pytest.approx(0.73)


@pytest.mark.asyncio
async def test_historical_no_data_yields_live_rate(chain: FallbackChain, provider: FakeProvider) -> None:
    quote = await chain.get_rate("GBP", "USD", PAST)
    assert quote.tier == LIVE
    assert quote.rate == pytest.approx(1 / 0.73)
    assert provider.count("live") == 1


@pytest.mark.asyncio
async def test_today_goes_straight_to_live(chain: FallbackChain, provider: FakeProvider) -> None:
    quote = await chain.get_rate("USD", "EUR", date.today())
    assert quote.tier == LIVE
    assert provider.count("historical") == 0


@pytest.mark.asyncio
async def test_network_failures_fall_to_static(chain: FallbackChain, provider: FakeProvider) -> None:
    provider.historical_status[PAST.isoformat()] = 500
    provider.live_status = 500
    quote = await chain.get_rate("USD", "EUR", PAST)
    assert quote.tier == STATIC
    assert quote.rate == pytest.approx(0.85)


@pytest.mark.asyncio
async def test_unknown_currency_everywhere_is_unavailable(chain: FallbackChain, log: MemoryLogger,
                                                          metrics: MemoryMetrics) -> None:
    quote = await chain.get_rate("USD", "XAU", PAST)
    assert quote.tier == UNAVAILABLE
    assert quote.rate == 1.0
    assert "No rate for currency pair in any tier, applying identity rate" in log.messages
    assert metrics.tagged["fx_rate_tier{tier=unavailable}"] == 1


@pytest.mark.asyncio
async def test_source_exceptions_never_escape() -> None:
    log = MemoryLogger()
    chain = FallbackChain(_BrokenSource(), log)  # type: ignore[arg-type]
    quote = await chain.get_rate("USD", "JPY", PAST)
    assert quote.tier == STATIC
    assert quote.rate == pytest.approx(110.0)
    assert len(log.at_level("ERROR")) == 2
