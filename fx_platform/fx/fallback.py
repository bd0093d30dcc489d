"""Historical -> live -> static rate resolution for a single currency pair."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable

from fx_platform.fx.dto import IDENTITY, LIVE, STATIC, UNAVAILABLE, RateTable
from fx_platform.fx.rate_source import RateSource
from fx_platform.fx.static_rates import static_rate_table
from fx_platform.services.logger.interface import LoggingInterface
from fx_platform.services.metrics.interface import MetricsInterface
from fx_platform.services.metrics.noop_metrics import NoopMetrics


@dataclass
class RateQuote:
    rate: float
    tier: str       # one of the tier markers in fx.dto
    as_of: str      # ISO date, "live" or "static"


class FallbackChain:
    """Resolves a rate for ``(from, to, date)``; never raises.

    1. historical table for past dates
    2. live table, for today/future dates or when (1) has nothing usable
    3. static table, only when both network tiers failed outright

    A tier whose table lacks either currency escalates to the next one. If
    even the static table cannot price the pair, the quote is rate 1 with
    tier ``unavailable``.
    """

    def __init__(
        self,
        source: RateSource,
        log: LoggingInterface,
        metrics: MetricsInterface | None = None,
        base_currency: str = "USD",
    ) -> None:
        self.source = source
        self._log = log
        self._metrics = metrics or NoopMetrics()
        self._base = base_currency

    async def get_rate(self, from_currency: str, to_currency: str, as_of: date) -> RateQuote:
        if from_currency == to_currency:
            return RateQuote(1.0, IDENTITY, as_of.isoformat())

        seen: set[str] = set()
        if as_of < date.today():
            table = await self._lookup(self.source.get_historical_rates, as_of)
            quote = self._quote(table, from_currency, to_currency, seen)
            if quote is not None:
                return self._record(quote)

        if not seen & {LIVE, STATIC}:
            table = await self._lookup(self.source.get_live_rates)
            quote = self._quote(table, from_currency, to_currency, seen)
            if quote is not None:
                return self._record(quote)

        if STATIC not in seen:
            quote = self._quote(static_rate_table(self._base), from_currency, to_currency, seen)
            if quote is not None:
                return self._record(quote)

        self._log.warn(
            "No rate for currency pair in any tier, applying identity rate",
            from_currency=from_currency, to_currency=to_currency, date=as_of.isoformat(),
        )
        return self._record(RateQuote(1.0, UNAVAILABLE, as_of.isoformat()))

    async def _lookup(self, fetch: Callable[..., Awaitable[RateTable]], *args: object) -> RateTable | None:
        try:
            return await fetch(self._base, *args)
        except Exception as exc:
            self._log.error("Rate lookup failed, escalating to next tier", error=repr(exc))
            return None

    def _quote(self, table: RateTable | None, from_currency: str, to_currency: str,
               seen: set[str]) -> RateQuote | None:
        if table is None:
            return None
        seen.add(table.source)
        rate = table.cross_rate(from_currency, to_currency)
        if rate is None:
            self._log.debug(
                "Rate unavailable in table, escalating",
                tier=table.source, from_currency=from_currency, to_currency=to_currency,
            )
            return None
        return RateQuote(rate, table.source, table.as_of)

    def _record(self, quote: RateQuote) -> RateQuote:
        self._metrics.counter("fx_rate_tier", tags={"tier": quote.tier})
        return quote
