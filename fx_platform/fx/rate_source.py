"""Rate tables for "now" and for past dates, with caching and graceful fallback.

Live tables are kept for a short TTL in memory and mirrored to the key-value
store so a restarted process can reuse them. Historical tables never change
and are kept indefinitely. Every outbound request first passes through the
shared ``RateLimiter``.

Neither lookup raises: a failed live lookup answers with the static table,
and a failed historical lookup falls through to the live lookup. When the
provider says it has no data for a date, the live table is also remembered
under that date so the date is never asked for again. Concurrent misses on
the same table share one in-flight fetch.

Key-value layout::

    rates_live_{BASE}                 -> {"table": {...}, "timestamp": epoch}
    rates_historical_{BASE}_{DATE}    -> {"table": {...}, "fallback": "live_rates"?}
"""

from __future__ import annotations

import asyncio
import json
import time
from datetime import date
from typing import Any, Awaitable, Callable

from fx_platform.fx.dto import HISTORICAL, LIVE, RateTable, normalize_currency, normalize_date
from fx_platform.fx.errors import FxError, RateUnavailableError
from fx_platform.fx.provider import RateProviderClient
from fx_platform.fx.rate_limiter import RateLimiter
from fx_platform.fx.static_rates import static_rate_table
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.logger.interface import LoggingInterface

LIVE_CACHE_TTL = 5 * 60  # seconds
KEY_PREFIX = "rates_"


class RateSource:
    def __init__(
        self,
        client: RateProviderClient,
        limiter: RateLimiter,
        kv: KeyValueStore,
        log: LoggingInterface,
        live_ttl: float = LIVE_CACHE_TTL,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._kv = kv
        self._log = log
        self._live_ttl = live_ttl
        self._live: dict[str, tuple[RateTable, float]] = {}
        self._historical: dict[str, RateTable] = {}
        self._inflight: dict[str, asyncio.Task[RateTable]] = {}

    # ── Live ──────────────────────────────────────────────────────────────

    async def get_live_rates(self, base_currency: str) -> RateTable:
        base = normalize_currency(base_currency)
        cached = self._cached_live(base)
        if cached is not None:
            return cached

        if not self._client.has_api_key:
            self._log.warn("No rate provider API key configured, using static rates", base=base)
            return static_rate_table(base)

        return await self._shared(f"{KEY_PREFIX}live_{base}", lambda: self._fetch_live(base))

    async def _fetch_live(self, base: str) -> RateTable:
        try:
            await self._limiter.acquire()
            cached = self._cached_live(base)
            if cached is not None:
                return cached
            rates = await self._client.fetch_latest(base)
        except FxError as exc:
            self._log.warn("Live rates unavailable, using static rates", base=base, error=str(exc))
            return static_rate_table(base)
        except Exception as exc:
            self._log.error("Unexpected error fetching live rates", base=base, error=repr(exc))
            return static_rate_table(base)

        table = RateTable(base, rates, as_of=LIVE, source=LIVE)
        now = time.time()
        self._live[base] = (table, now)
        self._persist(f"{KEY_PREFIX}live_{base}", {"table": table.to_dict(), "timestamp": now})
        self._log.debug("Live rates fetched", base=base, currencies=len(table.rates))
        return table

    def _cached_live(self, base: str) -> RateTable | None:
        now = time.time()
        hit = self._live.get(base)
        if hit is not None and now - hit[1] < self._live_ttl:
            return hit[0]

        stored = self._load(f"{KEY_PREFIX}live_{base}")
        if stored is None:
            return None
        try:
            fetched_at = float(stored["timestamp"])
            table = RateTable.from_dict(stored["table"])
        except (KeyError, TypeError, ValueError) as exc:
            self._log.warn("Ignoring malformed persisted live rates", base=base, error=str(exc))
            return None
        if now - fetched_at >= self._live_ttl:
            return None
        self._live[base] = (table, fetched_at)
        return table

    # ── Historical ────────────────────────────────────────────────────────

    async def get_historical_rates(self, base_currency: str, day: date | str) -> RateTable:
        base = normalize_currency(base_currency)
        day = normalize_date(day)
        if day > date.today():
            self._log.debug("Future date has no historical rates, using live", base=base, date=day.isoformat())
            return await self.get_live_rates(base)

        key = f"{KEY_PREFIX}historical_{base}_{day.isoformat()}"
        cached = self._cached_historical(key)
        if cached is not None:
            return cached

        if not self._client.has_api_key:
            self._log.warn("No rate provider API key configured, using static rates", base=base)
            return static_rate_table(base)

        return await self._shared(key, lambda: self._fetch_historical(base, day, key))

    async def _fetch_historical(self, base: str, day: date, key: str) -> RateTable:
        try:
            await self._limiter.acquire()
            cached = self._cached_historical(key)
            if cached is not None:
                return cached
            rates = await self._client.fetch_historical(base, day.isoformat())
        except RateUnavailableError as exc:
            self._log.info(
                "No historical rates for date, falling back to live rates",
                base=base, date=day.isoformat(), error=str(exc),
            )
            table = await self.get_live_rates(base)
            if table.source == LIVE:
                self._remember_historical(key, table, fallback="live_rates")
            return table
        except FxError as exc:
            self._log.warn(
                "Historical rates request failed, falling back to live rates",
                base=base, date=day.isoformat(), error=str(exc),
            )
            return await self.get_live_rates(base)
        except Exception as exc:
            self._log.error(
                "Unexpected error fetching historical rates",
                base=base, date=day.isoformat(), error=repr(exc),
            )
            return await self.get_live_rates(base)

        table = RateTable(base, rates, as_of=day.isoformat(), source=HISTORICAL)
        self._remember_historical(key, table)
        self._log.debug("Historical rates fetched", base=base, date=day.isoformat())
        return table

    def _cached_historical(self, key: str) -> RateTable | None:
        table = self._historical.get(key)
        if table is not None:
            return table
        stored = self._load(key)
        if stored is None:
            return None
        try:
            table = RateTable.from_dict(stored["table"])
        except (KeyError, TypeError, ValueError) as exc:
            self._log.warn("Ignoring malformed persisted historical rates", key=key, error=str(exc))
            return None
        self._historical[key] = table
        return table

    def _remember_historical(self, key: str, table: RateTable, fallback: str | None = None) -> None:
        self._historical[key] = table
        payload: dict[str, Any] = {"table": table.to_dict()}
        if fallback:
            payload["fallback"] = fallback
        self._persist(key, payload)

    # ── In-flight fetches ─────────────────────────────────────────────────

    async def _shared(self, key: str, fetch: Callable[[], Awaitable[RateTable]]) -> RateTable:
        """Run *fetch* once per table key; concurrent callers await the same task."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[RateTable]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    # ── Persistence ───────────────────────────────────────────────────────

    def _load(self, key: str) -> dict[str, Any] | None:
        try:
            raw = self._kv.get(key)
            if raw is None:
                return None
            data = json.loads(raw)
        except Exception as exc:
            self._log.warn("Could not read persisted rates", key=key, error=repr(exc))
            return None
        return data if isinstance(data, dict) else None

    def _persist(self, key: str, payload: dict[str, Any]) -> None:
        try:
            self._kv.set(key, json.dumps(payload))
        except Exception as exc:
            self._log.error("Could not persist rates", key=key, error=repr(exc))

    # ── Maintenance ───────────────────────────────────────────────────────

    def clear(self) -> None:
        """Forget every cached rate table, in memory and in the key-value store."""
        self._live.clear()
        self._historical.clear()
        try:
            for key in self._kv.keys(KEY_PREFIX):
                self._kv.remove(key)
        except Exception as exc:
            self._log.error("Could not clear persisted rates", error=repr(exc))
        self._log.info("Exchange rate cache cleared")

    def stats(self) -> dict[str, int]:
        return {"live_tables": len(self._live), "historical_tables": len(self._historical)}

    async def aclose(self) -> None:
        await self._client.aclose()
