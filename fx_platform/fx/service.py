"""Public entry point for currency conversion.

Every conversion goes cache-first. Misses are priced through the fallback
chain, and only results priced from provider data (historical or live) are
written back, so a degraded answer is retried on the next call rather than
pinned for a week.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date
from typing import Iterable

from fx_platform.fx.conversion_cache import CacheStats, ConversionCache
from fx_platform.fx.dto import (
    CACHEABLE_TIERS,
    UNAVAILABLE,
    ConversionRequest,
    ConversionResult,
    normalize_currency,
)
from fx_platform.fx.fallback import FallbackChain, RateQuote
from fx_platform.fx.provider import RateProviderClient
from fx_platform.fx.rate_limiter import RATE_LIMIT_DELAY, RateLimiter
from fx_platform.fx.rate_source import LIVE_CACHE_TTL, RateSource
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.logger.interface import LoggingInterface
from fx_platform.services.metrics.interface import MetricsInterface
from fx_platform.services.metrics.noop_metrics import NoopMetrics
from fx_platform.services.secrets.interface import SecretsInterface
from fx_platform.services.settings.interface import SettingsProvider

DEFAULT_TARGET_CURRENCY = "USD"


class ConversionService:
    def __init__(
        self,
        chain: FallbackChain,
        cache: ConversionCache,
        settings: SettingsProvider,
        log: LoggingInterface,
        metrics: MetricsInterface | None = None,
    ) -> None:
        self._chain = chain
        self._cache = cache
        self._settings = settings
        self._log = log
        self._metrics = metrics or NoopMetrics()
        self._inflight: dict[str, asyncio.Task[ConversionResult]] = {}

    async def resolve_target_currency(self) -> str:
        """The reporting currency from settings; USD when settings cannot say."""
        try:
            return normalize_currency(await self._settings.get_target_currency())
        except Exception as exc:
            self._log.warn(
                "Target currency unavailable, defaulting",
                default=DEFAULT_TARGET_CURRENCY, error=repr(exc),
            )
            return DEFAULT_TARGET_CURRENCY

    async def _refresh_settings(self) -> tuple[str, str]:
        """Resolve the target and snapshot the settings hash keys are built with."""
        target = await self.resolve_target_currency()
        if self._cache.update_settings(target):
            self._log.info("Currency settings changed, cached conversions invalidated", target=target)
        return target, self._cache.settings_hash

    # ── Conversion ────────────────────────────────────────────────────────

    async def convert_one(self, request: ConversionRequest) -> ConversionResult:
        target, fingerprint = await self._refresh_settings()
        return await self._convert(request, request.to_currency or target, fingerprint)

    async def convert_batch(self, requests: Iterable[ConversionRequest]) -> list[ConversionResult]:
        """Convert many requests against one settings snapshot; output order matches input."""
        items = list(requests)
        if not items:
            return []
        target, fingerprint = await self._refresh_settings()

        results: list[ConversionResult | None] = [None] * len(items)
        pending: list[tuple[int, ConversionRequest, str, str]] = []
        trivial = hits = 0
        for index, request in enumerate(items):
            to_currency = request.to_currency or target
            if request.from_currency == to_currency:
                results[index] = ConversionResult.identity(
                    request.amount, request.from_currency, request.as_of_date
                )
                trivial += 1
                continue
            key = self._key(request, to_currency, fingerprint)
            entry = self._cache.get(key, fingerprint)
            if entry is not None:
                results[index] = replace(entry.result)
                hits += 1
                continue
            pending.append((index, request, to_currency, key))

        self._log.info(
            "Converting batch",
            total=len(items), same_currency=trivial, cached=hits, to_fetch=len(pending),
        )

        async def fill(index: int, request: ConversionRequest, to_currency: str, key: str) -> None:
            results[index] = await self._resolve_safely(request, to_currency, key, fingerprint)

        await asyncio.gather(*(fill(*item) for item in pending))
        return [result for result in results if result is not None]

    async def convert_live(self, amount: float, from_currency: str,
                           to_currency: str | None = None) -> ConversionResult:
        """Price *amount* at today's rate; nothing is read from or written to the cache."""
        request = ConversionRequest(
            amount=amount, from_currency=from_currency,
            as_of_date=date.today(), to_currency=to_currency,
        )
        target = request.to_currency or await self.resolve_target_currency()
        if request.from_currency == target:
            return ConversionResult.identity(request.amount, target, request.as_of_date)
        quote = await self._chain.get_rate(request.from_currency, target, request.as_of_date)
        return self._build_result(request, target, quote)

    async def _convert(self, request: ConversionRequest, to_currency: str,
                       fingerprint: str) -> ConversionResult:
        if request.from_currency == to_currency:
            return ConversionResult.identity(request.amount, request.from_currency, request.as_of_date)
        key = self._key(request, to_currency, fingerprint)
        entry = self._cache.get(key, fingerprint)
        if entry is not None:
            return replace(entry.result)
        return await self._resolve_safely(request, to_currency, key, fingerprint)

    def _key(self, request: ConversionRequest, to_currency: str, fingerprint: str) -> str:
        return self._cache.key_for(
            request.request_id, request.amount, request.from_currency,
            to_currency, request.as_of_date, fingerprint,
        )

    async def _resolve_safely(self, request: ConversionRequest, to_currency: str,
                              key: str, fingerprint: str) -> ConversionResult:
        try:
            return await self._fetch_and_cache(request, to_currency, key, fingerprint)
        except Exception as exc:
            self._log.error(
                "Conversion failed, returning unconverted amount",
                request_id=request.request_id, from_currency=request.from_currency,
                to_currency=to_currency, error=repr(exc),
            )
            return ConversionResult.identity(
                request.amount, request.from_currency, request.as_of_date, rate_source=UNAVAILABLE
            )

    async def _fetch_and_cache(self, request: ConversionRequest, to_currency: str,
                               key: str, fingerprint: str) -> ConversionResult:
        """Price a cache miss; concurrent misses on one key share a single lookup."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._price(request, to_currency, key, fingerprint))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        result = await asyncio.shield(task)
        return replace(result)

    def _forget(self, key: str, task: asyncio.Task[ConversionResult]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _price(self, request: ConversionRequest, to_currency: str, key: str,
                     fingerprint: str) -> ConversionResult:
        quote = await self._chain.get_rate(request.from_currency, to_currency, request.as_of_date)
        result = self._build_result(request, to_currency, quote)
        if quote.tier in CACHEABLE_TIERS:
            self._cache.put(key, result, request.request_id, fingerprint)
        return result

    def _build_result(self, request: ConversionRequest, to_currency: str,
                      quote: RateQuote) -> ConversionResult:
        if quote.tier == UNAVAILABLE:
            return ConversionResult.identity(
                request.amount, request.from_currency, request.as_of_date, rate_source=UNAVAILABLE
            )
        return ConversionResult(
            original_amount=request.amount,
            original_currency=request.from_currency,
            converted_amount=request.amount * quote.rate,
            target_currency=to_currency,
            exchange_rate=quote.rate,
            conversion_date=request.as_of_date.isoformat(),
            was_converted=quote.tier in CACHEABLE_TIERS,
            rate_source=quote.tier,
        )

    # ── Maintenance ───────────────────────────────────────────────────────

    def invalidate_cache(self) -> None:
        self._cache.invalidate_all()

    def clear_rate_cache(self) -> None:
        self._chain.source.clear()

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    async def aclose(self) -> None:
        await self._chain.source.aclose()


def build_conversion_service(
    secrets: SecretsInterface,
    kv: KeyValueStore,
    settings: SettingsProvider,
    log: LoggingInterface,
    metrics: MetricsInterface | None = None,
) -> ConversionService:
    """Wire the full stack from configuration.

    Config (via secrets):
        FX_RATE_LIMIT_DELAY_MS - minimum spacing between provider requests
        FX_LIVE_CACHE_TTL      - seconds a live table stays fresh
        FX_BASE_CURRENCY       - base every rate table is fetched against
    """
    metrics = metrics or NoopMetrics()
    delay = secrets.get_float("FX_RATE_LIMIT_DELAY_MS", RATE_LIMIT_DELAY * 1000) / 1000
    live_ttl = secrets.get_float("FX_LIVE_CACHE_TTL", LIVE_CACHE_TTL)
    base = normalize_currency(secrets.get_or_default("FX_BASE_CURRENCY", "USD"))

    client = RateProviderClient(secrets, log, metrics)
    source = RateSource(client, RateLimiter(delay, log), kv, log, live_ttl=live_ttl)
    chain = FallbackChain(source, log, metrics, base_currency=base)
    cache = ConversionCache(kv, log, metrics)
    return ConversionService(chain, cache, settings, log, metrics)
