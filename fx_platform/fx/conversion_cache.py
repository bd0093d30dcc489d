"""Persistent cache of computed conversions.

Keys embed a hash of the currency-affecting settings, so changing the
reporting currency makes old entries unreachable without a sweep; they age
out through the TTL or size eviction. Entries are stored as one JSON map in
the key-value store under ``invoice_currency_conversions_v1`` and reloaded at
construction, dropping anything already past its TTL.
"""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass
from datetime import date

from fx_platform.fx.dto import CacheEntry, ConversionResult
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.logger.interface import LoggingInterface
from fx_platform.services.metrics.interface import MetricsInterface
from fx_platform.services.metrics.noop_metrics import NoopMetrics

CACHE_KEY = "invoice_currency_conversions"
CACHE_VERSION = "v1"
MAX_CACHE_AGE = 7 * 24 * 60 * 60  # seconds
MAX_CACHE_SIZE = 1000
CLEANUP_INTERVAL = 50  # inserts between expiry sweeps


def settings_hash(target_currency: str) -> str:
    """Short fingerprint of the settings that change conversion results."""
    doc = json.dumps({"currency": target_currency}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(doc.encode("utf-8")).hexdigest()[:16]


@dataclass
class CacheStats:
    total_cached: int
    hit_rate: float            # percent, two decimals
    cache_size_estimate: str   # e.g. "12 KB"
    hits: int
    misses: int


class ConversionCache:
    def __init__(
        self,
        kv: KeyValueStore,
        log: LoggingInterface,
        metrics: MetricsInterface | None = None,
        max_age: float = MAX_CACHE_AGE,
        max_size: int = MAX_CACHE_SIZE,
        cleanup_interval: int = CLEANUP_INTERVAL,
        target_currency: str = "USD",
    ) -> None:
        self._kv = kv
        self._log = log
        self._metrics = metrics or NoopMetrics()
        self._max_age = max_age
        self._max_size = max_size
        self._cleanup_interval = cleanup_interval
        self._entries: dict[str, CacheEntry] = {}
        self._settings_hash = settings_hash(target_currency)
        self._hits = 0
        self._misses = 0
        self._inserts = 0
        self._load()

    @property
    def storage_key(self) -> str:
        return f"{CACHE_KEY}_{CACHE_VERSION}"

    @property
    def settings_hash(self) -> str:
        return self._settings_hash

    def __len__(self) -> int:
        return len(self._entries)

    def update_settings(self, target_currency: str) -> bool:
        """Recompute the settings hash. Returns True if it changed."""
        new_hash = settings_hash(target_currency)
        changed = new_hash != self._settings_hash
        self._settings_hash = new_hash
        return changed

    def key_for(self, request_id: str, amount: float, from_currency: str,
                to_currency: str, as_of: date, fingerprint: str | None = None) -> str:
        """Cache key for one conversion. *fingerprint* defaults to the current settings hash."""
        return (
            f"{request_id}:{amount!r}:{from_currency}:{to_currency}:"
            f"{as_of.isoformat()}:{fingerprint or self._settings_hash}"
        )

    # ── Reads and writes ──────────────────────────────────────────────────

    def get(self, key: str, fingerprint: str | None = None) -> CacheEntry | None:
        """The live entry for *key*, or None on absence, expiry or settings mismatch.

        Pass the *fingerprint* the key was built with so a concurrent
        ``update_settings`` cannot turn a valid lookup into a miss.
        """
        expected = fingerprint or self._settings_hash
        entry = self._entries.get(key)
        if entry is not None and self._is_expired(entry, time.time()):
            del self._entries[key]
            self._save()
            entry = None
        if entry is not None and entry.settings_hash != expected:
            entry = None

        if entry is None:
            self._misses += 1
            self._metrics.counter("fx_cache_misses")
            return None
        self._hits += 1
        self._metrics.counter("fx_cache_hits")
        return entry

    def put(self, key: str, result: ConversionResult, request_id: str = "",
            fingerprint: str | None = None) -> CacheEntry:
        entry = CacheEntry(
            result=result,
            request_id=request_id,
            cache_key=key,
            timestamp=time.time(),
            settings_hash=fingerprint or self._settings_hash,
        )
        self._entries[key] = entry
        self._inserts += 1
        if self._inserts % self._cleanup_interval == 0:
            self._remove_expired()
        self._evict_oldest()
        self._save()
        self._metrics.gauge("fx_cache_size", len(self._entries))
        return entry

    def invalidate_all(self) -> None:
        """Drop every entry and reset the hit/miss counters (logout, hard settings reset)."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        try:
            self._kv.remove(self.storage_key)
        except Exception as exc:
            self._log.error("Could not remove persisted conversion cache", error=repr(exc))
        self._metrics.gauge("fx_cache_size", 0)
        self._log.info("Currency conversion cache cleared")

    def stats(self) -> CacheStats:
        requests = self._hits + self._misses
        hit_rate = round(self._hits / requests * 100, 2) if requests else 0.0
        size = len(json.dumps(self._serialize()))
        return CacheStats(
            total_cached=len(self._entries),
            hit_rate=hit_rate,
            cache_size_estimate=f"{round(size / 1024)} KB",
            hits=self._hits,
            misses=self._misses,
        )

    # ── Eviction ──────────────────────────────────────────────────────────

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self._max_age

    def _remove_expired(self) -> int:
        now = time.time()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            self._log.info("Removed expired conversion cache entries", count=len(expired))
        return len(expired)

    def _evict_oldest(self) -> int:
        overflow = len(self._entries) - self._max_size
        if overflow <= 0:
            return 0
        oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)[:overflow]
        for key, _ in oldest:
            del self._entries[key]
        self._metrics.counter("fx_cache_evictions", value=overflow)
        self._log.debug("Evicted oldest conversion cache entries", count=overflow)
        return overflow

    # ── Persistence ───────────────────────────────────────────────────────

    def _serialize(self) -> dict[str, dict]:
        return {key: entry.to_dict() for key, entry in self._entries.items()}

    def _save(self) -> None:
        try:
            self._kv.set(self.storage_key, json.dumps(self._serialize()))
        except Exception as exc:
            self._log.error("Could not persist conversion cache", error=repr(exc))

    def _load(self) -> None:
        try:
            raw = self._kv.get(self.storage_key)
        except Exception as exc:
            self._log.error("Could not read persisted conversion cache", error=repr(exc))
            return
        if raw is None:
            return

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("conversion cache payload is not a JSON object")
            entries = {key: CacheEntry.from_dict(value) for key, value in data.items()}
        except (ValueError, KeyError, TypeError) as exc:
            self._log.error("Discarding corrupt conversion cache", error=str(exc))
            try:
                self._kv.remove(self.storage_key)
            except Exception as remove_exc:
                self._log.error("Could not remove corrupt conversion cache", error=repr(remove_exc))
            return

        now = time.time()
        self._entries = {k: e for k, e in entries.items() if not self._is_expired(e, now)}
        self._evict_oldest()
        self._log.debug(
            "Loaded conversion cache",
            loaded=len(self._entries), expired=len(entries) - len(self._entries),
        )
