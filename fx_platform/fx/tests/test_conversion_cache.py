from __future__ import annotations

import json
from datetime import date
from unittest.mock import patch

from fx_platform.fx.conversion_cache import MAX_CACHE_AGE, ConversionCache, settings_hash
from fx_platform.fx.dto import LIVE, ConversionResult
from fx_platform.services.kv_store.memory_kv_store import MemoryKeyValueStore
from fx_platform.services.logger.memory_logger import MemoryLogger
from fx_platform.services.metrics.memory_metrics import MemoryMetrics

STORAGE_KEY = "invoice_currency_conversions_v1"
DAY = date(2024, 1, 15)


def _result(amount: float = 100.0) -> ConversionResult:
    return ConversionResult(amount, "USD", amount * 0.85, "EUR", 0.85, DAY.isoformat(), True, LIVE)


def _cache(kv: MemoryKeyValueStore | None = None, **kwargs) -> ConversionCache:
    return ConversionCache(kv or MemoryKeyValueStore(), MemoryLogger(), **kwargs)


# ── Keys and settings hash ───────────────────────────────────────────────────


def test_settings_hash_is_stable_and_short() -> None:
    assert settings_hash("EUR") == settings_hash("EUR")
    assert settings_hash("EUR") != settings_hash("USD")
    assert len(settings_hash("EUR")) == 16


def test_key_embeds_every_input() -> None:
    cache = _cache()
    base = cache.key_for("inv-1", 100.0, "USD", "EUR", DAY)
    assert base != cache.key_for("inv-2", 100.0, "USD", "EUR", DAY)
    assert base != cache.key_for("inv-1", 100.5, "USD", "EUR", DAY)
    assert base != cache.key_for("inv-1", 100.0, "GBP", "EUR", DAY)
    assert base != cache.key_for("inv-1", 100.0, "USD", "EUR", date(2024, 1, 16))
    assert base.endswith(cache.settings_hash)


def test_update_settings_reports_change() -> None:
    cache = _cache(target_currency="USD")
    assert cache.update_settings("USD") is False
    assert cache.update_settings("EUR") is True


# ── Get / put ────────────────────────────────────────────────────────────────


def test_put_then_get_hits() -> None:
    metrics = MemoryMetrics()
    cache = ConversionCache(MemoryKeyValueStore(), MemoryLogger(), metrics)
    key = cache.key_for("inv-1", 100.0, "USD", "EUR", DAY)
    assert cache.get(key) is None
    cache.put(key, _result(), "inv-1")

    entry = cache.get(key)
    assert entry is not None
    assert entry.result == _result()
    assert entry.request_id == "inv-1"
    assert metrics.counters["fx_cache_hits"] == 1
    assert metrics.counters["fx_cache_misses"] == 1
    assert metrics.gauges["fx_cache_size"] == 1


def test_settings_change_makes_entries_miss() -> None:
    cache = _cache(target_currency="USD")
    key = cache.key_for("inv-1", 100.0, "USD", "EUR", DAY)
    cache.put(key, _result())

    cache.update_settings("GBP")

    assert cache.get(key) is None
    assert cache.key_for("inv-1", 100.0, "USD", "EUR", DAY) != key


def test_snapshot_fingerprint_survives_settings_change() -> None:
    cache = _cache(target_currency="USD")
    snapshot = cache.settings_hash
    key = cache.key_for("inv-1", 100.0, "USD", "EUR", DAY, snapshot)

    cache.update_settings("GBP")
    entry = cache.put(key, _result(), "inv-1", snapshot)

    assert entry.settings_hash == snapshot
    assert key.endswith(snapshot)
    assert cache.get(key, snapshot) is not None
    assert cache.get(key) is None


def test_expired_entry_evicted_on_read() -> None:
    cache = _cache()
    with patch("fx_platform.fx.conversion_cache.time") as mock_time:
        mock_time.time.return_value = 1_000.0
        cache.put("k", _result())
        mock_time.time.return_value = 1_000.0 + MAX_CACHE_AGE - 1
        assert cache.get("k") is not None
        mock_time.time.return_value = 1_000.0 + MAX_CACHE_AGE + 1
        assert cache.get("k") is None
    assert len(cache) == 0


def test_size_cap_evicts_oldest_first() -> None:
    metrics = MemoryMetrics()
    cache = ConversionCache(MemoryKeyValueStore(), MemoryLogger(), metrics, max_size=3)
    with patch("fx_platform.fx.conversion_cache.time") as mock_time:
        for n in range(5):
            mock_time.time.return_value = 1_000.0 + n
            cache.put(f"k{n}", _result(n))
        assert len(cache) == 3
        assert cache.get("k0") is None
        assert cache.get("k1") is None
        assert cache.get("k4") is not None
    assert metrics.counters["fx_cache_evictions"] == 2


def test_periodic_sweep_removes_expired_entries() -> None:
    cache = _cache(cleanup_interval=3)
    with patch("fx_platform.fx.conversion_cache.time") as mock_time:
        mock_time.time.return_value = 0.0
        cache.put("old", _result())
        mock_time.time.return_value = MAX_CACHE_AGE + 10
        cache.put("new1", _result())
        assert len(cache) == 2
        cache.put("new2", _result())
    assert len(cache) == 2


# ── Persistence ──────────────────────────────────────────────────────────────


def test_entries_survive_restart() -> None:
    kv = MemoryKeyValueStore()
    first = _cache(kv)
    key = first.key_for("inv-1", 100.0, "USD", "EUR", DAY)
    first.put(key, _result(), "inv-1")
    assert STORAGE_KEY in kv.keys()

    second = _cache(kv)
    entry = second.get(key)
    assert entry is not None
    assert entry.result.converted_amount == 85.0


def test_expired_entries_dropped_on_load() -> None:
    kv = MemoryKeyValueStore()
    with patch("fx_platform.fx.conversion_cache.time") as mock_time:
        mock_time.time.return_value = 0.0
        _cache(kv).put("k", _result())
        mock_time.time.return_value = MAX_CACHE_AGE + 1
        reloaded = _cache(kv)
    assert len(reloaded) == 0


def test_corrupt_payload_is_logged_and_removed() -> None:
    kv = MemoryKeyValueStore()
    kv.set(STORAGE_KEY, "[1, 2")
    log = MemoryLogger()
    cache = ConversionCache(kv, log)
    assert len(cache) == 0
    assert kv.get(STORAGE_KEY) is None
    assert "Discarding corrupt conversion cache" in log.messages


def test_payload_of_wrong_shape_is_discarded() -> None:
    kv = MemoryKeyValueStore()
    kv.set(STORAGE_KEY, json.dumps({"k": {"original_amount": 1}}))
    cache = _cache(kv)
    assert len(cache) == 0
    assert kv.get(STORAGE_KEY) is None


# ── Maintenance ──────────────────────────────────────────────────────────────


def test_invalidate_all_clears_entries_counters_and_storage() -> None:
    kv = MemoryKeyValueStore()
    cache = _cache(kv)
    cache.put("k", _result())
    cache.get("k")
    cache.get("missing")

    cache.invalidate_all()

    assert len(cache) == 0
    assert kv.get(STORAGE_KEY) is None
    stats = cache.stats()
    assert (stats.hits, stats.misses, stats.hit_rate) == (0, 0, 0.0)


def test_stats() -> None:
    cache = _cache()
    cache.put("a", _result())
    cache.get("a")
    cache.get("a")
    cache.get("b")
    stats = cache.stats()
    assert stats.total_cached == 1
    assert stats.hit_rate == 66.67
    assert stats.cache_size_estimate.endswith(" KB")
