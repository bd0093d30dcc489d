from __future__ import annotations

from abc import ABC, abstractmethod

# Metrics the conversion stack emits, with their help text.
#   fx_provider_requests   tags: endpoint (live|historical), outcome (ok|no_data|error)
#   fx_rate_tier           tags: tier (identity|historical|live|static|unavailable)
FX_METRICS: dict[str, str] = {
    "fx_provider_requests": "Requests sent to the exchange-rate provider",
    "fx_provider_latency_ms": "Exchange-rate provider response time in milliseconds",
    "fx_rate_tier": "Rate quotes by the fallback tier that answered",
    "fx_cache_hits": "Conversion cache lookups served from cache",
    "fx_cache_misses": "Conversion cache lookups that had to be priced",
    "fx_cache_evictions": "Conversion cache entries evicted by the size cap",
    "fx_cache_size": "Entries currently held in the conversion cache",
}


def describe(name: str) -> str:
    """Help text for *name*; unknown metrics describe themselves by name."""
    return FX_METRICS.get(name, name)


class MetricsInterface(ABC):
    """Counters, gauges and histograms, each optionally tagged.

    Names in ``FX_METRICS`` are the ones the provider client, fallback chain
    and conversion cache report; backends may emit any other name as well.
    """

    @abstractmethod
    def counter(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        ...

    @abstractmethod
    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None: ...

    @abstractmethod
    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None: ...
