from __future__ import annotations

from fx_platform.services.metrics.interface import MetricsInterface


def _tag_key(name: str, tags: dict[str, str] | None) -> str:
    if not tags:
        return name
    labels = ",".join(f"{k}={tags[k]}" for k in sorted(tags))
    return f"{name}{{{labels}}}"


class MemoryMetrics(MetricsInterface):
    """In-memory metrics for test assertions.

    ``counters`` aggregates by bare name; ``tagged`` keeps a separate total per
    tag set under ``name{k=v,...}``.
    """

    def __init__(self) -> None:
        self.counters: dict[str, float] = {}
        self.tagged: dict[str, float] = {}
        self.gauges: dict[str, float] = {}
        self.histograms: dict[str, list[float]] = {}

    def counter(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[name] = self.counters.get(name, 0) + value
        if tags:
            key = _tag_key(name, tags)
            self.tagged[key] = self.tagged.get(key, 0) + value

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.gauges[name] = value

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.histograms.setdefault(name, []).append(value)
