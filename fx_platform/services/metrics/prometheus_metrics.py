"""Prometheus metrics implementation using prometheus_client."""

from __future__ import annotations

from fx_platform.services.metrics.interface import MetricsInterface, describe
from fx_platform.services.secrets.interface import SecretsInterface


def _label_names(tags: dict[str, str] | None) -> list[str]:
    return sorted(tags.keys()) if tags else []


def _label_values(names: list[str], tags: dict[str, str] | None) -> list[str]:
    if not tags:
        return []
    return [tags[n] for n in names]


class PrometheusMetrics(MetricsInterface):
    """Exposes fx metrics on a Prometheus /metrics endpoint.

    Config (via secrets):
        METRICS_PROMETHEUS_PORT - port for the scrape endpoint (default: 9091).
                                  0 or empty disables the HTTP server.

    Metric objects are created lazily on first use, one per (name, label set),
    with help text from ``FX_METRICS``. Dashes and dots in names become
    underscores.
    """

    def __init__(self, secrets: SecretsInterface) -> None:
        import prometheus_client as prom

        self._prom = prom
        self._counters: dict[str, prom.Counter] = {}
        self._gauges: dict[str, prom.Gauge] = {}
        self._histograms: dict[str, prom.Histogram] = {}

        port_str = secrets.get_or_default("METRICS_PROMETHEUS_PORT", "9091")
        port = int(port_str) if port_str else 0
        if port:
            prom.start_http_server(port)

    @staticmethod
    def _sanitize(name: str) -> str:
        return name.replace("-", "_").replace(".", "_")

    def _metric(self, store: dict, factory, name: str, tags: dict[str, str] | None):
        safe = self._sanitize(name)
        label_names = _label_names(tags)
        key = f"{safe}:{','.join(label_names)}"
        if key not in store:
            store[key] = factory(safe, describe(name), label_names)
        metric = store[key]
        if label_names:
            return metric.labels(*_label_values(label_names, tags))
        return metric

    def counter(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        self._metric(self._counters, self._prom.Counter, name, tags).inc(value)

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self._metric(self._gauges, self._prom.Gauge, name, tags).set(value)

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self._metric(self._histograms, self._prom.Histogram, name, tags).observe(value)
