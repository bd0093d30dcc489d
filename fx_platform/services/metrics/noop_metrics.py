from fx_platform.services.metrics.interface import MetricsInterface


class NoopMetrics(MetricsInterface):
    """Discards everything.

    The default for ``--metrics`` and the fallback every fx component uses
    when constructed without a metrics backend.
    """

    def counter(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        return None

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        return None

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        return None
