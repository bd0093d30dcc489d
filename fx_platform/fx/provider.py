"""HTTP client for the remote rate provider (UniRateAPI-compatible).

Two endpoints are used::

    GET {base_url}/api/rates?api_key=...&base=USD
    GET {base_url}/api/historical/rates?api_key=...&date=YYYY-MM-DD&base=USD

Both answer ``{"base": "USD", "rates": {"EUR": 0.85, ...}}``. This class only
speaks the protocol and raises the typed errors from ``fx.errors``; caching,
throttling and fallbacks live in ``RateSource``.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import aiohttp

from fx_platform.fx.errors import InvalidResponseError, NetworkError, RateUnavailableError
from fx_platform.services.logger.interface import LoggingInterface
from fx_platform.services.metrics.interface import MetricsInterface
from fx_platform.services.metrics.noop_metrics import NoopMetrics
from fx_platform.services.secrets.interface import SecretsInterface

DEFAULT_BASE_URL = "https://api.unirateapi.com"
DEFAULT_TIMEOUT = 10.0  # seconds, whole request
_NO_DATA_MARKER = "No exchange rates available"
_USER_AGENT = "fx-platform/0.1"


class RateProviderClient:
    """Config (via secrets):
        FX_PROVIDER_BASE_URL - provider root URL
        FX_PROVIDER_API_KEY  - API key; without one no request is ever made
        FX_PROVIDER_TIMEOUT  - total per-request timeout in seconds
    """

    def __init__(
        self,
        secrets: SecretsInterface,
        log: LoggingInterface,
        metrics: MetricsInterface | None = None,
    ) -> None:
        self._base_url = secrets.get_or_default("FX_PROVIDER_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
        self._api_key = secrets.get_or_default("FX_PROVIDER_API_KEY", "")
        self._timeout = secrets.get_float("FX_PROVIDER_TIMEOUT", DEFAULT_TIMEOUT)
        self._log = log
        self._metrics = metrics or NoopMetrics()
        self._session: aiohttp.ClientSession | None = None

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json", "User-Agent": _USER_AGENT},
            )
        return self._session

    async def fetch_latest(self, base_currency: str) -> dict[str, float]:
        """Current rates relative to *base_currency*."""
        return await self._fetch("live", "/api/rates", {"base": base_currency})

    async def fetch_historical(self, base_currency: str, day: str) -> dict[str, float]:
        """Rates in effect on *day* (``YYYY-MM-DD``).

        Raises RateUnavailableError when the provider has nothing for that day.
        """
        return await self._fetch(
            "historical", "/api/historical/rates", {"date": day, "base": base_currency}
        )

    async def _fetch(self, endpoint: str, path: str, params: dict[str, str]) -> dict[str, float]:
        query = {"api_key": self._api_key, **params}
        started = time.monotonic()
        outcome = "error"
        try:
            rates = await self._request(path, query, params)
            outcome = "ok"
            return rates
        except RateUnavailableError:
            outcome = "no_data"
            raise
        finally:
            self._metrics.counter(
                "fx_provider_requests", tags={"endpoint": endpoint, "outcome": outcome}
            )
            self._metrics.histogram(
                "fx_provider_latency_ms", (time.monotonic() - started) * 1000
            )

    async def _request(self, path: str, query: dict[str, str],
                       params: dict[str, str]) -> dict[str, float]:
        url = f"{self._base_url}{path}"
        self._log.debug("Calling rate provider", path=path, **params)
        try:
            async with self._get_session().get(url, params=query) as resp:
                body = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(f"Rate provider request failed: {exc!r}") from exc

        if status == 404 or (status >= 400 and _NO_DATA_MARKER in body):
            raise RateUnavailableError(f"No rates for {params}: {body[:200]}")
        if status >= 400:
            raise NetworkError(f"Rate provider responded with status {status}", status=status)

        return _parse_rates(body)

    async def aclose(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


def _parse_rates(body: str) -> dict[str, float]:
    try:
        data: Any = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidResponseError(f"Rate provider body is not JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidResponseError("Rate provider body is not a JSON object")
    if _NO_DATA_MARKER in str(data.get("error", "")) or _NO_DATA_MARKER in str(data.get("message", "")):
        raise RateUnavailableError(str(data.get("error") or data.get("message")))

    raw = data.get("rates")
    if not isinstance(raw, dict) or not raw:
        raise InvalidResponseError("Rate provider response has no rates")

    rates: dict[str, float] = {}
    for code, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        rates[str(code).upper()] = float(value)
    if not rates:
        raise InvalidResponseError("Rate provider response has no numeric rates")
    return rates
