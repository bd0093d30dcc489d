from __future__ import annotations

import os

from fx_platform.services.secrets.interface import SecretsInterface


class EnvSecrets(SecretsInterface):
    """Configuration from the process environment, with ``--env`` overrides on top.

    Keys the conversion stack reads:
        FX_PROVIDER_API_KEY      - blank or unset switches to static rates
        FX_PROVIDER_BASE_URL     - rate provider root URL
        FX_PROVIDER_TIMEOUT      - per-request timeout in seconds
        FX_RATE_LIMIT_DELAY_MS   - spacing between provider requests
        FX_LIVE_CACHE_TTL        - seconds a live table stays fresh
        FX_BASE_CURRENCY         - base every rate table is fetched against
        FX_TARGET_CURRENCY       - reporting currency for ``--settings env``

    The environment is snapshotted at construction, so later changes to
    ``os.environ`` are not seen.
    """

    def __init__(self, overrides: dict[str, str] | None = None) -> None:
        self._values = {**os.environ, **(overrides or {})}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def get_or_default(self, key: str, default: str) -> str:
        value = self._values.get(key)
        return default if value is None else value

    def require(self, key: str) -> str:
        if key not in self._values:
            raise KeyError(f"Required secret '{key}' is not set")
        return self._values[key]
