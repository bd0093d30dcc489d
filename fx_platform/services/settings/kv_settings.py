"""Settings read from the shared key-value store.

The host application writes the user's choice under ``default_currency``,
either as a bare code (``"EUR"``) or as a JSON settings document
(``{"default_currency": "EUR", ...}``).
"""

from __future__ import annotations

import json

from fx_platform.fx.errors import SettingsUnavailableError
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.settings.interface import SettingsProvider

SETTINGS_KEY = "default_currency"


class KeyValueSettingsProvider(SettingsProvider):
    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def get_target_currency(self) -> str:
        raw = self._kv.get(SETTINGS_KEY)
        if raw is None or not raw.strip():
            raise SettingsUnavailableError(f"no '{SETTINGS_KEY}' in key-value store")

        raw = raw.strip()
        if raw.startswith("{"):
            try:
                doc = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise SettingsUnavailableError(f"malformed settings document: {exc}") from exc
            value = doc.get("default_currency")
            if not isinstance(value, str) or not value.strip():
                raise SettingsUnavailableError("settings document has no default_currency")
            return value.strip().upper()
        return raw.upper()

    def set_target_currency(self, currency: str) -> None:
        self._kv.set(SETTINGS_KEY, currency)
