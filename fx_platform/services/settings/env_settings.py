from __future__ import annotations

from fx_platform.fx.errors import SettingsUnavailableError
from fx_platform.services.secrets.interface import SecretsInterface
from fx_platform.services.settings.interface import SettingsProvider


class EnvSettingsProvider(SettingsProvider):
    """Reads ``FX_TARGET_CURRENCY`` from secrets/environment."""

    def __init__(self, secrets: SecretsInterface) -> None:
        self._secrets = secrets

    async def get_target_currency(self) -> str:
        value = self._secrets.get("FX_TARGET_CURRENCY")
        if not value or not value.strip():
            raise SettingsUnavailableError("FX_TARGET_CURRENCY is not set")
        return value.strip().upper()
