from __future__ import annotations

from fx_platform.services.settings.interface import SettingsProvider


class MemorySettingsProvider(SettingsProvider):
    """Mutable in-process settings; tests flip the currency to exercise invalidation."""

    def __init__(self, target_currency: str = "USD") -> None:
        self.target_currency = target_currency
        self.calls = 0

    async def get_target_currency(self) -> str:
        self.calls += 1
        return self.target_currency

    def set_target_currency(self, currency: str) -> None:
        self.target_currency = currency
