from __future__ import annotations

from abc import ABC, abstractmethod


class SettingsProvider(ABC):
    """Supplies the user's reporting currency.

    May raise (typically ``SettingsUnavailableError``); callers fall back to USD.
    """

    @abstractmethod
    async def get_target_currency(self) -> str: ...
