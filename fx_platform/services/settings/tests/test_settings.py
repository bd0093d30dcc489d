from __future__ import annotations

import pytest

from fx_platform.fx.errors import SettingsUnavailableError
from fx_platform.services.kv_store.memory_kv_store import MemoryKeyValueStore
from fx_platform.services.secrets.env_secrets import EnvSecrets
from fx_platform.services.settings.env_settings import EnvSettingsProvider
from fx_platform.services.settings.kv_settings import KeyValueSettingsProvider
from fx_platform.services.settings.memory_settings import MemorySettingsProvider


@pytest.mark.asyncio
async def test_memory_settings_can_change():
    settings = MemorySettingsProvider("EUR")
    assert await settings.get_target_currency() == "EUR"
    settings.set_target_currency("GBP")
    assert await settings.get_target_currency() == "GBP"
    assert settings.calls == 2


@pytest.mark.asyncio
async def test_env_settings_normalizes_code():
    settings = EnvSettingsProvider(EnvSecrets(overrides={"FX_TARGET_CURRENCY": " eur "}))
    assert await settings.get_target_currency() == "EUR"


@pytest.mark.asyncio
async def test_env_settings_missing_raises():
    settings = EnvSettingsProvider(EnvSecrets(overrides={"FX_TARGET_CURRENCY": ""}))
    with pytest.raises(SettingsUnavailableError):
        await settings.get_target_currency()


@pytest.mark.asyncio
async def test_kv_settings_bare_code():
    kv = MemoryKeyValueStore()
    kv.set("default_currency", "jpy")
    assert await KeyValueSettingsProvider(kv).get_target_currency() == "JPY"


@pytest.mark.asyncio
async def test_kv_settings_json_document():
    kv = MemoryKeyValueStore()
    kv.set("default_currency", '{"default_currency": "CHF", "locale": "de-CH"}')
    assert await KeyValueSettingsProvider(kv).get_target_currency() == "CHF"


@pytest.mark.asyncio
async def test_kv_settings_roundtrip_through_setter():
    settings = KeyValueSettingsProvider(MemoryKeyValueStore())
    settings.set_target_currency("CAD")
    assert await settings.get_target_currency() == "CAD"


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", [None, "  ", "{not json", '{"locale": "en"}'])
async def test_kv_settings_unavailable(stored):
    kv = MemoryKeyValueStore()
    if stored is not None:
        kv.set("default_currency", stored)
    with pytest.raises(SettingsUnavailableError):
        await KeyValueSettingsProvider(kv).get_target_currency()
