from __future__ import annotations

from datetime import date, datetime

import pytest

from fx_platform.fx.dto import (
    HISTORICAL,
    CacheEntry,
    ConversionRequest,
    ConversionResult,
    RateTable,
    normalize_currency,
    normalize_date,
)
from fx_platform.fx.static_rates import STATIC_USD_RATES, static_rate_table


# ── Normalisation ────────────────────────────────────────────────────────────


def test_normalize_currency_uppercases_and_strips() -> None:
    assert normalize_currency(" eur ") == "EUR"


@pytest.mark.parametrize("bad", ["EURO", "E1R", "", None, 840])
def test_normalize_currency_rejects_malformed(bad) -> None:
    with pytest.raises(ValueError):
        normalize_currency(bad)


def test_normalize_date_accepts_several_shapes() -> None:
    assert normalize_date(date(2024, 3, 1)) == date(2024, 3, 1)
    assert normalize_date(datetime(2024, 3, 1, 15, 30)) == date(2024, 3, 1)
    assert normalize_date("2024-03-01") == date(2024, 3, 1)
    assert normalize_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)


def test_normalize_date_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        normalize_date("yesterday")


# ── ConversionRequest ────────────────────────────────────────────────────────


def test_request_normalises_fields() -> None:
    req = ConversionRequest(amount="12.5", from_currency="gbp", as_of_date="2024-01-15", request_id=7)
    assert req.amount == 12.5
    assert req.from_currency == "GBP"
    assert req.as_of_date == date(2024, 1, 15)
    assert req.to_currency is None
    assert req.request_id == "7"


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), True, "abc"])
def test_request_rejects_bad_amounts(amount) -> None:
    with pytest.raises(ValueError):
        ConversionRequest(amount=amount, from_currency="USD", as_of_date="2024-01-15")


def test_request_from_invoice_shaped_dict() -> None:
    req = ConversionRequest.from_dict(
        {"id": "inv-1", "total_amount": 99, "currency": "eur", "issue_date": "2024-02-02"}
    )
    assert req.request_id == "inv-1"
    assert req.amount == 99.0
    assert req.from_currency == "EUR"
    assert req.as_of_date == date(2024, 2, 2)


def test_request_from_dict_defaults_currency_to_usd() -> None:
    req = ConversionRequest.from_dict({"amount": 1, "date": "2024-02-02"})
    assert req.from_currency == "USD"


def test_request_from_dict_requires_a_date() -> None:
    with pytest.raises(ValueError):
        ConversionRequest.from_dict({"amount": 1, "currency": "USD"})


# ── Results and entries ──────────────────────────────────────────────────────


def test_identity_result() -> None:
    result = ConversionResult.identity(100.0, "USD", date(2024, 1, 1))
    assert result.converted_amount == 100.0
    assert result.exchange_rate == 1.0
    assert result.target_currency == "USD"
    assert result.was_converted is False


def test_cache_entry_dict_is_flat() -> None:
    result = ConversionResult(10.0, "EUR", 11.0, "USD", 1.1, "2024-01-01", True, HISTORICAL)
    entry = CacheEntry(result, "inv-1", "k", 1700000000.0, "abc")
    data = entry.to_dict()
    assert data["converted_amount"] == 11.0
    assert data["settings_hash"] == "abc"
    assert CacheEntry.from_dict(data) == entry


# ── RateTable ────────────────────────────────────────────────────────────────


def test_rate_table_injects_base() -> None:
    table = RateTable("usd", {"eur": 0.85})
    assert table.base_currency == "USD"
    assert table.rates == {"EUR": 0.85, "USD": 1.0}


def test_cross_rate_triangulates_through_base() -> None:
    table = RateTable("USD", {"EUR": 0.85, "GBP": 0.73})
    assert table.cross_rate("USD", "EUR") == pytest.approx(0.85)
    assert table.cross_rate("GBP", "USD") == pytest.approx(1 / 0.73)
    assert table.cross_rate("EUR", "GBP") == pytest.approx(0.73 / 0.85)
    assert table.cross_rate("EUR", "EUR") == 1.0


@pytest.mark.parametrize("rates", [{"EUR": 0.0}, {"EUR": -1.0}, {"EUR": float("inf")}, {}])
def test_cross_rate_unusable_rate_is_none(rates) -> None:
    table = RateTable("USD", rates)
    assert table.cross_rate("USD", "EUR") is None
    assert table.cross_rate("EUR", "USD") is None


# ── Static table ─────────────────────────────────────────────────────────────


def test_static_table_usd_base() -> None:
    table = static_rate_table()
    assert table.base_currency == "USD"
    assert table.rate_for("EUR") == STATIC_USD_RATES["EUR"]
    assert table.source == "static"


def test_static_table_rebased() -> None:
    table = static_rate_table("EUR")
    assert table.base_currency == "EUR"
    assert table.rate_for("USD") == pytest.approx(1 / 0.85)
    assert table.cross_rate("GBP", "JPY") == pytest.approx(110.0 / 0.73)


def test_static_table_unknown_base_falls_back_to_usd() -> None:
    assert static_rate_table("XYZ").base_currency == "USD"
