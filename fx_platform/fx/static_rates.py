"""Last-resort approximate rates, used only when the provider cannot be reached."""

from __future__ import annotations

from fx_platform.fx.dto import STATIC, RateTable

STATIC_BASE = "USD"

# Units of each currency per 1 USD.
STATIC_USD_RATES: dict[str, float] = {
    "EUR": 0.85,
    "GBP": 0.73,
    "JPY": 110.0,
    "CAD": 1.25,
    "AUD": 1.35,
    "CHF": 0.92,
    "CNY": 6.45,
    "INR": 74.5,
    "SGD": 1.35,
    "HKD": 7.8,
    "AED": 3.67,
    "NZD": 1.52,
    "MYR": 4.2,
    "IDR": 15000.0,
    "SAR": 3.75,
    "KWD": 0.31,
    "RUB": 74.0,
    "SEK": 8.8,
    "NOK": 8.5,
    "MXN": 20.1,
    "BRL": 5.2,
}


def static_rate_table(base_currency: str = STATIC_BASE) -> RateTable:
    """The static table re-expressed against *base_currency*.

    An unknown base yields the USD table; ``RateTable.cross_rate`` still
    works on it because the table carries its own base.
    """
    base = base_currency.upper()
    if base == STATIC_BASE or base not in STATIC_USD_RATES:
        return RateTable(STATIC_BASE, dict(STATIC_USD_RATES), as_of=STATIC, source=STATIC)

    per_usd = STATIC_USD_RATES[base]
    rates = {code: rate / per_usd for code, rate in STATIC_USD_RATES.items()}
    rates[STATIC_BASE] = 1 / per_usd
    return RateTable(base, rates, as_of=STATIC, source=STATIC)
