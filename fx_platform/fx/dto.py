"""Value types shared by the rate source, the conversion cache and the service.

All types are plain dataclasses with ``to_dict()`` / ``from_dict()`` helpers;
the dict forms are what the key-value store and the CLI module persist.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

# Tier markers: which step of the fallback chain produced a rate.
IDENTITY = "identity"        # same currency, no lookup
HISTORICAL = "historical"    # provider rate for the requested date
LIVE = "live"                # provider rate for "now"
STATIC = "static"            # hardcoded approximate table
UNAVAILABLE = "unavailable"  # no tier knew the pair; identity rate applied

# Tiers whose results are trustworthy enough to cache.
CACHEABLE_TIERS = frozenset({HISTORICAL, LIVE})

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(code: Any) -> str:
    """Upper-case and validate an ISO 4217 style code. Raises ValueError."""
    if not isinstance(code, str):
        raise ValueError(f"Currency code must be a string, got {type(code).__name__}")
    normalized = code.strip().upper()
    if not _CURRENCY_RE.match(normalized):
        raise ValueError(f"Invalid currency code: {code!r}")
    return normalized


def normalize_date(value: Any) -> date:
    """Accept a ``date``, a ``datetime`` or an ISO-8601 string; return the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}") from None
    raise ValueError(f"Invalid date: {value!r}")


def _normalize_amount(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, got bool")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Amount must be a number, got {value!r}") from None
    if not math.isfinite(amount):
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount


@dataclass
class ConversionRequest:
    """One amount to convert, as recorded by a business record.

    ``to_currency=None`` means "the user's current reporting currency".
    ``request_id`` names the source record (e.g. an invoice id) and only
    takes part in cache-key composition.
    """

    amount: float
    from_currency: str
    as_of_date: date
    to_currency: str | None = None
    request_id: str = ""

    def __post_init__(self) -> None:
        self.amount = _normalize_amount(self.amount)
        self.from_currency = normalize_currency(self.from_currency)
        self.as_of_date = normalize_date(self.as_of_date)
        if self.to_currency is not None:
            self.to_currency = normalize_currency(self.to_currency)
        self.request_id = str(self.request_id)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["as_of_date"] = self.as_of_date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversionRequest":
        """Build from a record dict.

        Besides the field names, accepts the shapes collaborators hand over:
        ``currency`` for the source currency, ``date`` / ``issue_date`` for the
        date, ``id`` for the request id and ``total_amount`` for the amount.
        A missing source currency defaults to USD.
        """
        amount = data.get("amount", data.get("total_amount"))
        from_currency = data.get("from_currency") or data.get("currency") or "USD"
        as_of = data.get("as_of_date") or data.get("date") or data.get("issue_date")
        if as_of is None:
            raise ValueError("Request is missing a date (as_of_date / date / issue_date)")
        return cls(
            amount=amount,
            from_currency=from_currency,
            as_of_date=as_of,
            to_currency=data.get("to_currency"),
            request_id=data.get("request_id") or data.get("id") or "",
        )


@dataclass
class ConversionResult:
    original_amount: float
    original_currency: str
    converted_amount: float
    target_currency: str
    exchange_rate: float
    conversion_date: str     # ISO date the rate was requested for
    was_converted: bool
    rate_source: str = IDENTITY

    @classmethod
    def identity(cls, amount: float, currency: str, as_of: date,
                 rate_source: str = IDENTITY) -> "ConversionResult":
        """A no-op result: the amount stays in *currency* at rate 1."""
        return cls(
            original_amount=amount,
            original_currency=currency,
            converted_amount=amount,
            target_currency=currency,
            exchange_rate=1.0,
            conversion_date=as_of.isoformat(),
            was_converted=False,
            rate_source=rate_source,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversionResult":
        return cls(
            original_amount=float(data["original_amount"]),
            original_currency=data["original_currency"],
            converted_amount=float(data["converted_amount"]),
            target_currency=data["target_currency"],
            exchange_rate=float(data["exchange_rate"]),
            conversion_date=data["conversion_date"],
            was_converted=bool(data["was_converted"]),
            rate_source=data.get("rate_source", IDENTITY),
        )


@dataclass
class CacheEntry:
    """A cached ``ConversionResult`` plus the context it was cached under."""

    result: ConversionResult
    request_id: str
    cache_key: str
    timestamp: float         # epoch seconds at insertion
    settings_hash: str

    def to_dict(self) -> dict[str, Any]:
        data = self.result.to_dict()
        data.update(
            request_id=self.request_id,
            cache_key=self.cache_key,
            timestamp=self.timestamp,
            settings_hash=self.settings_hash,
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            result=ConversionResult.from_dict(data),
            request_id=str(data.get("request_id", "")),
            cache_key=data["cache_key"],
            timestamp=float(data["timestamp"]),
            settings_hash=data["settings_hash"],
        )


@dataclass
class RateTable:
    """Every known currency relative to one base: ``rates[X]`` units of X per 1 base.

    ``as_of`` is the ISO date the table describes, or ``"live"``. The base
    currency is always present at exactly 1.
    """

    base_currency: str
    rates: dict[str, float] = field(default_factory=dict)
    as_of: str = LIVE
    source: str = LIVE

    def __post_init__(self) -> None:
        self.base_currency = normalize_currency(self.base_currency)
        self.rates = {str(k).upper(): float(v) for k, v in self.rates.items()}
        self.rates[self.base_currency] = 1.0

    def rate_for(self, currency: str) -> float | None:
        """Base-relative rate, or None when absent, zero, negative or not finite."""
        rate = self.rates.get(currency)
        if rate is None or not math.isfinite(rate) or rate <= 0:
            return None
        return rate

    def cross_rate(self, from_currency: str, to_currency: str) -> float | None:
        """Units of *to_currency* per 1 *from_currency*, triangulated through the base.

        Returns None when either side has no usable rate.
        """
        if from_currency == to_currency:
            return 1.0
        if from_currency == self.base_currency:
            return self.rate_for(to_currency)
        from_rate = self.rate_for(from_currency)
        if from_rate is None:
            return None
        if to_currency == self.base_currency:
            return 1 / from_rate
        to_rate = self.rate_for(to_currency)
        if to_rate is None:
            return None
        return to_rate / from_rate

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateTable":
        return cls(
            base_currency=data["base_currency"],
            rates=dict(data["rates"]),
            as_of=data.get("as_of", LIVE),
            source=data.get("source", LIVE),
        )
