"""Aggregates over a batch of conversion results, for reports and job output."""

from __future__ import annotations

from dataclasses import dataclass, field

from fx_platform.fx.dto import ConversionResult


@dataclass
class ConvertedTotal:
    total_converted: float
    total_original: float
    currency: str
    conversions_count: int


@dataclass
class ConversionSummary:
    message: str
    details: list[str] = field(default_factory=list)


def calculate_converted_total(results: list[ConversionResult]) -> ConvertedTotal:
    """Sum a batch. The currency is taken from the first result (USD for an empty batch)."""
    return ConvertedTotal(
        total_converted=sum(r.converted_amount for r in results),
        total_original=sum(r.original_amount for r in results),
        currency=results[0].target_currency if results else "USD",
        conversions_count=sum(1 for r in results if r.was_converted),
    )


def conversion_summary(results: list[ConversionResult], noun: str = "invoice") -> ConversionSummary:
    converted = [r for r in results if r.was_converted]
    if not converted:
        return ConversionSummary("All amounts in default currency")

    breakdown: dict[str, int] = {}
    for result in converted:
        breakdown[result.original_currency] = breakdown.get(result.original_currency, 0) + 1
    details = [
        f"{count} {noun}{'s' if count > 1 else ''} converted from {currency}"
        for currency, count in breakdown.items()
    ]
    return ConversionSummary(
        f"{len(converted)} of {len(results)} {noun}s converted to default currency", details
    )
