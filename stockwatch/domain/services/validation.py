"""Data validation services for market data quality checks."""

import math

from stockwatch.domain.models.market import PriceBar


def validate_bar(bar: PriceBar) -> tuple[bool, str]:
    """Validate a single bar for data quality.

    OHLC ordering is enforced by the model itself; this catches values
    that are well-formed but unusable.

    Checks:
    - All prices finite (no NaN/inf from upstream gaps)
    - All prices positive

    Args:
        bar: Bar to validate

    Returns:
        Tuple of (is_valid, reason)
    """
    for name in ("open", "high", "low", "close"):
        value = getattr(bar, name)
        if not math.isfinite(value):
            return False, f"{name.capitalize()} price not finite: {value}"
        if value <= 0:
            return False, f"{name.capitalize()} price <= 0: {value}"

    return True, "OK"


def validate_bars(bars: list[PriceBar]) -> tuple[bool, list[str]]:
    """Validate a list of bars.

    Args:
        bars: List of bars to validate

    Returns:
        Tuple of (all_valid, list of error messages)
    """
    errors: list[str] = []

    for i, bar in enumerate(bars):
        valid, reason = validate_bar(bar)
        if not valid:
            errors.append(f"Bar {i} ({bar.date}): {reason}")

    return len(errors) == 0, errors


def filter_valid_bars(bars: list[PriceBar]) -> list[PriceBar]:
    """Filter out invalid bars from a list.

    Args:
        bars: List of bars to filter

    Returns:
        List of valid bars only
    """
    return [bar for bar in bars if validate_bar(bar)[0]]


def order_bars(bars: list[PriceBar]) -> list[PriceBar]:
    """Sort bars oldest first and drop duplicate dates (last one wins).

    Upstream feeds occasionally repeat the current session's bar.

    Args:
        bars: Bars in any order

    Returns:
        Bars with strictly increasing dates
    """
    by_date: dict = {}
    for bar in bars:
        by_date[bar.date] = bar
    return [by_date[d] for d in sorted(by_date)]
