"""Price parsing and computation rules for sourced products."""

from __future__ import annotations

import math
import re
from decimal import ROUND_CEILING, Decimal

# Stock used when the source does not expose a quantity. Also the upper cap.
SENTINEL_STOCK = 9999
STOCK_CAP = 9999

PRICE_UNIT = 100

_RANGE_RE = re.compile(r"([0-9,]+)\s*원?\s*~\s*([0-9,]+)\s*원?")
_NUMBER_RE = re.compile(r"([0-9,]+)\s*원?")
_WON_RE = re.compile(r"([0-9,]+)\s*원")


def _to_int(text: str) -> int | None:
    digits = re.sub(r"[^0-9]", "", text)
    return int(digits) if digits else None


def parse_price(text: str | None, won_first: bool = False) -> int | None:
    """
    Parse a price out of free text.

    Order: minimum of a "a ~ b" range, then the first number (optionally
    followed by 원), then every digit in the text. With ``won_first`` a
    number explicitly suffixed by 원 is tried before anything else.

    Args:
        text: Raw price text, e.g. "12,000원 ~ 15,000원".
        won_first: Prefer numbers followed by 원.

    Returns:
        The parsed price, or None if no digits are present.
    """
    if not text:
        return None
    text = text.strip()

    if won_first:
        match = _WON_RE.search(text)
        if match:
            return _to_int(match.group(1))

    match = _RANGE_RE.search(text)
    if match:
        low, high = _to_int(match.group(1)), _to_int(match.group(2))
        if low is not None and high is not None:
            return min(low, high)

    match = _NUMBER_RE.search(text)
    if match:
        value = _to_int(match.group(1))
        if value is not None:
            return value

    return _to_int(text)


def round_up_to_unit(value: Decimal | float | int, unit: int = PRICE_UNIT) -> int:
    """Round a value up to the next multiple of ``unit``."""
    amount = Decimal(str(value))
    steps = (amount / unit).to_integral_value(rounding=ROUND_CEILING)
    return int(steps) * unit


def compute_price(base_cost: int, price_delta: int = 0, margin_rate: float = 20) -> int:
    """
    Compute the selling price of a product or option.

    price = ceil((base_cost + price_delta) * (1 + margin_rate / 100) / 100) * 100

    Args:
        base_cost: Vendor cost price.
        price_delta: Extra cost of the selected option.
        margin_rate: Margin in percent.

    Returns:
        Selling price rounded up to the nearest 100.
    """
    cost = Decimal(base_cost + price_delta)
    multiplier = 1 + Decimal(str(margin_rate)) / 100
    return round_up_to_unit(cost * multiplier)


def cap_stock(qty: int | None) -> int:
    """Return the stock figure for a quantity, defaulting to the sentinel."""
    if not qty:
        return min(SENTINEL_STOCK, STOCK_CAP)
    return min(qty, STOCK_CAP)


def normalize_delta(delta: int | float | None) -> int:
    """Clamp an option price delta to a non-negative integer."""
    if delta is None or (isinstance(delta, float) and math.isnan(delta)):
        return 0
    return max(0, int(delta))
