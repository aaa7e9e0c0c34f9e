"""Money and quantity parsing helpers.

Prices are stored as display strings (``"$4.50"``) and quantities as decimals, so
every conversion goes through :class:`decimal.Decimal` to avoid float drift.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

CURRENCY_SYMBOL = "$"
_CENTS = Decimal("0.01")
_MONEY_PATTERN = re.compile(r"^\s*([-+]?)\s*[$£€]?\s*([-+]?)([0-9][0-9,]*(?:\.[0-9]+)?|\.[0-9]+)\s*$")


def parse_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Parse a plain number (string, int, float or Decimal) into a finite Decimal."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, float):
        parsed = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_money(value: Optional[Number]) -> Optional[Decimal]:
    """Parse ``"$1,234.50"``-style strings into a Decimal; ``None`` when unparsable."""

    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, str):
        return parse_decimal(value)
    match = _MONEY_PATTERN.match(value)
    if not match:
        return None
    sign = "-" if "-" in (match.group(1) + match.group(2)) else ""
    return parse_decimal(sign + match.group(3).replace(",", ""))


def format_money(amount: Number) -> str:
    """Format an amount as a ``$`` string with two decimals (``Decimal("4.5")`` -> ``"$4.50"``)."""

    parsed = parse_money(amount)
    if parsed is None:
        raise ValueError(f"Cannot format {amount!r} as money")
    try:
        quantized = parsed.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Cannot format {amount!r} as money") from exc
    if quantized < 0:
        return f"-{CURRENCY_SYMBOL}{-quantized}"
    return f"{CURRENCY_SYMBOL}{quantized}"


def ensure_currency_prefix(value: str) -> str:
    """Prefix a raw price with the currency symbol unless it already carries one."""

    stripped = value.strip()
    if stripped.startswith(CURRENCY_SYMBOL):
        return stripped
    return f"{CURRENCY_SYMBOL}{stripped}"


def compute_total_price(unit_price: Optional[Number], package_qty: Optional[Number]) -> str:
    """Return ``unit_price * package_qty`` formatted as money (missing parts count as zero)."""

    price = parse_money(unit_price) or Decimal("0")
    qty = parse_decimal(package_qty) or Decimal("0")
    return format_money(price * qty)


def parse_quantity(value: Optional[Number]) -> Optional[Decimal]:
    """Parse a quantity such as ``"0.2"`` or ``"0.2 kg"``; the unit suffix is ignored."""

    if isinstance(value, str):
        match = re.match(r"^\s*([-+]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+))", value)
        if not match:
            return None
        return parse_decimal(match.group(1))
    return parse_decimal(value)


def format_quantity(value: Number) -> str:
    """Render a quantity without trailing zeros (``Decimal("4.8000")`` -> ``"4.8"``)."""

    parsed = parse_decimal(value)
    if parsed is None:
        raise ValueError(f"Cannot format {value!r} as a quantity")
    if parsed == parsed.to_integral_value():
        return str(parsed.quantize(Decimal(1)))
    return format(parsed.normalize(), "f")


__all__ = [
    "CURRENCY_SYMBOL",
    "parse_decimal",
    "parse_money",
    "format_money",
    "ensure_currency_prefix",
    "compute_total_price",
    "parse_quantity",
    "format_quantity",
]
