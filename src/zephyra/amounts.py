"""Decimal <-> base-unit conversion.

User input arrives as decimal strings; contracts take integers scaled by
each token's decimals. Conversion is exact; display formatting truncates
toward zero.
"""

import re
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

from zephyra.errors import InvalidAmount

UINT256_MAX = 2**256 - 1

# Plain non-negative decimal: "1", "1.5", "1.", ".5" (no sign, no exponent)
_DECIMAL_RE = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")

# Enough digits for any uint256 scaled by any token's decimals
_PRECISION = 120


def to_base_units(text: Union[str, Decimal, int], decimals: int) -> int:
    """Convert a decimal amount to base units.

    Raises:
        InvalidAmount: If the text is not a plain non-negative decimal, carries
            more precision than ``decimals`` allows, or overflows uint256.
    """
    if decimals < 0:
        raise InvalidAmount(f"Invalid decimals: {decimals}")

    raw = str(text).strip()
    if not _DECIMAL_RE.match(raw):
        raise InvalidAmount(f"Not a valid amount: {text!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        try:
            scaled = Decimal(raw).scaleb(decimals)
        except InvalidOperation as e:
            raise InvalidAmount(f"Not a valid amount: {text!r}") from e

        if scaled != scaled.to_integral_value():
            raise InvalidAmount(
                f"Amount {raw} has more than {decimals} decimal places"
            )
        value = int(scaled)

    if value > UINT256_MAX:
        raise InvalidAmount(f"Amount {raw} is too large")
    return value


def parse_positive(text: Union[str, Decimal, int], decimals: int) -> int:
    """Like ``to_base_units`` but rejects zero."""
    value = to_base_units(text, decimals)
    if value <= 0:
        raise InvalidAmount(f"Amount must be greater than zero: {text!r}")
    return value


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert base units back to a decimal value (exact)."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(value)).scaleb(-decimals)


def format_amount(value: Decimal, places: int = 4) -> str:
    """Fixed-point display string, truncated (not rounded) to ``places``."""
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return str(value.quantize(quantum, rounding=ROUND_DOWN))


def shorten_address(address: str) -> str:
    """0x1234...abcd form used in logs and labels."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
