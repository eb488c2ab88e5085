"""
Values -- Decimal normalization and rounding for settlement arithmetic.

Responsibility:
    The single sanctioned place where raw numeric input becomes a
    ``Decimal`` and where monetary values are rounded.  Every pure engine
    normalizes its inputs through ``to_decimal`` at the function boundary
    instead of scattering NaN / None checks through its body.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, batch and services.  No outward dependencies.

Invariants enforced:
    - Decimal-only arithmetic: money and rates are never floats.
    - round2 is half-away-from-zero at two places (ROUND_HALF_UP on
      Decimal rounds away from zero for negative values as well).
    - Malformed input (None, "", "abc", NaN, +/-Infinity) coerces to zero.

Failure modes:
    None -- every function here is total.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Balances with magnitude below this are considered settled.
SETTLED_TOLERANCE = CENT


def to_decimal(value: Any) -> Decimal:
    """
    Normalize a raw numeric input to a finite ``Decimal``.

    ``None``, empty strings, booleans, non-numeric strings, NaN and
    infinities all become ``Decimal("0")``.  Floats are converted through
    ``str()`` so ``0.1`` becomes ``Decimal("0.1")``, not its binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


def round2(value: Any) -> Decimal:
    """Round to two decimal places, half away from zero."""
    rounded = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    # Normalize negative zero so "-0.00" never leaks into results.
    return rounded if rounded else CENT * 0


def percent_of(amount: Any, rate_percent: Any) -> Decimal:
    """``amount * rate_percent / 100``, unrounded."""
    return to_decimal(amount) * to_decimal(rate_percent) / HUNDRED


def sum_decimal(values: Iterable[Any]) -> Decimal:
    """Sum a sequence of raw values after normalizing each one."""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def is_settled(balance: Any) -> bool:
    """True if ``|balance| < 0.01``."""
    return abs(to_decimal(balance)) < SETTLED_TOLERANCE
