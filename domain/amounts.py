from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from .errors import InvalidAmount


# Amounts are fixed-point with two fractional digits.
CENT = Decimal("0.01")

# Largest value a NUMERIC(18, 2) column holds; also fits SQLite's 64-bit cents.
MAX_AMOUNT = Decimal("9999999999999999.99")

AmountLike = Union[Decimal, int, float, str]


def parse_amount(value: AmountLike) -> Decimal:
    """
    Normalise a user-supplied amount to a positive `Decimal`.

    Rejects booleans, NaN, infinities, non-numeric strings, values with
    more than two fractional digits, values above `MAX_AMOUNT`, and
    anything not strictly positive.
    """

    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}") from None

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite: {value!r}")
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than zero.")

    return check_delta(amount)


def check_delta(delta: Decimal) -> Decimal:
    """
    Validate a signed balance change before it reaches storage.

    The delta must be finite, whole cents, and no larger than `MAX_AMOUNT`
    in magnitude. Returns it quantized to `CENT`.
    """

    delta = Decimal(delta)
    if not delta.is_finite():
        raise InvalidAmount(f"Amount must be finite: {delta}")
    if abs(delta) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount is too large: {delta}")

    quantized = delta.quantize(CENT)
    if delta != quantized:
        raise InvalidAmount(f"Amount has more than two decimal places: {delta}")
    return quantized


def to_minor_units(amount: Decimal) -> int:
    """Convert a (possibly negative) amount to integer cents for storage."""

    return int(check_delta(amount) / CENT)


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) * CENT).quantize(CENT)
