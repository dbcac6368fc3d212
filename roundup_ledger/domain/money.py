"""Money normalization - every monetary value goes through here before use"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from roundup_ledger.domain.exceptions import InvalidAmountError

MoneyLike = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: MoneyLike) -> Decimal:
    """
    Convert a raw amount to Decimal without rounding.

    Floats go through str() so 10.40 becomes Decimal("10.4"), not its binary expansion.

    Raises:
        InvalidAmountError: If the value cannot be read as a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Not a monetary amount: {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Not a monetary amount: {value!r}") from e
    if not result.is_finite():
        raise InvalidAmountError(f"Not a monetary amount: {value!r}")
    return result


def normalize(value: MoneyLike | None) -> Decimal:
    """
    Canonicalize an amount to exactly 2 decimal places, rounding half-up.

    None maps to 0.00. Idempotent: normalize(normalize(x)) == normalize(x).

    Example:
        4.355 -> 4.36, 4.354 -> 4.35, None -> 0.00
    """
    if value is None:
        return ZERO
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
