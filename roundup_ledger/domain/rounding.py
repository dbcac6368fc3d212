"""Round-up policy - decides how much of an expense gets saved"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import TYPE_CHECKING, Optional

from roundup_ledger.domain.money import ZERO, MoneyLike, normalize, to_decimal

if TYPE_CHECKING:
    from roundup_ledger.domain.models import MicroSavingConfig

WHOLE_UNIT = Decimal("1")


@dataclass(frozen=True)
class RoundingResult:
    """Outcome of applying the round-up policy to one amount"""

    rounded_amount: Decimal
    savings_difference: Decimal

    @property
    def has_savings(self) -> bool:
        return self.savings_difference > ZERO


def round_up_to_whole_unit(amount: MoneyLike) -> Decimal:
    """Ceiling to the next whole currency unit, expressed with 2 decimals (4.35 -> 5.00, 5.00 -> 5.00)"""
    return normalize(to_decimal(amount).quantize(WHOLE_UNIT, rounding=ROUND_CEILING))


def apply_rounding(
    original_amount: Optional[MoneyLike],
    config: Optional[MicroSavingConfig],
) -> RoundingResult:
    """
    Compute the rounded amount and savings difference for an expense.

    Rules:
    - No amount: rounded 0.00, difference 0.00
    - No config or inactive config: rounded = normalized amount, difference 0.00
    - Active config: rounded = ceiling to whole unit, difference = rounded - normalized amount

    Non-positive amounts are not rejected here; callers validate input first.
    """
    if original_amount is None:
        return RoundingResult(rounded_amount=ZERO, savings_difference=ZERO)

    normalized_original = normalize(original_amount)

    if config is None or not config.active:
        return RoundingResult(rounded_amount=normalized_original, savings_difference=ZERO)

    rounded = round_up_to_whole_unit(original_amount)
    return RoundingResult(
        rounded_amount=rounded,
        savings_difference=normalize(rounded - normalized_original),
    )
