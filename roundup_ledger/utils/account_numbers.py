"""Human-readable saving account numbers"""

import random

from roundup_ledger.utils.date_utils import epoch_millis


def generate_account_number(prefix: str = "SA") -> str:
    """
    Build an account number from the millisecond clock and a random suffix.

    Format: prefix + 9 clock digits + 4 random digits, e.g. SA1234567895821.
    Uniqueness is checked by the caller against the accounts table.
    """
    clock_part = epoch_millis() % 1_000_000_000
    random_part = random.randint(1000, 9999)
    return f"{prefix}{clock_part:09d}{random_part:04d}"
