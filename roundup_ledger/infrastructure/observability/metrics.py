"""Prometheus metrics for round-up savings and ledger activity"""

from decimal import Decimal
from typing import Optional

from prometheus_client import Counter

from roundup_ledger.domain.models import MovementKind

# Expense metrics
expense_counter = Counter(
    "roundup_expenses_total",
    "Expenses recorded",
    ["rounded"],  # yes | no
)

savings_amount_counter = Counter(
    "roundup_savings_amount_total",
    "Sum of savings differences credited to accounts",
)

# Ledger metrics
movement_counter = Counter(
    "ledger_movements_total",
    "Ledger movements by kind and outcome",
    ["kind", "outcome"],  # CREDIT | DEBIT, completed | reverted
)

account_counter = Counter(
    "ledger_accounts_total",
    "Saving account lifecycle events",
    ["event"],  # opened | closed
)

failure_counter = Counter(
    "ledger_failures_total",
    "Domain errors surfaced to callers",
    ["error"],
)


def record_expense(savings_credited: Optional[Decimal]) -> None:
    """Count an expense and, when it produced a credit, the saved amount"""
    if savings_credited:
        expense_counter.labels(rounded="yes").inc()
        savings_amount_counter.inc(float(savings_credited))
    else:
        expense_counter.labels(rounded="no").inc()


def record_movement(kind: MovementKind, outcome: str) -> None:
    movement_counter.labels(kind=kind.value, outcome=outcome).inc()


def record_account_event(event: str) -> None:
    account_counter.labels(event=event).inc()


def record_failure(error: Exception) -> None:
    failure_counter.labels(error=type(error).__name__).inc()
