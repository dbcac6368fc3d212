"""Integration tests for the ledger factory"""

from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from roundup_ledger.domain.exceptions import AccountAlreadyExistsError
from roundup_ledger.main import create_ledger


@pytest.fixture
def ledger(tmp_path):
    return create_ledger(
        f"sqlite:///{tmp_path / 'factory.db'}", create_schema=True, configure_logging=False
    )


def failures(error):
    return REGISTRY.get_sample_value("ledger_failures_total", {"error": error}) or 0.0


def test_end_to_end_round_up(ledger):
    with ledger.open() as services:
        owner = services.owners.register_owner("linus", "linus@example.com")
        services.expenses.record_expense(owner.id, "7.20", "Coffee", "FOOD", "Roastery")

    with ledger.open() as services:
        summary = services.accounts.get_account_summary(owner.id)

    assert summary.balance == Decimal("0.80")
    assert summary.total_historical_savings == Decimal("0.80")


def test_failure_metric_counted_once_per_call(ledger):
    with ledger.open() as services:
        owner = services.owners.register_owner("linus", "linus@example.com")
        before = failures("AccountAlreadyExistsError")

        with pytest.raises(AccountAlreadyExistsError):
            services.accounts.create_account(owner.id)

    assert failures("AccountAlreadyExistsError") == before + 1


def test_opened_accounts_counted_after_commit(ledger):
    before = REGISTRY.get_sample_value("ledger_accounts_total", {"event": "opened"}) or 0.0

    with ledger.open() as services:
        services.owners.register_owner("linus", "linus@example.com")

    assert REGISTRY.get_sample_value("ledger_accounts_total", {"event": "opened"}) == before + 1
