"""Integration tests for credits, debits and reversals"""

import uuid
from decimal import Decimal

import pytest

from roundup_ledger.domain.exceptions import (
    AccountAlreadyDeletedError,
    AccountInactiveError,
    AccountNotFoundError,
    ExpenseNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidInputError,
    InvalidMovementStatusError,
    MovementNotFoundError,
)
from roundup_ledger.domain.models import AccountStatus, MovementKind, MovementStatus
from roundup_ledger.infrastructure.database.models import SavingAccountRecord, SavingMovementRecord


@pytest.fixture
def account(services, owner):
    return services.accounts.create_account(owner.id)


def balance_of(services, account):
    return services.accounts.get_account(account.id).balance


def test_credit_then_debit(services, owner, account):
    credit = services.movements.create_credit_movement(account.id, owner.id, "5.00", "Savings")
    debit = services.movements.create_debit_movement(account.id, owner.id, "1.25", "Withdrawal")

    assert credit.status == MovementStatus.COMPLETED
    assert (credit.previous_balance, credit.new_balance) == (Decimal("0.00"), Decimal("5.00"))
    assert debit.kind == MovementKind.DEBIT
    assert (debit.previous_balance, debit.new_balance) == (Decimal("5.00"), Decimal("3.75"))

    stored = services.accounts.get_account(account.id)
    assert stored.balance == Decimal("3.75")
    assert stored.total_historical_savings == Decimal("5.00")
    assert services.movements.count_movements_by_owner(owner.id) == 2


def test_movement_is_persisted_as_completed(services, owner, account):
    movement = services.movements.create_credit_movement(account.id, owner.id, "1.005", "Savings")

    stored = services.movements.get_movement(movement.id)
    assert stored.amount == Decimal("1.01")
    assert stored.status == MovementStatus.COMPLETED
    assert stored.new_balance == Decimal("1.01")


def test_debit_without_funds_leaves_balance(services, db, owner, account):
    services.movements.create_credit_movement(account.id, owner.id, "1.00", "Savings")

    with pytest.raises(InsufficientBalanceError):
        services.movements.create_debit_movement(account.id, owner.id, "1.01", "Withdrawal")

    assert balance_of(services, account) == Decimal("1.00")
    assert db.query(SavingMovementRecord).count() == 1


@pytest.mark.parametrize("amount", ["0", "-1.00", "0.001", None])
def test_non_positive_amounts_rejected(services, owner, account, amount):
    with pytest.raises(InvalidAmountError):
        services.movements.create_credit_movement(account.id, owner.id, amount, "Savings")


def test_blank_description_rejected(services, owner, account):
    with pytest.raises(InvalidInputError):
        services.movements.create_credit_movement(account.id, owner.id, "1.00", "  ")


def test_unknown_account_and_expense(services, owner, account):
    with pytest.raises(AccountNotFoundError):
        services.movements.create_credit_movement(uuid.uuid4(), owner.id, "1.00", "Savings")
    with pytest.raises(ExpenseNotFoundError):
        services.movements.create_credit_movement(
            account.id, owner.id, "1.00", "Savings", expense_id=uuid.uuid4()
        )


def test_closed_account_refuses_movements(services, owner, account):
    services.accounts.close_account(account.id)

    with pytest.raises(AccountAlreadyDeletedError):
        services.movements.create_credit_movement(account.id, owner.id, "1.00", "Savings")


def test_blocked_account_refuses_movements(services, db, owner, account):
    db.get(SavingAccountRecord, account.id).status = AccountStatus.BLOCKED
    db.commit()

    with pytest.raises(AccountInactiveError):
        services.movements.create_credit_movement(account.id, owner.id, "1.00", "Savings")


def test_revert_credit(services, owner, account):
    movement = services.movements.create_credit_movement(account.id, owner.id, "2.00", "Savings")

    reverted = services.movements.revert_movement(movement.id)

    assert reverted.status == MovementStatus.REVERTED
    assert (reverted.previous_balance, reverted.new_balance) == (Decimal("2.00"), Decimal("0.00"))
    assert services.movements.get_movement(movement.id).status == MovementStatus.REVERTED
    assert balance_of(services, account) == Decimal("0.00")


def test_revert_debit_restores_balance(services, owner, account):
    services.movements.create_credit_movement(account.id, owner.id, "2.00", "Savings")
    debit = services.movements.create_debit_movement(account.id, owner.id, "0.50", "Withdrawal")

    services.movements.revert_movement(debit.id)

    stored = services.accounts.get_account(account.id)
    assert stored.balance == Decimal("2.00")
    assert stored.total_historical_savings == Decimal("2.50")


def test_revert_twice_fails(services, owner, account):
    movement = services.movements.create_credit_movement(account.id, owner.id, "2.00", "Savings")
    services.movements.revert_movement(movement.id)

    with pytest.raises(InvalidMovementStatusError):
        services.movements.revert_movement(movement.id)


def test_revert_spent_credit_rolls_back(services, owner, account):
    """Reverting a credit whose funds were withdrawn fails and changes nothing"""
    credit = services.movements.create_credit_movement(account.id, owner.id, "2.00", "Savings")
    services.movements.create_debit_movement(account.id, owner.id, "1.50", "Withdrawal")

    with pytest.raises(InsufficientBalanceError):
        services.movements.revert_movement(credit.id)

    assert services.movements.get_movement(credit.id).status == MovementStatus.COMPLETED
    assert balance_of(services, account) == Decimal("0.50")


def test_revert_unknown_movement(services):
    with pytest.raises(MovementNotFoundError):
        services.movements.revert_movement(uuid.uuid4())


def test_list_movements_by_owner(services, owner, account):
    services.movements.create_credit_movement(account.id, owner.id, "1.00", "One")
    services.movements.create_credit_movement(account.id, owner.id, "2.00", "Two")

    movements = services.movements.list_movements_by_owner(owner.id)

    assert {m.description for m in movements} == {"One", "Two"}
    assert services.movements.list_movements_by_owner(uuid.uuid4()) == []
