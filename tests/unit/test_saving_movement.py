"""Unit tests for the movement state machine"""

import uuid
from decimal import Decimal

import pytest

from roundup_ledger.domain.exceptions import (
    AccountInactiveError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidMovementStatusError,
    InvalidStateError,
)
from roundup_ledger.domain.models import (
    AccountStatus,
    MovementKind,
    MovementStatus,
    SavingAccount,
    SavingMovement,
)


@pytest.fixture
def account():
    return SavingAccount(owner_id=uuid.uuid4(), account_number="SA0000000021234")


def make_movement(account, amount="0.60", kind=MovementKind.CREDIT):
    return SavingMovement(
        account_id=account.id,
        owner_id=account.owner_id,
        amount=Decimal(amount),
        kind=kind,
        description="Purchase savings at Cafe",
    )


def test_apply_credit_snapshots_balances(account):
    movement = make_movement(account)

    movement.apply(account)

    assert movement.status == MovementStatus.COMPLETED
    assert movement.previous_balance == Decimal("0.00")
    assert movement.new_balance == Decimal("0.60")
    assert account.balance == Decimal("0.60")


def test_apply_debit_snapshots_balances(account):
    account.credit(Decimal("2.00"))
    movement = make_movement(account, "0.50", MovementKind.DEBIT)

    movement.apply(account)

    assert movement.previous_balance == Decimal("2.00")
    assert movement.new_balance == Decimal("1.50")
    assert account.total_historical_savings == Decimal("2.00")


def test_apply_twice_fails(account):
    movement = make_movement(account)
    movement.apply(account)

    with pytest.raises(InvalidMovementStatusError):
        movement.apply(account)

    assert account.balance == Decimal("0.60")


def test_revert_credit_debits_account(account):
    movement = make_movement(account)
    movement.apply(account)

    movement.revert(account)

    assert movement.status == MovementStatus.REVERTED
    assert movement.previous_balance == Decimal("0.60")
    assert movement.new_balance == Decimal("0.00")
    assert account.balance == Decimal("0.00")


def test_revert_debit_credits_account(account):
    account.credit(Decimal("1.00"))
    movement = make_movement(account, "0.40", MovementKind.DEBIT)
    movement.apply(account)

    movement.revert(account)

    assert account.balance == Decimal("1.00")
    # The inverse credit goes through the ledger primitive and counts as savings
    assert account.total_historical_savings == Decimal("1.40")


def test_revert_requires_completed(account):
    movement = make_movement(account)

    with pytest.raises(InvalidMovementStatusError):
        movement.revert(account)


def test_revert_twice_fails(account):
    movement = make_movement(account)
    movement.apply(account)
    movement.revert(account)

    with pytest.raises(InvalidMovementStatusError):
        movement.revert(account)


def test_revert_credit_after_funds_spent_fails(account):
    movement = make_movement(account, "1.00")
    movement.apply(account)
    account.debit(Decimal("0.80"))

    with pytest.raises(InsufficientBalanceError):
        movement.revert(account)

    assert movement.status == MovementStatus.COMPLETED
    assert account.balance == Decimal("0.20")
    # Snapshots still describe the original apply
    assert movement.previous_balance == Decimal("0.00")
    assert movement.new_balance == Decimal("1.00")


def test_failed_apply_leaves_snapshots_untouched(account):
    account.credit(Decimal("3.00"))
    movement = make_movement(account, "5.00", MovementKind.DEBIT)
    occurred_at = movement.occurred_at

    with pytest.raises(InsufficientBalanceError):
        movement.apply(account)

    assert movement.previous_balance == Decimal("0.00")
    assert movement.new_balance == Decimal("0.00")
    assert movement.occurred_at == occurred_at


def test_missing_or_foreign_account_is_invalid_state(account):
    movement = make_movement(account)
    other = SavingAccount(owner_id=account.owner_id, account_number="SA0000000031234")

    with pytest.raises(InvalidStateError):
        movement.apply(None)
    with pytest.raises(InvalidStateError):
        movement.apply(other)

    assert movement.status == MovementStatus.PENDING


def test_failed_apply_keeps_pending(account):
    account.status = AccountStatus.BLOCKED
    movement = make_movement(account)

    with pytest.raises(AccountInactiveError):
        movement.apply(account)

    assert movement.status == MovementStatus.PENDING
    assert movement.previous_balance == Decimal("0.00")


def test_debit_without_funds_keeps_pending(account):
    movement = make_movement(account, "0.01", MovementKind.DEBIT)

    with pytest.raises(InsufficientBalanceError):
        movement.apply(account)

    assert movement.status == MovementStatus.PENDING
    assert account.balance == Decimal("0.00")


@pytest.mark.parametrize("amount", ["0", "-0.60", "0.001"])
def test_amount_must_be_positive(account, amount):
    with pytest.raises(InvalidAmountError):
        make_movement(account, amount)


def test_amount_is_normalized(account):
    movement = make_movement(account, "0.605")

    assert movement.amount == Decimal("0.61")


@pytest.mark.parametrize("field", ["amount", "kind", "account_id", "owner_id", "expense_id", "id"])
def test_identity_fields_are_write_once(account, field):
    movement = make_movement(account)

    with pytest.raises(AttributeError):
        setattr(movement, field, None)
