"""Unit tests for command validation"""

import uuid
from decimal import Decimal

import pytest

from roundup_ledger.domain.exceptions import InvalidAmountError, InvalidInputError
from roundup_ledger.domain.models import ExpenseCategory
from roundup_ledger.schemas import ExpenseRequest, MovementRequest, OwnerRegistration, parse_command


def expense_values(**overrides):
    values = {
        "owner_id": uuid.uuid4(),
        "original_amount": "10.40",
        "description": "Lunch",
        "category": "grocery",
        "merchant": "Cafe",
    }
    values.update(overrides)
    return values


def test_expense_request_normalizes_amount_and_category():
    request = parse_command(ExpenseRequest, **expense_values(original_amount=10.405))

    assert request.original_amount == Decimal("10.41")
    assert request.category is ExpenseCategory.FOOD


@pytest.mark.parametrize("amount", [None, "0", "-5.00", "0.004", "ten", True])
def test_bad_amounts_raise_invalid_amount(amount):
    with pytest.raises(InvalidAmountError):
        parse_command(ExpenseRequest, **expense_values(original_amount=amount))


@pytest.mark.parametrize(
    "overrides",
    [
        {"description": "   "},
        {"merchant": ""},
        {"category": "rent"},
        {"owner_id": "not-a-uuid"},
    ],
)
def test_other_bad_fields_raise_invalid_input(overrides):
    with pytest.raises(InvalidInputError) as exc_info:
        parse_command(ExpenseRequest, **expense_values(**overrides))

    assert not isinstance(exc_info.value, InvalidAmountError)


def test_movement_request_amount_validation():
    values = {"account_id": uuid.uuid4(), "owner_id": uuid.uuid4(), "description": "Manual"}

    assert parse_command(MovementRequest, amount="1.005", **values).amount == Decimal("1.01")
    with pytest.raises(InvalidAmountError):
        parse_command(MovementRequest, amount="0.00", **values)


@pytest.mark.parametrize(
    "username, email",
    [("ab", "ab@example.com"), ("ada", "not-an-email"), ("ada", "")],
)
def test_owner_registration_validation(username, email):
    with pytest.raises(InvalidInputError):
        parse_command(OwnerRegistration, username=username, email=email)
