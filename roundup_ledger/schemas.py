"""Pydantic schemas validating the inputs of every ledger command"""

import uuid
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from roundup_ledger.domain.exceptions import InvalidAmountError, InvalidInputError
from roundup_ledger.domain.models import ExpenseCategory
from roundup_ledger.domain.money import normalize

CommandT = TypeVar("CommandT", bound="LedgerCommand")

AMOUNT_FIELDS = {"amount", "original_amount"}


def _coerce_money(value: Any) -> Any:
    """Normalize before the gt=0 check so sub-cent amounts count as zero"""
    if value is None:
        return value
    try:
        return normalize(value)
    except InvalidAmountError as e:
        raise ValueError(str(e)) from e


class LedgerCommand(BaseModel):
    """Base for command payloads: immutable, whitespace-trimmed strings"""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class ExpenseRequest(LedgerCommand):
    """Input for recording an expense"""

    owner_id: uuid.UUID
    original_amount: Decimal = Field(..., gt=0, description="Amount as entered")
    description: str = Field(..., min_length=1)
    category: ExpenseCategory
    merchant: str = Field(..., min_length=1)

    @field_validator("original_amount", mode="before")
    @classmethod
    def normalize_amount(cls, value: Any) -> Any:
        return _coerce_money(value)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, ExpenseCategory):
            return ExpenseCategory.from_string(value)
        return value


class MovementRequest(LedgerCommand):
    """Input for a manual credit or debit"""

    account_id: uuid.UUID
    owner_id: uuid.UUID
    amount: Decimal = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    expense_id: Optional[uuid.UUID] = None

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, value: Any) -> Any:
        return _coerce_money(value)


class OwnerRegistration(LedgerCommand):
    """Input for onboarding a new owner"""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_command(model: Type[CommandT], **values: Any) -> CommandT:
    """
    Build a command, translating pydantic errors into domain errors.

    Raises:
        InvalidAmountError: An amount field is missing, unparseable or not > 0
        InvalidInputError: Any other field failed validation
    """
    try:
        return model(**values)
    except ValidationError as e:
        errors = e.errors()
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in errors
        )
        if any(err["loc"] and err["loc"][0] in AMOUNT_FIELDS for err in errors):
            raise InvalidAmountError(details) from e
        raise InvalidInputError(details) from e
