"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from roundup_ledger.domain.exceptions import (
    AccountInactiveError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidMovementStatusError,
    InvalidStateError,
)
from roundup_ledger.domain.money import ZERO, MoneyLike, normalize
from roundup_ledger.domain.rounding import RoundingResult, apply_rounding
from roundup_ledger.utils.date_utils import utc_now


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"


class MovementKind(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class MovementStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REVERTED = "REVERTED"
    # Reserved, never produced by the ledger itself
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class ExpenseStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"


class ExpenseCategory(str, Enum):
    FOOD = "FOOD"
    TRANSPORTATION = "TRANSPORTATION"
    UTILITIES = "UTILITIES"
    ENTERTAINMENT = "ENTERTAINMENT"
    HEALTHCARE = "HEALTHCARE"
    EDUCATION = "EDUCATION"
    PERSONAL_CARE = "PERSONAL_CARE"
    MISCELLANEOUS = "MISCELLANEOUS"

    @classmethod
    def from_string(cls, key: str) -> "ExpenseCategory":
        """Case-insensitive lookup; GROCERY is accepted as FOOD"""
        if key is None:
            raise ValueError("Category key must not be None")
        normalized_key = key.strip().upper()
        if normalized_key == "GROCERY":
            return cls.FOOD
        try:
            return cls(normalized_key)
        except ValueError:
            raise ValueError(f"Unknown expense category: {key}") from None


@dataclass(frozen=True)
class AuditStamp:
    """Row timestamps, attached by the persistence layer on save"""

    created_at: datetime
    updated_at: datetime


@dataclass
class Owner:
    """User that owns accounts, movements, expenses and configurations"""

    username: str
    email: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    audit: Optional[AuditStamp] = None


@dataclass
class MicroSavingConfig:
    """Per-owner switch for round-up savings"""

    owner_id: uuid.UUID
    active: bool = True
    version: int = 1
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    audit: Optional[AuditStamp] = None

    def activate(self) -> None:
        self.active = True
        self.version += 1

    def deactivate(self) -> None:
        self.active = False
        self.version += 1


@dataclass
class SavingAccount:
    """
    Savings account ledger.

    credit(), debit() and mark_deleted() are the only operations that change
    balance, total_historical_savings or status.

    Invariants:
    - balance >= 0
    - total_historical_savings never decreases (debits leave it untouched)
    """

    owner_id: uuid.UUID
    account_number: str
    balance: Decimal = ZERO
    total_historical_savings: Decimal = ZERO
    status: AccountStatus = AccountStatus.ACTIVE
    deleted: bool = False
    last_movement_at: datetime = field(default_factory=utc_now)
    # Version of the stored row this copy was read from; None until first saved
    row_version: Optional[int] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    audit: Optional[AuditStamp] = None

    def __post_init__(self) -> None:
        self.balance = normalize(self.balance)
        self.total_historical_savings = normalize(self.total_historical_savings)
        if self.balance < ZERO:
            raise InvalidAmountError(f"Account balance cannot be negative: {self.balance}")

    @property
    def is_open(self) -> bool:
        """ACTIVE and not soft-deleted"""
        return self.status == AccountStatus.ACTIVE and not self.deleted

    @property
    def has_zero_balance(self) -> bool:
        return self.balance == ZERO

    def credit(self, amount: MoneyLike) -> None:
        """Add funds and count them towards historical savings"""
        amount = self._require_positive(amount)
        self._require_active()
        self.balance = normalize(self.balance + amount)
        self.total_historical_savings = normalize(self.total_historical_savings + amount)
        self.last_movement_at = utc_now()

    def debit(self, amount: MoneyLike) -> None:
        """Withdraw funds; historical savings are unaffected"""
        amount = self._require_positive(amount)
        self._require_active()
        if self.balance < amount:
            raise InsufficientBalanceError(balance=self.balance, amount=amount)
        self.balance = normalize(self.balance - amount)
        self.last_movement_at = utc_now()

    def mark_deleted(self) -> None:
        """Soft-delete. The zero-balance precondition is checked by the caller."""
        self.deleted = True
        self.status = AccountStatus.INACTIVE

    def _require_active(self) -> None:
        if self.status != AccountStatus.ACTIVE:
            raise AccountInactiveError(self.account_number)

    @staticmethod
    def _require_positive(amount: MoneyLike) -> Decimal:
        if amount is None:
            raise InvalidAmountError("The amount must be greater than zero")
        amount = normalize(amount)
        if amount <= ZERO:
            raise InvalidAmountError(f"The amount must be greater than zero. Received: {amount}")
        return amount


@dataclass
class SavingMovement:
    """
    Single ledger entry against one account.

    State machine: PENDING --apply()--> COMPLETED --revert()--> REVERTED.
    Both transitions go through the account's credit/debit primitives, so a
    revert is subject to the same active/funds checks as the original apply.

    id, account_id, owner_id, expense_id, amount and kind are write-once.
    """

    _WRITE_ONCE = frozenset({"id", "account_id", "owner_id", "expense_id", "amount", "kind"})

    account_id: uuid.UUID
    owner_id: uuid.UUID
    amount: Decimal
    kind: MovementKind
    description: str
    expense_id: Optional[uuid.UUID] = None
    previous_balance: Decimal = ZERO
    new_balance: Decimal = ZERO
    status: MovementStatus = MovementStatus.PENDING
    occurred_at: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    audit: Optional[AuditStamp] = None

    def __post_init__(self) -> None:
        amount = normalize(self.amount)
        if amount <= ZERO:
            raise InvalidAmountError(f"Savings amount must be positive. Received: {self.amount}")
        object.__setattr__(self, "amount", amount)
        self.previous_balance = normalize(self.previous_balance)
        self.new_balance = normalize(self.new_balance)

    def __setattr__(self, name: str, value: object) -> None:
        if name in self._WRITE_ONCE and name in self.__dict__:
            raise AttributeError(f"SavingMovement.{name} cannot change after creation")
        super().__setattr__(name, value)

    def apply(self, account: Optional[SavingAccount]) -> None:
        """Post the movement to its account: PENDING -> COMPLETED"""
        self._require_account(account, "apply")
        if self.status != MovementStatus.PENDING:
            raise InvalidMovementStatusError(
                f"Only PENDING movements can be applied. Current status: {self.status.value}"
            )

        previous_balance = normalize(account.balance)
        if self.kind == MovementKind.CREDIT:
            account.credit(self.amount)
        else:
            account.debit(self.amount)

        self._record_transition(previous_balance, account, MovementStatus.COMPLETED)

    def revert(self, account: Optional[SavingAccount]) -> None:
        """Undo a completed movement with the inverse primitive: COMPLETED -> REVERTED"""
        self._require_account(account, "revert")
        if self.status != MovementStatus.COMPLETED:
            raise InvalidMovementStatusError(
                f"Only COMPLETED movements can be reverted. Current status: {self.status.value}"
            )

        previous_balance = normalize(account.balance)
        if self.kind == MovementKind.CREDIT:
            account.debit(self.amount)
        else:
            account.credit(self.amount)

        self._record_transition(previous_balance, account, MovementStatus.REVERTED)

    def _record_transition(
        self, previous_balance: Decimal, account: SavingAccount, status: MovementStatus
    ) -> None:
        """Snapshots are only taken once the ledger call has succeeded"""
        self.previous_balance = previous_balance
        self.new_balance = normalize(account.balance)
        self.occurred_at = utc_now()
        self.status = status

    def _require_account(self, account: Optional[SavingAccount], action: str) -> None:
        if account is None:
            raise InvalidStateError(f"Saving account is required to {action} movement")
        if account.id != self.account_id:
            raise InvalidStateError(
                f"Movement {self.id} belongs to account {self.account_id}, not {account.id}"
            )


@dataclass
class ExpenseTransaction:
    """
    Expense as entered by the owner, plus its round-up outcome.

    savings_difference is always rounded_amount - original_amount, both normalized.
    """

    owner_id: uuid.UUID
    original_amount: Optional[Decimal]
    description: str
    category: ExpenseCategory
    merchant: str
    rounded_amount: Optional[Decimal] = None
    savings_difference: Decimal = ZERO
    status: ExpenseStatus = ExpenseStatus.PENDING
    occurred_at: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    audit: Optional[AuditStamp] = None

    def __post_init__(self) -> None:
        if self.original_amount is not None:
            self.original_amount = normalize(self.original_amount)
        # Until rounding is applied the expense is saved at face value
        if self.rounded_amount is None:
            self.rounded_amount = normalize(self.original_amount)
        self.recalculate_savings_difference()

    def recalculate_savings_difference(self) -> None:
        self.rounded_amount = normalize(self.rounded_amount)
        self.savings_difference = normalize(self.rounded_amount - normalize(self.original_amount))

    def apply_rounding(self, config: Optional[MicroSavingConfig]) -> RoundingResult:
        result = apply_rounding(self.original_amount, config)
        self.rounded_amount = result.rounded_amount
        self.recalculate_savings_difference()
        return result

    def mark_processed(self) -> None:
        self._require_pending()
        self.status = ExpenseStatus.PROCESSED

    def mark_rejected(self) -> None:
        self._require_pending()
        self.status = ExpenseStatus.REJECTED

    def _require_pending(self) -> None:
        if self.status != ExpenseStatus.PENDING:
            raise InvalidStateError(f"Expense {self.id} is already {self.status.value}")


@dataclass
class AccountSummary:
    """Read-only snapshot of an owner's account"""

    account_number: str
    balance: Decimal
    total_historical_savings: Decimal
    last_movement_at: datetime
    created_at: Optional[datetime]
