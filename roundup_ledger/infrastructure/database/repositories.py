"""Data access layer for ledger entities

Repositories hand out domain dataclasses, never ORM rows. `save()` is the only
write path: it normalizes every monetary field, stamps audit timestamps and
leaves write-once columns alone once a row exists.
"""

import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from roundup_ledger.domain.exceptions import ConcurrentModificationError
from roundup_ledger.domain.models import (
    AccountStatus,
    AuditStamp,
    ExpenseTransaction,
    MicroSavingConfig,
    Owner,
    SavingAccount,
    SavingMovement,
)
from roundup_ledger.domain.money import normalize
from roundup_ledger.infrastructure.database.models import (
    ExpenseTransactionRecord,
    MicroSavingConfigRecord,
    OwnerRecord,
    SavingAccountRecord,
    SavingMovementRecord,
)
from roundup_ledger.utils.date_utils import utc_now


def _audit(row) -> AuditStamp:
    return AuditStamp(created_at=row.created_at, updated_at=row.updated_at)


def _locked(query: Query) -> Query:
    """SELECT ... FOR UPDATE, refreshing any copy already in the identity map"""
    return query.with_for_update().populate_existing()


class OwnerRepository:
    """Repository for owners"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, owner_id: uuid.UUID) -> Optional[Owner]:
        row = self.db.get(OwnerRecord, owner_id)
        return self._to_domain(row) if row else None

    def get_for_update(self, owner_id: uuid.UUID) -> Optional[Owner]:
        """Lock the owner row; serializes per-owner account and config creation"""
        row = _locked(self.db.query(OwnerRecord).filter(OwnerRecord.id == owner_id)).first()
        return self._to_domain(row) if row else None

    def exists_by_username(self, username: str) -> bool:
        return self.db.query(OwnerRecord.id).filter(OwnerRecord.username == username).first() is not None

    def exists_by_email(self, email: str) -> bool:
        return self.db.query(OwnerRecord.id).filter(OwnerRecord.email == email).first() is not None

    def save(self, owner: Owner) -> Owner:
        now = utc_now()
        row = self.db.get(OwnerRecord, owner.id)
        if row is None:
            row = OwnerRecord(id=owner.id, created_at=now)
            self.db.add(row)
        row.username = owner.username
        row.email = owner.email
        row.updated_at = now
        self.db.flush()
        owner.audit = _audit(row)
        return owner

    @staticmethod
    def _to_domain(row: OwnerRecord) -> Owner:
        return Owner(id=row.id, username=row.username, email=row.email, audit=_audit(row))


class SavingAccountRepository:
    """Repository for saving accounts"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: uuid.UUID) -> Optional[SavingAccount]:
        """Fetch by id, including soft-deleted accounts"""
        row = self.db.get(SavingAccountRecord, account_id)
        return self._to_domain(row) if row else None

    def get_for_update(self, account_id: uuid.UUID) -> Optional[SavingAccount]:
        """Authoritative read for balance decisions; holds the row lock until commit"""
        row = _locked(
            self.db.query(SavingAccountRecord).filter(SavingAccountRecord.id == account_id)
        ).first()
        return self._to_domain(row) if row else None

    def find_open_by_owner(self, owner_id: uuid.UUID) -> Optional[SavingAccount]:
        """ACTIVE, non-deleted account of the owner"""
        row = (
            self.db.query(SavingAccountRecord)
            .filter(
                SavingAccountRecord.owner_id == owner_id,
                SavingAccountRecord.status == AccountStatus.ACTIVE,
                SavingAccountRecord.is_deleted.is_(False),
            )
            .first()
        )
        return self._to_domain(row) if row else None

    def find_current_by_owner(self, owner_id: uuid.UUID) -> Optional[SavingAccount]:
        """Most recent non-deleted account, whatever its status"""
        row = (
            self.db.query(SavingAccountRecord)
            .filter(
                SavingAccountRecord.owner_id == owner_id,
                SavingAccountRecord.is_deleted.is_(False),
            )
            .order_by(SavingAccountRecord.created_at.desc())
            .first()
        )
        return self._to_domain(row) if row else None

    def find_by_account_number(self, account_number: str) -> Optional[SavingAccount]:
        row = (
            self.db.query(SavingAccountRecord)
            .filter(SavingAccountRecord.account_number == account_number)
            .first()
        )
        return self._to_domain(row) if row else None

    def exists_open_for_owner(self, owner_id: uuid.UUID) -> bool:
        return self.find_open_by_owner(owner_id) is not None

    def account_number_exists(self, account_number: str) -> bool:
        return (
            self.db.query(SavingAccountRecord.id)
            .filter(SavingAccountRecord.account_number == account_number)
            .first()
            is not None
        )

    def save(self, account: SavingAccount) -> SavingAccount:
        """
        Write the account back, refusing to overwrite a newer version.

        Raises:
            ConcurrentModificationError: The row changed since `account` was loaded
        """
        now = utc_now()
        row = self.db.get(SavingAccountRecord, account.id)
        if row is None:
            row = SavingAccountRecord(
                id=account.id,
                owner_id=account.owner_id,
                account_number=account.account_number,
                created_at=now,
            )
            self.db.add(row)
        elif account.row_version is not None and row.row_version != account.row_version:
            raise ConcurrentModificationError(
                f"Saving account {account.id} changed since it was read "
                f"(version {account.row_version}, now {row.row_version})"
            )
        row.balance = normalize(account.balance)
        row.total_historical_savings = normalize(account.total_historical_savings)
        row.status = account.status
        row.is_deleted = account.deleted
        row.last_movement_at = account.last_movement_at
        row.updated_at = now
        # The versioned UPDATE still guards the window between this read and the write
        self.db.flush()
        account.row_version = row.row_version
        account.audit = _audit(row)
        return account

    @staticmethod
    def _to_domain(row: SavingAccountRecord) -> SavingAccount:
        return SavingAccount(
            id=row.id,
            owner_id=row.owner_id,
            account_number=row.account_number,
            balance=row.balance,
            total_historical_savings=row.total_historical_savings,
            status=row.status,
            deleted=row.is_deleted,
            last_movement_at=row.last_movement_at,
            row_version=row.row_version,
            audit=_audit(row),
        )


class SavingMovementRepository:
    """Repository for ledger movements"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, movement_id: uuid.UUID) -> Optional[SavingMovement]:
        row = self.db.get(SavingMovementRecord, movement_id)
        return self._to_domain(row) if row else None

    def get_for_update(self, movement_id: uuid.UUID) -> Optional[SavingMovement]:
        row = _locked(
            self.db.query(SavingMovementRecord).filter(SavingMovementRecord.id == movement_id)
        ).first()
        return self._to_domain(row) if row else None

    def list_by_owner(self, owner_id: uuid.UUID) -> List[SavingMovement]:
        rows = (
            self.db.query(SavingMovementRecord)
            .filter(SavingMovementRecord.owner_id == owner_id)
            .order_by(SavingMovementRecord.occurred_at.desc())
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def list_by_expense(self, expense_id: uuid.UUID) -> List[SavingMovement]:
        rows = (
            self.db.query(SavingMovementRecord)
            .filter(SavingMovementRecord.expense_id == expense_id)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def count_by_owner(self, owner_id: uuid.UUID) -> int:
        return (
            self.db.query(func.count(SavingMovementRecord.id))
            .filter(SavingMovementRecord.owner_id == owner_id)
            .scalar()
        )

    def save(self, movement: SavingMovement) -> SavingMovement:
        now = utc_now()
        row = self.db.get(SavingMovementRecord, movement.id)
        if row is None:
            row = SavingMovementRecord(
                id=movement.id,
                account_id=movement.account_id,
                expense_id=movement.expense_id,
                owner_id=movement.owner_id,
                amount=normalize(movement.amount),
                kind=movement.kind,
                description=movement.description,
                created_at=now,
            )
            self.db.add(row)
        row.previous_balance = normalize(movement.previous_balance)
        row.new_balance = normalize(movement.new_balance)
        row.status = movement.status
        row.occurred_at = movement.occurred_at
        row.updated_at = now
        self.db.flush()
        movement.audit = _audit(row)
        return movement

    @staticmethod
    def _to_domain(row: SavingMovementRecord) -> SavingMovement:
        return SavingMovement(
            id=row.id,
            account_id=row.account_id,
            expense_id=row.expense_id,
            owner_id=row.owner_id,
            amount=row.amount,
            kind=row.kind,
            description=row.description,
            previous_balance=row.previous_balance,
            new_balance=row.new_balance,
            status=row.status,
            occurred_at=row.occurred_at,
            audit=_audit(row),
        )


class ExpenseTransactionRepository:
    """Repository for expenses"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, expense_id: uuid.UUID) -> Optional[ExpenseTransaction]:
        row = self.db.get(ExpenseTransactionRecord, expense_id)
        return self._to_domain(row) if row else None

    def list_by_owner(self, owner_id: uuid.UUID) -> List[ExpenseTransaction]:
        rows = (
            self.db.query(ExpenseTransactionRecord)
            .filter(ExpenseTransactionRecord.owner_id == owner_id)
            .order_by(ExpenseTransactionRecord.occurred_at.desc())
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def save(self, expense: ExpenseTransaction) -> ExpenseTransaction:
        now = utc_now()
        expense.recalculate_savings_difference()
        row = self.db.get(ExpenseTransactionRecord, expense.id)
        if row is None:
            row = ExpenseTransactionRecord(
                id=expense.id,
                owner_id=expense.owner_id,
                original_amount=normalize(expense.original_amount),
                description=expense.description,
                category=expense.category,
                merchant=expense.merchant,
                occurred_at=expense.occurred_at,
                created_at=now,
            )
            self.db.add(row)
        row.rounded_amount = normalize(expense.rounded_amount)
        row.savings_difference = normalize(expense.savings_difference)
        row.status = expense.status
        row.updated_at = now
        self.db.flush()
        expense.audit = _audit(row)
        return expense

    @staticmethod
    def _to_domain(row: ExpenseTransactionRecord) -> ExpenseTransaction:
        return ExpenseTransaction(
            id=row.id,
            owner_id=row.owner_id,
            original_amount=row.original_amount,
            rounded_amount=row.rounded_amount,
            description=row.description,
            category=row.category,
            merchant=row.merchant,
            status=row.status,
            occurred_at=row.occurred_at,
            audit=_audit(row),
        )


class MicroSavingConfigRepository:
    """Repository for micro-saving configurations"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, config_id: uuid.UUID) -> Optional[MicroSavingConfig]:
        row = self.db.get(MicroSavingConfigRecord, config_id)
        return self._to_domain(row) if row else None

    def get_for_update(self, config_id: uuid.UUID) -> Optional[MicroSavingConfig]:
        row = _locked(
            self.db.query(MicroSavingConfigRecord).filter(MicroSavingConfigRecord.id == config_id)
        ).first()
        return self._to_domain(row) if row else None

    def find_active_by_owner(self, owner_id: uuid.UUID) -> Optional[MicroSavingConfig]:
        row = (
            self.db.query(MicroSavingConfigRecord)
            .filter(
                MicroSavingConfigRecord.owner_id == owner_id,
                MicroSavingConfigRecord.active.is_(True),
            )
            .first()
        )
        return self._to_domain(row) if row else None

    def save(self, config: MicroSavingConfig) -> MicroSavingConfig:
        now = utc_now()
        row = self.db.get(MicroSavingConfigRecord, config.id)
        if row is None:
            row = MicroSavingConfigRecord(id=config.id, owner_id=config.owner_id, created_at=now)
            self.db.add(row)
        row.active = config.active
        row.version = config.version
        row.updated_at = now
        self.db.flush()
        config.audit = _audit(row)
        return config

    @staticmethod
    def _to_domain(row: MicroSavingConfigRecord) -> MicroSavingConfig:
        return MicroSavingConfig(
            id=row.id,
            owner_id=row.owner_id,
            active=row.active,
            version=row.version,
            audit=_audit(row),
        )
