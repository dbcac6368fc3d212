"""SQLAlchemy ORM models for the savings ledger tables"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import declarative_base

from roundup_ledger.domain.models import (
    AccountStatus,
    ExpenseCategory,
    ExpenseStatus,
    MovementKind,
    MovementStatus,
)

Base = declarative_base()

# 19 digits, 2 decimals: same scale the money normalizer produces
Money = Numeric(19, 2)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, native_enum=False, length=20)


class OwnerRecord(Base):
    """Account holder; every other table cascades from here"""

    __tablename__ = "owners"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class SavingAccountRecord(Base):
    """Savings account balance and lifetime totals"""

    __tablename__ = "saving_accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    account_number = Column(String(32), nullable=False, unique=True)
    balance = Column(Money, nullable=False)
    total_historical_savings = Column(Money, nullable=False)
    status = Column(_enum(AccountStatus, "saving_account_status"), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    last_movement_at = Column(DateTime(timezone=True), nullable=False)
    row_version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # One open account per owner
        Index(
            "uq_saving_accounts_owner_open",
            "owner_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE' AND NOT is_deleted"),
            sqlite_where=text("status = 'ACTIVE' AND is_deleted = 0"),
        ),
    )

    # Optimistic concurrency: UPDATE ... WHERE row_version = <loaded version>
    __mapper_args__ = {"version_id_col": row_version}


class SavingMovementRecord(Base):
    """Ledger entry; amount, kind and references are never updated"""

    __tablename__ = "saving_movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(
        Uuid, ForeignKey("saving_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expense_id = Column(
        Uuid, ForeignKey("expense_transactions.id", ondelete="CASCADE"), nullable=True, index=True
    )
    owner_id = Column(Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    kind = Column(_enum(MovementKind, "movement_kind"), nullable=False)
    description = Column(Text, nullable=False)
    previous_balance = Column(Money, nullable=False)
    new_balance = Column(Money, nullable=False)
    status = Column(_enum(MovementStatus, "movement_status"), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ExpenseTransactionRecord(Base):
    """Expense with its round-up outcome"""

    __tablename__ = "expense_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    original_amount = Column(Money, nullable=False)
    rounded_amount = Column(Money, nullable=False)
    savings_difference = Column(Money, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(_enum(ExpenseCategory, "expense_category"), nullable=False)
    merchant = Column(Text, nullable=False)
    status = Column(_enum(ExpenseStatus, "expense_status"), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class MicroSavingConfigRecord(Base):
    """Round-up on/off switch per owner"""

    __tablename__ = "micro_saving_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False, index=True)
    active = Column(Boolean, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_micro_saving_configs_owner_active",
            "owner_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )
