"""Ledger movements: credits, debits and reversals"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from roundup_ledger.domain.exceptions import (
    AccountAlreadyDeletedError,
    AccountInactiveError,
    AccountNotFoundError,
    ExpenseNotFoundError,
    MovementNotFoundError,
    OwnerNotFoundError,
)
from roundup_ledger.domain.models import AccountStatus, MovementKind, SavingMovement
from roundup_ledger.domain.money import MoneyLike
from roundup_ledger.infrastructure.database.repositories import (
    ExpenseTransactionRepository,
    OwnerRepository,
    SavingAccountRepository,
    SavingMovementRepository,
)
from roundup_ledger.infrastructure.database.session import on_commit
from roundup_ledger.infrastructure.observability.logging import log_movement
from roundup_ledger.infrastructure.observability.metrics import record_movement
from roundup_ledger.schemas import MovementRequest, parse_command
from roundup_ledger.services.base import LedgerService, transactional


class SavingMovementService(LedgerService):
    """Creates and reverts movements under a row lock on the target account"""

    def __init__(self, db: Session):
        super().__init__(db)
        self.movements = SavingMovementRepository(db)
        self.accounts = SavingAccountRepository(db)
        self.expenses = ExpenseTransactionRepository(db)
        self.owners = OwnerRepository(db)

    @transactional
    def create_credit_movement(
        self,
        account_id: uuid.UUID,
        owner_id: uuid.UUID,
        amount: MoneyLike,
        description: str,
        expense_id: Optional[uuid.UUID] = None,
    ) -> SavingMovement:
        """Credit an account and record the COMPLETED movement"""
        return self._create_movement(MovementKind.CREDIT, account_id, owner_id, amount, description, expense_id)

    @transactional
    def create_debit_movement(
        self,
        account_id: uuid.UUID,
        owner_id: uuid.UUID,
        amount: MoneyLike,
        description: str,
        expense_id: Optional[uuid.UUID] = None,
    ) -> SavingMovement:
        """Debit an account and record the COMPLETED movement"""
        return self._create_movement(MovementKind.DEBIT, account_id, owner_id, amount, description, expense_id)

    @transactional
    def revert_movement(self, movement_id: uuid.UUID) -> SavingMovement:
        """
        Undo a COMPLETED movement by applying the inverse ledger operation.

        Reverting a credit debits the account, so it fails with
        InsufficientBalanceError when the funds have since been withdrawn.

        Raises:
            MovementNotFoundError: Unknown movement
            InvalidMovementStatusError: Movement is not COMPLETED
            AccountInactiveError, InsufficientBalanceError: From the account
        """
        movement = self.movements.get_for_update(movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)

        account = self.accounts.get_for_update(movement.account_id)
        movement.revert(account)

        self.accounts.save(account)
        self.movements.save(movement)

        log_movement("reverted", movement, account)
        on_commit(self.db, lambda: record_movement(movement.kind, "reverted"))
        return movement

    def get_movement(self, movement_id: uuid.UUID) -> SavingMovement:
        movement = self.movements.get(movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    def list_movements_by_owner(self, owner_id: uuid.UUID) -> List[SavingMovement]:
        return self.movements.list_by_owner(owner_id)

    def list_movements_by_expense(self, expense_id: uuid.UUID) -> List[SavingMovement]:
        return self.movements.list_by_expense(expense_id)

    def count_movements_by_owner(self, owner_id: uuid.UUID) -> int:
        return self.movements.count_by_owner(owner_id)

    def _create_movement(
        self,
        kind: MovementKind,
        account_id: uuid.UUID,
        owner_id: uuid.UUID,
        amount: MoneyLike,
        description: str,
        expense_id: Optional[uuid.UUID],
    ) -> SavingMovement:
        request = parse_command(
            MovementRequest,
            account_id=account_id,
            owner_id=owner_id,
            amount=amount,
            description=description,
            expense_id=expense_id,
        )

        if self.owners.get(request.owner_id) is None:
            raise OwnerNotFoundError(request.owner_id)
        if request.expense_id is not None and self.expenses.get(request.expense_id) is None:
            raise ExpenseNotFoundError(request.expense_id)

        # Balance decisions are taken on the locked row only
        account = self.accounts.get_for_update(request.account_id)
        if account is None:
            raise AccountNotFoundError(request.account_id)
        if account.deleted:
            raise AccountAlreadyDeletedError(account.id)
        if account.status != AccountStatus.ACTIVE:
            raise AccountInactiveError(account.account_number)

        movement = SavingMovement(
            account_id=account.id,
            owner_id=request.owner_id,
            expense_id=request.expense_id,
            amount=request.amount,
            kind=kind,
            description=request.description,
        )
        movement.apply(account)

        self.accounts.save(account)
        self.movements.save(movement)

        log_movement("applied", movement, account)
        on_commit(self.db, lambda: record_movement(kind, "completed"))
        return movement
