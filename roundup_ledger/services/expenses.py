"""Expense recording with round-up savings"""

import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from roundup_ledger.config import settings
from roundup_ledger.domain.exceptions import ExpenseNotFoundError, OwnerNotFoundError
from roundup_ledger.domain.models import ExpenseCategory, ExpenseTransaction, SavingMovement
from roundup_ledger.domain.money import MoneyLike
from roundup_ledger.infrastructure.database.repositories import ExpenseTransactionRepository, OwnerRepository
from roundup_ledger.infrastructure.database.session import on_commit
from roundup_ledger.infrastructure.observability.logging import log_expense_recorded
from roundup_ledger.infrastructure.observability.metrics import record_expense
from roundup_ledger.schemas import ExpenseRequest, parse_command
from roundup_ledger.services.accounts import SavingAccountService
from roundup_ledger.services.base import LedgerService, transactional
from roundup_ledger.services.configs import MicroSavingConfigService
from roundup_ledger.services.movements import SavingMovementService

logger = logging.getLogger(__name__)


class ExpenseTransactionService(LedgerService):
    """Records expenses and credits their round-up difference to savings"""

    def __init__(
        self,
        db: Session,
        accounts: Optional[SavingAccountService] = None,
        movements: Optional[SavingMovementService] = None,
        configs: Optional[MicroSavingConfigService] = None,
    ):
        super().__init__(db)
        self.expenses = ExpenseTransactionRepository(db)
        self.owners = OwnerRepository(db)
        self.accounts = accounts or SavingAccountService(db)
        self.movements = movements or SavingMovementService(db)
        self.configs = configs or MicroSavingConfigService(db)

    @transactional
    def record_expense(
        self,
        owner_id: uuid.UUID,
        original_amount: MoneyLike,
        description: str,
        category: Union[ExpenseCategory, str],
        merchant: str,
    ) -> ExpenseTransaction:
        """
        Record an expense and move its round-up difference into savings.

        With an active configuration the amount is rounded up to the next
        whole unit and the difference is credited to the owner's active
        account, which is opened on the fly when missing. The expense, the
        account and the credit movement commit together or not at all.

        Requirements:
        - original_amount > 0 after normalization to 2 decimals
        - category is a known ExpenseCategory name (GROCERY maps to FOOD)

        Raises:
            InvalidAmountError: Amount missing, unparseable or not positive
            InvalidInputError: Any other field is invalid
            OwnerNotFoundError: Unknown owner

        Example:
            >>> expense = service.record_expense(owner.id, "10.40", "Lunch", "FOOD", "Cafe")
            >>> expense.rounded_amount, expense.savings_difference
            (Decimal('11.00'), Decimal('0.60'))
        """
        request = parse_command(
            ExpenseRequest,
            owner_id=owner_id,
            original_amount=original_amount,
            description=description,
            category=category,
            merchant=merchant,
        )
        if self.owners.get(request.owner_id) is None:
            raise OwnerNotFoundError(request.owner_id)

        config = self.configs.get_active_config(request.owner_id)

        expense = ExpenseTransaction(
            owner_id=request.owner_id,
            original_amount=request.original_amount,
            description=request.description,
            category=request.category,
            merchant=request.merchant,
        )
        rounding = expense.apply_rounding(config)
        expense.mark_processed()
        self.expenses.save(expense)

        movement = None
        if rounding.has_savings:
            movement = self._credit_savings(expense)

        log_expense_recorded(expense, movement)
        credited = movement.amount if movement else None
        on_commit(self.db, lambda: record_expense(credited))
        return expense

    def get_expense(self, expense_id: uuid.UUID) -> ExpenseTransaction:
        expense = self.expenses.get(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def list_expenses_by_owner(self, owner_id: uuid.UUID) -> List[ExpenseTransaction]:
        return self.expenses.list_by_owner(owner_id)

    def _credit_savings(self, expense: ExpenseTransaction) -> SavingMovement:
        # Owner lock serializes the check-then-create of the account
        self.owners.get_for_update(expense.owner_id)
        if not self.accounts.has_active_account(expense.owner_id):
            account = self.accounts.create_account(expense.owner_id)
            logger.info(
                "Opened saving account for round-up credit",
                extra={"owner_id": str(expense.owner_id), "account_number": account.account_number},
            )

        account = self.accounts.get_active_account(expense.owner_id)
        return self.movements.create_credit_movement(
            account_id=account.id,
            owner_id=expense.owner_id,
            amount=expense.savings_difference,
            description=settings.savings_description_template.format(merchant=expense.merchant),
            expense_id=expense.id,
        )
