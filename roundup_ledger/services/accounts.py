"""Saving account lifecycle: open, close and look up accounts"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from roundup_ledger.config import settings
from roundup_ledger.domain.exceptions import (
    AccountAlreadyDeletedError,
    AccountAlreadyExistsError,
    AccountHasBalanceError,
    AccountNotFoundError,
    ConflictError,
    OwnerNotFoundError,
)
from roundup_ledger.domain.models import AccountSummary, SavingAccount
from roundup_ledger.infrastructure.database.repositories import OwnerRepository, SavingAccountRepository
from roundup_ledger.infrastructure.database.session import on_commit
from roundup_ledger.infrastructure.observability.logging import log_account_event
from roundup_ledger.infrastructure.observability.metrics import record_account_event
from roundup_ledger.services.base import LedgerService, transactional
from roundup_ledger.utils.account_numbers import generate_account_number

logger = logging.getLogger(__name__)


class SavingAccountService(LedgerService):
    """Opens and closes saving accounts; balances only move through movements"""

    def __init__(self, db: Session):
        super().__init__(db)
        self.accounts = SavingAccountRepository(db)
        self.owners = OwnerRepository(db)

    @transactional
    def create_account(self, owner_id: uuid.UUID) -> SavingAccount:
        """
        Open an ACTIVE, zero-balance account for the owner.

        Raises:
            OwnerNotFoundError: Unknown owner
            AccountAlreadyExistsError: Owner already has an open account
        """
        if self.owners.get_for_update(owner_id) is None:
            raise OwnerNotFoundError(owner_id)

        if self.accounts.exists_open_for_owner(owner_id):
            logger.warning("Attempt to create duplicate account", extra={"owner_id": str(owner_id)})
            raise AccountAlreadyExistsError(owner_id)

        account = SavingAccount(owner_id=owner_id, account_number=self._allocate_account_number())
        self.accounts.save(account)

        log_account_event("opened", account)
        on_commit(self.db, lambda: record_account_event("opened"))
        return account

    @transactional
    def close_account(self, account_id: uuid.UUID) -> SavingAccount:
        """
        Soft-delete an account. Only allowed once the balance is exactly 0.00.

        Raises:
            AccountNotFoundError: Unknown account
            AccountAlreadyDeletedError: Account was closed before
            AccountHasBalanceError: Funds remain in the account
        """
        account = self.accounts.get_for_update(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if account.deleted:
            raise AccountAlreadyDeletedError(account_id)
        if not account.has_zero_balance:
            logger.warning(
                "Refusing to close account with funds",
                extra={"account_number": account.account_number, "balance": str(account.balance)},
            )
            raise AccountHasBalanceError(account.balance)

        account.mark_deleted()
        self.accounts.save(account)

        log_account_event("closed", account)
        on_commit(self.db, lambda: record_account_event("closed"))
        return account

    def get_account(self, account_id: uuid.UUID) -> SavingAccount:
        account = self.accounts.get(account_id)
        if account is None or account.deleted:
            raise AccountNotFoundError(account_id)
        return account

    def get_account_by_owner(self, owner_id: uuid.UUID) -> SavingAccount:
        """Owner's current non-deleted account, whatever its status"""
        account = self.accounts.find_current_by_owner(owner_id)
        if account is None:
            raise AccountNotFoundError(owner_id, f"No saving account found for owner {owner_id}")
        return account

    def get_active_account(self, owner_id: uuid.UUID) -> SavingAccount:
        """Owner's ACTIVE, non-deleted account"""
        account = self.accounts.find_open_by_owner(owner_id)
        if account is None:
            raise AccountNotFoundError(owner_id, f"No active saving account found for owner {owner_id}")
        return account

    def find_by_account_number(self, account_number: str) -> Optional[SavingAccount]:
        account = self.accounts.find_by_account_number(account_number)
        if account is None or account.deleted:
            return None
        return account

    def has_active_account(self, owner_id: uuid.UUID) -> bool:
        return self.accounts.exists_open_for_owner(owner_id)

    def get_account_summary(self, owner_id: uuid.UUID) -> AccountSummary:
        """Unlocked snapshot; fine for display, not for balance decisions"""
        account = self.get_account_by_owner(owner_id)
        return AccountSummary(
            account_number=account.account_number,
            balance=account.balance,
            total_historical_savings=account.total_historical_savings,
            last_movement_at=account.last_movement_at,
            created_at=account.audit.created_at if account.audit else None,
        )

    def _allocate_account_number(self) -> str:
        for _ in range(settings.account_number_attempts):
            candidate = generate_account_number(settings.account_number_prefix)
            if not self.accounts.account_number_exists(candidate):
                return candidate
        raise ConflictError("Could not allocate a unique account number")
