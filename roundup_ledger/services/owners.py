"""Owner onboarding"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from roundup_ledger.config import settings
from roundup_ledger.domain.exceptions import DomainException, DuplicateOwnerError, OwnerNotFoundError
from roundup_ledger.domain.models import Owner
from roundup_ledger.infrastructure.database.repositories import OwnerRepository
from roundup_ledger.schemas import OwnerRegistration, parse_command
from roundup_ledger.services.accounts import SavingAccountService
from roundup_ledger.services.base import LedgerService, transactional
from roundup_ledger.services.configs import MicroSavingConfigService

logger = logging.getLogger(__name__)


class OwnerService(LedgerService):
    """Registers owners together with their saving account"""

    def __init__(
        self,
        db: Session,
        accounts: Optional[SavingAccountService] = None,
        configs: Optional[MicroSavingConfigService] = None,
    ):
        super().__init__(db)
        self.owners = OwnerRepository(db)
        self.accounts = accounts or SavingAccountService(db)
        self.configs = configs or MicroSavingConfigService(db)

    @transactional
    def register_owner(self, username: str, email: str) -> Owner:
        """
        Register an owner and open their saving account in one unit of work.

        The default micro-saving configuration is best effort: a failure to
        create it is logged and registration still succeeds.

        Raises:
            InvalidInputError: Username or email failed validation
            DuplicateOwnerError: Username or email already registered

        Example:
            >>> owner = service.register_owner("ada", "ada@example.com")
            >>> service.accounts.has_active_account(owner.id)
            True
        """
        request = parse_command(OwnerRegistration, username=username, email=email)

        if self.owners.exists_by_username(request.username):
            raise DuplicateOwnerError(f"Username {request.username} is already registered")
        if self.owners.exists_by_email(request.email):
            raise DuplicateOwnerError(f"Email {request.email} is already registered")

        owner = self.owners.save(Owner(username=request.username, email=request.email))
        logger.info("Owner registered", extra={"owner_id": str(owner.id), "username": owner.username})

        self.accounts.create_account(owner.id)

        if settings.create_default_config_on_registration:
            # Savepoint keeps the owner and account if only the config fails
            try:
                with self.db.begin_nested():
                    self.configs.create_default_config(owner.id)
            except DomainException as e:
                logger.warning(
                    "Could not create default micro-saving configuration",
                    extra={"owner_id": str(owner.id), "error": str(e)},
                )

        return owner

    def get_owner(self, owner_id: uuid.UUID) -> Owner:
        owner = self.owners.get(owner_id)
        if owner is None:
            raise OwnerNotFoundError(owner_id)
        return owner
