"""Ledger factory: wires sessions, services and logging together"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker

from roundup_ledger.config import settings
from roundup_ledger.infrastructure.database.models import Base
from roundup_ledger.infrastructure.database.session import build_engine, build_session_factory, session_scope
from roundup_ledger.infrastructure.observability.logging import setup_logging
from roundup_ledger.services.accounts import SavingAccountService
from roundup_ledger.services.configs import MicroSavingConfigService
from roundup_ledger.services.expenses import ExpenseTransactionService
from roundup_ledger.services.movements import SavingMovementService
from roundup_ledger.services.owners import OwnerService


@dataclass
class LedgerServices:
    """All services bound to one session"""

    db: Session
    owners: OwnerService
    accounts: SavingAccountService
    movements: SavingMovementService
    configs: MicroSavingConfigService
    expenses: ExpenseTransactionService


def build_services(db: Session) -> LedgerServices:
    accounts = SavingAccountService(db)
    movements = SavingMovementService(db)
    configs = MicroSavingConfigService(db)
    return LedgerServices(
        db=db,
        owners=OwnerService(db, accounts=accounts, configs=configs),
        accounts=accounts,
        movements=movements,
        configs=configs,
        expenses=ExpenseTransactionService(db, accounts=accounts, movements=movements, configs=configs),
    )


class Ledger:
    """Entry point for callers; hands out services on a fresh session"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def open(self) -> Iterator[LedgerServices]:
        """
        Services for one unit of caller work.

        Each service call commits on its own; the session is closed on exit.

        Example:
            >>> with ledger.open() as services:
            ...     owner = services.owners.register_owner("ada", "ada@example.com")
        """
        with session_scope(self.session_factory) as db:
            yield build_services(db)


def create_ledger(
    database_url: Optional[str] = None,
    create_schema: bool = False,
    configure_logging: bool = True,
) -> Ledger:
    """Create and configure a Ledger"""
    if configure_logging:
        setup_logging(settings.log_level)

    engine = build_engine(database_url)
    if create_schema:
        Base.metadata.create_all(bind=engine)

    return Ledger(build_session_factory(engine))
