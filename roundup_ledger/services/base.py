"""Shared plumbing for ledger services"""

import functools
from typing import Callable, TypeVar

from sqlalchemy.orm import Session

from roundup_ledger.domain.exceptions import DomainException
from roundup_ledger.infrastructure.database.session import atomic, in_atomic
from roundup_ledger.infrastructure.observability.metrics import record_failure

ResultT = TypeVar("ResultT")


class LedgerService:
    """Base for services bound to one request-scoped session"""

    def __init__(self, db: Session):
        self.db = db


def transactional(method: Callable[..., ResultT]) -> Callable[..., ResultT]:
    """Run a service method as (or inside) one atomic unit of work"""

    @functools.wraps(method)
    def wrapper(self: LedgerService, *args, **kwargs) -> ResultT:
        try:
            with atomic(self.db):
                return method(self, *args, **kwargs)
        except DomainException as e:
            if not in_atomic(self.db):
                record_failure(e)
            raise

    return wrapper
