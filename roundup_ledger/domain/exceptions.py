"""Domain-specific exceptions"""

from decimal import Decimal
from typing import Optional
from uuid import UUID


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


# Invalid input


class InvalidInputError(DomainException):
    """Malformed, missing or out-of-range input"""

    pass


class InvalidAmountError(InvalidInputError):
    """Monetary amount is missing, unparseable or not strictly positive"""

    pass


# Invalid state


class InvalidStateError(DomainException):
    """Operation attempted on an entity in the wrong lifecycle state"""

    pass


class AccountInactiveError(InvalidStateError):
    """Ledger operation on an account whose status is not ACTIVE"""

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Saving account {account_number} is not active")


class AccountAlreadyDeletedError(InvalidStateError):
    """Account has been soft-deleted"""

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Saving account {account_id} has already been closed")


class AccountHasBalanceError(InvalidStateError):
    """Closing an account that still holds funds"""

    def __init__(self, balance: Decimal):
        self.balance = balance
        super().__init__(f"Cannot close an account with a non-zero balance. Current balance: ${balance}")


class InvalidMovementStatusError(InvalidStateError):
    """Movement transition not allowed from its current status"""

    pass


class ConfigStateError(InvalidStateError):
    """Configuration is already in the requested state"""

    pass


# Not found


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    entity = "Entity"

    def __init__(self, entity_id: object, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity} {entity_id} was not found")


class OwnerNotFoundError(NotFoundError):
    entity = "Owner"


class AccountNotFoundError(NotFoundError):
    entity = "Saving account"


class MovementNotFoundError(NotFoundError):
    entity = "Saving movement"


class ExpenseNotFoundError(NotFoundError):
    entity = "Expense transaction"


class ConfigNotFoundError(NotFoundError):
    entity = "Micro-saving configuration"


# Conflict


class ConflictError(DomainException):
    """Write would violate a uniqueness rule or lost a concurrent race"""

    pass


class AccountAlreadyExistsError(ConflictError):
    """Owner already holds an active, non-deleted account"""

    def __init__(self, owner_id: UUID):
        self.owner_id = owner_id
        super().__init__(f"Owner {owner_id} already has an active saving account")


class ConfigAlreadyActiveError(ConflictError):
    """Owner already has an active micro-saving configuration"""

    def __init__(self, owner_id: UUID):
        self.owner_id = owner_id
        super().__init__(f"Owner {owner_id} already has an active micro-saving configuration")


class DuplicateOwnerError(ConflictError):
    """Username or email already registered"""

    pass


class ConcurrentModificationError(ConflictError):
    """Row changed under us between read and write"""

    pass


# Funds


class InsufficientBalanceError(DomainException):
    """Debit or reversal exceeds the available balance"""

    def __init__(self, balance: Decimal, amount: Decimal):
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance: attempted to withdraw {amount} but only {balance} is available"
        )
