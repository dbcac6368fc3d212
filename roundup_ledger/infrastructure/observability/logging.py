"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from roundup_ledger.config import settings
from roundup_ledger.domain.models import ExpenseTransaction, SavingAccount, SavingMovement

audit_logger = logging.getLogger("roundup_ledger.audit")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_expense_recorded(expense: ExpenseTransaction, movement: Optional[SavingMovement]) -> None:
    """One record per processed expense, with the credit it produced (if any)"""
    audit_logger.info(
        "Expense recorded",
        extra={
            "step": "expense_recorded",
            "expense_id": str(expense.id),
            "owner_id": str(expense.owner_id),
            "original_amount": str(expense.original_amount),
            "rounded_amount": str(expense.rounded_amount),
            "savings_difference": str(expense.savings_difference),
            "movement_id": str(movement.id) if movement else None,
        },
    )


def log_movement(action: str, movement: SavingMovement, account: SavingAccount) -> None:
    audit_logger.info(
        f"Movement {action}",
        extra={
            "step": f"movement_{action}",
            "movement_id": str(movement.id),
            "account_number": account.account_number,
            "kind": movement.kind.value,
            "amount": str(movement.amount),
            "previous_balance": str(movement.previous_balance),
            "new_balance": str(movement.new_balance),
        },
    )


def log_account_event(event: str, account: SavingAccount) -> None:
    audit_logger.info(
        f"Account {event}",
        extra={
            "step": f"account_{event}",
            "account_id": str(account.id),
            "account_number": account.account_number,
            "owner_id": str(account.owner_id),
            "balance": str(account.balance),
        },
    )
