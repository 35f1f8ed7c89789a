"""
Services package

Business logic used by the HTTP routers and by scripts.
"""

from .account_service import AccountService
from .category_service import CategoryService
from .ledger_service import BalanceLedgerService, LedgerEntry, LedgerOperation, signed_deltas
from .planned_payment_service import PlannedPaymentService
from .recurrence import ScheduleResult, ScheduleWarning, compute_next_execution_date, schedule_next_execution
from .transaction_service import TransactionService

__all__ = [
    "AccountService",
    "BalanceLedgerService",
    "CategoryService",
    "LedgerEntry",
    "LedgerOperation",
    "PlannedPaymentService",
    "ScheduleResult",
    "ScheduleWarning",
    "TransactionService",
    "compute_next_execution_date",
    "schedule_next_execution",
    "signed_deltas",
]
