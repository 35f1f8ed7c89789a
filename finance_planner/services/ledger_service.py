from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from finance_planner import models
from finance_planner.errors import (
    AccountNotFoundError,
    InvalidAmountError,
    InvalidTransactionError,
    LedgerError,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    if value is None:
        raise InvalidAmountError("amount must not be null")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation as exc:
            raise InvalidAmountError(f"invalid amount: {value!r}") from exc
    if not value.is_finite():
        raise InvalidAmountError(f"invalid amount: {value!r}")
    return value.quantize(CENT)


class LedgerOperation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class LedgerEntry:
    """Balance-relevant snapshot of a transaction row."""

    type: models.TxnType
    amount: Decimal
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None

    @classmethod
    def from_transaction(cls, tx: models.Transaction) -> "LedgerEntry":
        return cls(
            type=models.TxnType(tx.type),
            amount=to_money(tx.amount),
            source_account_id=tx.source_account_id,
            destination_account_id=tx.destination_account_id,
        )


def signed_deltas(entry: LedgerEntry) -> dict[int, Decimal]:
    """Per-account contribution of a transaction.

    income: +amount on destination; expense: -amount on source; transfer: both.
    A missing account reference contributes nothing for that side.
    """
    amount = to_money(entry.amount)
    if amount < 0:
        raise InvalidTransactionError("amount must not be negative")
    deltas: dict[int, Decimal] = defaultdict(lambda: Decimal("0.00"))
    if entry.type in (models.TxnType.EXPENSE, models.TxnType.TRANSFER) and entry.source_account_id is not None:
        deltas[entry.source_account_id] -= amount
    if entry.type in (models.TxnType.INCOME, models.TxnType.TRANSFER) and entry.destination_account_id is not None:
        deltas[entry.destination_account_id] += amount
    return dict(deltas)


@dataclass(frozen=True)
class ReconcileResult:
    account_id: int
    stored_balance: Decimal
    ledger_balance: Decimal

    @property
    def adjusted(self) -> bool:
        return self.stored_balance != self.ledger_balance


class BalanceLedgerService:
    """Keep ``Account.current_balance`` in step with the transaction table.

    Runs inside the caller's unit of work and never commits: when an
    adjustment fails the caller rolls back the triggering mutation as well.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def apply(
        self,
        operation: LedgerOperation,
        old: Optional[LedgerEntry] = None,
        new: Optional[LedgerEntry] = None,
    ) -> None:
        """Reverse ``old`` (if any), then apply ``new`` (if any).

        Each side is derived from its own type and account fields, so a change
        of type or accounts during an update is handled like delete + insert.
        """
        operation = LedgerOperation(operation)
        if operation is LedgerOperation.INSERT and (old is not None or new is None):
            raise LedgerError("insert requires only the new transaction")
        if operation is LedgerOperation.DELETE and (new is not None or old is None):
            raise LedgerError("delete requires only the old transaction")
        if operation is LedgerOperation.UPDATE and (old is None or new is None):
            raise LedgerError("update requires both old and new transactions")

        self.db.flush()
        if old is not None:
            self._apply_entry(old, reverse=True)
        if new is not None:
            self._apply_entry(new, reverse=False)

    def _apply_entry(self, entry: LedgerEntry, *, reverse: bool) -> None:
        # sorted ids give concurrent writers the same lock order
        for account_id, delta in sorted(signed_deltas(entry).items()):
            self._apply_delta(account_id, -delta if reverse else delta)

    def _apply_delta(self, account_id: int, delta: Decimal) -> None:
        if delta == 0:
            return
        result = self.db.execute(
            update(models.Account)
            .where(models.Account.id == account_id)
            .values(current_balance=models.Account.current_balance + delta)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount == 0:
            logger.warning("Balance adjustment aborted: account %s does not exist", account_id)
            raise AccountNotFoundError(account_id)
        logger.debug("Adjusted account %s balance by %s", account_id, delta)

    def shift_balance(self, account_id: int, delta) -> None:
        """Move ``current_balance`` by ``delta`` (used when ``initial_balance`` changes)."""
        self._apply_delta(account_id, to_money(delta))

    # ---- Reconciliation ---------------------------------------------------
    def ledger_balance(self, account_id: int) -> Decimal:
        """``initial_balance`` plus the signed sum of every transaction touching the account."""
        account = self.db.get(models.Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        txn = models.Transaction
        incoming = self.db.scalar(
            select(func.coalesce(func.sum(txn.amount), 0)).where(
                txn.destination_account_id == account_id,
                txn.type.in_([models.TxnType.INCOME, models.TxnType.TRANSFER]),
            )
        )
        outgoing = self.db.scalar(
            select(func.coalesce(func.sum(txn.amount), 0)).where(
                txn.source_account_id == account_id,
                txn.type.in_([models.TxnType.EXPENSE, models.TxnType.TRANSFER]),
            )
        )
        return to_money(account.initial_balance) + to_money(incoming) - to_money(outgoing)

    def reconcile(self, account_id: int) -> ReconcileResult:
        """Recompute the cached balance from the ledger and store it when it drifted."""
        self.db.flush()
        expected = self.ledger_balance(account_id)
        account = self.db.get(models.Account, account_id)
        stored = to_money(account.current_balance)
        result = ReconcileResult(account_id=account_id, stored_balance=stored, ledger_balance=expected)
        if result.adjusted:
            logger.warning(
                "Account %s balance drifted: stored=%s ledger=%s", account_id, stored, expected
            )
            account.current_balance = expected
            self.db.flush()
        return result
