from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from finance_planner import models
from finance_planner.errors import (
    AccountNotFoundError,
    InvalidTransactionError,
    NotFoundError,
    OwnershipError,
)
from finance_planner.services.ledger_service import (
    BalanceLedgerService,
    LedgerEntry,
    LedgerOperation,
    to_money,
)

logger = logging.getLogger(__name__)


class TransactionService:
    """Transaction CRUD with the balance ledger applied in the same unit of work."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.ledger = BalanceLedgerService(db)

    def get(self, user_id: int, txn_id: int) -> models.Transaction:
        tx = (
            self.db.query(models.Transaction)
            .filter(models.Transaction.id == txn_id, models.Transaction.user_id == user_id)
            .first()
        )
        if tx is None:
            raise NotFoundError("Transaction", txn_id)
        return tx

    def list(
        self,
        *,
        user_id: int,
        account_id: Optional[int] = None,
        txn_type: Optional[models.TxnType] = None,
        category_id: Optional[int] = None,
        planned_payment_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[models.Transaction]:
        q = self.db.query(models.Transaction).filter(models.Transaction.user_id == user_id)
        if account_id is not None:
            q = q.filter(
                (models.Transaction.source_account_id == account_id)
                | (models.Transaction.destination_account_id == account_id)
            )
        if txn_type is not None:
            q = q.filter(models.Transaction.type == txn_type)
        if category_id is not None:
            q = q.filter(models.Transaction.category_id == category_id)
        if planned_payment_id is not None:
            q = q.filter(models.Transaction.planned_payment_id == planned_payment_id)
        if start is not None:
            q = q.filter(models.Transaction.transaction_date >= start)
        if end is not None:
            q = q.filter(models.Transaction.transaction_date <= end)
        return q.order_by(models.Transaction.transaction_date.desc(), models.Transaction.id.desc()).all()

    def create(self, payload: dict[str, Any], *, user_id: int, commit: bool = True) -> models.Transaction:
        data = dict(payload)
        data["user_id"] = user_id
        data["amount"] = to_money(data.get("amount"))
        tx = models.Transaction(**data)
        try:
            self._validate(tx)
            self.db.add(tx)
            self.db.flush()
            self.ledger.apply(LedgerOperation.INSERT, new=LedgerEntry.from_transaction(tx))
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise
        if commit:
            self.db.refresh(tx)
        logger.info("Created %s transaction %s (amount=%s)", tx.type.value, tx.id, tx.amount)
        return tx

    def update(self, tx: models.Transaction, patch: dict[str, Any]) -> models.Transaction:
        if not patch:
            return tx
        old = LedgerEntry.from_transaction(tx)
        try:
            for key, value in patch.items():
                if key == "amount":
                    value = to_money(value)
                setattr(tx, key, value)
            self._validate(tx)
            self.db.flush()
            self.ledger.apply(LedgerOperation.UPDATE, old=old, new=LedgerEntry.from_transaction(tx))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(tx)
        return tx

    def delete(self, tx: models.Transaction) -> None:
        old = LedgerEntry.from_transaction(tx)
        txn_id = tx.id
        try:
            self.db.delete(tx)
            self.db.flush()
            self.ledger.apply(LedgerOperation.DELETE, old=old)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted transaction %s", txn_id)

    # ---- Validation ------------------------------------------------------
    def _validate(self, tx: models.Transaction) -> None:
        try:
            tx.type = models.TxnType(tx.type)
        except ValueError as exc:
            raise InvalidTransactionError(f"Unknown transaction type: {tx.type!r}") from exc
        if tx.amount is None or to_money(tx.amount) < 0:
            raise InvalidTransactionError("amount must not be negative")
        if (
            tx.source_account_id is not None
            and tx.source_account_id == tx.destination_account_id
        ):
            raise InvalidTransactionError("source and destination accounts must differ")
        for account_id in (tx.source_account_id, tx.destination_account_id):
            if account_id is None:
                continue
            account = self.db.get(models.Account, account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            if account.user_id != tx.user_id:
                raise OwnershipError(f"Account {account_id} belongs to another user")
        if tx.category_id is not None:
            category = self.db.get(models.Category, tx.category_id)
            if category is None:
                raise NotFoundError("Category", tx.category_id)
            if category.user_id != tx.user_id:
                raise OwnershipError(f"Category {tx.category_id} belongs to another user")
        if tx.planned_payment_id is not None:
            planned = self.db.get(models.PlannedPayment, tx.planned_payment_id)
            if planned is None:
                raise NotFoundError("PlannedPayment", tx.planned_payment_id)
            if planned.user_id != tx.user_id:
                raise OwnershipError(f"Planned payment {tx.planned_payment_id} belongs to another user")
