from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from finance_planner import models
from finance_planner.errors import ConflictError, NotFoundError
from finance_planner.services.ledger_service import BalanceLedgerService, ReconcileResult, to_money


class AccountService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.ledger = BalanceLedgerService(db)

    def get_all(self, *, user_id: int, is_active: Optional[bool] = None) -> list[models.Account]:
        q = self.db.query(models.Account).filter(models.Account.user_id == user_id)
        if is_active is not None:
            q = q.filter(models.Account.is_active == bool(is_active))
        return q.order_by(models.Account.id).all()

    def get_by_id(self, user_id: int, account_id: int) -> models.Account:
        row = (
            self.db.query(models.Account)
            .filter(models.Account.user_id == user_id, models.Account.id == account_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Account", account_id)
        return row

    def create(self, payload: dict, *, user_id: int) -> models.Account:
        payload = dict(payload)
        payload["user_id"] = user_id
        initial = to_money(payload.get("initial_balance", Decimal("0")))
        payload["initial_balance"] = initial
        # a new account has no ledger history yet
        payload["current_balance"] = initial
        row = models.Account(**payload)
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def update(self, row: models.Account, patch: dict) -> models.Account:
        if not patch:
            return row
        patch = dict(patch)
        try:
            if "initial_balance" in patch:
                new_initial = to_money(patch.pop("initial_balance"))
                delta = new_initial - to_money(row.initial_balance)
                row.initial_balance = new_initial
                self.db.flush()
                if delta != Decimal("0"):
                    self.ledger.shift_balance(row.id, delta)
            for key, value in patch.items():
                setattr(row, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def delete(self, row: models.Account) -> None:
        referenced = (
            self.db.query(models.Transaction.id)
            .filter(
                (models.Transaction.source_account_id == row.id)
                | (models.Transaction.destination_account_id == row.id)
            )
            .first()
        )
        if referenced is not None:
            raise ConflictError("Account still has transactions; delete or move them first")
        self.db.delete(row)
        self.db.commit()

    def reconcile(self, row: models.Account) -> ReconcileResult:
        try:
            result = self.ledger.reconcile(row.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    def total_balance(self, *, user_id: int) -> Decimal:
        accounts = self.get_all(user_id=user_id, is_active=True)
        return sum((to_money(a.current_balance) for a in accounts), Decimal("0.00"))
