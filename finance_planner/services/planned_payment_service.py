from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from finance_planner import models
from finance_planner.errors import FinancePlannerError, NotFoundError, OwnershipError
from finance_planner.services.ledger_service import to_money
from finance_planner.services.recurrence import ScheduleResult, schedule_next_execution
from finance_planner.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)


class PlannedPaymentService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_all(self, *, user_id: int, is_active: Optional[bool] = None) -> list[models.PlannedPayment]:
        q = self.db.query(models.PlannedPayment).filter(models.PlannedPayment.user_id == user_id)
        if is_active is not None:
            q = q.filter(models.PlannedPayment.is_active == bool(is_active))
        return q.order_by(
            models.PlannedPayment.next_execution_date.is_(None),
            models.PlannedPayment.next_execution_date,
            models.PlannedPayment.id,
        ).all()

    def get_by_id(self, user_id: int, payment_id: int) -> models.PlannedPayment:
        row = (
            self.db.query(models.PlannedPayment)
            .filter(models.PlannedPayment.user_id == user_id, models.PlannedPayment.id == payment_id)
            .first()
        )
        if row is None:
            raise NotFoundError("PlannedPayment", payment_id)
        return row

    def create(self, payload: dict[str, Any], *, user_id: int) -> models.PlannedPayment:
        payload = dict(payload)
        payload["user_id"] = user_id
        payload["amount"] = to_money(payload.get("amount"))
        if payload.get("recurrence_type") is not None:
            payload["recurrence_type"] = getattr(payload["recurrence_type"], "value", payload["recurrence_type"])
        for derived in ("next_execution_date", "schedule_warning", "last_executed_at"):
            payload.pop(derived, None)
        row = models.PlannedPayment(**payload)
        self._check_references(row)
        self.reschedule(row)
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def update(self, row: models.PlannedPayment, patch: dict[str, Any]) -> models.PlannedPayment:
        patch = dict(patch)
        for derived in ("next_execution_date", "schedule_warning"):
            patch.pop(derived, None)
        if not patch:
            return row
        try:
            for key, value in patch.items():
                if key == "amount":
                    value = to_money(value)
                elif key == "recurrence_type" and value is not None:
                    value = getattr(value, "value", value)
                setattr(row, key, value)
            self._check_references(row)
            # every write recomputes, whichever fields changed
            self.reschedule(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row

    def delete(self, row: models.PlannedPayment) -> None:
        self.db.delete(row)
        self.db.commit()

    def toggle_active(self, row: models.PlannedPayment) -> models.PlannedPayment:
        return self.update(row, {"is_active": not row.is_active})

    def reschedule(self, row: models.PlannedPayment) -> ScheduleResult:
        result = schedule_next_execution(
            row.frequency,
            row.recurrence_type,
            row.start_date,
            row.scheduled_date,
            row.weekly_days,
            row.monthly_interval,
            row.last_executed_at,
        )
        row.next_execution_date = result.next_date
        row.schedule_warning = result.warning.value if result.warning else None
        if result.warning:
            logger.warning(
                "Planned payment %r has no next execution date: %s",
                row.name,
                result.warning.value,
            )
        return result

    def _check_references(self, row: models.PlannedPayment) -> None:
        for model, ref_id in (
            (models.Account, row.account_id),
            (models.Account, row.destination_account_id),
            (models.Category, row.category_id),
        ):
            if ref_id is None:
                continue
            target = self.db.get(model, ref_id)
            if target is None:
                raise NotFoundError(model.__name__, ref_id)
            if target.user_id != row.user_id:
                raise OwnershipError(f"{model.__name__} {ref_id} belongs to another user")

    # ---- Queries -----------------------------------------------------------
    def upcoming(self, *, user_id: int, today: date, days: int) -> list[models.PlannedPayment]:
        end = today + timedelta(days=days)
        return (
            self.db.query(models.PlannedPayment)
            .filter(
                models.PlannedPayment.user_id == user_id,
                models.PlannedPayment.is_active.is_(True),
                models.PlannedPayment.next_execution_date.is_not(None),
                models.PlannedPayment.next_execution_date >= today,
                models.PlannedPayment.next_execution_date <= end,
            )
            .order_by(models.PlannedPayment.next_execution_date, models.PlannedPayment.id)
            .all()
        )

    def due(self, *, user_id: int, today: date) -> list[models.PlannedPayment]:
        return (
            self.db.query(models.PlannedPayment)
            .filter(
                models.PlannedPayment.user_id == user_id,
                models.PlannedPayment.is_active.is_(True),
                models.PlannedPayment.next_execution_date.is_not(None),
                models.PlannedPayment.next_execution_date <= today,
            )
            .order_by(models.PlannedPayment.next_execution_date, models.PlannedPayment.id)
            .all()
        )

    # ---- Execution ---------------------------------------------------------
    @staticmethod
    def transaction_payload(row: models.PlannedPayment, today: date) -> dict[str, Any]:
        """Transaction fields for one firing of ``row``.

        ``account_id`` is the destination for income and the source otherwise;
        transfers take ``destination_account_id`` as the destination.
        """
        txn_type = models.TxnType(row.type)
        source_id: Optional[int] = None
        destination_id: Optional[int] = None
        if txn_type is models.TxnType.INCOME:
            destination_id = row.account_id
        else:
            source_id = row.account_id
            if txn_type is models.TxnType.TRANSFER:
                destination_id = row.destination_account_id
        return {
            "name": row.name,
            "type": txn_type,
            "amount": row.amount,
            "source_account_id": source_id,
            "destination_account_id": destination_id,
            "category_id": row.category_id,
            "planned_payment_id": row.id,
            "transaction_date": today,
            "note": f"[Auto] {row.note or row.name}",
            "payee": row.payee,
            "payment_method": row.payment_method,
            "status": models.TransactionStatus.CLEARED,
        }

    def execute(self, row: models.PlannedPayment, *, today: date, now: datetime) -> models.Transaction:
        """Fire one payment: book its transaction and advance its schedule atomically."""
        txn_service = TransactionService(self.db)
        try:
            tx = txn_service.create(self.transaction_payload(row, today), user_id=row.user_id, commit=False)
            row.last_executed_at = now
            if row.frequency == models.PaymentFrequency.ONE_TIME:
                row.is_active = False
            self.reschedule(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(tx)
        logger.info("Executed planned payment %s as transaction %s", row.id, tx.id)
        return tx

    def execute_due(self, *, user_id: int, today: date, now: datetime) -> list[models.Transaction]:
        """Fire every due payment once, each in its own unit of work.

        A payment that cannot be booked is rolled back and left due; the rest
        still run.
        """
        executed: list[models.Transaction] = []
        for row in self.due(user_id=user_id, today=today):
            payment_id = row.id
            try:
                executed.append(self.execute(row, today=today, now=now))
            except FinancePlannerError as exc:
                logger.warning("Planned payment %s was not executed: %s", payment_id, exc)
        return executed
