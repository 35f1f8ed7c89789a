from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .core.config import settings
from .core.database import get_db
from .core.deps import get_owner
from . import models
from .models import now_local_naive
from .schemas import (
    AccountCreate,
    AccountOut,
    AccountReconcileOut,
    AccountUpdate,
    CategoryCreate,
    CategoryOut,
    CategoryTreeNode,
    CategoryUpdate,
    ExecuteDueRequest,
    ExecuteDueResult,
    PlannedPaymentCreate,
    PlannedPaymentOut,
    PlannedPaymentUpdate,
    TransactionCreate,
    TransactionOut,
    TransactionUpdate,
    UserCreate,
    UserOut,
)
from .services import (
    AccountService,
    CategoryService,
    PlannedPaymentService,
    TransactionService,
)


router = APIRouter()


def _local_today() -> date:
    return now_local_naive().date()


# ---- Users ---------------------------------------------------------------

@router.post("/users", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    exists = db.query(models.User).filter(models.User.email == payload.email).first()
    if exists:
        raise HTTPException(status_code=409, detail="Email already exists")
    user = models.User(
        email=payload.email,
        display_name=payload.display_name,
        currency=(payload.currency or settings.DEFAULT_CURRENCY).upper(),
        is_active=True,
    )
    db.add(user)
    db.flush()
    seed = settings.SEED_DEFAULT_CATEGORIES if payload.seed_categories is None else payload.seed_categories
    if seed:
        CategoryService(db).seed_defaults(user_id=user.id, commit=False)
    db.commit()
    db.refresh(user)
    return user


@router.get("/users", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(models.User).order_by(models.User.id).all()


# ---- Accounts ------------------------------------------------------------

@router.post("/accounts", response_model=AccountOut, status_code=201)
def create_account(payload: AccountCreate, db: Session = Depends(get_db)):
    if db.get(models.User, payload.user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    exists = (
        db.query(models.Account)
        .filter(models.Account.user_id == payload.user_id, models.Account.name == payload.name)
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="Account name already exists")
    data = payload.model_dump(exclude={"user_id"})
    return AccountService(db).create(data, user_id=payload.user_id)


@router.get("/accounts", response_model=list[AccountOut])
def list_accounts(
    owner: models.User = Depends(get_owner),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    return AccountService(db).get_all(user_id=owner.id, is_active=is_active)


@router.get("/accounts/{account_id}", response_model=AccountOut)
def get_account(account_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    return AccountService(db).get_by_id(user_id, account_id)


@router.patch("/accounts/{account_id}", response_model=AccountOut)
def update_account(
    account_id: int,
    payload: AccountUpdate,
    user_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    svc = AccountService(db)
    row = svc.get_by_id(user_id, account_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.delete("/accounts/{account_id}", status_code=204)
def delete_account(account_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = AccountService(db)
    svc.delete(svc.get_by_id(user_id, account_id))
    return None


@router.post("/accounts/{account_id}/reconcile", response_model=AccountReconcileOut)
def reconcile_account(account_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = AccountService(db)
    result = svc.reconcile(svc.get_by_id(user_id, account_id))
    return AccountReconcileOut(
        account_id=result.account_id,
        stored_balance=result.stored_balance,
        ledger_balance=result.ledger_balance,
        adjusted=result.adjusted,
    )


# ---- Categories ----------------------------------------------------------

@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"user_id"})
    return CategoryService(db).create(data, user_id=payload.user_id)


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    owner: models.User = Depends(get_owner),
    parent_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return CategoryService(db).get_all(user_id=owner.id, parent_id=parent_id)


@router.get("/categories/tree", response_model=list[CategoryTreeNode])
def category_tree(owner: models.User = Depends(get_owner), db: Session = Depends(get_db)):
    svc = CategoryService(db)
    return svc.build_tree(svc.get_all(user_id=owner.id))


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    svc = CategoryService(db)
    row = svc.get_by_id(user_id, category_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = CategoryService(db)
    svc.delete(svc.get_by_id(user_id, category_id))
    return None


# ---- Transactions --------------------------------------------------------

@router.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"user_id"})
    return TransactionService(db).create(data, user_id=payload.user_id)


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    owner: models.User = Depends(get_owner),
    account_id: Optional[int] = Query(None),
    type: Optional[models.TxnType] = Query(None),
    category_id: Optional[int] = Query(None),
    planned_payment_id: Optional[int] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    return TransactionService(db).list(
        user_id=owner.id,
        account_id=account_id,
        txn_type=type,
        category_id=category_id,
        planned_payment_id=planned_payment_id,
        start=start,
        end=end,
    )


@router.get("/transactions/{txn_id}", response_model=TransactionOut)
def get_transaction(txn_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    return TransactionService(db).get(user_id, txn_id)


@router.patch("/transactions/{txn_id}", response_model=TransactionOut)
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    user_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    svc = TransactionService(db)
    tx = svc.get(user_id, txn_id)
    return svc.update(tx, payload.model_dump(exclude_unset=True))


@router.delete("/transactions/{txn_id}", status_code=204)
def delete_transaction(txn_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = TransactionService(db)
    svc.delete(svc.get(user_id, txn_id))
    return None


# ---- Planned payments ----------------------------------------------------

@router.post("/planned-payments", response_model=PlannedPaymentOut, status_code=201)
def create_planned_payment(payload: PlannedPaymentCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"user_id"})
    return PlannedPaymentService(db).create(data, user_id=payload.user_id)


@router.get("/planned-payments", response_model=list[PlannedPaymentOut])
def list_planned_payments(
    owner: models.User = Depends(get_owner),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    return PlannedPaymentService(db).get_all(user_id=owner.id, is_active=is_active)


@router.get("/planned-payments/upcoming", response_model=list[PlannedPaymentOut])
def upcoming_planned_payments(
    user_id: int = Query(..., ge=1),
    days: Optional[int] = Query(None, ge=0, le=366),
    today: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    window = settings.UPCOMING_WINDOW_DAYS if days is None else days
    return PlannedPaymentService(db).upcoming(user_id=user_id, today=today or _local_today(), days=window)


@router.get("/planned-payments/due", response_model=list[PlannedPaymentOut])
def due_planned_payments(
    user_id: int = Query(..., ge=1),
    today: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    return PlannedPaymentService(db).due(user_id=user_id, today=today or _local_today())


@router.post("/planned-payments/execute-due", response_model=ExecuteDueResult)
def execute_due_planned_payments(payload: ExecuteDueRequest, db: Session = Depends(get_db)):
    now: datetime = now_local_naive()
    today = payload.today or now.date()
    executed = PlannedPaymentService(db).execute_due(user_id=payload.user_id, today=today, now=now)
    return ExecuteDueResult(
        executed=len(executed),
        transactions=[TransactionOut.model_validate(tx) for tx in executed],
    )


@router.get("/planned-payments/{payment_id}", response_model=PlannedPaymentOut)
def get_planned_payment(payment_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    return PlannedPaymentService(db).get_by_id(user_id, payment_id)


@router.patch("/planned-payments/{payment_id}", response_model=PlannedPaymentOut)
def update_planned_payment(
    payment_id: int,
    payload: PlannedPaymentUpdate,
    user_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    svc = PlannedPaymentService(db)
    row = svc.get_by_id(user_id, payment_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.post("/planned-payments/{payment_id}/toggle-active", response_model=PlannedPaymentOut)
def toggle_planned_payment(payment_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = PlannedPaymentService(db)
    return svc.toggle_active(svc.get_by_id(user_id, payment_id))


@router.delete("/planned-payments/{payment_id}", status_code=204)
def delete_planned_payment(payment_id: int, user_id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    svc = PlannedPaymentService(db)
    svc.delete(svc.get_by_id(user_id, payment_id))
    return None
