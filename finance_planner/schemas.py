from __future__ import annotations

from datetime import date, time, datetime
from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from .models import (
    AccountType,
    BalanceDisplay,
    PaymentFrequency,
    PaymentMethod,
    RecurrenceType,
    TransactionStatus,
    TxnType,
)


def _reject_nulls(data, fields: tuple[str, ...]):
    # an explicit null on a NOT NULL column is rejected, not treated as unset
    if isinstance(data, dict):
        nulled = [f for f in fields if f in data and data[f] is None]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
    return data


# ---- Users ---------------------------------------------------------------

class UserCreate(BaseModel):
    email: EmailStr
    display_name: Optional[str] = Field(default=None, max_length=100)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    seed_categories: Optional[bool] = None


class UserOut(BaseModel):
    id: int
    email: str
    display_name: Optional[str]
    currency: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---- Accounts ------------------------------------------------------------

class AccountCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    name: str = Field(min_length=1, max_length=100)
    type: AccountType
    account_number: Optional[str] = Field(default=None, max_length=64)
    initial_balance: Decimal = Decimal("0")
    credit_limit: Optional[Decimal] = None
    balance_display: Optional[BalanceDisplay] = None
    payment_due_day: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: bool = True

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def credit_fields_only_for_credit_types(self):
        if not self.type.uses_credit_fields:
            if self.credit_limit is not None or self.balance_display is not None or self.payment_due_day is not None:
                raise ValueError("credit fields are only allowed for credit_card and overdraft accounts")
        return self


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    account_number: Optional[str] = Field(default=None, max_length=64)
    initial_balance: Optional[Decimal] = None
    credit_limit: Optional[Decimal] = None
    balance_display: Optional[BalanceDisplay] = None
    payment_due_day: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: Optional[bool] = None

    # current_balance is derived from the ledger and cannot be patched
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def non_nullable_fields(cls, data):
        return _reject_nulls(data, ("name", "type", "initial_balance", "is_active"))


class AccountOut(BaseModel):
    id: int
    user_id: int
    name: str
    type: AccountType
    account_number: Optional[str]
    initial_balance: Decimal
    current_balance: Decimal
    credit_limit: Optional[Decimal]
    balance_display: Optional[BalanceDisplay]
    payment_due_day: Optional[int]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountReconcileOut(BaseModel):
    account_id: int
    stored_balance: Decimal
    ledger_balance: Decimal
    adjusted: bool


# ---- Categories ----------------------------------------------------------

class CategoryCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    name: str = Field(min_length=1, max_length=100)
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=9)
    parent_id: Optional[int] = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=9)
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def non_nullable_fields(cls, data):
        return _reject_nulls(data, ("name", "sort_order"))


class CategoryOut(BaseModel):
    id: int
    user_id: int
    name: str
    icon: Optional[str]
    color: Optional[str]
    parent_id: Optional[int]
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


class CategoryTreeNode(BaseModel):
    id: int
    user_id: int
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    children: list["CategoryTreeNode"] = Field(default_factory=list)


# ---- Transactions --------------------------------------------------------

class TransactionCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    type: TxnType
    amount: Decimal = Field(..., ge=0)
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    name: Optional[str] = Field(default=None, max_length=200)
    category_id: Optional[int] = None
    planned_payment_id: Optional[int] = None
    transaction_date: date = Field(default_factory=date.today)
    transaction_time: Optional[time] = None
    note: Optional[str] = None
    payee: Optional[str] = Field(default=None, max_length=120)
    payment_method: Optional[PaymentMethod] = None
    status: TransactionStatus = TransactionStatus.UNCLEARED
    place: Optional[str] = Field(default=None, max_length=200)
    warranty_until: Optional[date] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount")
    def amount_finite(cls, v: Decimal):
        if not v.is_finite():
            raise ValueError("amount must be finite")
        return v

    @model_validator(mode="after")
    def distinct_accounts(self):
        if self.source_account_id is not None and self.source_account_id == self.destination_account_id:
            raise ValueError("source_account_id and destination_account_id must differ")
        return self


class TransactionUpdate(BaseModel):
    type: Optional[TxnType] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    source_account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    name: Optional[str] = Field(default=None, max_length=200)
    category_id: Optional[int] = None
    transaction_date: Optional[date] = None
    transaction_time: Optional[time] = None
    note: Optional[str] = None
    payee: Optional[str] = Field(default=None, max_length=120)
    payment_method: Optional[PaymentMethod] = None
    status: Optional[TransactionStatus] = None
    place: Optional[str] = Field(default=None, max_length=200)
    warranty_until: Optional[date] = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def non_nullable_fields(cls, data):
        return _reject_nulls(data, ("type", "amount", "transaction_date", "status"))

    @field_validator("amount")
    def amount_finite(cls, v: Decimal | None):
        if v is not None and not v.is_finite():
            raise ValueError("amount must be finite")
        return v


class TransactionOut(BaseModel):
    id: int
    user_id: int
    type: TxnType
    amount: Decimal
    source_account_id: Optional[int]
    destination_account_id: Optional[int]
    name: Optional[str]
    category_id: Optional[int]
    planned_payment_id: Optional[int]
    transaction_date: date
    transaction_time: Optional[time]
    note: Optional[str]
    payee: Optional[str]
    payment_method: Optional[PaymentMethod]
    status: TransactionStatus
    place: Optional[str]
    warranty_until: Optional[date]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---- Planned payments ----------------------------------------------------

def _check_weekly_days(v: list[int] | None) -> list[int] | None:
    if v is None:
        return v
    for day in v:
        if not (0 <= day <= 6):
            raise ValueError("weekly_days entries must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(v))


class PlannedPaymentCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    name: str = Field(min_length=1, max_length=120)
    type: TxnType
    amount: Decimal = Field(..., ge=0)
    account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    category_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    payee: Optional[str] = Field(default=None, max_length=120)
    frequency: PaymentFrequency
    scheduled_date: Optional[date] = None
    start_date: Optional[date] = None
    recurrence_type: Optional[RecurrenceType] = None
    weekly_days: Optional[list[int]] = None
    monthly_interval: int = Field(default=1, ge=1)
    note: Optional[str] = None
    is_active: bool = True

    @field_validator("weekly_days")
    def validate_weekly_days(cls, v: list[int] | None):
        return _check_weekly_days(v)

    @model_validator(mode="after")
    def check_frequency_fields(self):
        if self.frequency is PaymentFrequency.ONE_TIME:
            if self.scheduled_date is None:
                raise ValueError("scheduled_date is required for one_time payments")
        else:
            if self.recurrence_type is None:
                raise ValueError("recurrence_type is required for recurrent payments")
            if self.start_date is None:
                raise ValueError("start_date is required for recurrent payments")
            if self.recurrence_type is RecurrenceType.WEEKLY and not self.weekly_days:
                raise ValueError("weekly_days is required for weekly recurrence")
        if self.type is TxnType.TRANSFER and self.destination_account_id is None:
            raise ValueError("destination_account_id is required for transfers")
        if self.account_id is not None and self.account_id == self.destination_account_id:
            raise ValueError("account_id and destination_account_id must differ")
        return self


class PlannedPaymentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    type: Optional[TxnType] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    account_id: Optional[int] = None
    destination_account_id: Optional[int] = None
    category_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    payee: Optional[str] = Field(default=None, max_length=120)
    frequency: Optional[PaymentFrequency] = None
    scheduled_date: Optional[date] = None
    start_date: Optional[date] = None
    recurrence_type: Optional[RecurrenceType] = None
    weekly_days: Optional[list[int]] = None
    monthly_interval: Optional[int] = Field(default=None, ge=1)
    note: Optional[str] = None
    is_active: Optional[bool] = None
    # set by the execution collaborator when the payment fires
    last_executed_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def non_nullable_fields(cls, data):
        return _reject_nulls(data, ("name", "type", "amount", "frequency", "is_active"))

    @field_validator("weekly_days")
    def validate_weekly_days(cls, v: list[int] | None):
        return _check_weekly_days(v)


class PlannedPaymentOut(BaseModel):
    id: int
    user_id: int
    name: str
    type: TxnType
    amount: Decimal
    account_id: Optional[int]
    destination_account_id: Optional[int]
    category_id: Optional[int]
    payment_method: Optional[PaymentMethod]
    payee: Optional[str]
    frequency: PaymentFrequency
    scheduled_date: Optional[date]
    start_date: Optional[date]
    recurrence_type: Optional[str]
    weekly_days: Optional[list[int]]
    monthly_interval: Optional[int]
    note: Optional[str]
    is_active: bool
    last_executed_at: Optional[datetime]
    next_execution_date: Optional[date]
    schedule_warning: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExecuteDueRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    today: Optional[date] = None


class ExecuteDueResult(BaseModel):
    executed: int
    transactions: list[TransactionOut]
