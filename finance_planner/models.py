from __future__ import annotations

from datetime import date, time, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Index,
    Boolean,
    JSON,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.config import settings
from .core.database import Base


try:
    LOCAL_ZONE = ZoneInfo(getattr(settings, "TIMEZONE", "Asia/Kolkata"))
except Exception:
    LOCAL_ZONE = ZoneInfo("Asia/Kolkata")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


MONEY = Numeric(14, 2)


def _enum(enum_cls: type[Enum], name: str) -> SAEnum:
    # persist the lowercase values rather than member names
    return SAEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    currency: Mapped[str | None] = mapped_column(String(3))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    accounts: Mapped[list["Account"]] = relationship(back_populates="user")


class AccountType(str, Enum):
    """Presentation classification; never changes balance sign conventions."""

    GENERAL = "general"
    CASH = "cash"
    CURRENT = "current"
    CREDIT_CARD = "credit_card"
    SAVINGS = "savings"
    BONUS = "bonus"
    INSURANCE = "insurance"
    INVESTMENT = "investment"
    LOAN = "loan"
    MORTGAGE = "mortgage"
    OVERDRAFT = "overdraft"

    @property
    def uses_credit_fields(self) -> bool:
        return self in (AccountType.CREDIT_CARD, AccountType.OVERDRAFT)


class BalanceDisplay(str, Enum):
    AVAILABLE_CREDIT = "available_credit"
    CREDIT_BALANCE = "credit_balance"


class Account(Base, TimestampMixin):
    """Source/destination of money. ``current_balance`` is derived from the ledger."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_number: Mapped[str | None] = mapped_column(String(64))
    type: Mapped[AccountType] = mapped_column(_enum(AccountType, "account_type"), nullable=False)
    initial_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    current_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    credit_limit: Mapped[Decimal | None] = mapped_column(MONEY)
    balance_display: Mapped[BalanceDisplay | None] = mapped_column(_enum(BalanceDisplay, "balance_display"))
    payment_due_day: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped["User"] = relationship(back_populates="accounts")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_account_name"),
        CheckConstraint(
            "payment_due_day IS NULL OR (payment_due_day >= 1 AND payment_due_day <= 31)",
            name="ck_account_payment_due_day",
        ),
    )


class Category(Base, TimestampMixin):
    """Per-user hierarchical category (self-referencing ``parent_id``)."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(16))
    color: Mapped[str | None] = mapped_column(String(9))
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("category.id", ondelete="CASCADE"))
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    parent: Mapped["Category | None"] = relationship(
        "Category",
        remote_side="Category.id",
        back_populates="children",
        foreign_keys=[parent_id],
    )
    children: Mapped[list["Category"]] = relationship(
        "Category",
        back_populates="parent",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", "parent_id", name="uq_category_name"),
        CheckConstraint("parent_id IS NULL OR parent_id != id", name="ck_category_parent_not_self"),
    )


class TxnType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    RECONCILED = "reconciled"
    CLEARED = "cleared"
    UNCLEARED = "uncleared"


class PaymentMethod(str, Enum):
    CASH = "cash"
    DEBIT_CARD = "debit_card"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    VOUCHER = "voucher"
    MOBILE_PAYMENT = "mobile_payment"
    WEB_PAYMENT = "web_payment"


class PaymentFrequency(str, Enum):
    ONE_TIME = "one_time"
    RECURRENT = "recurrent"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PlannedPayment(Base, TimestampMixin):
    """Template for a transaction, fired once or on a recurrence.

    ``next_execution_date`` and ``schedule_warning`` are derived by the
    scheduler on every create/update and are never authored directly.
    """

    __tablename__ = "planned_payment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("category.id", ondelete="SET NULL"))
    account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id", ondelete="SET NULL"))
    destination_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id", ondelete="SET NULL"))
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    type: Mapped[TxnType] = mapped_column(_enum(TxnType, "txn_type"), nullable=False)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(_enum(PaymentMethod, "payment_method"))
    payee: Mapped[str | None] = mapped_column(String(120))
    frequency: Mapped[PaymentFrequency] = mapped_column(_enum(PaymentFrequency, "payment_frequency"), nullable=False)
    scheduled_date: Mapped[date | None] = mapped_column(Date)
    start_date: Mapped[date | None] = mapped_column(Date)
    # free text so legacy rows with unrecognised values still load; the scheduler rejects them
    recurrence_type: Mapped[str | None] = mapped_column(String(16))
    weekly_days: Mapped[list[int] | None] = mapped_column(JSON)  # 0=Sun .. 6=Sat
    monthly_interval: Mapped[int | None] = mapped_column(Integer, default=1)
    note: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_executed_at: Mapped[datetime | None] = mapped_column(DateTime)
    next_execution_date: Mapped[date | None] = mapped_column(Date)
    schedule_warning: Mapped[str | None] = mapped_column(String(32))

    account: Mapped["Account | None"] = relationship("Account", foreign_keys=[account_id])
    destination_account: Mapped["Account | None"] = relationship("Account", foreign_keys=[destination_account_id])
    category: Mapped["Category | None"] = relationship("Category")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_planned_amount_non_negative"),
        Index("ix_planned_user_next_date", "user_id", "next_execution_date"),
    )


class Transaction(Base, TimestampMixin):
    """Ledger row. ``amount`` is unsigned; the sign comes from type and role."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200))
    type: Mapped[TxnType] = mapped_column(_enum(TxnType, "txn_type"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    source_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id"))
    destination_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id"))
    category_id: Mapped[int | None] = mapped_column(ForeignKey("category.id", ondelete="SET NULL"))
    planned_payment_id: Mapped[int | None] = mapped_column(ForeignKey("planned_payment.id", ondelete="SET NULL"))
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    transaction_time: Mapped[time | None] = mapped_column(Time)
    note: Mapped[str | None] = mapped_column(Text)
    payee: Mapped[str | None] = mapped_column(String(120))
    payment_method: Mapped[PaymentMethod | None] = mapped_column(_enum(PaymentMethod, "payment_method"))
    status: Mapped[TransactionStatus] = mapped_column(
        _enum(TransactionStatus, "txn_status"),
        nullable=False,
        default=TransactionStatus.UNCLEARED,
    )
    place: Mapped[str | None] = mapped_column(String(200))
    warranty_until: Mapped[date | None] = mapped_column(Date)

    source_account: Mapped["Account | None"] = relationship("Account", foreign_keys=[source_account_id])
    destination_account: Mapped["Account | None"] = relationship("Account", foreign_keys=[destination_account_id])
    category: Mapped["Category | None"] = relationship("Category")
    planned_payment: Mapped["PlannedPayment | None"] = relationship("PlannedPayment")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_txn_amount_non_negative"),
        CheckConstraint(
            "source_account_id IS NULL OR destination_account_id IS NULL"
            " OR source_account_id != destination_account_id",
            name="ck_txn_distinct_accounts",
        ),
        Index("ix_txn_user_date", "user_id", "transaction_date"),
        Index("ix_txn_source_account", "source_account_id"),
        Index("ix_txn_destination_account", "destination_account_id"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        kind = getattr(self.type, "value", self.type)
        return (
            f"<Transaction id={self.id!r} type={kind!r} amount={self.amount!r} "
            f"source={self.source_account_id!r} destination={self.destination_account_id!r}>"
        )

