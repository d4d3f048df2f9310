from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storekeeper.app.core.database import Base


class CreditEntryType(str, enum.Enum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"


class Customer(Base):
    """Store-credit customer. The balance is derived from the ledger tail."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    ledger_entries: Mapped[list[CreditLedgerEntry]] = relationship(
        back_populates="customer", order_by="CreditLedgerEntry.sequence"
    )

    __table_args__ = (
        Index("ix_customers_name", "name"),
        Index("ix_customers_email", "email"),
    )


class CreditLedgerEntry(Base):
    """Append-only store-credit entry.

    ``balance`` is the customer's running balance *after* this entry.
    ``sequence`` increases by one per customer and is what "most recent"
    means; rows are never updated or deleted.
    """

    __tablename__ = "credit_ledger"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id"), nullable=False
    )
    sale_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("sales.id"), nullable=True
    )
    type: Mapped[CreditEntryType] = mapped_column(Enum(CreditEntryType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=24, scale=7), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(precision=24, scale=7), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    customer: Mapped[Customer] = relationship(back_populates="ledger_entries")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_credit_ledger_amount_positive"),
        UniqueConstraint("customer_id", "sequence", name="uq_credit_ledger_customer_sequence"),
        Index("ix_credit_ledger_customer_created", "customer_id", "created_at"),
        Index("ix_credit_ledger_sale", "sale_id"),
    )
