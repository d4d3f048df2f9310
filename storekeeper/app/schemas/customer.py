from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from storekeeper.app.models.customer import CreditEntryType


# ─── Customer CRUD ────────────────────────────────────────────────────────────


class CustomerCreate(BaseModel):
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty")
        return v.strip()


class CustomerUpdate(BaseModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None


class CustomerOut(BaseModel):
    id: UUID
    name: str
    phone: str | None
    email: str | None
    address: str | None
    notes: str | None
    balance: Decimal
    created_at: datetime
    updated_at: datetime


class CustomerListOut(BaseModel):
    data: list[CustomerOut]
    total: int
    page: int
    limit: int


# ─── Credit ledger ────────────────────────────────────────────────────────────


class LedgerEntryOut(BaseModel):
    id: UUID
    type: CreditEntryType
    amount: Decimal
    balance: Decimal
    sequence: int
    sale_id: UUID | None
    description: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerLedgerOut(BaseModel):
    customer: CustomerOut
    entries: list[LedgerEntryOut]
    total: int
    page: int
    limit: int


class BalanceOut(BaseModel):
    customer_id: UUID
    balance: Decimal


class PaymentCreate(BaseModel):
    amount: Decimal
    description: str | None = None


class DebtorOut(BaseModel):
    id: UUID
    name: str
    phone: str | None
    balance: Decimal
    last_activity: datetime | None


class DebtorsOut(BaseModel):
    total_outstanding: Decimal
    customer_count: int
    customers: list[DebtorOut]
