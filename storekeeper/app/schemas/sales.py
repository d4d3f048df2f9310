from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from storekeeper.app.models.sales import PaymentType, SaleStatus


# ─── Request ──────────────────────────────────────────────────────────────────


class SaleItemIn(BaseModel):
    product_id: UUID
    # Kilograms for weight-based products, units otherwise
    quantity: Decimal


class SaleCreate(BaseModel):
    items: list[SaleItemIn]
    payment_type: PaymentType = PaymentType.CASH
    customer_id: UUID | None = None
    sync_id: str | None = Field(None, max_length=100)

    @field_validator("sync_id")
    @classmethod
    def blank_sync_id_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


# ─── Response ─────────────────────────────────────────────────────────────────


class SaleItemOut(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    barcode: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal


class SaleOut(BaseModel):
    id: UUID
    customer_id: UUID | None
    customer_name: str | None
    payment_type: PaymentType
    status: SaleStatus
    total_amount: Decimal
    sync_id: str | None
    created_at: datetime
    updated_at: datetime
    items: list[SaleItemOut]


class SaleListOut(BaseModel):
    data: list[SaleOut]
    total: int
    page: int
    limit: int
