from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from storekeeper.app.models.inventory import PricingUnit
from storekeeper.app.services.pricing import PRICE_PLACES, QUANTITY_PLACES, fits_scale


class ProductCreate(BaseModel):
    name: str
    barcode: str | None = None
    description: str | None = None
    category_id: UUID | None = None
    price: Decimal
    cost: Decimal = Decimal("0")
    reorder_level: Decimal = Decimal("0")
    is_weight_based: bool = False
    pricing_unit: PricingUnit = PricingUnit.PIECE
    initial_quantity: Decimal = Decimal("0")

    @field_validator("price", "cost", "reorder_level")
    @classmethod
    def non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Must be zero or greater")
        return v

    @field_validator("price", "cost")
    @classmethod
    def price_scale(cls, v: Decimal) -> Decimal:
        if not fits_scale(v, PRICE_PLACES):
            raise ValueError(f"At most {PRICE_PLACES} decimal places")
        return v

    @field_validator("reorder_level")
    @classmethod
    def reorder_scale(cls, v: Decimal) -> Decimal:
        if not fits_scale(v, QUANTITY_PLACES):
            raise ValueError(f"At most {QUANTITY_PLACES} decimal places")
        return v


class ProductUpdate(BaseModel):
    name: str | None = None
    barcode: str | None = None
    description: str | None = None
    category_id: UUID | None = None
    price: Decimal | None = None
    cost: Decimal | None = None
    reorder_level: Decimal | None = None
    is_weight_based: bool | None = None
    pricing_unit: PricingUnit | None = None

    @field_validator("price", "cost", "reorder_level")
    @classmethod
    def non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Must be zero or greater")
        return v

    @field_validator("price", "cost")
    @classmethod
    def price_scale(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and not fits_scale(v, PRICE_PLACES):
            raise ValueError(f"At most {PRICE_PLACES} decimal places")
        return v

    @field_validator("reorder_level")
    @classmethod
    def reorder_scale(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and not fits_scale(v, QUANTITY_PLACES):
            raise ValueError(f"At most {QUANTITY_PLACES} decimal places")
        return v


class ProductOut(BaseModel):
    id: UUID
    barcode: str
    name: str
    description: str | None
    category_id: UUID | None
    category_name: str | None
    price: Decimal
    cost: Decimal
    reorder_level: Decimal
    is_weight_based: bool
    pricing_unit: PricingUnit
    quantity: Decimal
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class ProductListOut(BaseModel):
    data: list[ProductOut]
    total: int
    page: int
    limit: int


# ─── Categories ───────────────────────────────────────────────────────────────


class CategoryCreate(BaseModel):
    name: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty")
        return v


class CategoryUpdate(BaseModel):
    name: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Name must not be empty")
        return v


class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: str | None
    product_count: int = 0

    class Config:
        from_attributes = True
