from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class InventoryOut(BaseModel):
    product_id: UUID
    product_name: str
    barcode: str
    quantity: Decimal
    reorder_level: Decimal
    is_low_stock: bool
    last_updated: datetime | None


class InventoryListOut(BaseModel):
    data: list[InventoryOut]
    total: int
    page: int
    limit: int


class InventoryAdjustRequest(BaseModel):
    quantity: Decimal
    # When set, ``quantity`` is the new on-hand amount instead of a delta
    is_absolute: bool = False
    reason: str | None = None


class RestockRequest(BaseModel):
    quantity: Decimal
    notes: str | None = None


class InventoryAdjustmentOut(BaseModel):
    product_id: UUID
    previous_quantity: Decimal
    new_quantity: Decimal
    inventory: InventoryOut


class CategoryStockOut(BaseModel):
    name: str
    product_count: int
    quantity: Decimal
    value: Decimal


class InventorySummaryOut(BaseModel):
    total_skus: int
    total_quantity: Decimal
    total_value: Decimal
    total_retail_value: Decimal
    potential_profit: Decimal
    low_stock_count: int
    out_of_stock_count: int
    categories: list[CategoryStockOut]


class LowStockItemOut(BaseModel):
    product_id: UUID
    product_name: str
    barcode: str
    current_quantity: Decimal
    reorder_level: Decimal
    deficit: Decimal
    suggested_reorder: Decimal
    estimated_cost: Decimal
