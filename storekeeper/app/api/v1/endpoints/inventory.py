from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storekeeper.app.api.errors import to_http_exception
from storekeeper.app.core.database import get_db
from storekeeper.app.models.inventory import Product
from storekeeper.app.schemas.inventory import (
    InventoryAdjustmentOut,
    InventoryAdjustRequest,
    InventoryListOut,
    InventoryOut,
    InventorySummaryOut,
    LowStockItemOut,
    RestockRequest,
)
from storekeeper.app.services import inventory as inventory_store
from storekeeper.app.services.exceptions import StoreError

router = APIRouter()


def inventory_out(product: Product) -> InventoryOut:
    inv = product.inventory
    quantity = inv.quantity if inv else inventory_store.ZERO
    return InventoryOut(
        product_id=product.id,
        product_name=product.name,
        barcode=product.barcode,
        quantity=quantity,
        reorder_level=product.reorder_level,
        is_low_stock=inventory_store.is_low_stock(product, quantity),
        last_updated=inv.last_updated if inv else None,
    )


@router.get("/", response_model=InventoryListOut)
def list_inventory(
    q: str | None = Query(None, description="Search by name or barcode"),
    low_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> InventoryListOut:
    products, total = inventory_store.list_inventory(
        db, q=q, low_stock_only=low_stock, page=page, limit=limit
    )
    return InventoryListOut(
        data=[inventory_out(p) for p in products], total=total, page=page, limit=limit
    )


@router.get("/low-stock", response_model=list[LowStockItemOut])
def low_stock(db: Session = Depends(get_db)) -> list[LowStockItemOut]:
    return [
        LowStockItemOut(
            product_id=item["product"].id,
            product_name=item["product"].name,
            barcode=item["product"].barcode,
            current_quantity=item["current_quantity"],
            reorder_level=item["reorder_level"],
            deficit=item["deficit"],
            suggested_reorder=item["suggested_reorder"],
            estimated_cost=item["estimated_cost"],
        )
        for item in inventory_store.get_low_stock(db)
    ]


@router.get("/summary", response_model=InventorySummaryOut)
def summary(db: Session = Depends(get_db)) -> InventorySummaryOut:
    return InventorySummaryOut(**inventory_store.get_summary(db))


@router.get("/{product_id}", response_model=InventoryOut)
def get_inventory(
    product_id: UUID,
    db: Session = Depends(get_db),
) -> InventoryOut:
    try:
        inventory = inventory_store.get_inventory(db, product_id)
    except StoreError as e:
        raise to_http_exception(e)
    return inventory_out(inventory.product)


@router.post("/{product_id}/adjust", response_model=InventoryAdjustmentOut)
def adjust(
    product_id: UUID,
    payload: InventoryAdjustRequest,
    db: Session = Depends(get_db),
) -> InventoryAdjustmentOut:
    try:
        product, previous, new = inventory_store.adjust_inventory(
            db,
            product_id,
            payload.quantity,
            is_absolute=payload.is_absolute,
            reason=payload.reason,
        )
    except StoreError as e:
        raise to_http_exception(e)
    return InventoryAdjustmentOut(
        product_id=product.id,
        previous_quantity=previous,
        new_quantity=new,
        inventory=inventory_out(product),
    )


@router.post("/{product_id}/restock", response_model=InventoryAdjustmentOut)
def restock(
    product_id: UUID,
    payload: RestockRequest,
    db: Session = Depends(get_db),
) -> InventoryAdjustmentOut:
    try:
        product, previous, new = inventory_store.restock(
            db, product_id, payload.quantity, notes=payload.notes
        )
    except StoreError as e:
        raise to_http_exception(e)
    return InventoryAdjustmentOut(
        product_id=product.id,
        previous_quantity=previous,
        new_quantity=new,
        inventory=inventory_out(product),
    )
