from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from storekeeper.app.models.inventory import Inventory, Product
from storekeeper.app.services.exceptions import (
    InsufficientStockError,
    InvalidRequestError,
    NotFoundError,
)
from storekeeper.app.services.notification_service import LowStockProduct, notify_low_stock
from storekeeper.app.services.pricing import round_money, validate_quantity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ─── Store primitives used by the sale engine ────────────────────────────────


def find_products_by_ids(db: Session, ids: Iterable[UUID]) -> list[Product]:
    """Load every product in ``ids`` (with its inventory) in one query."""
    wanted = set(ids)
    if not wanted:
        return []
    return (
        db.query(Product)
        .options(joinedload(Product.inventory))
        .filter(Product.id.in_(wanted))
        .all()
    )


def get_inventory(db: Session, product_id: UUID) -> Inventory:
    inventory = db.query(Inventory).filter(Inventory.product_id == product_id).first()
    if not inventory:
        raise NotFoundError("Product not found")
    return inventory


def _reload(db: Session, product_id: UUID) -> Inventory:
    # Bulk UPDATEs bypass the identity map; pull the new row into it
    return db.execute(
        select(Inventory)
        .where(Inventory.product_id == product_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


def increment_inventory(db: Session, product_id: UUID, delta: Decimal) -> Decimal:
    """Add ``delta`` to the on-hand quantity. Does not commit."""
    result = db.execute(
        update(Inventory)
        .where(Inventory.product_id == product_id)
        .values(
            quantity=Inventory.quantity + delta,
            last_updated=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Inventory for product {product_id} not found")
    return _reload(db, product_id).quantity


def decrement_inventory(db: Session, product_id: UUID, delta: Decimal) -> Decimal:
    """Subtract ``delta`` from the on-hand quantity. Does not commit.

    The guard lives in the UPDATE itself, so two concurrent sales can never
    both take the last units.
    """
    result = db.execute(
        update(Inventory)
        .where(Inventory.product_id == product_id, Inventory.quantity >= delta)
        .values(
            quantity=Inventory.quantity - delta,
            last_updated=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        inventory = db.execute(
            select(Inventory)
            .where(Inventory.product_id == product_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        raise InsufficientStockError(
            product_id=product_id,
            product_name=product.name,
            requested=Decimal(delta),
            available=inventory.quantity if inventory else ZERO,
        )
    return _reload(db, product_id).quantity


def is_low_stock(product: Product, quantity: Decimal) -> bool:
    return quantity <= product.reorder_level


def low_stock_entry(product: Product, quantity: Decimal) -> LowStockProduct:
    return LowStockProduct(
        id=str(product.id),
        name=product.name,
        quantity=str(quantity),
        reorder_level=str(product.reorder_level),
    )


# ─── Stock management ────────────────────────────────────────────────────────


def _get_product(db: Session, product_id: UUID) -> Product:
    product = (
        db.query(Product)
        .options(joinedload(Product.inventory))
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")
    return product


def adjust_inventory(
    db: Session,
    product_id: UUID,
    quantity: Decimal,
    is_absolute: bool = False,
    reason: str | None = None,
) -> tuple[Product, Decimal, Decimal]:
    """Apply a manual stock correction.

    ``is_absolute`` sets the quantity outright; otherwise ``quantity`` is a
    signed delta. Returns ``(product, previous_quantity, new_quantity)``.
    """
    product = _get_product(db, product_id)
    validate_quantity(product.name, quantity, product.pricing_unit, product.is_weight_based)
    previous = product.inventory.quantity if product.inventory else ZERO
    target = quantity if is_absolute else previous + quantity
    if target < 0:
        raise InvalidRequestError("Inventory cannot be negative")

    try:
        if product.inventory is None:
            db.add(
                Inventory(
                    product_id=product.id,
                    quantity=target,
                    last_updated=datetime.now(timezone.utc),
                )
            )
            db.flush()
            new_quantity = target
        elif is_absolute:
            db.execute(
                update(Inventory)
                .where(Inventory.product_id == product.id)
                .values(quantity=target, last_updated=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            new_quantity = _reload(db, product.id).quantity
        elif quantity < 0:
            new_quantity = decrement_inventory(db, product.id, -quantity)
        else:
            new_quantity = increment_inventory(db, product.id, quantity)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Inventory adjusted for %s: %s -> %s (%s)",
        product.name, previous, new_quantity, reason or "no reason given",
    )

    if is_low_stock(product, new_quantity) and new_quantity < previous:
        notify_low_stock([low_stock_entry(product, new_quantity)])

    db.refresh(product)
    return product, previous, new_quantity


def restock(
    db: Session,
    product_id: UUID,
    quantity: Decimal,
    notes: str | None = None,
) -> tuple[Product, Decimal, Decimal]:
    """Receive ``quantity`` more units. Returns ``(product, previous, new)``."""
    if quantity <= 0:
        raise InvalidRequestError("Restock quantity must be greater than zero")
    return adjust_inventory(
        db, product_id, quantity, is_absolute=False, reason=notes or "restock"
    )


def list_inventory(
    db: Session,
    q: str | None = None,
    low_stock_only: bool = False,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Product], int]:
    query = (
        db.query(Product)
        .outerjoin(Inventory, Inventory.product_id == Product.id)
        .options(joinedload(Product.inventory))
    )
    if q:
        like = f"%{q}%"
        query = query.filter(Product.name.ilike(like) | Product.barcode.ilike(like))
    if low_stock_only:
        query = query.filter(
            (Inventory.quantity.is_(None)) | (Inventory.quantity <= Product.reorder_level)
        )
    total = query.count()
    products = (
        query.order_by(Product.name)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return products, total


def get_low_stock(db: Session) -> list[dict]:
    """Products at or below their reorder level, most critical first.

    The suggested reorder brings stock back above the reorder level and is
    never smaller than the reorder level itself.
    """
    products, _ = list_inventory(db, low_stock_only=True, limit=10_000)
    items: list[dict] = []
    for product in products:
        quantity = product.inventory.quantity if product.inventory else ZERO
        deficit = max(ZERO, product.reorder_level - quantity + 1)
        suggested = max(deficit, product.reorder_level)
        items.append({
            "product": product,
            "current_quantity": quantity,
            "reorder_level": product.reorder_level,
            "deficit": deficit,
            "suggested_reorder": suggested,
            "estimated_cost": round_money(suggested * product.cost),
        })
    items.sort(key=lambda item: item["current_quantity"])
    return items


def get_summary(db: Session) -> dict:
    """Stock valuation at cost and at retail, with a per-category breakdown."""
    products = (
        db.query(Product)
        .options(joinedload(Product.inventory), joinedload(Product.category))
        .all()
    )

    total_quantity = total_value = total_retail = ZERO
    low_stock_count = out_of_stock_count = 0
    categories: dict[str, dict] = {}
    for product in products:
        quantity = product.inventory.quantity if product.inventory else ZERO
        value = quantity * product.cost
        total_quantity += quantity
        total_value += value
        total_retail += quantity * product.price
        if is_low_stock(product, quantity):
            low_stock_count += 1
        if quantity == 0:
            out_of_stock_count += 1

        key = str(product.category_id) if product.category_id else "uncategorized"
        bucket = categories.setdefault(key, {
            "name": product.category.name if product.category else "Uncategorized",
            "product_count": 0,
            "quantity": ZERO,
            "value": ZERO,
        })
        bucket["product_count"] += 1
        bucket["quantity"] += quantity
        bucket["value"] += value

    return {
        "total_skus": len(products),
        "total_quantity": total_quantity,
        "total_value": round_money(total_value),
        "total_retail_value": round_money(total_retail),
        "potential_profit": round_money(total_retail - total_value),
        "low_stock_count": low_stock_count,
        "out_of_stock_count": out_of_stock_count,
        "categories": sorted(
            ({**b, "value": round_money(b["value"])} for b in categories.values()),
            key=lambda b: b["name"],
        ),
    }
