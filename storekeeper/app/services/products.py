from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from storekeeper.app.models.inventory import Category, Inventory, PricingUnit, Product
from storekeeper.app.models.sales import SaleItem
from storekeeper.app.services.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from storekeeper.app.services.pricing import validate_quantity

logger = logging.getLogger(__name__)


def _generate_barcode() -> str:
    stamp = str(int(time.time() * 1000))[-8:]
    return f"AUTO{stamp}{random.randint(0, 9999):04d}"


def _query(db: Session):
    return db.query(Product).options(
        joinedload(Product.inventory), joinedload(Product.category)
    )


def get_product(db: Session, product_id: UUID) -> Product:
    product = _query(db).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_product_by_barcode(db: Session, barcode: str) -> Product:
    barcode = barcode.strip()
    product = _query(db).filter(Product.barcode == barcode).first()
    if not product:
        raise NotFoundError(f'Product with barcode "{barcode}" not found')
    return product


def _check_category(db: Session, category_id: UUID | None) -> None:
    if category_id and not db.query(Category.id).filter(Category.id == category_id).first():
        raise NotFoundError("Category not found")


def create_product(db: Session, data: dict) -> Product:
    """Create a product and its inventory record in one commit.

    ``data`` may carry ``initial_quantity``; a missing barcode is generated.
    """
    data = dict(data)
    initial_quantity = Decimal(data.pop("initial_quantity", None) or 0)
    barcode = (data.pop("barcode", None) or "").strip()
    if barcode:
        if db.query(Product.id).filter(Product.barcode == barcode).first():
            raise ConflictError(f'Product with barcode "{barcode}" already exists')
    else:
        barcode = _generate_barcode()
    _check_category(db, data.get("category_id"))

    if not data.get("is_weight_based"):
        data["pricing_unit"] = PricingUnit.PIECE
    if initial_quantity < 0:
        raise InvalidRequestError("Initial stock cannot be negative")
    product = Product(barcode=barcode, **data)
    unit = product.pricing_unit or PricingUnit.PIECE
    validate_quantity(product.name, initial_quantity, unit, bool(product.is_weight_based))

    try:
        db.add(product)
        db.flush()
        db.add(
            Inventory(
                product_id=product.id,
                quantity=initial_quantity,
                last_updated=datetime.now(timezone.utc),
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Product %s (%s) created with %s in stock", product.name, barcode, initial_quantity)
    return get_product(db, product.id)


def update_product(db: Session, product_id: UUID, data: dict) -> Product:
    """Update product metadata. Stock is changed through inventory, not here."""
    product = get_product(db, product_id)
    data = {k: v for k, v in data.items() if not (k == "barcode" and not v)}

    new_barcode = data.get("barcode")
    if new_barcode is not None and new_barcode.strip() != product.barcode:
        new_barcode = new_barcode.strip()
        if db.query(SaleItem.id).filter(SaleItem.product_id == product_id).first():
            raise ConflictError("Cannot change the barcode of a product that has been sold")
        if db.query(Product.id).filter(Product.barcode == new_barcode).first():
            raise ConflictError(f'Product with barcode "{new_barcode}" already exists')
        data = {**data, "barcode": new_barcode}
    if "category_id" in data:
        _check_category(db, data["category_id"])

    for field, value in data.items():
        setattr(product, field, value)
    if not product.is_weight_based:
        product.pricing_unit = PricingUnit.PIECE

    db.commit()
    db.expire_all()
    return get_product(db, product_id)


def delete_product(db: Session, product_id: UUID) -> None:
    """Delete a product that no sale refers to, along with its stock record."""
    product = get_product(db, product_id)
    if db.query(SaleItem.id).filter(SaleItem.product_id == product_id).first():
        raise ConflictError("Cannot delete a product that has been sold")

    try:
        if product.inventory is not None:
            db.delete(product.inventory)
        db.delete(product)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Product %s (%s) deleted", product_id, product.barcode)


def list_products(
    db: Session,
    q: str | None = None,
    category_id: UUID | None = None,
    low_stock_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Product], int]:
    """Products by name, searchable on name or barcode."""
    query = _query(db).outerjoin(Inventory, Inventory.product_id == Product.id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(Product.name.ilike(like) | Product.barcode.ilike(like))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if low_stock_only:
        query = query.filter(
            (Inventory.quantity.is_(None)) | (Inventory.quantity <= Product.reorder_level)
        )

    total = query.count()
    products = (
        query.order_by(Product.name, Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return products, total


# ─── Categories ───────────────────────────────────────────────────────────────


def _find_category(db: Session, category_id: UUID) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def _check_category_name(db: Session, name: str, exclude_id: UUID | None = None) -> None:
    query = db.query(Category.id).filter(Category.name == name)
    if exclude_id:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError(f'Category "{name}" already exists')


def product_counts(db: Session) -> dict[UUID, int]:
    rows = (
        db.query(Product.category_id, func.count(Product.id))
        .filter(Product.category_id.isnot(None))
        .group_by(Product.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def list_categories(db: Session) -> list[Category]:
    return db.query(Category).order_by(Category.name).all()


def get_category(db: Session, category_id: UUID) -> tuple[Category, int]:
    category = _find_category(db, category_id)
    count = db.query(Product.id).filter(Product.category_id == category_id).count()
    return category, count


def create_category(db: Session, name: str, description: str | None = None) -> Category:
    name = name.strip()
    _check_category_name(db, name)
    category = Category(name=name, description=description)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category_id: UUID, data: dict) -> tuple[Category, int]:
    category = _find_category(db, category_id)
    if data.get("name") is not None:
        data = {**data, "name": data["name"].strip()}
        _check_category_name(db, data["name"], exclude_id=category_id)
    else:
        data = {k: v for k, v in data.items() if k != "name"}

    for field, value in data.items():
        setattr(category, field, value)
    db.commit()
    return get_category(db, category_id)


def delete_category(db: Session, category_id: UUID) -> None:
    _find_category(db, category_id)
    if db.query(Product.id).filter(Product.category_id == category_id).first():
        raise ConflictError("Cannot delete category with associated products")

    db.query(Category).filter(Category.id == category_id).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("Category %s deleted", category_id)
