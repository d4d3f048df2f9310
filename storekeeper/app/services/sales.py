from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from storekeeper.app.models.customer import CreditEntryType, Customer
from storekeeper.app.models.inventory import Product
from storekeeper.app.models.sales import PaymentType, Sale, SaleItem, SaleStatus
from storekeeper.app.schemas.sales import SaleItemIn
from storekeeper.app.services import inventory as inventory_store
from storekeeper.app.services import ledger
from storekeeper.app.services.exceptions import (
    ConcurrentUpdateError,
    DuplicateSubmissionError,
    InsufficientStockError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from storekeeper.app.services.notification_service import LowStockProduct, notify_low_stock
from storekeeper.app.services.pricing import calculate_subtotal, validate_quantity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _short_id(sale_id: UUID) -> str:
    return str(sale_id)[:8]


def _sync_id_taken(db: Session, sync_id: str) -> bool:
    return db.query(Sale.id).filter(Sale.sync_id == sync_id).first() is not None


def _load_sale(db: Session, sale_id: UUID) -> Sale | None:
    return (
        db.query(Sale)
        .options(
            joinedload(Sale.customer),
            selectinload(Sale.items).joinedload(SaleItem.product),
        )
        .filter(Sale.id == sale_id)
        .first()
    )


def _validate_cart(db: Session, items: list[SaleItemIn]) -> dict[UUID, Product]:
    """Check quantities and resolve every product with a single lookup."""
    if not items:
        raise InvalidRequestError("Cart must contain at least one item")
    for item in items:
        if item.quantity <= 0:
            raise InvalidRequestError("Quantity must be greater than zero")

    requested_ids = {item.product_id for item in items}
    products = inventory_store.find_products_by_ids(db, requested_ids)
    if len(products) != len(requested_ids):
        raise NotFoundError("One or more products not found")
    by_id = {p.id: p for p in products}

    for item in items:
        product = by_id[item.product_id]
        validate_quantity(
            product.name, item.quantity, product.pricing_unit, product.is_weight_based
        )
    return by_id


def _check_stock(items: list[SaleItemIn], products: dict[UUID, Product]) -> None:
    # Sum repeated lines so two lines of the same product can't overdraw it
    wanted: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for item in items:
        wanted[item.product_id] += item.quantity

    for product_id, quantity in wanted.items():
        product = products[product_id]
        available = product.inventory.quantity if product.inventory else ZERO
        if available < quantity:
            raise InsufficientStockError(
                product_id=product_id,
                product_name=product.name,
                requested=quantity,
                available=available,
            )


def create_sale(
    db: Session,
    items: list[SaleItemIn],
    payment_type: PaymentType,
    customer_id: UUID | None = None,
    sync_id: str | None = None,
) -> Sale:
    """Check out a cart.

    Validation runs first and writes nothing. The sale, its items, the stock
    decrements and (for CREDIT) the ledger CHARGE are then committed together
    or not at all. Low-stock alerts go out only after the commit.
    """
    # ── Validation ─────────────────────────────────────────────────────────
    if sync_id is not None and not sync_id.strip():
        sync_id = None
    if sync_id and _sync_id_taken(db, sync_id):
        raise DuplicateSubmissionError(sync_id)

    if payment_type == PaymentType.CREDIT and not customer_id:
        raise InvalidRequestError("Customer is required for credit sales")

    if customer_id and not db.query(Customer.id).filter(Customer.id == customer_id).first():
        raise NotFoundError("Customer not found")

    products = _validate_cart(db, items)
    _check_stock(items, products)

    lines: list[SaleItem] = []
    for item in items:
        product = products[item.product_id]
        unit_price = product.price
        lines.append(
            SaleItem(
                product_id=product.id,
                quantity=item.quantity,
                unit_price=unit_price,
                subtotal=calculate_subtotal(
                    unit_price, product.pricing_unit, item.quantity, product.is_weight_based
                ),
            )
        )
    total_amount = sum((line.subtotal for line in lines), ZERO)

    # ── Atomic section ─────────────────────────────────────────────────────
    new_quantities: dict[UUID, Decimal] = {}
    try:
        sale = Sale(
            customer_id=customer_id,
            payment_type=payment_type,
            status=SaleStatus.COMPLETED,
            total_amount=total_amount,
            sync_id=sync_id,
            items=lines,
        )
        db.add(sale)
        db.flush()

        for item in items:
            new_quantities[item.product_id] = inventory_store.decrement_inventory(
                db, item.product_id, item.quantity
            )

        if payment_type == PaymentType.CREDIT and customer_id:
            ledger.append_entry(
                db,
                customer_id,
                CreditEntryType.CHARGE,
                total_amount,
                sale_id=sale.id,
                description=f"Sale #{_short_id(sale.id)}",
            )

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if sync_id and _sync_id_taken(db, sync_id):
            raise DuplicateSubmissionError(sync_id) from exc
        raise ConcurrentUpdateError(
            "Stock or ledger changed while recording the sale; nothing was saved"
        ) from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Sale %s completed: %s %s, %d line(s)",
        sale.id, payment_type.value, total_amount, len(lines),
    )

    # ── Post-commit, fire-and-forget ───────────────────────────────────────
    low: list[LowStockProduct] = [
        inventory_store.low_stock_entry(products[pid], quantity)
        for pid, quantity in new_quantities.items()
        if inventory_store.is_low_stock(products[pid], quantity)
    ]
    notify_low_stock(low)

    return _load_sale(db, sale.id)  # type: ignore[return-value]


def void_sale(db: Session, sale_id: UUID) -> Sale:
    """Cancel a COMPLETED sale: restore stock and reverse any credit charge.

    The reversal is posted as a PAYMENT entry referencing the sale.
    """
    sale = _load_sale(db, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    if sale.status == SaleStatus.VOIDED:
        raise InvalidStateError("Sale is already voided")

    try:
        # Conditional transition: only one concurrent void can match
        result = db.execute(
            update(Sale)
            .where(Sale.id == sale.id, Sale.status == SaleStatus.COMPLETED)
            .values(status=SaleStatus.VOIDED, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError("Sale is already voided")

        for item in sale.items:
            inventory_store.increment_inventory(db, item.product_id, item.quantity)

        if sale.payment_type == PaymentType.CREDIT and sale.customer_id:
            ledger.append_entry(
                db,
                sale.customer_id,
                CreditEntryType.PAYMENT,
                sale.total_amount,
                sale_id=sale.id,
                description=f"Voided sale #{_short_id(sale.id)}",
            )

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConcurrentUpdateError(
            "The customer's ledger changed while voiding the sale; nothing was saved"
        ) from exc
    except Exception:
        db.rollback()
        raise

    logger.info("Sale %s voided", sale_id)
    db.expire_all()
    return _load_sale(db, sale_id)  # type: ignore[return-value]


# ─── Read side ────────────────────────────────────────────────────────────────


def get_sale(db: Session, sale_id: UUID) -> Sale:
    sale = _load_sale(db, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    db: Session,
    start_date: date | None = None,
    end_date: date | None = None,
    customer_id: UUID | None = None,
    payment_type: PaymentType | None = None,
    status: SaleStatus | None = SaleStatus.COMPLETED,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Sale], int]:
    """Newest-first page of sales. ``end_date`` includes the whole day."""
    query = db.query(Sale)
    if status is not None:
        query = query.filter(Sale.status == status)
    if start_date:
        query = query.filter(
            Sale.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        )
    if end_date:
        query = query.filter(
            Sale.created_at
            < datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        )
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    if payment_type:
        query = query.filter(Sale.payment_type == payment_type)

    total = query.count()
    sales = (
        query.options(
            joinedload(Sale.customer),
            selectinload(Sale.items).joinedload(SaleItem.product),
        )
        .order_by(Sale.created_at.desc(), Sale.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return sales, total
