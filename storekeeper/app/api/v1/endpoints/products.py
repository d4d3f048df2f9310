from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from storekeeper.app.api.errors import to_http_exception
from storekeeper.app.core.database import get_db
from storekeeper.app.models.inventory import Category, Product
from storekeeper.app.schemas.product import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    ProductCreate,
    ProductListOut,
    ProductOut,
    ProductUpdate,
)
from storekeeper.app.services import products as product_store
from storekeeper.app.services.exceptions import StoreError
from storekeeper.app.services.inventory import is_low_stock

router = APIRouter()


def product_out(product: Product) -> ProductOut:
    quantity = product.inventory.quantity if product.inventory else Decimal("0")
    return ProductOut(
        id=product.id,
        barcode=product.barcode,
        name=product.name,
        description=product.description,
        category_id=product.category_id,
        category_name=product.category.name if product.category else None,
        price=product.price,
        cost=product.cost,
        reorder_level=product.reorder_level,
        is_weight_based=product.is_weight_based,
        pricing_unit=product.pricing_unit,
        quantity=quantity,
        is_low_stock=is_low_stock(product, quantity),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


# ─── Categories ───────────────────────────────────────────────────────────────


def category_out(category: Category, product_count: int = 0) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        description=category.description,
        product_count=product_count,
    )


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)) -> list[CategoryOut]:
    counts = product_store.product_counts(db)
    return [
        category_out(c, counts.get(c.id, 0)) for c in product_store.list_categories(db)
    ]


@router.post(
    "/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED
)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
) -> CategoryOut:
    try:
        category = product_store.create_category(db, payload.name, payload.description)
    except StoreError as e:
        raise to_http_exception(e)
    return category_out(category)


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
) -> CategoryOut:
    try:
        category, count = product_store.get_category(db, category_id)
    except StoreError as e:
        raise to_http_exception(e)
    return category_out(category, count)


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
) -> CategoryOut:
    try:
        category, count = product_store.update_category(
            db, category_id, payload.model_dump(exclude_unset=True)
        )
    except StoreError as e:
        raise to_http_exception(e)
    return category_out(category, count)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: UUID,
    db: Session = Depends(get_db),
) -> Response:
    try:
        product_store.delete_category(db, category_id)
    except StoreError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Products ─────────────────────────────────────────────────────────────────


@router.get("/", response_model=ProductListOut)
def list_products(
    q: str | None = Query(None, description="Search by name or barcode"),
    category_id: UUID | None = Query(None),
    low_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> ProductListOut:
    products, total = product_store.list_products(
        db,
        q=q,
        category_id=category_id,
        low_stock_only=low_stock,
        page=page,
        limit=limit,
    )
    return ProductListOut(
        data=[product_out(p) for p in products], total=total, page=page, limit=limit
    )


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
) -> ProductOut:
    try:
        product = product_store.create_product(db, payload.model_dump())
    except StoreError as e:
        raise to_http_exception(e)
    return product_out(product)


@router.get("/barcode/{barcode}", response_model=ProductOut)
def get_by_barcode(
    barcode: str,
    db: Session = Depends(get_db),
) -> ProductOut:
    try:
        return product_out(product_store.get_product_by_barcode(db, barcode))
    except StoreError as e:
        raise to_http_exception(e)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
) -> ProductOut:
    try:
        return product_out(product_store.get_product(db, product_id))
    except StoreError as e:
        raise to_http_exception(e)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
) -> ProductOut:
    try:
        product = product_store.update_product(
            db, product_id, payload.model_dump(exclude_unset=True)
        )
    except StoreError as e:
        raise to_http_exception(e)
    return product_out(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
) -> Response:
    try:
        product_store.delete_product(db, product_id)
    except StoreError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
