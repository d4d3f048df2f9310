from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storekeeper.app.api.errors import to_http_exception
from storekeeper.app.core.database import get_db
from storekeeper.app.models.sales import PaymentType, Sale, SaleStatus
from storekeeper.app.schemas.sales import SaleCreate, SaleItemOut, SaleListOut, SaleOut
from storekeeper.app.services import sales as sale_engine
from storekeeper.app.services.exceptions import StoreError

router = APIRouter()


def sale_out(sale: Sale) -> SaleOut:
    return SaleOut(
        id=sale.id,
        customer_id=sale.customer_id,
        customer_name=sale.customer.name if sale.customer else None,
        payment_type=sale.payment_type,
        status=sale.status,
        total_amount=sale.total_amount,
        sync_id=sale.sync_id,
        created_at=sale.created_at,
        updated_at=sale.updated_at,
        items=[
            SaleItemOut(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product.name,
                barcode=item.product.barcode,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in sale.items
        ],
    )


@router.post("/", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
) -> SaleOut:
    try:
        sale = sale_engine.create_sale(
            db=db,
            items=payload.items,
            payment_type=payload.payment_type,
            customer_id=payload.customer_id,
            sync_id=payload.sync_id,
        )
    except StoreError as e:
        raise to_http_exception(e)
    return sale_out(sale)


@router.get("/", response_model=SaleListOut)
def list_sales(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None, description="Inclusive of the whole day"),
    customer_id: UUID | None = Query(None),
    payment_type: PaymentType | None = Query(None),
    status_filter: SaleStatus = Query(SaleStatus.COMPLETED, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> SaleListOut:
    sales, total = sale_engine.list_sales(
        db,
        start_date=start_date,
        end_date=end_date,
        customer_id=customer_id,
        payment_type=payment_type,
        status=status_filter,
        page=page,
        limit=limit,
    )
    return SaleListOut(
        data=[sale_out(s) for s in sales], total=total, page=page, limit=limit
    )


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(
    sale_id: UUID,
    db: Session = Depends(get_db),
) -> SaleOut:
    try:
        return sale_out(sale_engine.get_sale(db, sale_id))
    except StoreError as e:
        raise to_http_exception(e)


@router.post("/{sale_id}/void", response_model=SaleOut)
def void_sale(
    sale_id: UUID,
    db: Session = Depends(get_db),
) -> SaleOut:
    try:
        sale = sale_engine.void_sale(db, sale_id)
    except StoreError as e:
        raise to_http_exception(e)
    return sale_out(sale)
