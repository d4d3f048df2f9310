from __future__ import annotations

from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from storekeeper.app.api.errors import to_http_exception
from storekeeper.app.core.database import get_db
from storekeeper.app.models.customer import Customer
from storekeeper.app.schemas.customer import (
    BalanceOut,
    CustomerCreate,
    CustomerLedgerOut,
    CustomerListOut,
    CustomerOut,
    CustomerUpdate,
    DebtorOut,
    DebtorsOut,
    LedgerEntryOut,
    PaymentCreate,
)
from storekeeper.app.services import customers as customer_store
from storekeeper.app.services import ledger
from storekeeper.app.services.exceptions import StoreError

router = APIRouter()


def customer_out(customer: Customer, balance: Decimal) -> CustomerOut:
    return CustomerOut(
        id=customer.id,
        name=customer.name,
        phone=customer.phone,
        email=customer.email,
        address=customer.address,
        notes=customer.notes,
        balance=balance,
        created_at=customer.created_at,
        updated_at=customer.updated_at,
    )


# ─── Customer CRUD ────────────────────────────────────────────────────────────


@router.get("/", response_model=CustomerListOut)
def list_customers(
    q: str | None = Query(None, description="Search by name, email, or phone"),
    has_balance: bool | None = Query(None),
    sort_by: Literal["balance", "name"] = Query("balance"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> CustomerListOut:
    rows, total = customer_store.list_customers(
        db, q=q, has_balance=has_balance, sort_by=sort_by, page=page, limit=limit
    )
    return CustomerListOut(
        data=[customer_out(c, balance) for c, balance in rows],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
) -> CustomerOut:
    try:
        customer = customer_store.create_customer(db, payload.model_dump())
    except StoreError as e:
        raise to_http_exception(e)
    return customer_out(customer, Decimal("0"))


@router.get("/debtors", response_model=DebtorsOut)
def list_debtors(db: Session = Depends(get_db)) -> DebtorsOut:
    report = ledger.list_debtors(db)
    return DebtorsOut(
        total_outstanding=report["total_outstanding"],
        customer_count=report["customer_count"],
        customers=[
            DebtorOut(
                id=d["customer"].id,
                name=d["customer"].name,
                phone=d["customer"].phone,
                balance=d["balance"],
                last_activity=d["last_activity"],
            )
            for d in report["customers"]
        ],
    )


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> CustomerOut:
    try:
        customer, balance = customer_store.get_customer(db, customer_id)
    except StoreError as e:
        raise to_http_exception(e)
    return customer_out(customer, balance)


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
) -> CustomerOut:
    try:
        customer, balance = customer_store.update_customer(
            db, customer_id, payload.model_dump(exclude_unset=True)
        )
    except StoreError as e:
        raise to_http_exception(e)
    return customer_out(customer, balance)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> Response:
    try:
        customer_store.delete_customer(db, customer_id)
    except StoreError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Credit ledger ────────────────────────────────────────────────────────────


@router.get("/{customer_id}/ledger", response_model=CustomerLedgerOut)
def get_ledger(
    customer_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> CustomerLedgerOut:
    try:
        customer, entries, total, balance = ledger.get_customer_ledger(
            db, customer_id, page=page, limit=limit
        )
    except StoreError as e:
        raise to_http_exception(e)
    return CustomerLedgerOut(
        customer=customer_out(customer, balance),
        entries=[LedgerEntryOut.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{customer_id}/balance", response_model=BalanceOut)
def get_balance(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> BalanceOut:
    try:
        _, balance = customer_store.get_customer(db, customer_id)
    except StoreError as e:
        raise to_http_exception(e)
    return BalanceOut(customer_id=customer_id, balance=balance)


@router.post(
    "/{customer_id}/payments",
    response_model=LedgerEntryOut,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    customer_id: UUID,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
) -> LedgerEntryOut:
    try:
        entry = ledger.record_payment(
            db, customer_id, payload.amount, description=payload.description
        )
    except StoreError as e:
        raise to_http_exception(e)
    return LedgerEntryOut.model_validate(entry)
