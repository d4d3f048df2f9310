from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from storekeeper.app.models.customer import CreditLedgerEntry, Customer
from storekeeper.app.models.sales import Sale
from storekeeper.app.services import ledger
from storekeeper.app.services.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def find_customer_by_id(db: Session, customer_id: UUID) -> Customer | None:
    return db.query(Customer).filter(Customer.id == customer_id).first()


def get_customer(db: Session, customer_id: UUID) -> tuple[Customer, Decimal]:
    """Return the customer together with their current balance."""
    customer = find_customer_by_id(db, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer, ledger.current_balance(db, customer_id)


def _check_phone_free(db: Session, phone: str | None, exclude_id: UUID | None = None) -> None:
    if not phone:
        return
    query = db.query(Customer.id).filter(Customer.phone == phone)
    if exclude_id:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError("Customer with this phone already exists")


def create_customer(db: Session, data: dict) -> Customer:
    _check_phone_free(db, data.get("phone"))
    customer = Customer(**data)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    logger.info("Customer %s created", customer.id)
    return customer


def update_customer(db: Session, customer_id: UUID, data: dict) -> tuple[Customer, Decimal]:
    customer = find_customer_by_id(db, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    if "phone" in data and data["phone"] != customer.phone:
        _check_phone_free(db, data["phone"], exclude_id=customer_id)

    for field, value in data.items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return customer, ledger.current_balance(db, customer_id)


def delete_customer(db: Session, customer_id: UUID) -> None:
    """Delete a customer that has never bought anything or carried credit."""
    customer = find_customer_by_id(db, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    if db.query(Sale.id).filter(Sale.customer_id == customer_id).first():
        raise ConflictError("Cannot delete customer with associated sales")
    if (
        db.query(CreditLedgerEntry.id)
        .filter(CreditLedgerEntry.customer_id == customer_id)
        .first()
    ):
        raise ConflictError("Cannot delete customer with credit history")

    db.delete(customer)
    db.commit()
    logger.info("Customer %s deleted", customer_id)


def list_customers(
    db: Session,
    q: str | None = None,
    has_balance: bool | None = None,
    sort_by: str = "balance",
    page: int = 1,
    limit: int = 20,
) -> tuple[list[tuple[Customer, Decimal]], int]:
    """Customers with their balances.

    ``has_balance`` keeps only owing (True) or settled (False) customers.
    ``sort_by`` is ``"balance"`` (highest first) or ``"name"``. Filtering and
    sorting happen on the derived balance, so pagination is applied last.
    """
    query = db.query(Customer)
    if q:
        like = f"%{q}%"
        query = query.filter(
            Customer.name.ilike(like)
            | Customer.email.ilike(like)
            | Customer.phone.ilike(like)
        )
    customers = query.order_by(Customer.name).all()
    balances = ledger.balances_for(db, [c.id for c in customers])

    rows = [(c, balances.get(c.id, ZERO)) for c in customers]
    if has_balance is True:
        rows = [row for row in rows if row[1] > 0]
    elif has_balance is False:
        rows = [row for row in rows if row[1] == 0]

    if sort_by == "balance":
        rows.sort(key=lambda row: row[1], reverse=True)

    total = len(rows)
    start = (page - 1) * limit
    return rows[start:start + limit], total
