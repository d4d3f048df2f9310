"""Per-customer store-credit ledger.

The ledger is append-only. A customer's balance is the ``balance`` column of
their entry with the highest ``sequence``; it is never recomputed by summing
amounts (``reconcile_balances`` does that, as an audit).

``append_entry`` locks the customer row and flushes without committing so it
always runs inside the caller's transaction (a sale, a void or a payment).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storekeeper.app.models.customer import CreditEntryType, CreditLedgerEntry, Customer
from storekeeper.app.models.sales import Sale  # noqa: F401  (credit_ledger.sale_id FK)
from storekeeper.app.services.exceptions import (
    ConcurrentUpdateError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from storekeeper.app.services.pricing import AMOUNT_PLACES, fits_scale, round_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LEDGER_Q = Decimal(1).scaleb(-AMOUNT_PLACES)


@dataclass(frozen=True)
class BalanceDrift:
    customer_id: UUID
    customer_name: str
    tail_balance: Decimal
    computed_balance: Decimal


def _tail_entry(db: Session, customer_id: UUID) -> CreditLedgerEntry | None:
    return (
        db.query(CreditLedgerEntry)
        .filter(CreditLedgerEntry.customer_id == customer_id)
        .order_by(CreditLedgerEntry.sequence.desc())
        .first()
    )


def _lock_customer(db: Session, customer_id: UUID) -> Customer:
    customer = (
        db.query(Customer)
        .filter(Customer.id == customer_id)
        .with_for_update()
        .first()
    )
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def current_balance(db: Session, customer_id: UUID) -> Decimal:
    """Balance after the customer's most recent entry, or 0 without entries."""
    tail = _tail_entry(db, customer_id)
    return tail.balance if tail else ZERO


def append_entry(
    db: Session,
    customer_id: UUID,
    entry_type: CreditEntryType,
    amount: Decimal,
    sale_id: UUID | None = None,
    description: str | None = None,
) -> CreditLedgerEntry:
    """Append one entry on top of the current tail. Does not commit."""
    if amount <= 0:
        raise InvalidRequestError("Ledger amount must be greater than zero")

    _lock_customer(db, customer_id)
    tail = _tail_entry(db, customer_id)
    previous = tail.balance if tail else ZERO
    if entry_type == CreditEntryType.CHARGE:
        balance = previous + amount
    else:
        balance = previous - amount

    entry = CreditLedgerEntry(
        customer_id=customer_id,
        sale_id=sale_id,
        type=entry_type,
        amount=amount,
        balance=balance,
        sequence=tail.sequence + 1 if tail else 1,
        description=description,
    )
    db.add(entry)
    db.flush()
    return entry


def record_payment(
    db: Session,
    customer_id: UUID,
    amount: Decimal,
    description: str | None = None,
) -> CreditLedgerEntry:
    """Record money received against a customer's outstanding balance."""
    if amount <= 0:
        raise InvalidRequestError("Payment amount must be greater than zero")
    if not fits_scale(amount, AMOUNT_PLACES):
        raise InvalidRequestError(
            f"Payment amount cannot have more than {AMOUNT_PLACES} decimal places"
        )

    try:
        _lock_customer(db, customer_id)
        balance = current_balance(db, customer_id)
        if balance <= 0:
            raise InvalidStateError("Customer has no outstanding balance")
        if amount > balance:
            raise InvalidStateError(
                f"Payment amount ({amount}) exceeds outstanding balance ({balance})"
            )
        entry = append_entry(
            db,
            customer_id,
            CreditEntryType.PAYMENT,
            amount,
            description=description or "Payment received",
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConcurrentUpdateError(
            "The customer's ledger changed while recording the payment; retry"
        ) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    logger.info(
        "Payment of %s recorded for customer %s, balance now %s",
        entry.amount, customer_id, entry.balance,
    )
    return entry


# ─── Read side ────────────────────────────────────────────────────────────────


def _tails(
    db: Session, customer_ids: list[UUID] | None = None
) -> dict[UUID, tuple[Decimal, datetime]]:
    """Tail ``(balance, created_at)`` per customer in one query."""
    latest = db.query(
        CreditLedgerEntry.customer_id.label("customer_id"),
        func.max(CreditLedgerEntry.sequence).label("sequence"),
    )
    if customer_ids is not None:
        if not customer_ids:
            return {}
        latest = latest.filter(CreditLedgerEntry.customer_id.in_(customer_ids))
    latest_sq = latest.group_by(CreditLedgerEntry.customer_id).subquery()

    rows = (
        db.query(
            CreditLedgerEntry.customer_id,
            CreditLedgerEntry.balance,
            CreditLedgerEntry.created_at,
        )
        .join(
            latest_sq,
            (CreditLedgerEntry.customer_id == latest_sq.c.customer_id)
            & (CreditLedgerEntry.sequence == latest_sq.c.sequence),
        )
        .all()
    )
    return {cid: (balance, created_at) for cid, balance, created_at in rows}


def balances_for(db: Session, customer_ids: list[UUID] | None = None) -> dict[UUID, Decimal]:
    """Current balance for each of ``customer_ids``; customers without entries are 0."""
    tails = _tails(db, customer_ids)
    ids = customer_ids if customer_ids is not None else list(tails)
    return {cid: tails[cid][0] if cid in tails else ZERO for cid in ids}


def get_customer_ledger(
    db: Session,
    customer_id: UUID,
    page: int = 1,
    limit: int = 50,
) -> tuple[Customer, list[CreditLedgerEntry], int, Decimal]:
    """Newest-first page of entries plus the total count and current balance."""
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")

    query = db.query(CreditLedgerEntry).filter(CreditLedgerEntry.customer_id == customer_id)
    total = query.count()
    entries = (
        query.order_by(CreditLedgerEntry.sequence.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return customer, entries, total, current_balance(db, customer_id)


def list_debtors(db: Session) -> dict:
    """Customers who owe money, largest balance first."""
    tails = _tails(db)
    owing = {cid: tail for cid, tail in tails.items() if tail[0] > 0}
    customers = (
        db.query(Customer).filter(Customer.id.in_(list(owing))).all() if owing else []
    )
    debtors = sorted(
        (
            {
                "customer": c,
                "balance": owing[c.id][0],
                "last_activity": owing[c.id][1],
            }
            for c in customers
        ),
        key=lambda d: d["balance"],
        reverse=True,
    )
    return {
        "total_outstanding": round_money(sum((d["balance"] for d in debtors), ZERO)),
        "customer_count": len(debtors),
        "customers": debtors,
    }


def reconcile_balances(db: Session) -> list[BalanceDrift]:
    """Customers whose tail balance disagrees with Σ CHARGE − Σ PAYMENT."""
    signed = case(
        (CreditLedgerEntry.type == CreditEntryType.CHARGE, CreditLedgerEntry.amount),
        else_=-CreditLedgerEntry.amount,
    )
    sums = (
        db.query(
            CreditLedgerEntry.customer_id,
            Customer.name,
            func.sum(signed),
        )
        .join(Customer, Customer.id == CreditLedgerEntry.customer_id)
        .group_by(CreditLedgerEntry.customer_id, Customer.name)
        .all()
    )
    tails = _tails(db)

    drifts: list[BalanceDrift] = []
    for customer_id, name, computed in sums:
        tail_balance = Decimal(str(tails[customer_id][0])).quantize(LEDGER_Q)
        computed = Decimal(str(computed)).quantize(LEDGER_Q)
        if computed != tail_balance:
            drifts.append(
                BalanceDrift(
                    customer_id=customer_id,
                    customer_name=name,
                    tail_balance=tail_balance,
                    computed_balance=computed,
                )
            )
    return drifts
