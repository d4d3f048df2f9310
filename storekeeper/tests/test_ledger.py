"""Tests for the store-credit ledger: payments, balances and the audit."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from storekeeper.app.models.customer import CreditEntryType, CreditLedgerEntry, Customer
from storekeeper.app.models.inventory import Product
from storekeeper.app.models.sales import PaymentType
from storekeeper.app.schemas.sales import SaleItemIn
from storekeeper.app.services import ledger
from storekeeper.app.services.exceptions import (
    ConcurrentUpdateError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from storekeeper.app.services.sales import create_sale, void_sale
from storekeeper.app.workers.tasks import ledger as ledger_tasks


def charge(db: Session, product: Product, customer: Customer, quantity: int):
    return create_sale(
        db,
        [SaleItemIn(product_id=product.id, quantity=Decimal(quantity))],
        PaymentType.CREDIT,
        customer_id=customer.id,
    )


def signed_total(db: Session, customer: Customer) -> Decimal:
    signed = case(
        (CreditLedgerEntry.type == CreditEntryType.CHARGE, CreditLedgerEntry.amount),
        else_=-CreditLedgerEntry.amount,
    )
    total = (
        db.query(func.coalesce(func.sum(signed), 0))
        .filter(CreditLedgerEntry.customer_id == customer.id)
        .scalar()
    )
    return Decimal(str(total))


class TestCurrentBalance:
    def test_zero_without_entries(self, db: Session, customer: Customer) -> None:
        assert ledger.current_balance(db, customer.id) == Decimal("0")

    def test_tail_matches_signed_sum(
        self, db: Session, soap: Product, milk: Product, customer: Customer
    ) -> None:
        first = charge(db, soap, customer, 2)
        charge(db, milk, customer, 5)
        ledger.record_payment(db, customer.id, Decimal("7.5"))
        void_sale(db, first.id)

        # 20 + 6 - 7.5 - 20
        assert ledger.current_balance(db, customer.id) == Decimal("-1.5")
        assert signed_total(db, customer) == Decimal("-1.5")

    def test_append_entry_sequences_per_customer(
        self, db: Session, customer: Customer, other_customer: Customer
    ) -> None:
        ledger.append_entry(db, customer.id, CreditEntryType.CHARGE, Decimal("5"))
        ledger.append_entry(db, other_customer.id, CreditEntryType.CHARGE, Decimal("3"))
        entry = ledger.append_entry(db, customer.id, CreditEntryType.PAYMENT, Decimal("2"))
        db.commit()

        assert entry.sequence == 2
        assert entry.balance == Decimal("3")
        assert ledger.current_balance(db, other_customer.id) == Decimal("3")

    def test_append_entry_rejects_non_positive_amount(
        self, db: Session, customer: Customer
    ) -> None:
        with pytest.raises(InvalidRequestError):
            ledger.append_entry(db, customer.id, CreditEntryType.CHARGE, Decimal("0"))

    def test_append_entry_unknown_customer(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            ledger.append_entry(db, uuid4(), CreditEntryType.CHARGE, Decimal("1"))


class TestRecordPayment:
    def test_payment_reduces_balance(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 3)

        entry = ledger.record_payment(db, customer.id, Decimal("12.50"))

        assert entry.type == CreditEntryType.PAYMENT
        assert entry.amount == Decimal("12.50")
        assert entry.balance == Decimal("17.50")
        assert entry.sale_id is None
        assert entry.description == "Payment received"
        assert ledger.current_balance(db, customer.id) == Decimal("17.50")

    def test_full_settlement(self, db: Session, soap: Product, customer: Customer) -> None:
        charge(db, soap, customer, 1)

        entry = ledger.record_payment(db, customer.id, Decimal("10"), description="Cash at till")

        assert entry.balance == Decimal("0")
        assert entry.description == "Cash at till"

    def test_no_outstanding_balance(self, db: Session, customer: Customer) -> None:
        with pytest.raises(InvalidStateError, match="no outstanding balance"):
            ledger.record_payment(db, customer.id, Decimal("5"))

    def test_overpayment_rejected_with_both_amounts(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 2)

        with pytest.raises(InvalidStateError) as exc_info:
            ledger.record_payment(db, customer.id, Decimal("25"))

        message = str(exc_info.value)
        assert "25" in message and "20" in message
        assert ledger.current_balance(db, customer.id) == Decimal("20")

    @pytest.mark.parametrize("amount", ["0", "-3"])
    def test_non_positive_amount(
        self, db: Session, customer: Customer, amount: str
    ) -> None:
        with pytest.raises(InvalidRequestError):
            ledger.record_payment(db, customer.id, Decimal(amount))

    def test_unknown_customer(self, db: Session) -> None:
        with pytest.raises(NotFoundError, match="Customer not found"):
            ledger.record_payment(db, uuid4(), Decimal("5"))

    def test_amount_finer_than_ledger_precision_rejected(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 1)

        with pytest.raises(InvalidRequestError, match="7 decimal places"):
            ledger.record_payment(db, customer.id, Decimal("0.00000001"))

        assert ledger.current_balance(db, customer.id) == Decimal("10")

    def test_sequence_collision_is_a_concurrent_update(
        self,
        db: Session,
        soap: Product,
        customer: Customer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        charge(db, soap, customer, 1)
        charge(db, soap, customer, 1)
        first = (
            db.query(CreditLedgerEntry)
            .filter(
                CreditLedgerEntry.customer_id == customer.id,
                CreditLedgerEntry.sequence == 1,
            )
            .one()
        )
        # Read a stale tail, as if the second charge landed after this read
        monkeypatch.setattr(ledger, "_tail_entry", lambda db, customer_id: first)

        with pytest.raises(ConcurrentUpdateError):
            ledger.record_payment(db, customer.id, Decimal("5"))

        monkeypatch.undo()
        assert db.query(CreditLedgerEntry).count() == 2
        assert ledger.current_balance(db, customer.id) == Decimal("20")


class TestLedgerReads:
    def test_customer_ledger_newest_first(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 1)
        charge(db, soap, customer, 2)
        ledger.record_payment(db, customer.id, Decimal("5"))

        found, entries, total, balance = ledger.get_customer_ledger(db, customer.id, limit=2)

        assert found.id == customer.id
        assert total == 3
        assert [e.sequence for e in entries] == [3, 2]
        assert balance == Decimal("25")

    def test_customer_ledger_unknown_customer(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            ledger.get_customer_ledger(db, uuid4())

    def test_balances_for_many_customers(
        self,
        db: Session,
        soap: Product,
        customer: Customer,
        other_customer: Customer,
    ) -> None:
        charge(db, soap, customer, 2)

        balances = ledger.balances_for(db, [customer.id, other_customer.id])

        assert balances == {customer.id: Decimal("20"), other_customer.id: Decimal("0")}

    def test_debtors_sorted_by_balance(
        self,
        db: Session,
        soap: Product,
        milk: Product,
        customer: Customer,
        other_customer: Customer,
    ) -> None:
        charge(db, milk, customer, 1)
        charge(db, soap, other_customer, 3)
        settled = charge(db, soap, customer, 1)
        void_sale(db, settled.id)

        report = ledger.list_debtors(db)

        assert report["customer_count"] == 2
        assert [d["customer"].id for d in report["customers"]] == [
            other_customer.id,
            customer.id,
        ]
        assert report["total_outstanding"] == Decimal("31.20")

    def test_settled_customers_are_not_debtors(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 1)
        ledger.record_payment(db, customer.id, Decimal("10"))

        report = ledger.list_debtors(db)

        assert report["customer_count"] == 0
        assert report["total_outstanding"] == Decimal("0.00")


class TestReconciliation:
    def test_consistent_ledger_has_no_drift(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 2)
        ledger.record_payment(db, customer.id, Decimal("4"))

        assert ledger.reconcile_balances(db) == []

    def test_tampered_balance_is_reported(
        self, db: Session, soap: Product, customer: Customer
    ) -> None:
        charge(db, soap, customer, 2)
        entry = db.query(CreditLedgerEntry).filter_by(customer_id=customer.id).one()
        entry.balance = Decimal("99")
        db.commit()

        drifts = ledger.reconcile_balances(db)

        assert len(drifts) == 1
        assert drifts[0].customer_id == customer.id
        assert drifts[0].tail_balance == Decimal("99")
        assert drifts[0].computed_balance == Decimal("20")

    def test_daily_task_reports_drift_count(
        self,
        db: Session,
        soap: Product,
        customer: Customer,
    ) -> None:
        charge(db, soap, customer, 1)
        entry = db.query(CreditLedgerEntry).filter_by(customer_id=customer.id).one()
        entry.balance = Decimal("1")
        db.commit()

        result = ledger_tasks.reconcile_credit_balances.apply().get()

        assert result == {"checked": "ok", "drifts": 1}
