"""Tests for the product catalogue."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from storekeeper.app.models.inventory import Inventory, PricingUnit, Product
from storekeeper.app.models.sales import PaymentType
from storekeeper.app.schemas.sales import SaleItemIn
from storekeeper.app.services import products as product_store
from storekeeper.app.services.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from storekeeper.app.services.sales import create_sale


class TestCreateProduct:
    def test_creates_inventory_record(self, db: Session) -> None:
        product = product_store.create_product(
            db,
            {
                "name": "Fish Sauce 500ml",
                "barcode": "8934567000011",
                "price": Decimal("2.75"),
                "initial_quantity": Decimal("24"),
            },
        )

        assert product.inventory is not None
        assert product.inventory.quantity == Decimal("24")
        assert product.pricing_unit == PricingUnit.PIECE

    def test_generates_barcode_when_missing(self, db: Session) -> None:
        product = product_store.create_product(db, {"name": "Bread", "price": Decimal("1")})

        assert product.barcode.startswith("AUTO")
        assert len(product.barcode) == 16

    def test_duplicate_barcode_rejected(self, db: Session, soap: Product) -> None:
        with pytest.raises(ConflictError, match=soap.barcode):
            product_store.create_product(
                db, {"name": "Copy", "barcode": soap.barcode, "price": Decimal("1")}
            )

    def test_unit_forced_to_piece_when_not_weighed(self, db: Session) -> None:
        product = product_store.create_product(
            db,
            {
                "name": "Eggs",
                "price": Decimal("0.25"),
                "is_weight_based": False,
                "pricing_unit": PricingUnit.KG,
            },
        )

        assert product.pricing_unit == PricingUnit.PIECE

    def test_weight_based_keeps_unit_and_fractional_stock(self, db: Session) -> None:
        product = product_store.create_product(
            db,
            {
                "name": "Cashews",
                "price": Decimal("1.80"),
                "is_weight_based": True,
                "pricing_unit": PricingUnit.PER_100G,
                "initial_quantity": Decimal("7.5"),
            },
        )

        assert product.pricing_unit == PricingUnit.PER_100G
        assert product.inventory.quantity == Decimal("7.5")

    def test_weighed_stock_finer_than_column_precision_rejected(self, db: Session) -> None:
        with pytest.raises(InvalidRequestError, match="3 decimal places"):
            product_store.create_product(
                db,
                {
                    "name": "Cashews",
                    "price": Decimal("1.80"),
                    "is_weight_based": True,
                    "pricing_unit": PricingUnit.KG,
                    "initial_quantity": Decimal("1.0005"),
                },
            )

    def test_fractional_stock_for_piece_product_rejected(self, db: Session) -> None:
        with pytest.raises(InvalidRequestError, match="whole number"):
            product_store.create_product(
                db, {"name": "Eggs", "price": Decimal("0.25"), "initial_quantity": Decimal("1.5")}
            )

    def test_unknown_category_rejected(self, db: Session) -> None:
        with pytest.raises(NotFoundError, match="Category"):
            product_store.create_product(
                db, {"name": "Tea", "price": Decimal("3"), "category_id": uuid4()}
            )


class TestLookupAndUpdate:
    def test_lookup_by_barcode_trims_input(self, db: Session, soap: Product) -> None:
        assert product_store.get_product_by_barcode(db, f"  {soap.barcode} ").id == soap.id

    def test_lookup_unknown_barcode(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            product_store.get_product_by_barcode(db, "0000")

    def test_update_price(self, db: Session, soap: Product) -> None:
        product = product_store.update_product(db, soap.id, {"price": Decimal("12")})

        assert product.price == Decimal("12")

    def test_barcode_change_allowed_before_any_sale(self, db: Session, soap: Product) -> None:
        product = product_store.update_product(db, soap.id, {"barcode": "8930000000999"})

        assert product.barcode == "8930000000999"

    def test_barcode_immutable_once_sold(self, db: Session, soap: Product) -> None:
        create_sale(
            db, [SaleItemIn(product_id=soap.id, quantity=Decimal("1"))], PaymentType.CASH
        )

        with pytest.raises(ConflictError, match="has been sold"):
            product_store.update_product(db, soap.id, {"barcode": "8930000000999"})

    def test_barcode_unchanged_value_is_not_a_change(self, db: Session, soap: Product) -> None:
        create_sale(
            db, [SaleItemIn(product_id=soap.id, quantity=Decimal("1"))], PaymentType.CASH
        )

        product = product_store.update_product(
            db, soap.id, {"barcode": soap.barcode, "name": "Soap Bar XL"}
        )

        assert product.name == "Soap Bar XL"


class TestCategories:
    def test_create_and_list(self, db: Session) -> None:
        product_store.create_category(db, "Dairy", "Milk and cheese")
        product_store.create_category(db, "Beverages")

        assert [c.name for c in product_store.list_categories(db)] == ["Beverages", "Dairy"]

    def test_duplicate_name_rejected(self, db: Session) -> None:
        product_store.create_category(db, "Dairy")

        with pytest.raises(ConflictError):
            product_store.create_category(db, " Dairy ")

    def test_get_category_counts_products(self, db: Session) -> None:
        dairy = product_store.create_category(db, "Dairy")
        product_store.create_product(
            db, {"name": "Yogurt", "price": Decimal("0.80"), "category_id": dairy.id}
        )

        category, count = product_store.get_category(db, dairy.id)

        assert category.name == "Dairy"
        assert count == 1
        assert product_store.product_counts(db) == {dairy.id: 1}

    def test_get_unknown_category(self, db: Session) -> None:
        with pytest.raises(NotFoundError, match="Category not found"):
            product_store.get_category(db, uuid4())

    def test_rename_category(self, db: Session) -> None:
        dairy = product_store.create_category(db, "Dairy")

        category, _ = product_store.update_category(
            db, dairy.id, {"name": " Dairy & Eggs ", "description": "Fresh"}
        )

        assert category.name == "Dairy & Eggs"
        assert category.description == "Fresh"

    def test_rename_to_existing_name_rejected(self, db: Session) -> None:
        product_store.create_category(db, "Dairy")
        drinks = product_store.create_category(db, "Beverages")

        with pytest.raises(ConflictError, match="already exists"):
            product_store.update_category(db, drinks.id, {"name": "Dairy"})

    def test_keeping_own_name_is_allowed(self, db: Session) -> None:
        dairy = product_store.create_category(db, "Dairy")

        category, _ = product_store.update_category(db, dairy.id, {"name": "Dairy"})

        assert category.name == "Dairy"

    def test_delete_empty_category(self, db: Session) -> None:
        dairy = product_store.create_category(db, "Dairy")

        product_store.delete_category(db, dairy.id)

        assert product_store.list_categories(db) == []

    def test_delete_category_with_products_rejected(self, db: Session) -> None:
        dairy = product_store.create_category(db, "Dairy")
        product_store.create_product(
            db, {"name": "Yogurt", "price": Decimal("0.80"), "category_id": dairy.id}
        )

        with pytest.raises(ConflictError, match="associated products"):
            product_store.delete_category(db, dairy.id)


class TestListAndDelete:
    def test_search_by_name_or_barcode(
        self, db: Session, soap: Product, milk: Product, rice: Product
    ) -> None:
        products, total = product_store.list_products(db, q="milk")
        assert total == 1 and products[0].id == milk.id

        products, total = product_store.list_products(db, q="893")
        assert [p.name for p in products] == ["Milk 1L", "Soap Bar"]

    def test_filter_by_category(self, db: Session, soap: Product) -> None:
        dairy = product_store.create_category(db, "Dairy")
        yogurt = product_store.create_product(
            db, {"name": "Yogurt", "price": Decimal("0.80"), "category_id": dairy.id}
        )

        products, total = product_store.list_products(db, category_id=dairy.id)

        assert total == 1
        assert products[0].id == yogurt.id
        assert products[0].category.name == "Dairy"

    def test_low_stock_filter(self, db: Session, soap: Product, milk: Product) -> None:
        product_store.update_product(db, milk.id, {"reorder_level": Decimal("20")})

        products, total = product_store.list_products(db, low_stock_only=True)

        assert total == 1
        assert products[0].id == milk.id

    def test_pagination_ordered_by_name(
        self, db: Session, soap: Product, milk: Product, rice: Product
    ) -> None:
        products, total = product_store.list_products(db, page=2, limit=2)

        assert total == 3
        assert [p.name for p in products] == ["Soap Bar"]

    def test_delete_unsold_product_and_its_stock(self, db: Session, soap: Product) -> None:
        product_store.delete_product(db, soap.id)

        with pytest.raises(NotFoundError):
            product_store.get_product(db, soap.id)
        assert db.query(Inventory).count() == 0

    def test_delete_sold_product_rejected(self, db: Session, soap: Product) -> None:
        create_sale(
            db, [SaleItemIn(product_id=soap.id, quantity=Decimal("1"))], PaymentType.CASH
        )

        with pytest.raises(ConflictError, match="has been sold"):
            product_store.delete_product(db, soap.id)

        assert product_store.get_product(db, soap.id).inventory.quantity == Decimal("4")

    def test_delete_unknown_product(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            product_store.delete_product(db, uuid4())
