"""Seed the database with demo categories, stocked products and customers.

Usage:
    python -m storekeeper.scripts.seed
"""

from __future__ import annotations

from decimal import Decimal

from storekeeper.app.core.database import SessionLocal
from storekeeper.app.models.customer import Customer
from storekeeper.app.models.inventory import Category, PricingUnit, Product
from storekeeper.app.models.sales import Sale  # noqa: F401  (credit_ledger.sale_id FK)
from storekeeper.app.services.products import create_product

CATEGORIES: list[tuple[str, str]] = [
    ("Grains", "Rice, flour, and other grains"),
    ("Beverages", "Drinks and beverages"),
    ("Dairy", "Milk, cheese, and dairy products"),
    ("Cooking", "Cooking oils and condiments"),
    ("Produce", "Fresh fruit and vegetables sold by weight"),
]

# barcode, name, category, price, cost, reorder level, stock, weight-based, unit
PRODUCTS: list[tuple[str, str, str, str, str, str, str, bool, PricingUnit]] = [
    ("5901234123457", "Rice 1kg Premium", "Grains", "2.50", "1.80", "10", "25", False, PricingUnit.PIECE),
    ("5901234567890", "Sugar 500g", "Grains", "1.50", "1.00", "15", "42", False, PricingUnit.PIECE),
    ("5901234111222", "Cooking Oil 1L", "Cooking", "3.00", "2.20", "5", "3", False, PricingUnit.PIECE),
    ("5901234333444", "Milk 1L", "Dairy", "1.20", "0.90", "10", "18", False, PricingUnit.PIECE),
    ("5901234555666", "Coffee 200g", "Beverages", "4.50", "3.20", "8", "12", False, PricingUnit.PIECE),
    ("2000000000017", "Apples", "Produce", "3.20", "2.10", "5", "40.500", True, PricingUnit.KG),
    ("2000000000024", "Saffron", "Produce", "0.0125", "0.0090", "0.050", "0.250", True, PricingUnit.G),
    ("2000000000031", "Cashews", "Produce", "1.80", "1.20", "2", "7.500", True, PricingUnit.PER_100G),
]

CUSTOMERS: list[tuple[str, str, str | None]] = [
    ("Nguyen Van An", "+84901234567", "an.nguyen@example.com"),
    ("Tran Thi Binh", "+84912345678", None),
    ("Le Minh Chau", "+84923456789", "chau.le@example.com"),
]


def seed() -> None:
    db = SessionLocal()
    try:
        # ── Categories ─────────────────────────────────────────────────
        categories: dict[str, Category] = {}
        for name, description in CATEGORIES:
            category = db.query(Category).filter_by(name=name).first()
            if not category:
                category = Category(name=name, description=description)
                db.add(category)
                db.flush()
                print(f"Created category: {name}")
            categories[name] = category
        db.commit()

        # ── Products with opening stock ────────────────────────────────
        for barcode, name, cat, price, cost, reorder, stock, weighed, unit in PRODUCTS:
            if db.query(Product).filter_by(barcode=barcode).first():
                continue
            create_product(
                db,
                {
                    "barcode": barcode,
                    "name": name,
                    "category_id": categories[cat].id,
                    "price": Decimal(price),
                    "cost": Decimal(cost),
                    "reorder_level": Decimal(reorder),
                    "is_weight_based": weighed,
                    "pricing_unit": unit,
                    "initial_quantity": Decimal(stock),
                },
            )
            print(f"Created product: {name} ({stock} in stock)")

        # ── Customers ──────────────────────────────────────────────────
        for name, phone, email in CUSTOMERS:
            if not db.query(Customer).filter_by(phone=phone).first():
                db.add(Customer(name=name, phone=phone, email=email))
                print(f"Created customer: {name}")

        db.commit()
        print("Seed complete.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
