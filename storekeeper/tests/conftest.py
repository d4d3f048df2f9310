"""Shared test fixtures.

Every test gets an empty in-memory SQLite schema that is dropped afterwards,
so services can commit freely without tests seeing each other's data.
"""

from __future__ import annotations

import os

# Must be set before storekeeper modules read their settings
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["NOTIFICATION_ENABLED"] = "false"
os.environ["LOW_STOCK_ALERTS_ENABLED"] = "true"

from dataclasses import dataclass, field  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from storekeeper.app.core.database import Base, SessionLocal, engine, get_db  # noqa: E402
from storekeeper.app.main import app  # noqa: E402
from storekeeper.app.models.customer import Customer  # noqa: E402
from storekeeper.app.models.inventory import Inventory, PricingUnit, Product  # noqa: E402
from storekeeper.app.models.sales import Sale  # noqa: E402,F401
from storekeeper.app.services import notification_service  # noqa: E402


# ─── DB session on a fresh schema per test ───────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Catalogue ────────────────────────────────────────────────────────────────


def make_product(
    db: Session,
    name: str,
    barcode: str,
    price: str,
    stock: str,
    reorder_level: str = "0",
    is_weight_based: bool = False,
    pricing_unit: PricingUnit = PricingUnit.PIECE,
    cost: str = "0",
) -> Product:
    product = Product(
        name=name,
        barcode=barcode,
        price=Decimal(price),
        cost=Decimal(cost),
        reorder_level=Decimal(reorder_level),
        is_weight_based=is_weight_based,
        pricing_unit=pricing_unit,
    )
    db.add(product)
    db.flush()
    db.add(
        Inventory(
            product_id=product.id,
            quantity=Decimal(stock),
            last_updated=datetime.now(timezone.utc),
        )
    )
    db.commit()
    db.refresh(product)
    return product


def stock_of(db: Session, product: Product) -> Decimal:
    db.expire_all()
    return db.query(Inventory).filter(Inventory.product_id == product.id).one().quantity


@pytest.fixture()
def soap(db: Session) -> Product:
    """Piece product: price 10, 5 in stock, reorder at 1."""
    return make_product(db, "Soap Bar", "8930000000011", "10", "5", reorder_level="1")


@pytest.fixture()
def milk(db: Session) -> Product:
    return make_product(
        db, "Milk 1L", "8930000000028", "1.20", "18", reorder_level="10", cost="0.90"
    )


@pytest.fixture()
def rice(db: Session) -> Product:
    """Weight-based, priced per kilogram: 50000 / kg, 10 kg in stock."""
    return make_product(
        db,
        "Jasmine Rice",
        "2000000000017",
        "50000",
        "10",
        reorder_level="2",
        is_weight_based=True,
        pricing_unit=PricingUnit.KG,
    )


@pytest.fixture()
def customer(db: Session) -> Customer:
    c = Customer(name="Nguyen Van An", phone="+84901234567", email="an@example.com")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture()
def other_customer(db: Session) -> Customer:
    c = Customer(name="Tran Thi Binh", phone="+84912345678")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


# ─── Low-stock alert capture ─────────────────────────────────────────────────


@dataclass
class AlertRecorder:
    """Stands in for the Celery task; records what would be queued."""

    calls: list[list[dict]] = field(default_factory=list)
    options: list[dict] = field(default_factory=list)
    fail_with: Exception | None = None

    def apply_async(self, args: list, **options: object) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        (products,) = args
        self.calls.append(products)
        self.options.append(options)

    @property
    def product_names(self) -> list[str]:
        return [p["name"] for call in self.calls for p in call]


@pytest.fixture()
def alerts(monkeypatch: pytest.MonkeyPatch) -> AlertRecorder:
    recorder = AlertRecorder()
    monkeypatch.setattr(notification_service, "send_low_stock_alert", recorder)
    return recorder
