from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storekeeper.app.core.database import Base


class PricingUnit(str, enum.Enum):
    PIECE = "PIECE"
    KG = "KG"
    G = "G"
    PER_100G = "PER_100G"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    products: Mapped[list[Product]] = relationship(back_populates="category")


class Product(Base):
    """Sellable product.

    ``price`` is the unit sell price. For weight-based products it is read
    through ``pricing_unit`` (see ``services.pricing``). ``barcode`` must not
    change once a sale item references the product.
    """

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    barcode: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"), nullable=True
    )
    price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    cost: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    reorder_level: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=3), nullable=False, default=Decimal("0")
    )
    is_weight_based: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pricing_unit: Mapped[PricingUnit] = mapped_column(
        Enum(PricingUnit), nullable=False, default=PricingUnit.PIECE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    category: Mapped[Category | None] = relationship(back_populates="products")
    inventory: Mapped[Inventory | None] = relationship(
        back_populates="product", uselist=False
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("cost >= 0", name="ck_product_cost_non_negative"),
        CheckConstraint("reorder_level >= 0", name="ck_product_reorder_level_non_negative"),
        Index("ix_products_name", "name"),
        Index("ix_products_category", "category_id"),
    )


class Inventory(Base):
    """Quantity on hand for one product.

    Piece-priced products hold whole units; weight-based products hold
    kilograms. Mutate only through ``services.inventory``.
    """

    __tablename__ = "inventory"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), unique=True, nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=3), nullable=False, default=Decimal("0")
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    product: Mapped[Product] = relationship(back_populates="inventory")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )
