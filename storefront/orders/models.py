from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import mapped_column, relationship

from ..db import Base


class Product(Base):
    """Catalog product. Read-only for the orders core."""

    __tablename__ = "products"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    name = mapped_column(String(200), nullable=False)
    sku = mapped_column(String(64), nullable=False, unique=True)
    price = mapped_column(Numeric(12, 2), nullable=False)
    active = mapped_column(Boolean, nullable=False, default=True)

    variants = relationship("Variant", back_populates="product")


class Variant(Base):
    """Purchasable size/color combination with its own stock.

    The effective unit price is ``price_override`` when set, otherwise the
    parent product's ``price``. Stock never goes below zero.
    """

    __tablename__ = "product_variants"
    __table_args__ = (CheckConstraint("stock_qty >= 0", name="ck_variant_stock_non_negative"),)

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    variant_sku = mapped_column(String(64), nullable=True)
    size = mapped_column(String(16), nullable=True)
    color = mapped_column(String(32), nullable=True)
    stock_qty = mapped_column(Integer, nullable=False, default=0)
    price_override = mapped_column(Numeric(12, 2), nullable=True)
    active = mapped_column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")


class Order(Base):
    __tablename__ = "orders"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id = mapped_column(Integer, nullable=True)
    status = mapped_column(String(32), nullable=False, default="NEW")
    subtotal = mapped_column(Numeric(12, 2), nullable=False)
    discount_total = mapped_column(Numeric(12, 2), nullable=False, default=0)
    shipping_total = mapped_column(Numeric(12, 2), nullable=False)
    grand_total = mapped_column(Numeric(12, 2), nullable=False)
    payment_status = mapped_column(String(32), nullable=False, default="PENDING")
    created_at = mapped_column(DateTime, nullable=False, server_default=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    """Order line. Name, sku and prices are a snapshot taken at order time."""

    __tablename__ = "order_items"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    product_id = mapped_column(Integer, nullable=False)
    variant_id = mapped_column(Integer, nullable=False)
    name = mapped_column(String(200), nullable=False)
    sku = mapped_column(String(64), nullable=False)
    qty = mapped_column(Integer, nullable=False)
    unit_price = mapped_column(Numeric(12, 2), nullable=False)
    total_price = mapped_column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
