"""Read models over the commerce platform tables used by analytics.

The platform owns these tables; they are mapped here for querying only:
- Sales: SalesOrder, OrderLineItem, Region
- Customers: Customer, CustomerGroup (many-to-many through customer_group_customer)
- Catalog and stock: Product, ProductVariant, InventoryItem, InventoryLevel

IDs are platform-generated strings. Amounts are stored in major currency units.
"""

from decimal import Decimal

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commerce_insights.core.database import Base
from commerce_insights.shared.models import PlatformTimestamps

# ============================================================================
# ASSOCIATION TABLES
# ============================================================================

customer_group_customer = Table(
    "customer_group_customer",
    Base.metadata,
    Column("customer_id", ForeignKey("customer.id"), primary_key=True),
    Column("customer_group_id", ForeignKey("customer_group.id"), primary_key=True),
)


# ============================================================================
# SALES
# ============================================================================


class Region(PlatformTimestamps, Base):
    """Sales region an order was placed in."""

    __tablename__ = "region"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    currency_code: Mapped[str] = mapped_column(String(3))

    orders: Mapped[list["SalesOrder"]] = relationship(back_populates="region")


class SalesOrder(PlatformTimestamps, Base):
    """Order header.

    Attributes:
        id: Primary key.
        status: Order status (draft, pending, completed, canceled, ...).
        currency_code: ISO 4217 currency of ``total``.
        total: Order total in major units.
        region_id: Region (FK), NULL for orders without a region.
        customer_id: Customer (FK), NULL for guest orders.
    """

    __tablename__ = "sales_order"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(30), index=True)
    currency_code: Mapped[str] = mapped_column(String(3))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 4))
    region_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("region.id"), index=True, nullable=True
    )
    customer_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("customer.id"), index=True, nullable=True
    )

    region: Mapped["Region | None"] = relationship(back_populates="orders")
    customer: Mapped["Customer | None"] = relationship(back_populates="orders")
    items: Mapped[list["OrderLineItem"]] = relationship(back_populates="order")

    __table_args__ = (Index("ix_sales_order_created_status", "created_at", "status"),)


class OrderLineItem(PlatformTimestamps, Base):
    """Order line.

    Titles are snapshotted on the line so that deleted variants still report.
    """

    __tablename__ = "order_line_item"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_id: Mapped[str] = mapped_column(String(64), ForeignKey("sales_order.id"), index=True)
    variant_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("product_variant.id"), index=True, nullable=True
    )
    product_title: Mapped[str] = mapped_column(String(255))
    variant_title: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer)

    order: Mapped["SalesOrder"] = relationship(back_populates="items")


# ============================================================================
# CUSTOMERS
# ============================================================================


class Customer(PlatformTimestamps, Base):
    """Customer account."""

    __tablename__ = "customer"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)

    orders: Mapped[list["SalesOrder"]] = relationship(back_populates="customer")
    groups: Mapped[list["CustomerGroup"]] = relationship(
        secondary=customer_group_customer, back_populates="customers"
    )


class CustomerGroup(PlatformTimestamps, Base):
    """Named customer segment (e.g. "VIP", "Wholesale")."""

    __tablename__ = "customer_group"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True)

    customers: Mapped[list["Customer"]] = relationship(
        secondary=customer_group_customer, back_populates="groups"
    )


# ============================================================================
# CATALOG AND STOCK
# ============================================================================


class Product(PlatformTimestamps, Base):
    __tablename__ = "product"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(30), default="published")

    variants: Mapped[list["ProductVariant"]] = relationship(back_populates="product")


class ProductVariant(PlatformTimestamps, Base):
    __tablename__ = "product_variant"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), ForeignKey("product.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    sku: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)

    product: Mapped["Product"] = relationship(back_populates="variants")


class InventoryItem(PlatformTimestamps, Base):
    """Stock-keeping item; linked to a variant by SKU only."""

    __tablename__ = "inventory_item"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    sku: Mapped[str | None] = mapped_column(String(100), index=True, nullable=True)

    levels: Mapped[list["InventoryLevel"]] = relationship(back_populates="inventory_item")


class InventoryLevel(PlatformTimestamps, Base):
    """Stocked quantity of an inventory item at one location."""

    __tablename__ = "inventory_level"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    inventory_item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("inventory_item.id"), index=True
    )
    location_id: Mapped[str] = mapped_column(String(64))
    stocked_quantity: Mapped[int] = mapped_column(Integer, default=0)

    inventory_item: Mapped["InventoryItem"] = relationship(back_populates="levels")
