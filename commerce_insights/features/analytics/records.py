"""Input records consumed by the aggregators.

Records are request-scoped, immutable value objects produced by the data
source. Aggregators only read them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class LineItemRecord:
    """A single order line.

    Attributes:
        variant_id: Product variant ID (None when the variant was deleted).
        variant_title: Variant display title.
        product_title: Parent product title.
        quantity: Units ordered (>= 0).
    """

    variant_id: str | None
    variant_title: str
    product_title: str
    quantity: int


@dataclass(frozen=True)
class CustomerRecord:
    """Customer attached to an order.

    ``order_dates`` holds the creation time of every order the customer ever
    placed, not only the ones inside the requested window.
    """

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    groups: tuple[str, ...] = ()
    order_dates: tuple[datetime, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}"


@dataclass(frozen=True)
class OrderRecord:
    """An order as seen by the aggregators.

    Attributes:
        id: Order ID.
        total: Order total in ``currency_code``.
        currency_code: ISO 4217 currency of ``total``.
        status: Order status (pending, completed, canceled, ...).
        created_at: Creation timestamp. Strings are accepted and parsed lazily;
            an unparseable value fails the whole aggregation.
        region_name: Name of the order's region, if any.
        customer_id: Customer ID, if any.
        customer: Customer details (required for customer analytics).
        items: Line items (required for product analytics).
    """

    id: str
    total: float
    currency_code: str
    status: str
    created_at: datetime | str
    region_name: str | None = None
    customer_id: str | None = None
    customer: CustomerRecord | None = None
    items: tuple[LineItemRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InventoryLevelRecord:
    """Stocked quantity of one inventory item at a location."""

    inventory_item_id: str
    stocked_quantity: int


@dataclass(frozen=True)
class InventoryItemRecord:
    """Inventory item; its SKU links it to a product variant."""

    id: str
    sku: str | None


@dataclass(frozen=True)
class ProductVariantRecord:
    """Product variant resolved by SKU."""

    id: str
    product_id: str
    sku: str | None
    title: str
