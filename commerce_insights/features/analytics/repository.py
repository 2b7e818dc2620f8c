"""Data access for analytics.

The aggregators only see immutable records. ``AnalyticsDataSource`` is the
seam between them and the platform database; ``SqlAlchemyDataSource`` is the
production implementation over the read models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta, tzinfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from commerce_insights.core.exceptions import UpstreamUnavailableError
from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.bucketing import DateRange
from commerce_insights.features.analytics.models import (
    Customer,
    InventoryItem,
    InventoryLevel,
    ProductVariant,
    SalesOrder,
)
from commerce_insights.features.analytics.records import (
    CustomerRecord,
    InventoryItemRecord,
    InventoryLevelRecord,
    LineItemRecord,
    OrderRecord,
    ProductVariantRecord,
)

logger = get_logger(__name__)


class AnalyticsDataSource(ABC):
    """Read access to orders, customers and inventory."""

    @abstractmethod
    async def list_orders(
        self,
        window: DateRange,
        excluded_statuses: Sequence[str],
    ) -> list[OrderRecord]:
        """List orders created inside a window.

        Args:
            window: Inclusive day window, interpreted in the reference time zone.
            excluded_statuses: Order statuses to leave out.

        Returns:
            Orders ordered by ascending ``created_at``, with region, customer
            (including full order history and groups) and line items.

        Raises:
            UpstreamUnavailableError: If the data store fails.
        """
        ...

    @abstractmethod
    async def list_inventory_levels(self, max_stocked_quantity: int) -> list[InventoryLevelRecord]:
        """List inventory levels with ``stocked_quantity <= max_stocked_quantity``."""
        ...

    @abstractmethod
    async def list_inventory_items(self, ids: Sequence[str]) -> list[InventoryItemRecord]:
        """List inventory items by ID."""
        ...

    @abstractmethod
    async def list_product_variants(self, skus: Sequence[str]) -> list[ProductVariantRecord]:
        """List product variants by SKU."""
        ...


def window_bounds(window: DateRange, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Half-open instant bounds ``[start, end)`` covering every day of a window."""
    zone = tz or UTC
    start = datetime.combine(window.start, time.min, tzinfo=zone)
    end = datetime.combine(window.end + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def _customer_record(customer: Customer) -> CustomerRecord:
    return CustomerRecord(
        id=customer.id,
        first_name=customer.first_name,
        last_name=customer.last_name,
        email=customer.email,
        groups=tuple(group.name for group in customer.groups),
        order_dates=tuple(order.created_at for order in customer.orders),
    )


def _order_record(order: SalesOrder) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        total=float(order.total),
        currency_code=order.currency_code,
        status=order.status,
        created_at=order.created_at,
        region_name=order.region.name if order.region is not None else None,
        customer_id=order.customer_id,
        customer=_customer_record(order.customer) if order.customer is not None else None,
        items=tuple(
            LineItemRecord(
                variant_id=item.variant_id,
                variant_title=item.variant_title,
                product_title=item.product_title,
                quantity=item.quantity,
            )
            for item in order.items
        ),
    )


class SqlAlchemyDataSource(AnalyticsDataSource):
    """Data source backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession, tz: tzinfo | None = None) -> None:
        """Initialize the data source.

        Args:
            db: Database session (read-only use).
            tz: Reference time zone for window bounds.
        """
        self.db = db
        self.tz = tz

    async def list_orders(
        self,
        window: DateRange,
        excluded_statuses: Sequence[str],
    ) -> list[OrderRecord]:
        start, end = window_bounds(window, self.tz)
        stmt = (
            select(SalesOrder)
            .where((SalesOrder.created_at >= start) & (SalesOrder.created_at < end))
            .options(
                selectinload(SalesOrder.region),
                selectinload(SalesOrder.items),
                selectinload(SalesOrder.customer).selectinload(Customer.groups),
                selectinload(SalesOrder.customer).selectinload(Customer.orders),
            )
            .order_by(SalesOrder.created_at.asc(), SalesOrder.id.asc())
        )
        if excluded_statuses:
            stmt = stmt.where(SalesOrder.status.not_in(list(excluded_statuses)))

        try:
            result = await self.db.execute(stmt)
            orders = result.scalars().all()
        except SQLAlchemyError as e:
            raise self._unavailable("orders", e) from e

        logger.debug(
            "analytics.orders_loaded",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            count=len(orders),
        )
        return [_order_record(order) for order in orders]

    async def list_inventory_levels(self, max_stocked_quantity: int) -> list[InventoryLevelRecord]:
        stmt = select(InventoryLevel).where(InventoryLevel.stocked_quantity <= max_stocked_quantity)
        try:
            result = await self.db.execute(stmt)
            levels = result.scalars().all()
        except SQLAlchemyError as e:
            raise self._unavailable("inventory_levels", e) from e

        return [
            InventoryLevelRecord(
                inventory_item_id=level.inventory_item_id,
                stocked_quantity=level.stocked_quantity,
            )
            for level in levels
        ]

    async def list_inventory_items(self, ids: Sequence[str]) -> list[InventoryItemRecord]:
        if not ids:
            return []
        stmt = select(InventoryItem).where(InventoryItem.id.in_(list(ids)))
        try:
            result = await self.db.execute(stmt)
            items = result.scalars().all()
        except SQLAlchemyError as e:
            raise self._unavailable("inventory_items", e) from e

        return [InventoryItemRecord(id=item.id, sku=item.sku) for item in items]

    async def list_product_variants(self, skus: Sequence[str]) -> list[ProductVariantRecord]:
        if not skus:
            return []
        stmt = select(ProductVariant).where(ProductVariant.sku.in_(list(skus)))
        try:
            result = await self.db.execute(stmt)
            variants = result.scalars().all()
        except SQLAlchemyError as e:
            raise self._unavailable("product_variants", e) from e

        return [
            ProductVariantRecord(
                id=variant.id,
                product_id=variant.product_id,
                sku=variant.sku,
                title=variant.title,
            )
            for variant in variants
        ]

    @staticmethod
    def _unavailable(resource: str, error: SQLAlchemyError) -> UpstreamUnavailableError:
        logger.error(
            "analytics.data_source_failed",
            resource=resource,
            error=str(error),
            error_type=type(error).__name__,
        )
        return UpstreamUnavailableError(
            f"Failed to load {resource}",
            details={"resource": resource},
        )
