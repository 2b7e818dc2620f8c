"""Test fixtures for analytics module.

The sample store has three June 2024 orders that count (plus a draft that
never does) and one May order in the comparison window:

    ord_0  2024-05-20  40 EUR  completed  Europe       Anna (VIP)
    ord_1  2024-06-03  100 EUR completed  Europe       Anna (VIP)
    ord_2  2024-06-05  75 DKK  pending    Scandinavia  Ben
    ord_3  2024-06-10  50 EUR  canceled   Europe       Ben
    ord_4  2024-06-12  999 EUR draft      Europe       -

With DKK at 7.5 per EUR, ord_2 is worth exactly 10 EUR.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from commerce_insights.core.config import get_settings
from commerce_insights.core.database import Base
from commerce_insights.features.analytics.bucketing import DateRange, to_local_date
from commerce_insights.features.analytics.currency import ExchangeRateTable
from commerce_insights.features.analytics.rates import StaticRateProvider
from commerce_insights.features.analytics.records import (
    CustomerRecord,
    InventoryItemRecord,
    InventoryLevelRecord,
    LineItemRecord,
    OrderRecord,
    ProductVariantRecord,
)
from commerce_insights.features.analytics.repository import AnalyticsDataSource
from commerce_insights.features.analytics.routes import get_data_source, get_rate_provider
from commerce_insights.features.analytics.schemas import AnalyticsOptions
from commerce_insights.features.analytics.service import AnalyticsService
from commerce_insights.main import app

SAMPLE_RATES = {"DKK": 7.5, "USD": 1.25}


class InMemoryDataSource(AnalyticsDataSource):
    """Data source over lists of records, filtering like the SQL one."""

    def __init__(
        self,
        orders: Sequence[OrderRecord] = (),
        inventory_levels: Sequence[InventoryLevelRecord] = (),
        inventory_items: Sequence[InventoryItemRecord] = (),
        product_variants: Sequence[ProductVariantRecord] = (),
        tz: tzinfo | None = None,
    ) -> None:
        self.orders = list(orders)
        self.inventory_levels = list(inventory_levels)
        self.inventory_items = list(inventory_items)
        self.product_variants = list(product_variants)
        self.tz = tz
        self.order_queries: list[tuple[DateRange, tuple[str, ...]]] = []

    async def list_orders(
        self,
        window: DateRange,
        excluded_statuses: Sequence[str],
    ) -> list[OrderRecord]:
        self.order_queries.append((window, tuple(excluded_statuses)))
        selected = [
            order
            for order in self.orders
            if order.status not in excluded_statuses
            and to_local_date(order.created_at, self.tz) in window
        ]
        return sorted(selected, key=lambda order: order.created_at)

    async def list_inventory_levels(self, max_stocked_quantity: int) -> list[InventoryLevelRecord]:
        return [
            level
            for level in self.inventory_levels
            if level.stocked_quantity <= max_stocked_quantity
        ]

    async def list_inventory_items(self, ids: Sequence[str]) -> list[InventoryItemRecord]:
        return [item for item in self.inventory_items if item.id in ids]

    async def list_product_variants(self, skus: Sequence[str]) -> list[ProductVariantRecord]:
        return [variant for variant in self.product_variants if variant.sku in skus]


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=UTC)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings so env changes in one test do not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def rate_table() -> ExchangeRateTable:
    """EUR-based rate table."""
    return ExchangeRateTable(base="EUR", rates=dict(SAMPLE_RATES))


@pytest.fixture
def anna() -> CustomerRecord:
    """VIP customer with an order before June (returning in June)."""
    return CustomerRecord(
        id="cus_anna",
        first_name="Anna",
        last_name="Berg",
        email="anna@example.com",
        groups=("VIP",),
        order_dates=(utc(2024, 5, 20, 9), utc(2024, 6, 3, 10)),
    )


@pytest.fixture
def ben() -> CustomerRecord:
    """Customer without groups whose whole history is in June (new in June)."""
    return CustomerRecord(
        id="cus_ben",
        first_name="Ben",
        last_name="Ortiz",
        email="ben@example.com",
        order_dates=(utc(2024, 6, 5), utc(2024, 6, 10, 8)),
    )


@pytest.fixture
def sample_orders(anna: CustomerRecord, ben: CustomerRecord) -> list[OrderRecord]:
    """Orders of the sample store, May and June 2024."""
    shirt_m = LineItemRecord(variant_id="var_1", variant_title="M", product_title="Shirt", quantity=2)
    return [
        OrderRecord(
            id="ord_0",
            total=40.0,
            currency_code="eur",
            status="completed",
            created_at=utc(2024, 5, 20, 9),
            region_name="Europe",
            customer_id=anna.id,
            customer=anna,
            items=(LineItemRecord("var_1", "M", "Shirt", 1),),
        ),
        OrderRecord(
            id="ord_1",
            total=100.0,
            currency_code="eur",
            status="completed",
            created_at=utc(2024, 6, 3, 10),
            region_name="Europe",
            customer_id=anna.id,
            customer=anna,
            items=(shirt_m,),
        ),
        OrderRecord(
            id="ord_2",
            total=75.0,
            currency_code="dkk",
            status="pending",
            created_at=utc(2024, 6, 5),
            region_name="Scandinavia",
            customer_id=ben.id,
            customer=ben,
            items=(
                LineItemRecord("var_2", "L", "Shirt", 1),
                LineItemRecord("var_1", "M", "Shirt", 1),
                LineItemRecord(None, "Gift wrap", "Service", 1),
            ),
        ),
        OrderRecord(
            id="ord_3",
            total=50.0,
            currency_code="EUR",
            status="canceled",
            created_at=utc(2024, 6, 10, 8),
            region_name="Europe",
            customer_id=ben.id,
            customer=ben,
            items=(LineItemRecord("var_3", "One Size", "Cap", 5),),
        ),
        OrderRecord(
            id="ord_4",
            total=999.0,
            currency_code="EUR",
            status="draft",
            created_at=utc(2024, 6, 12),
            region_name="Europe",
            items=(LineItemRecord("var_3", "One Size", "Cap", 50),),
        ),
    ]


@pytest.fixture
def inventory() -> tuple[
    list[InventoryLevelRecord], list[InventoryItemRecord], list[ProductVariantRecord]
]:
    """Inventory levels, items and variants; SHIRT-M and CAP-OS are low on stock."""
    levels = [
        InventoryLevelRecord("iitem_1", 2),
        InventoryLevelRecord("iitem_2", 8),
        InventoryLevelRecord("iitem_3", 5),
        InventoryLevelRecord("iitem_4", 1),
    ]
    items = [
        InventoryItemRecord("iitem_1", "SHIRT-M"),
        InventoryItemRecord("iitem_2", "SHIRT-L"),
        InventoryItemRecord("iitem_3", "CAP-OS"),
        InventoryItemRecord("iitem_4", None),
    ]
    variants = [
        ProductVariantRecord("var_1", "prod_shirt", "SHIRT-M", "M"),
        ProductVariantRecord("var_2", "prod_shirt", "SHIRT-L", "L"),
        ProductVariantRecord("var_3", "prod_cap", "CAP-OS", "One Size"),
    ]
    return levels, items, variants


@pytest.fixture
def data_source(sample_orders, inventory) -> InMemoryDataSource:
    """In-memory data source over the sample store."""
    levels, items, variants = inventory
    return InMemoryDataSource(sample_orders, levels, items, variants)


@pytest.fixture
def rate_provider() -> StaticRateProvider:
    return StaticRateProvider(SAMPLE_RATES)


@pytest.fixture
def analytics_service(data_source, rate_provider) -> AnalyticsService:
    """Service over the sample store with default options."""
    return AnalyticsService(data_source, rate_provider, AnalyticsOptions())


@pytest.fixture
async def client(data_source, rate_provider):
    """HTTP client with the data source and rate provider overridden."""
    app.dependency_overrides[get_data_source] = lambda: data_source
    app.dependency_overrides[get_rate_provider] = lambda: rate_provider
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_data_source, None)
        app.dependency_overrides.pop(get_rate_provider, None)


@pytest.fixture
async def db_session():
    """Async session over freshly created read-model tables.

    Requires PostgreSQL to be running (docker-compose up -d). Tables are
    dropped again after the test.
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
