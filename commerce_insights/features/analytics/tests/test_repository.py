"""Tests for the SQLAlchemy data source."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from commerce_insights.core.exceptions import UpstreamUnavailableError
from commerce_insights.features.analytics import repository
from commerce_insights.features.analytics.bucketing import DateRange
from commerce_insights.features.analytics.models import (
    Customer,
    CustomerGroup,
    InventoryItem,
    InventoryLevel,
    OrderLineItem,
    Product,
    ProductVariant,
    Region,
    SalesOrder,
)
from commerce_insights.features.analytics.records import LineItemRecord
from commerce_insights.features.analytics.repository import (
    SqlAlchemyDataSource,
    _order_record,
    window_bounds,
)

JUNE_2024 = DateRange(date(2024, 6, 1), date(2024, 6, 30))


class _FailingSession:
    """Session whose every statement fails like a dropped connection."""

    def __init__(self) -> None:
        self.statements = 0

    async def execute(self, statement):
        self.statements += 1
        raise OperationalError("SELECT", {}, Exception("connection refused"))


class TestWindowBounds:
    def test_utc(self):
        start, end = window_bounds(JUNE_2024)

        assert start == datetime(2024, 6, 1, tzinfo=UTC)
        assert end == datetime(2024, 7, 1, tzinfo=UTC)

    def test_reference_zone(self):
        """Bounds are local midnights, the end exclusive."""
        berlin = ZoneInfo("Europe/Berlin")

        start, end = window_bounds(DateRange(date(2024, 6, 1), date(2024, 6, 1)), berlin)

        assert start == datetime(2024, 5, 31, 22, tzinfo=UTC)
        assert end == datetime(2024, 6, 1, 22, tzinfo=UTC)


class TestOrderRecord:
    """Tests for mapping ORM rows to records."""

    def test_full_order(self):
        created = datetime(2024, 6, 3, 10, tzinfo=UTC)
        customer = Customer(
            id="cus_1",
            first_name="Anna",
            last_name="Berg",
            email="anna@example.com",
            groups=[CustomerGroup(id="grp_1", name="VIP")],
        )
        order = SalesOrder(
            id="ord_1",
            status="completed",
            currency_code="EUR",
            total=Decimal("100.5000"),
            created_at=created,
            region=Region(id="reg_1", name="Europe", currency_code="EUR"),
            customer=customer,
            items=[
                OrderLineItem(
                    id="item_1",
                    variant_id="var_1",
                    product_title="Shirt",
                    variant_title="M",
                    quantity=2,
                )
            ],
        )

        record = _order_record(order)

        assert record.id == "ord_1"
        assert record.total == 100.5
        assert record.region_name == "Europe"
        assert record.created_at == created
        assert record.items == (LineItemRecord("var_1", "M", "Shirt", 2),)
        assert record.customer is not None
        assert record.customer.groups == ("VIP",)
        assert record.customer.order_dates == (created,)

    def test_guest_order_without_region(self):
        order = SalesOrder(
            id="ord_2",
            status="pending",
            currency_code="DKK",
            total=Decimal("75"),
            created_at=datetime(2024, 6, 5, tzinfo=UTC),
        )

        record = _order_record(order)

        assert record.region_name is None
        assert record.customer is None
        assert record.customer_id is None
        assert record.items == ()


@pytest.mark.asyncio
class TestFailures:
    """Database failures surface as an unavailable upstream."""

    async def test_orders(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(repository, "logger", logger)
        source = SqlAlchemyDataSource(_FailingSession())  # type: ignore[arg-type]

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await source.list_orders(JUNE_2024, ("draft",))

        assert exc_info.value.details == {"resource": "orders"}
        assert logger.error.call_args.args == ("analytics.data_source_failed",)
        assert logger.error.call_args.kwargs["error_type"] == "OperationalError"

    async def test_inventory_levels(self):
        source = SqlAlchemyDataSource(_FailingSession())  # type: ignore[arg-type]

        with pytest.raises(UpstreamUnavailableError):
            await source.list_inventory_levels(5)

    async def test_empty_lookups_skip_the_database(self):
        session = _FailingSession()
        source = SqlAlchemyDataSource(session)  # type: ignore[arg-type]

        assert await source.list_inventory_items([]) == []
        assert await source.list_product_variants([]) == []
        assert session.statements == 0


@pytest.mark.integration
class TestSqlAlchemyDataSource:
    """Integration tests against PostgreSQL."""

    @pytest.fixture
    async def store(self, db_session: AsyncSession) -> AsyncSession:
        europe = Region(id="reg_eu", name="Europe", currency_code="EUR")
        vip = CustomerGroup(id="grp_vip", name="VIP")
        anna = Customer(id="cus_anna", first_name="Anna", last_name="Berg", groups=[vip])
        shirt = Product(id="prod_shirt", title="Shirt")
        variant = ProductVariant(id="var_1", product=shirt, title="M", sku="SHIRT-M")
        item = InventoryItem(id="iitem_1", sku="SHIRT-M")

        db_session.add_all(
            [
                europe,
                vip,
                anna,
                shirt,
                variant,
                item,
                InventoryLevel(
                    id="lvl_1", inventory_item=item, location_id="loc_1", stocked_quantity=2
                ),
                SalesOrder(
                    id="ord_may",
                    status="completed",
                    currency_code="EUR",
                    total=Decimal("40"),
                    created_at=datetime(2024, 5, 20, 9, tzinfo=UTC),
                    region=europe,
                    customer=anna,
                ),
                SalesOrder(
                    id="ord_june",
                    status="completed",
                    currency_code="EUR",
                    total=Decimal("100"),
                    created_at=datetime(2024, 6, 30, 23, 30, tzinfo=UTC),
                    region=europe,
                    customer=anna,
                    items=[
                        OrderLineItem(
                            id="li_1",
                            variant_id="var_1",
                            product_title="Shirt",
                            variant_title="M",
                            quantity=2,
                        )
                    ],
                ),
                SalesOrder(
                    id="ord_draft",
                    status="draft",
                    currency_code="EUR",
                    total=Decimal("999"),
                    created_at=datetime(2024, 6, 12, tzinfo=UTC),
                ),
            ]
        )
        await db_session.flush()
        return db_session

    async def test_list_orders(self, store):
        source = SqlAlchemyDataSource(store)

        orders = await source.list_orders(JUNE_2024, ("draft",))

        assert [order.id for order in orders] == ["ord_june"]
        order = orders[0]
        assert order.total == 100.0
        assert order.region_name == "Europe"
        assert order.items == (LineItemRecord("var_1", "M", "Shirt", 2),)
        assert order.customer is not None
        assert order.customer.groups == ("VIP",)
        assert len(order.customer.order_dates) == 2

    async def test_list_orders_in_reference_zone(self, store):
        """23:30 UTC on June 30 is July 1 in Berlin."""
        source = SqlAlchemyDataSource(store, tz=ZoneInfo("Europe/Berlin"))

        orders = await source.list_orders(JUNE_2024, ("draft",))

        assert orders == []

    async def test_inventory_join(self, store):
        source = SqlAlchemyDataSource(store)

        levels = await source.list_inventory_levels(5)
        items = await source.list_inventory_items([level.inventory_item_id for level in levels])
        variants = await source.list_product_variants([item.sku for item in items if item.sku])

        assert [level.inventory_item_id for level in levels] == ["iitem_1"]
        assert [item.sku for item in items] == ["SHIRT-M"]
        assert [(v.id, v.product_id, v.title) for v in variants] == [("var_1", "prod_shirt", "M")]
