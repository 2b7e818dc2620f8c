"""Product and inventory aggregation: best-selling variants and low stock."""

from __future__ import annotations

from collections.abc import Sequence

from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.records import (
    InventoryItemRecord,
    InventoryLevelRecord,
    OrderRecord,
    ProductVariantRecord,
)
from commerce_insights.features.analytics.schemas import (
    LowStockVariant,
    ProductAnalytics,
    VariantQuantity,
)

logger = get_logger(__name__)

PRODUCT_EXCLUDED_STATUSES: tuple[str, ...] = ("draft",)


def variant_quantities(orders: Sequence[OrderRecord], limit: int | None = 10) -> list[VariantQuantity]:
    """Units sold per variant, highest first.

    Line items without a variant are skipped. Ties keep first-seen order.

    Args:
        orders: Orders whose line items are counted.
        limit: Number of variants kept (None keeps all).

    Returns:
        Ranked variant quantities.
    """
    titles: dict[str, str] = {}
    quantities: dict[str, int] = {}

    for order in orders:
        for item in order.items:
            if not item.variant_id:
                continue
            if item.variant_id not in quantities:
                titles[item.variant_id] = f"{item.product_title} {item.variant_title}"
                quantities[item.variant_id] = 0
            quantities[item.variant_id] += item.quantity

    ranked = sorted(quantities.items(), key=lambda entry: entry[1], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [
        VariantQuantity(variant_id=variant_id, title=titles[variant_id], quantity=quantity)
        for variant_id, quantity in ranked
    ]


def low_stock_variants(
    inventory_levels: Sequence[InventoryLevelRecord],
    inventory_items: Sequence[InventoryItemRecord],
    product_variants: Sequence[ProductVariantRecord],
    threshold: int,
) -> list[LowStockVariant]:
    """Join low inventory levels to variants through the item SKU.

    Levels above ``threshold`` are ignored. Levels whose item or SKU cannot be
    matched to a variant are dropped.
    """
    sku_by_item_id = {item.id: item.sku for item in inventory_items if item.sku}
    variant_by_sku = {variant.sku: variant for variant in product_variants if variant.sku}

    result: list[LowStockVariant] = []
    for level in inventory_levels:
        if level.stocked_quantity > threshold:
            continue
        sku = sku_by_item_id.get(level.inventory_item_id)
        variant = variant_by_sku.get(sku) if sku else None
        if sku is None or variant is None:
            continue
        result.append(
            LowStockVariant(
                sku=sku,
                variant_name=variant.title,
                variant_id=variant.id,
                product_id=variant.product_id,
                inventory_quantity=level.stocked_quantity,
            )
        )
    return result


def aggregate_products(
    orders: Sequence[OrderRecord],
    inventory_levels: Sequence[InventoryLevelRecord],
    inventory_items: Sequence[InventoryItemRecord],
    product_variants: Sequence[ProductVariantRecord],
    threshold: int = 5,
    limit: int = 10,
) -> ProductAnalytics:
    """Build product analytics for a window.

    Args:
        orders: Orders inside the window, with line items.
        inventory_levels: Inventory levels (may include levels above threshold).
        inventory_items: Items referenced by the levels.
        product_variants: Variants matching the items' SKUs.
        threshold: Low-stock threshold (inclusive).
        limit: Number of best-selling variants kept.

    Returns:
        Low-stock variants and top variants by quantity sold.
    """
    sold = variant_quantities(orders, limit)
    low_stock = low_stock_variants(inventory_levels, inventory_items, product_variants, threshold)

    logger.debug(
        "analytics.products_aggregated",
        orders=len(orders),
        variants_sold=len(sold),
        low_stock=len(low_stock),
        threshold=threshold,
    )

    return ProductAnalytics(low_stock_variants=low_stock, variant_quantity_sold=sold)
