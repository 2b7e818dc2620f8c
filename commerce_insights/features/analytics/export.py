"""CSV and ZIP rendering of analytics for download.

Exports are built from the same aggregates the JSON endpoints return, so the
numbers in a download always match the dashboard.
"""

from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass
from datetime import date

from commerce_insights.features.analytics.schemas import OrderAnalytics, VariantQuantity

ZIP_MEDIA_TYPE = "application/zip"
CSV_MEDIA_TYPE = "text/csv"


@dataclass(frozen=True)
class ExportFile:
    """A rendered download.

    Attributes:
        filename: Suggested file name for Content-Disposition.
        media_type: MIME type of ``content``.
        content: File bytes.
    """

    filename: str
    media_type: str
    content: bytes

    @property
    def content_disposition(self) -> str:
        return f"attachment; filename={self.filename}"


def _render_csv(header: list[str], rows: list[list[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def order_csv_files(analytics: OrderAnalytics) -> dict[str, str]:
    """Render each order series and grouping as its own CSV document.

    Returns:
        Mapping of archive member name to CSV text.
    """
    currency = analytics.currency_code
    return {
        "sales_over_time.csv": _render_csv(
            ["Date", f"Sales ({currency})"],
            [[point.name, f"{point.sales:.2f}"] for point in analytics.order_sales],
        ),
        "order_counts.csv": _render_csv(
            ["Date", "Order Count"],
            [[point.name, point.count] for point in analytics.order_count],
        ),
        "regions.csv": _render_csv(
            ["Region", f"Sales ({currency})"],
            [[region.name, f"{region.sales:.2f}"] for region in analytics.regions],
        ),
        "statuses.csv": _render_csv(
            ["Status", "Count"],
            [[status.name, status.count] for status in analytics.statuses],
        ),
    }


def export_orders_zip(analytics: OrderAnalytics, date_from: date, date_to: date) -> ExportFile:
    """Bundle the order CSVs into a ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for name, text in order_csv_files(analytics).items():
            zf.writestr(name, text)

    return ExportFile(
        filename=f"analytics_{date_from.isoformat()}_{date_to.isoformat()}.zip",
        media_type=ZIP_MEDIA_TYPE,
        content=buffer.getvalue(),
    )


def export_variant_sales_csv(
    variants: list[VariantQuantity],
    date_from: date,
    date_to: date,
) -> ExportFile:
    """Render units sold per variant; titles are always quoted."""
    buffer = io.StringIO()
    buffer.write("Variant,Quantity Sold\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerows([variant.title, variant.quantity] for variant in variants)

    return ExportFile(
        filename=f"variant_sales_{date_from.isoformat()}_{date_to.isoformat()}.csv",
        media_type=CSV_MEDIA_TYPE,
        content=buffer.getvalue().encode("utf-8"),
    )
