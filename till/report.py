"""End-of-day summary and its PDF rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING

from till.config import REPORT_DIR, SHOP_TITLE
from till.errors import ReportFailure
from till.inventory import UsageRow
from till.models import DayMeta, Expense, Order
from till.orders import SalesFrequency, SortKey, Totals

if TYPE_CHECKING:
    from till.expenses import ExpenseBook
    from till.inventory import InventoryLedger
    from till.orders import OrderLedger
    from till.settings import ShopSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineEntry:
    event: str
    at: datetime | None
    actors: str


@dataclass(frozen=True)
class DaySummary:
    """Everything the day report shows, captured before the day is reset."""

    meta: DayMeta
    timeline: list[TimelineEntry]
    orders: list[Order]
    totals: Totals
    sales: SalesFrequency
    inventory_rows: list[UsageRow]
    expenses: list[Expense]
    generated_at: datetime | None = None

    @property
    def is_day_end(self) -> bool:
        return self.meta.ended_at is not None


def shift_timeline(meta: DayMeta) -> list[TimelineEntry]:
    entries = [TimelineEntry("Started", meta.started_at, meta.started_by or "-")]
    for idx, change in enumerate(meta.shift_changes, start=1):
        entries.append(TimelineEntry(f"Changed #{idx}", change.at, f"{change.from_worker} -> {change.to_worker}"))
    if meta.ended_at is not None:
        entries.append(TimelineEntry("Day Ended", meta.ended_at, meta.ended_by or "-"))
    return entries


def build_day_summary(
    meta: DayMeta,
    *,
    orders: OrderLedger,
    inventory: InventoryLedger,
    expenses: ExpenseBook,
    settings: ShopSettings,
    generated_at: datetime | None = None,
) -> DaySummary:
    return DaySummary(
        meta=meta,
        timeline=shift_timeline(meta),
        orders=orders.sorted_orders(SortKey.DATE_DESC),
        totals=orders.totals(
            payment_methods=settings.payment_methods,
            order_types=settings.order_types,
            expenses=expenses.expenses,
        ),
        sales=orders.sales_frequency(),
        inventory_rows=inventory.usage_rows(),
        expenses=list(expenses.expenses),
        generated_at=generated_at,
    )


def _when(value: datetime | None) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M") if value else "-"


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def totals_rows(totals: Totals) -> list[list[str]]:
    rows = [
        ["Revenue (excl. delivery)", _money(totals.revenue_total)],
        ["Delivery fees (not in revenue)", _money(totals.delivery_fees_total)],
        ["Expenses", _money(totals.expenses_total)],
        ["Margin (revenue - expenses)", _money(totals.margin)],
    ]
    rows.extend([f"By payment: {method}", _money(amount)] for method, amount in totals.by_payment.items())
    rows.extend([f"By order type: {kind}", _money(amount)] for kind, amount in totals.by_order_type.items())
    return rows


class PdfReportGenerator:
    """Writes a DaySummary as a PDF with reportlab tables."""

    def __init__(self, output_dir: str | Path = REPORT_DIR) -> None:
        self.output_dir = Path(output_dir)

    def report_path(self, summary: DaySummary) -> Path:
        if not summary.is_day_end and summary.generated_at is not None:
            return self.output_dir / f"shift_report_{summary.generated_at.strftime('%Y%m%d_%H%M%S')}.pdf"
        started = summary.meta.started_at or summary.meta.ended_at
        stamp = started.strftime("%Y%m%d_%H%M%S") if started else "undated"
        return self.output_dir / f"day_report_{stamp}.pdf"

    def __call__(self, summary: DaySummary) -> Path:
        try:
            return self._write(summary)
        except ReportFailure:
            raise
        except Exception as exc:
            logger.error("day report failed: %s", exc)
            raise ReportFailure(f"Could not generate the day report: {exc}") from exc

    def _write(self, summary: DaySummary) -> Path:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.lib.units import cm
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

        path = self.report_path(summary)
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = SimpleDocTemplate(
            str(path),
            pagesize=A4,
            leftMargin=1.5 * cm,
            rightMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            title=f"{SHOP_TITLE} day report",
        )
        styles = getSampleStyleSheet()
        grid = TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#eeeeee")),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
            ]
        )

        def section(title: str, head: list[str], body: list[list[str]]) -> list:
            table = Table([head, *body] if body else [head, ["-"] * len(head)], repeatRows=1)
            table.setStyle(grid)
            return [Paragraph(title, styles["Heading3"]), table, Spacer(1, 0.4 * cm)]

        meta = summary.meta
        heading = "Day Report" if summary.is_day_end else "Shift Report"
        story: list = [Paragraph(f"{SHOP_TITLE} - {heading}", styles["Title"])]
        story += section("Shift", ["Start By", "Start At", "End At"], [[meta.started_by or "-", _when(meta.started_at), _when(meta.ended_at)]])
        story += section(
            "Shift Timeline",
            ["Event", "When", "Actor(s)"],
            [[entry.event, _when(entry.at), entry.actors] for entry in summary.timeline],
        )
        story += section(
            "Orders",
            ["#", "Date", "Worker", "Payment", "Type", "Delivery", "Total", "State"],
            [
                [
                    str(order.order_no),
                    _when(order.date),
                    order.worker,
                    order.payment,
                    order.order_type,
                    _money(order.delivery_fee),
                    _money(order.total),
                    order.state.value,
                ]
                for order in summary.orders
            ],
        )
        story += section("Totals (excluding voided)", ["Metric", "Amount"], totals_rows(summary.totals))
        story += section(
            "Items - Times Ordered",
            ["Item", "Times", "Revenue"],
            [[row.name, str(row.count), _money(row.revenue)] for row in summary.sales.items],
        )
        story += section(
            "Extras - Times Ordered",
            ["Extra", "Times", "Revenue"],
            [[row.name, str(row.count), _money(row.revenue)] for row in summary.sales.extras],
        )
        if summary.inventory_rows:
            story += section(
                "Inventory - Start vs Now",
                ["Item", "Unit", "Start", "Now", "Used"],
                [[row.name, row.unit, str(row.start), str(row.now), str(row.used)] for row in summary.inventory_rows],
            )
        else:
            story += section("Inventory - Start vs Now", ["Info"], [["No inventory snapshot. Lock inventory to capture start-of-day."]])
        story += section(
            "Expenses",
            ["Name", "Unit", "Qty", "Unit Price", "Total", "Date", "Note"],
            [
                [e.name, e.unit, str(e.qty), _money(e.unit_price), _money(e.total), _when(e.date), e.note]
                for e in summary.expenses
            ],
        )
        doc.build(story)
        logger.info("day report written path=%s", path)
        return path
