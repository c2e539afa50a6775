"""
Report Engine — profit analysis Excel workbook.

Sheets:
  - Xulosa              summary figures and the filters the report was built with
  - Mahsulotlar tahlili per-item theoretical/actual profit (profit cells green/red)
  - Kategoriyalar       profit rolled up per category

The workbook is built in memory and returned as bytes for a streaming
download response.
"""
import io
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.config import PAYMENT_STATUS_LABELS, STATUS_LABELS
from app.services.currency import format_currency
from app.services.profit_engine import (
    ProfitSummary,
    actual_cost,
    actual_revenue,
    profit_by_category,
    revenue_margin,
    theoretical_profit,
    to_date,
)

logger = logging.getLogger("jeweler-api.report")

_PLACEHOLDER = "—"

_ITEM_COLUMNS = [
    ("№", 5),
    ("Model", 15),
    ("Kategoriya", 12),
    ("Ta'minotchi", 15),
    ("Og'irlik (g)", 10),
    ("Lom narxi (so'm/g)", 15),
    ("Lom narxi kirim (so'm/g)", 18),
    ("To'langan narx (so'm/g)", 15),
    ("Ishchi haqi (so'm/g)", 15),
    ("Sotuv narxi (so'm/g)", 15),
    ("Nazariy foyda (so'm)", 15),
    ("Haqiqiy foyda (so'm)", 15),
    ("Foyda marjasi (%)", 12),
    ("Daromad (so'm)", 15),
    ("Xarajat (so'm)", 15),
    ("Mahsulot holati", 15),
    ("To'lov holati", 15),
    ("Sotib olingan sana", 15),
    ("To'lov sanasi", 15),
    ("Sotilgan sana", 15),
    ("Filial", 15),
    ("Izohlar", 20),
]
_ACTUAL_PROFIT_COL = 11


def _fmt_date(value) -> str:
    parsed = to_date(value)
    return parsed.strftime("%d/%m/%Y") if parsed else _PLACEHOLDER


class ProfitReportBuilder:

    def __init__(self, company_name: str = "Zargarlik boshqaruvi"):
        self.company_name = company_name

    def build(
        self,
        items: Iterable[Mapping[str, Any]],
        summary: ProfitSummary,
        filters: Optional[Dict[str, Any]] = None,
        generated_at: Optional[datetime] = None,
    ) -> bytes:
        import xlsxwriter

        items = list(items)
        filters = filters or {}
        generated_at = generated_at or datetime.now()

        buf = io.BytesIO()
        wb = xlsxwriter.Workbook(buf, {"in_memory": True})

        # Formats
        self._hdr = wb.add_format({"bold": True, "bg_color": "#14141E", "font_color": "#FFFFFF",
                                   "border": 1, "font_size": 10})
        self._money = wb.add_format({"num_format": "#,##0", "border": 1})
        self._pct = wb.add_format({"num_format": "0.00", "border": 1})
        self._normal = wb.add_format({"border": 1, "font_size": 9})
        self._title = wb.add_format({"bold": True, "font_size": 14, "font_color": "#14141E"})
        self._gain = wb.add_format({"num_format": "#,##0", "border": 1, "bg_color": "#90EE90"})
        self._loss = wb.add_format({"num_format": "#,##0", "border": 1, "bg_color": "#FFB6C1"})

        self._write_summary(wb, summary, filters, generated_at)
        self._write_items(wb, items)
        self._write_categories(wb, items)

        wb.close()
        logger.info(f"Profit report generated: {len(items)} items")
        return buf.getvalue()

    # ── Sheet 1: Summary ─────────────────────────────────────────────────────

    def _write_summary(self, wb, summary: ProfitSummary, filters: Dict[str, Any],
                       generated_at: datetime) -> None:
        ws = wb.add_worksheet("Xulosa")
        ws.set_column("A:A", 25)
        ws.set_column("B:B", 20)
        ws.write("A1", "Foyda tahlili xulosasi", self._title)
        ws.write("A2", self.company_name, self._normal)

        rows = [
            ("Jami mahsulotlar", summary.item_count),
            ("Nazariy foyda", format_currency(summary.supposed_profit)),
            ("Haqiqiy foyda", format_currency(summary.actual_profit)),
            ("Jami daromad", format_currency(summary.total_revenue)),
            ("Jami xarajat", format_currency(summary.total_cost)),
            ("Foyda marjasi (%)", f"{summary.profit_margin:.2f}"),
            ("O'rtacha foyda", format_currency(summary.average_profit)),
            ("Narx farqi ta'siri", format_currency(summary.price_difference_impact)),
        ]
        ws.write_row(3, 0, ["Umumiy ko'rsatkichlar", ""], self._hdr)
        for i, (label, val) in enumerate(rows):
            ws.write(4 + i, 0, label, self._normal)
            ws.write(4 + i, 1, val, self._normal)

        start = 5 + len(rows)
        filter_rows = [
            ("Vaqt oralig'i", filters.get("time_period") or "Belgilanmagan"),
            ("Filial", filters.get("branch") or "Barchasi"),
            ("Kategoriya", filters.get("category") or "Barchasi"),
            ("To'lov holati", filters.get("payment_status") or "Barchasi"),
        ]
        ws.write_row(start, 0, ["Filtrlar", ""], self._hdr)
        for i, (label, val) in enumerate(filter_rows):
            ws.write(start + 1 + i, 0, label, self._normal)
            ws.write(start + 1 + i, 1, val, self._normal)

        ws.write(start + 2 + len(filter_rows), 0, "Eksport sanasi", self._normal)
        ws.write(start + 2 + len(filter_rows), 1, generated_at.strftime("%d/%m/%Y %H:%M"), self._normal)

    # ── Sheet 2: Items ───────────────────────────────────────────────────────

    def _write_items(self, wb, items: List[Mapping[str, Any]]) -> None:
        ws = wb.add_worksheet("Mahsulotlar tahlili")
        for col, (title, width) in enumerate(_ITEM_COLUMNS):
            ws.set_column(col, col, width)
        ws.write_row(0, 0, [title for title, _ in _ITEM_COLUMNS], self._hdr)

        for i, item in enumerate(items):
            revenue = actual_revenue(item)
            cost = actual_cost(item)
            profit = revenue - cost
            row = i + 1
            status = item.get("status", "")

            ws.write(row, 0, i + 1, self._normal)
            ws.write(row, 1, item.get("model", ""), self._normal)
            ws.write(row, 2, item.get("category", ""), self._normal)
            ws.write(row, 3, item.get("supplier_name") or _PLACEHOLDER, self._normal)
            ws.write(row, 4, item["weight"], self._normal)
            ws.write(row, 5, item["lom_narxi"], self._money)
            ws.write(row, 6, item["lom_narxi_kirim"], self._money)
            ws.write(row, 7, item.get("payed_lom_narxi") or _PLACEHOLDER, self._money)
            ws.write(row, 8, item["labor_cost"], self._money)
            ws.write(row, 9, item.get("selling_price") or 0, self._money)
            ws.write(row, 10, theoretical_profit(item), self._money)
            ws.write(row, _ACTUAL_PROFIT_COL, profit, self._profit_format(profit))
            ws.write(row, 12, round(revenue_margin(profit, revenue), 2), self._pct)
            ws.write(row, 13, revenue, self._money)
            ws.write(row, 14, cost, self._money)
            ws.write(row, 15, STATUS_LABELS.get(status, status), self._normal)
            ws.write(row, 16, PAYMENT_STATUS_LABELS.get(item.get("payment_status"), PAYMENT_STATUS_LABELS["partially_paid"]), self._normal)
            ws.write(row, 17, _fmt_date(item.get("purchase_date")), self._normal)
            ws.write(row, 18, _fmt_date(item.get("payment_date")), self._normal)
            ws.write(row, 19, _fmt_date(item.get("sold_date")), self._normal)
            ws.write(row, 20, item.get("branch") or _PLACEHOLDER, self._normal)
            ws.write(row, 21, item.get("notes") or _PLACEHOLDER, self._normal)

    def _profit_format(self, profit: float):
        if profit > 0:
            return self._gain
        if profit < 0:
            return self._loss
        return self._money

    # ── Sheet 3: Categories ──────────────────────────────────────────────────

    def _write_categories(self, wb, items: List[Mapping[str, Any]]) -> None:
        ws = wb.add_worksheet("Kategoriyalar")
        ws.set_column("A:A", 5)
        ws.set_column("B:H", 18)
        ws.write_row(0, 0, [
            "№", "Kategoriya", "Mahsulotlar soni", "Jami og'irlik (g)",
            "Nazariy foyda (so'm)", "Haqiqiy foyda (so'm)", "Jami daromad (so'm)",
            "Foyda marjasi (%)",
        ], self._hdr)

        for i, (category, data) in enumerate(profit_by_category(items).items()):
            row = i + 1
            ws.write(row, 0, row, self._normal)
            ws.write(row, 1, category, self._normal)
            ws.write(row, 2, data["count"], self._normal)
            ws.write(row, 3, round(data["total_weight"], 2), self._normal)
            ws.write(row, 4, data["supposed_profit"], self._money)
            ws.write(row, 5, data["actual_profit"], self._profit_format(data["actual_profit"]))
            ws.write(row, 6, data["total_revenue"], self._money)
            ws.write(row, 7, round(data["profit_margin"], 2), self._pct)
