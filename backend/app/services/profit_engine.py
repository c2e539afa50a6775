"""
Profit analysis engine — theoretical vs actual profit over inventory items.

Two profit figures are kept separate because they use different
cost bases:

  theoretical ("supposed") profit
      (lom_narxi_kirim − lom_narxi) × weight
      the transfer margin the central stock books when material moves to a
      branch; ignores labour and the selling price.

  actual profit
      revenue − cost, where
        cost    = weight × (payed_lom_narxi or lom_narxi) + weight × labor_cost
        revenue = selling_price × weight for sold items, 0 otherwise
      uses the price actually paid to the supplier when one is recorded.

Margins in this module are relative to revenue, unlike the pricing engine
whose margins are relative to cost.

Price difference is ``payed_lom_narxi − lom_narxi`` per gram: negative when
the supplier was paid below the recorded price.

Items are plain mappings with snake_case keys (see InventoryItem).
"""

import calendar
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app.config import GOOD_MARGIN_PCT, LOW_MARGIN_PCT, TIME_PERIODS
from app.services.currency import format_currency
from app.services.perf_monitor import timed

logger = logging.getLogger("jeweler-api.profit")

Item = Mapping[str, Any]
DateLike = Union[None, str, date, datetime]

UNASSIGNED_BRANCH = "—"

_SORT_FIELDS = {
    "model",
    "category",
    "supposed_profit",
    "actual_profit",
    "profit_margin",
    "payment_date",
}


# ---------------------------------------------------------------------------
# Per-item formulas
# ---------------------------------------------------------------------------

def theoretical_profit(item: Item) -> float:
    return (item["lom_narxi_kirim"] - item["lom_narxi"]) * item["weight"]


def actual_cost(item: Item) -> float:
    material_price = item.get("payed_lom_narxi") or item["lom_narxi"]
    return item["weight"] * material_price + item["weight"] * item["labor_cost"]


def actual_revenue(item: Item) -> float:
    if item.get("status") != "sold":
        return 0
    return (item.get("selling_price") or 0) * item["weight"]


def actual_profit(item: Item) -> float:
    return actual_revenue(item) - actual_cost(item)


def item_price_difference(item: Item) -> float:
    """
    Per-gram ``payed_lom_narxi − lom_narxi`` when a paid price is recorded;
    otherwise the stored ``price_difference`` (0 when absent). Negative means
    the supplier was paid below the recorded price.
    """
    payed = item.get("payed_lom_narxi")
    if payed:
        return payed - item["lom_narxi"]
    return item.get("price_difference") or 0


def price_difference_impact(item: Item) -> float:
    return item_price_difference(item) * item["weight"]


def revenue_margin(profit: float, revenue: float) -> float:
    """Profit as a percentage of revenue; 0 without revenue."""
    if revenue <= 0:
        return 0
    return (profit / revenue) * 100


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def to_date(value: DateLike) -> Optional[date]:
    """Accept date, datetime or an ISO-8601 string (trailing "Z" allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


@dataclass
class ProfitFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    branch: Optional[str] = None
    category: Optional[str] = None
    payment_status: Optional[str] = None


def resolve_time_period(period: str, now: Optional[date] = None) -> Optional[Tuple[date, date]]:
    """
    Date range (inclusive) for a named reporting period, or None for
    ``all_time``. Raises ValueError for an unknown period name.
    """
    if period not in TIME_PERIODS:
        raise ValueError(f"Unknown time period: {period}. Valid options: {TIME_PERIODS}")

    today = to_date(now) if now is not None else date.today()

    if period == "last_7_days":
        return today - timedelta(days=7), today
    if period == "last_30_days":
        return today - timedelta(days=30), today
    if period == "current_month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)
    if period == "last_3_months":
        return today - timedelta(days=90), today
    if period == "current_year":
        return date(today.year, 1, 1), today
    return None


def _is_active(value: Optional[str]) -> bool:
    return bool(value) and value != "all"


def _matches(item: Item, filters: ProfitFilters) -> bool:
    if filters.start_date or filters.end_date:
        item_date = to_date(item.get("payment_date") or item.get("purchase_date"))
        # Undated items are kept: there is nothing to compare against
        if item_date is not None:
            if filters.start_date and item_date < filters.start_date:
                return False
            if filters.end_date and item_date > filters.end_date:
                return False

    if _is_active(filters.branch) and item.get("branch") != filters.branch:
        return False
    if _is_active(filters.category) and item.get("category") != filters.category:
        return False
    if _is_active(filters.payment_status) and item.get("payment_status") != filters.payment_status:
        return False
    return True


def filter_items(items: Iterable[Item], filters: Optional[ProfitFilters] = None) -> List[Item]:
    filters = filters or ProfitFilters()
    return [item for item in items if _matches(item, filters)]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@dataclass
class ProfitSummary:
    supposed_profit: float = 0.0
    actual_profit: float = 0.0
    total_revenue: float = 0.0
    total_cost: float = 0.0
    profit_margin: float = 0.0
    item_count: int = 0
    average_profit: float = 0.0
    price_difference_impact: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@timed
def summarize_profit(items: Iterable[Item]) -> ProfitSummary:
    summary = ProfitSummary()
    for item in items:
        revenue = actual_revenue(item)
        cost = actual_cost(item)
        summary.supposed_profit += theoretical_profit(item)
        summary.actual_profit += revenue - cost
        summary.total_revenue += revenue
        summary.total_cost += cost
        summary.price_difference_impact += price_difference_impact(item)
        summary.item_count += 1

    summary.profit_margin = revenue_margin(summary.actual_profit, summary.total_revenue)
    if summary.item_count > 0:
        summary.average_profit = summary.actual_profit / summary.item_count
    return summary


def profit_efficiency(summary: ProfitSummary) -> float:
    """Actual profit as a percentage of theoretical profit."""
    if summary.supposed_profit <= 0:
        return 0
    return (summary.actual_profit / summary.supposed_profit) * 100


def profit_by_status(items: Iterable[Item]) -> Dict[str, Dict[str, float]]:
    """
    Count, stock value (weight × lom narxi) and profit per status.
    Only sold items contribute profit.
    """
    groups: Dict[str, Dict[str, float]] = {}
    for item in items:
        status = item.get("status", "available")
        bucket = groups.setdefault(status, {"count": 0, "value": 0.0, "profit": 0.0})
        bucket["count"] += 1
        bucket["value"] += item["weight"] * item["lom_narxi"]
        if status == "sold":
            bucket["profit"] += (item.get("selling_price") or 0) * item["weight"] - actual_cost(item)
    return groups


def _group_profit(items: Iterable[Item], key_fn) -> Dict[str, Dict[str, float]]:
    groups: Dict[str, Dict[str, float]] = {}
    for item in items:
        bucket = groups.setdefault(key_fn(item), {
            "count": 0,
            "total_weight": 0.0,
            "supposed_profit": 0.0,
            "actual_profit": 0.0,
            "total_revenue": 0.0,
            "total_cost": 0.0,
        })
        revenue = actual_revenue(item)
        cost = actual_cost(item)
        bucket["count"] += 1
        bucket["total_weight"] += item["weight"]
        bucket["supposed_profit"] += theoretical_profit(item)
        bucket["actual_profit"] += revenue - cost
        bucket["total_revenue"] += revenue
        bucket["total_cost"] += cost

    for bucket in groups.values():
        bucket["profit_margin"] = revenue_margin(bucket["actual_profit"], bucket["total_revenue"])
    return groups


def profit_by_category(items: Iterable[Item]) -> Dict[str, Dict[str, float]]:
    return _group_profit(items, lambda item: item.get("category") or "Boshqa")


def profit_by_branch(items: Iterable[Item]) -> Dict[str, Dict[str, float]]:
    return _group_profit(items, lambda item: item.get("branch") or UNASSIGNED_BRANCH)


# ---------------------------------------------------------------------------
# Item rows and insights
# ---------------------------------------------------------------------------

def profit_item_row(item: Item) -> Dict[str, Any]:
    revenue = actual_revenue(item)
    cost = actual_cost(item)
    profit = revenue - cost
    return {
        "id": item.get("id"),
        "model": item.get("model", ""),
        "category": item.get("category"),
        "branch": item.get("branch"),
        "status": item.get("status"),
        "weight": item["weight"],
        "supposed_profit": theoretical_profit(item),
        "actual_revenue": revenue,
        "actual_cost": cost,
        "actual_profit": profit,
        "profit_margin": revenue_margin(profit, revenue),
        "payment_date": item.get("payment_date"),
    }


def profit_item_rows(
    items: Iterable[Item],
    sort_by: str = "actual_profit",
    descending: bool = True,
) -> List[Dict[str, Any]]:
    """
    Per-item profit rows sorted by ``sort_by``. Rows without a value for the
    sort field (e.g. unpaid items when sorting by payment date) go last.
    """
    if sort_by not in _SORT_FIELDS:
        raise ValueError(f"Cannot sort by '{sort_by}'. Valid options: {sorted(_SORT_FIELDS)}")

    rows = [profit_item_row(item) for item in items]
    if sort_by == "payment_date":
        sort_key = lambda row: to_date(row["payment_date"])
    else:
        sort_key = lambda row: row[sort_by]

    present = [row for row in rows if sort_key(row) is not None]
    missing = [row for row in rows if sort_key(row) is None]
    present.sort(key=sort_key, reverse=descending)
    return present + missing


def profit_insights(summary: ProfitSummary) -> List[Dict[str, str]]:
    """Positive and negative observations shown next to the summary."""
    insights: List[Dict[str, str]] = []

    gap = summary.actual_profit - summary.supposed_profit
    if gap > 0:
        insights.append({
            "kind": "positive",
            "code": "actual_above_supposed",
            "message": f"Haqiqiy foyda nazariy foydadan {format_currency(gap)} yuqori",
        })
    elif gap < 0:
        insights.append({
            "kind": "negative",
            "code": "actual_below_supposed",
            "message": f"Haqiqiy foyda nazariy foydadan {format_currency(-gap)} past",
        })

    if summary.profit_margin > GOOD_MARGIN_PCT:
        insights.append({
            "kind": "positive",
            "code": "good_margin",
            "message": f"Foyda marjasi {summary.profit_margin:.1f}% - bu yaxshi ko'rsatkich",
        })
    elif summary.profit_margin < LOW_MARGIN_PCT:
        insights.append({
            "kind": "negative",
            "code": "low_margin",
            "message": f"Foyda marjasi {summary.profit_margin:.1f}% - bu past ko'rsatkich",
        })

    # Impact is the extra paid to suppliers over recorded prices
    impact = summary.price_difference_impact
    if impact < 0:
        insights.append({
            "kind": "positive",
            "code": "payment_savings",
            "message": f"To'lov muzokaralari {format_currency(-impact)} tejamkorlik keltirdi",
        })
    elif impact > 0:
        insights.append({
            "kind": "negative",
            "code": "payment_overrun",
            "message": f"To'lov farqlari {format_currency(impact)} qo'shimcha xarajat",
        })

    return insights
