"""
Supplier payment reconciliation.

Covers:
  - Per-gram price difference between what was paid to the supplier and the
    recorded lom narxi
  - Unpaid items of one supplier, oldest purchase first
  - Automatic selection of items a payment amount covers
  - Payment totals (weight, original cost, paid cost, difference)
  - Settling a payment: the transaction record plus updated items
  - Paid / unpaid / returned balances across suppliers

Sign convention: ``price_difference = payed_lom_narxi − lom_narxi``. A
negative difference means the supplier was paid less than the recorded
price (a saving); a positive one is an overrun.

Items are plain mappings with snake_case keys (see InventoryItem).
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.services.perf_monitor import timed
from app.services.profit_engine import item_price_difference, to_date

logger = logging.getLogger("jeweler-api.suppliers")

Item = Mapping[str, Any]


def payment_price_difference(payed_lom_narxi: Optional[float], lom_narxi: Optional[float]) -> Optional[float]:
    """``payed − lom`` per gram, or None unless both prices are recorded."""
    if not payed_lom_narxi or not lom_narxi:
        return None
    return payed_lom_narxi - lom_narxi


def _purchase_key(item: Item):
    # Undated items sort after every dated one
    purchased = to_date(item.get("purchase_date"))
    return (purchased is None, purchased or date.min)


def unpaid_items_for_supplier(items: Iterable[Item], supplier_name: str) -> List[Item]:
    """Unpaid items of ``supplier_name``, oldest purchase date first."""
    unpaid = [
        item for item in items
        if item.get("supplier_name") == supplier_name and item.get("payment_status") == "unpaid"
    ]
    return sorted(unpaid, key=_purchase_key)


def auto_select_items(
    items: Iterable[Item], payment_amount: float, payed_lom_narxi: float
) -> List[Item]:
    """
    Pick items oldest first while the remaining payment still covers
    ``weight × payed_lom_narxi``. Selection stops at the first item that does
    not fit, so payments always settle the oldest debt first.
    """
    if not payment_amount or not payed_lom_narxi:
        return []

    selected: List[Item] = []
    remaining = payment_amount
    for item in sorted(items, key=_purchase_key):
        item_cost = item["weight"] * payed_lom_narxi
        if remaining < item_cost:
            break
        selected.append(item)
        remaining -= item_cost
    return selected


@dataclass(frozen=True)
class PaymentTotals:
    item_count: int
    total_weight: float
    total_original_cost: float      # Σ weight × lom_narxi
    total_payment_cost: float       # total_weight × payed_lom_narxi
    price_difference: float         # total_payment_cost − total_original_cost
    original_lom_narxi: float       # weighted average lom narxi of the selection

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_payment_totals(items: Iterable[Item], payed_lom_narxi: float) -> PaymentTotals:
    items = list(items)
    total_weight = sum(item["weight"] for item in items)
    total_original_cost = sum(item["weight"] * item["lom_narxi"] for item in items)
    total_payment_cost = total_weight * (payed_lom_narxi or 0)
    return PaymentTotals(
        item_count=len(items),
        total_weight=total_weight,
        total_original_cost=total_original_cost,
        total_payment_cost=total_payment_cost,
        price_difference=total_payment_cost - total_original_cost,
        original_lom_narxi=total_original_cost / total_weight if total_weight > 0 else 0,
    )


@dataclass(frozen=True)
class SupplierPayment:
    """Transaction record for one supplier payment."""
    supplier_name: str
    item_ids: List[Optional[str]]
    total_amount: float
    payed_lom_narxi: float
    original_lom_narxi: float
    price_difference: float         # per gram, payed − weighted average lom narxi
    payment_date: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    type: str = field(default="payment")

    def to_dict(self) -> dict:
        return asdict(self)


@timed
def settle_supplier_payment(
    items: Iterable[Item],
    supplier_name: str,
    payed_lom_narxi: float,
    payment_date: str,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a payment for the selected items.

    Returns ``{"transaction": SupplierPayment, "items": [...]}``. Each item is
    a new dict marked paid, with the paid price, payment date and reference,
    and its own ``price_difference`` recomputed from its lom narxi. Raises
    ValueError when an item belongs to another supplier.
    """
    items = list(items)
    foreign = [item.get("id") for item in items if item.get("supplier_name") != supplier_name]
    if foreign:
        raise ValueError(f"Items {foreign} do not belong to supplier '{supplier_name}'")

    totals = calculate_payment_totals(items, payed_lom_narxi)
    transaction = SupplierPayment(
        supplier_name=supplier_name,
        item_ids=[item.get("id") for item in items],
        total_amount=totals.total_payment_cost,
        payed_lom_narxi=payed_lom_narxi,
        original_lom_narxi=totals.original_lom_narxi,
        price_difference=payed_lom_narxi - totals.original_lom_narxi,
        payment_date=payment_date,
        reference=reference,
        notes=notes,
    )

    settled: List[Dict[str, Any]] = []
    for item in items:
        updated = dict(item)
        updated.update(
            payment_status="paid",
            payed_lom_narxi=payed_lom_narxi,
            payment_date=payment_date,
            payment_reference=reference,
            price_difference=payment_price_difference(payed_lom_narxi, item["lom_narxi"]),
        )
        settled.append(updated)

    logger.info(
        f"Supplier payment for '{supplier_name}': {len(settled)} items, "
        f"{totals.total_weight:.2f} g at {payed_lom_narxi}"
    )
    return {"transaction": transaction, "items": settled}


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------

@dataclass
class SupplierFilters:
    search: Optional[str] = None
    supplier_name: Optional[str] = None
    payment_status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _is_active(value: Optional[str]) -> bool:
    return bool(value) and value != "all"


def _matches(item: Item, filters: SupplierFilters) -> bool:
    if filters.search:
        term = filters.search.lower()
        haystack = (item.get("model") or "", item.get("supplier_name") or "", item.get("category") or "")
        if not any(term in text.lower() for text in haystack):
            return False
    if _is_active(filters.supplier_name) and item.get("supplier_name") != filters.supplier_name:
        return False
    if _is_active(filters.payment_status) and item.get("payment_status") != filters.payment_status:
        return False

    purchased = to_date(item.get("purchase_date"))
    if purchased is not None:
        if filters.start_date and purchased < filters.start_date:
            return False
        if filters.end_date and purchased > filters.end_date:
            return False
    return True


def filter_supplier_items(items: Iterable[Item], filters: Optional[SupplierFilters] = None) -> List[Item]:
    filters = filters or SupplierFilters()
    return [item for item in items if _matches(item, filters)]


def supplier_names(items: Iterable[Item]) -> List[str]:
    return sorted({item["supplier_name"] for item in items if item.get("supplier_name")})


def supplier_balances(items: Iterable[Item], filters: Optional[SupplierFilters] = None) -> Dict[str, Any]:
    """
    Paid vs unpaid totals over the filtered items.

    Values are ``weight × lom_narxi`` except ``paid_value``, which uses the
    paid price when recorded. Returned-to-supplier figures cover every item
    regardless of filters. ``price_difference`` is Σ difference × weight over
    paid items.
    """
    items = list(items)
    filtered = filter_supplier_items(items, filters)
    paid = [item for item in filtered if item.get("payment_status") == "paid"]
    unpaid = [item for item in filtered if item.get("payment_status") == "unpaid"]
    partially_paid = [item for item in filtered if item.get("payment_status") == "partially_paid"]
    returned = [item for item in items if item.get("status") == "returned_to_supplier"]

    def stock_value(group):
        return sum(item["weight"] * item["lom_narxi"] for item in group)

    return {
        "total_items": len(filtered),
        "paid_items": len(paid),
        "unpaid_items": len(unpaid),
        "partially_paid_items": len(partially_paid),
        "returned_to_supplier_items": len(returned),
        "total_value": stock_value(filtered),
        "paid_value": sum(item["weight"] * (item.get("payed_lom_narxi") or item["lom_narxi"]) for item in paid),
        "unpaid_value": stock_value(unpaid),
        "returned_value": stock_value(returned),
        "price_difference": sum(item_price_difference(item) * item["weight"] for item in paid),
    }
