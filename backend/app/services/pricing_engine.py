"""
Pricing engine — selling price, cost breakdown and profit for jewelry items.

Covers:
  - Selling price from material (gold) price, labour and profit percentage
  - Profit amount and margin against cost
  - Cost breakdown (material + labour)
  - Side-by-side central ("provider") vs branch projections with quality and
    purity adjustments and the central → branch transfer margin
  - Suggested branch (kirim) price for a desired transfer margin
  - Bulk repricing after a market gold price change
  - Bulk profit-percentage update (preview and apply)

Every function is pure: results depend only on the arguments. All prices are
per gram in whole UZS; weights are in grams.

Inventory regimes:
  central / provider  → own material cost basis is ``lom_narxi``
  branch              → own material cost basis is ``lom_narxi_kirim``

Degenerate input (zero, negative, missing or NaN weight) yields zero results
rather than raising.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from app.config import (
    DEFAULT_BULK_PROFIT_PERCENTAGE,
    DEFAULT_TRANSFER_MARGIN,
    KARAT_FINENESS,
    PURITY_REFERENCE,
    QUALITY_MULTIPLIERS,
)
from app.services.perf_monitor import timed

logger = logging.getLogger("jeweler-api.pricing")

Number = Union[int, float]


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------

def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round half toward positive infinity (``floor(x * 10^n + 0.5) / 10^n``).

    Existing reports were produced with this rule, so ``round()`` (banker's
    rounding) must not be used for exposed amounts. Non-finite values are
    returned unchanged.
    """
    if not math.isfinite(value):
        return value
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _round_money(value: float) -> Number:
    """Whole-currency rounding; int for finite values."""
    if not math.isfinite(value):
        return value
    return int(math.floor(value + 0.5))


def _no_weight(weight: Optional[float]) -> bool:
    return weight is None or math.isnan(weight) or weight <= 0


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProfitResult:
    profit_amount: Number
    profit_percentage: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: Number
    labor_total: Number
    total_cost: Number        # rounded once from unrounded parts, not the sum of the two above

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BranchCosts:
    """Projection for an item held in branch stock (basis: adjusted kirim)."""
    material_cost: float
    labor_cost: float
    total_cost: float
    selling_price: Number
    profit: float
    profit_margin: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CentralCosts:
    """Projection for an item held in central stock (basis: adjusted lom narxi)."""
    material_cost: float
    labor_cost: float
    total_cost: float
    selling_price: Number
    profit: float
    transfer_profit: float
    profit_margin: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ItemCosts:
    central: CentralCosts
    branch: BranchCosts
    total_system_profit: float
    quality_multiplier: float
    purity_multiplier: float

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Adjustment multipliers
# ---------------------------------------------------------------------------

def quality_multiplier(quality: Optional[str]) -> float:
    """A → 1.10, C → 0.90, B or anything else → 1.00."""
    if quality == "A":
        return QUALITY_MULTIPLIERS["A"]
    if quality == "C":
        return QUALITY_MULTIPLIERS["C"]
    return QUALITY_MULTIPLIERS["B"]


def resolve_purity(purity: Union[None, str, float]) -> Optional[float]:
    """
    Turn a purity value into a fineness number.

    Karat labels ("14K", "18K", ...) map through ``KARAT_FINENESS``; numbers
    (and numeric strings such as "750") are used as-is. Unknown labels
    resolve to None.
    """
    if purity is None or isinstance(purity, (int, float)):
        return purity
    label = purity.strip().upper()
    if label in KARAT_FINENESS:
        return KARAT_FINENESS[label]
    try:
        return float(label)
    except ValueError:
        logger.warning(f"Unknown purity label '{purity}', ignoring purity adjustment")
        return None


def purity_multiplier(purity: Union[None, str, float]) -> float:
    """``fineness / 585`` when a purity is given, else 1.0."""
    fineness = resolve_purity(purity)
    if not fineness:
        return 1.0
    return fineness / PURITY_REFERENCE


# ---------------------------------------------------------------------------
# Core calculations
# ---------------------------------------------------------------------------

def calculate_total_cost(weight: float, lom_narxi: float, labor_cost: float) -> float:
    """Unrounded material + labour cost for ``weight`` grams."""
    if _no_weight(weight):
        return 0
    return weight * lom_narxi + weight * labor_cost


def calculate_profit_margin(selling_price: float, total_cost: float) -> float:
    """Profit as a percentage of cost (not of selling price)."""
    if total_cost <= 0:
        return 0
    return ((selling_price - total_cost) / total_cost) * 100


def calculate_selling_price(
    weight: float,
    lom_narxi: float,
    lom_narxi_kirim: float,
    labor_cost: float,
    profit_percentage: float,
    is_provider: bool = False,
) -> Number:
    """
    Selling price = (material + labour) × (1 + profit_percentage / 100),
    rounded to whole currency.

    ``is_provider`` selects the material basis: lom narxi for central stock,
    lom narxi kirim for branch stock.
    """
    if _no_weight(weight):
        return 0

    base_price = lom_narxi if is_provider else lom_narxi_kirim

    gold_cost = weight * base_price
    total_labor_cost = weight * labor_cost
    base_cost = gold_cost + total_labor_cost

    profit_amount = base_cost * (profit_percentage / 100)
    return _round_money(base_cost + profit_amount)


def calculate_profit(
    selling_price: float,
    weight: float,
    lom_narxi: float,
    lom_narxi_kirim: float,
    labor_cost: float,
    is_provider: bool = False,
) -> ProfitResult:
    """Profit amount (whole currency) and margin on cost (2 decimals)."""
    if _no_weight(weight):
        return ProfitResult(profit_amount=0, profit_percentage=0)

    material_cost_per_gram = lom_narxi if is_provider else lom_narxi_kirim
    total_cost = weight * material_cost_per_gram + weight * labor_cost

    margin = calculate_profit_margin(selling_price, total_cost)
    return ProfitResult(
        profit_amount=_round_money(selling_price - total_cost),
        profit_percentage=round_half_up(margin, 2),
    )


def calculate_cost_breakdown(
    weight: float,
    lom_narxi: float,
    lom_narxi_kirim: float,
    labor_cost: float,
    is_provider: bool = False,
) -> CostBreakdown:
    """
    Material, labour and total cost, each rounded on its own.

    ``total_cost`` is rounded once from the unrounded parts, so it can differ
    by one unit from ``material_cost + labor_total`` for fractional inputs.
    """
    if _no_weight(weight):
        return CostBreakdown(material_cost=0, labor_total=0, total_cost=0)

    material_cost_per_gram = lom_narxi if is_provider else lom_narxi_kirim
    material_cost = weight * material_cost_per_gram
    labor_total = weight * labor_cost
    total_cost = calculate_total_cost(weight, material_cost_per_gram, labor_cost)

    return CostBreakdown(
        material_cost=_round_money(material_cost),
        labor_total=_round_money(labor_total),
        total_cost=_round_money(total_cost),
    )


def calculate_item_costs(data: Mapping[str, Any]) -> ItemCosts:
    """
    Central vs branch projection for one item, used by the item-entry preview.

    ``data`` keys: weight, lom_narxi, lom_narxi_kirim, labor_cost,
    profit_percentage and optionally quality ("A"/"B"/"C") and purity
    (fineness number or karat label).

    Both material prices are scaled by the quality and purity multipliers.
    The central projection also carries ``transfer_profit``: the margin the
    central stock earns when material moves to a branch at the kirim price.
    Amounts here are unrounded except the selling prices.
    """
    weight = data["weight"]
    lom_narxi = data["lom_narxi"]
    lom_narxi_kirim = data["lom_narxi_kirim"]
    labor_cost = data["labor_cost"]
    profit_percentage = data["profit_percentage"]

    q_mult = quality_multiplier(data.get("quality"))
    p_mult = purity_multiplier(data.get("purity"))

    adjusted_lom_narxi = lom_narxi * q_mult * p_mult
    adjusted_lom_narxi_kirim = lom_narxi_kirim * q_mult * p_mult

    central = CentralCosts(
        material_cost=weight * adjusted_lom_narxi,
        labor_cost=weight * labor_cost,
        total_cost=calculate_total_cost(weight, adjusted_lom_narxi, labor_cost),
        selling_price=calculate_selling_price(
            weight, adjusted_lom_narxi, adjusted_lom_narxi_kirim,
            labor_cost, profit_percentage, True,
        ),
        profit=weight * (adjusted_lom_narxi + labor_cost) * (profit_percentage / 100),
        transfer_profit=weight * (adjusted_lom_narxi_kirim - adjusted_lom_narxi),
        profit_margin=profit_percentage,
    )

    branch = BranchCosts(
        material_cost=weight * adjusted_lom_narxi_kirim,
        labor_cost=weight * labor_cost,
        total_cost=calculate_total_cost(weight, adjusted_lom_narxi_kirim, labor_cost),
        selling_price=calculate_selling_price(
            weight, adjusted_lom_narxi, adjusted_lom_narxi_kirim,
            labor_cost, profit_percentage, False,
        ),
        profit=weight * (adjusted_lom_narxi_kirim + labor_cost) * (profit_percentage / 100),
        profit_margin=profit_percentage,
    )

    return ItemCosts(
        central=central,
        branch=branch,
        total_system_profit=central.profit + central.transfer_profit,
        quality_multiplier=q_mult,
        purity_multiplier=p_mult,
    )


def calculate_optimal_lom_narxi_kirim(
    lom_narxi: float, desired_margin: float = DEFAULT_TRANSFER_MARGIN
) -> float:
    """Branch price that gives ``desired_margin`` % over lom narxi."""
    return lom_narxi * (1 + desired_margin / 100)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

def _relative_change(new_value: float, old_value: float) -> float:
    """
    ``(new - old) / old`` with IEEE semantics for a zero base: ±inf for a
    non-zero difference, NaN for 0/0. Callers must reject zero historical
    prices before bulk repricing; a warning is logged when one slips through.
    """
    diff = new_value - old_value
    if old_value == 0:
        logger.warning("Repricing an item with zero lom narxi; results will be non-finite")
        if diff > 0:
            return math.inf
        if diff < 0:
            return -math.inf
        return math.nan
    return diff / old_value


@timed
def calculate_price_adjustments(
    items: Iterable[Mapping[str, Any]], new_lom_narxi: float
) -> List[Dict[str, Any]]:
    """
    Reprice items after a market gold price change.

    Every item gets ``lom_narxi = new_lom_narxi``; its kirim price moves by
    the same relative change so the central → branch markup ratio holds.
    Selling price and profit are recomputed and taken from the central
    projection for provider items, from the branch projection otherwise.

    Returns new dicts; the input mappings are not modified.
    """
    adjusted: List[Dict[str, Any]] = []
    for item in items:
        percentage_change = _relative_change(new_lom_narxi, item["lom_narxi"])
        updated_lom_narxi_kirim = item["lom_narxi_kirim"] * (1 + percentage_change)

        costs = calculate_item_costs({
            "weight": item["weight"],
            "lom_narxi": new_lom_narxi,
            "lom_narxi_kirim": updated_lom_narxi_kirim,
            "labor_cost": item["labor_cost"],
            "profit_percentage": item["profit_percentage"],
            "quality": item.get("quality"),
            "purity": item.get("purity"),
        })
        chosen = costs.central if item.get("is_provider") else costs.branch

        updated = dict(item)
        updated.update(
            lom_narxi=new_lom_narxi,
            lom_narxi_kirim=updated_lom_narxi_kirim,
            selling_price=chosen.selling_price,
            profit=chosen.profit,
        )
        adjusted.append(updated)

    logger.info(f"Repriced {len(adjusted)} items at lom narxi {new_lom_narxi}")
    return adjusted


def average_profit_percentage(
    items: Iterable[Mapping[str, Any]], default: float = DEFAULT_BULK_PROFIT_PERCENTAGE
) -> float:
    """Mean profit percentage of ``items``; ``default`` for an empty selection."""
    values = [item["profit_percentage"] for item in items]
    if not values:
        return default
    return sum(values) / len(values)


def _new_selling_price(item: Mapping[str, Any], profit_percentage: float) -> Number:
    return calculate_selling_price(
        item["weight"],
        item["lom_narxi"],
        item["lom_narxi_kirim"],
        item["labor_cost"],
        profit_percentage,
        bool(item.get("is_provider")),
    )


@timed
def preview_profit_margin_update(
    items: Iterable[Mapping[str, Any]], profit_percentage: float
) -> List[Dict[str, Any]]:
    """
    Show what a new profit percentage would do to each item's selling price.

    Adds ``new_selling_price``, ``price_difference`` (new − current) and
    ``percentage_difference`` (relative to the current price, 0 when the
    current price is not positive).
    """
    preview: List[Dict[str, Any]] = []
    for item in items:
        new_price = _new_selling_price(item, profit_percentage)
        current = item.get("selling_price") or 0
        difference = new_price - current
        pct_difference = (difference / current) * 100 if current > 0 else 0

        row = dict(item)
        row.update(
            new_selling_price=new_price,
            price_difference=difference,
            percentage_difference=pct_difference,
        )
        preview.append(row)
    return preview


@timed
def apply_profit_margin_update(
    items: Iterable[Mapping[str, Any]], profit_percentage: float
) -> List[Dict[str, Any]]:
    """Items with ``profit_percentage`` replaced and ``selling_price`` recomputed."""
    updated: List[Dict[str, Any]] = []
    for item in items:
        row = dict(item)
        row.update(
            profit_percentage=profit_percentage,
            selling_price=_new_selling_price(item, profit_percentage),
        )
        updated.append(row)
    logger.info(f"Profit percentage set to {profit_percentage}% on {len(updated)} items")
    return updated
