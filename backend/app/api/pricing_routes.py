"""
Pricing API Routes

POST /api/pricing/selling-price      — selling price for one item
POST /api/pricing/profit             — profit amount and margin on cost
POST /api/pricing/cost-breakdown     — material / labour / total cost
POST /api/pricing/item-costs         — central vs branch projection (item-entry preview)
POST /api/pricing/optimal-kirim      — branch price for a desired transfer margin
POST /api/pricing/price-adjustments  — bulk repricing after a gold price change
POST /api/pricing/margin-preview     — bulk profit-percentage change, preview only
POST /api/pricing/margin-apply       — bulk profit-percentage change, updated items
GET  /api/pricing/defaults           — form defaults and reference tables
"""
import logging

from fastapi import APIRouter

from app import config
from app.models.item_schema import (
    CostInputs,
    ItemCostsRequest,
    MarginUpdateRequest,
    OptimalKirimRequest,
    PriceAdjustmentRequest,
    ProfitRequest,
    SellingPriceRequest,
)
from app.services import pricing_engine as engine

router = APIRouter(prefix="/api/pricing", tags=["Pricing"])
logger = logging.getLogger("jeweler-api.pricing-routes")


@router.get("/defaults")
def pricing_defaults():
    return {
        "profit_percentage": config.DEFAULT_PROFIT_PERCENTAGE,
        "lom_narxi": config.DEFAULT_LOM_NARXI,
        "lom_narxi_kirim": config.DEFAULT_LOM_NARXI_KIRIM,
        "labor_cost": config.DEFAULT_LABOR_COST,
        "transfer_margin": config.DEFAULT_TRANSFER_MARGIN,
        "quality_multipliers": config.QUALITY_MULTIPLIERS,
        "karat_fineness": config.KARAT_FINENESS,
        "categories": config.CATEGORIES,
        "branches": config.BRANCHES,
        "currency": config.CURRENCY_CODE,
    }


@router.post("/selling-price")
def selling_price(req: SellingPriceRequest):
    price = engine.calculate_selling_price(
        req.weight, req.lom_narxi, req.lom_narxi_kirim,
        req.labor_cost, req.profit_percentage, req.is_provider,
    )
    return {"selling_price": price}


@router.post("/profit")
def profit(req: ProfitRequest):
    result = engine.calculate_profit(
        req.selling_price, req.weight, req.lom_narxi,
        req.lom_narxi_kirim, req.labor_cost, req.is_provider,
    )
    return result.to_dict()


@router.post("/cost-breakdown")
def cost_breakdown(req: CostInputs):
    result = engine.calculate_cost_breakdown(
        req.weight, req.lom_narxi, req.lom_narxi_kirim, req.labor_cost, req.is_provider,
    )
    return result.to_dict()


@router.post("/item-costs")
def item_costs(req: ItemCostsRequest):
    """Central and branch projections side by side for the item-entry wizard."""
    return engine.calculate_item_costs(req.model_dump()).to_dict()


@router.post("/optimal-kirim")
def optimal_kirim(req: OptimalKirimRequest):
    return {
        "lom_narxi": req.lom_narxi,
        "desired_margin": req.desired_margin,
        "lom_narxi_kirim": engine.calculate_optimal_lom_narxi_kirim(req.lom_narxi, req.desired_margin),
    }


@router.post("/price-adjustments")
def price_adjustments(req: PriceAdjustmentRequest):
    """
    Reprice the given items at ``new_lom_narxi``. Items are validated with a
    strictly positive lom narxi, so the relative change is always finite.
    """
    items = [item.model_dump() for item in req.items]
    adjusted = engine.calculate_price_adjustments(items, req.new_lom_narxi)
    return {"count": len(adjusted), "items": adjusted}


def _margin_target(req: MarginUpdateRequest, items: list) -> float:
    if req.profit_percentage is not None:
        return req.profit_percentage
    return engine.average_profit_percentage(items)


@router.post("/margin-preview")
def margin_preview(req: MarginUpdateRequest):
    items = [item.model_dump() for item in req.items]
    target = _margin_target(req, items)
    return {"profit_percentage": target, "items": engine.preview_profit_margin_update(items, target)}


@router.post("/margin-apply")
def margin_apply(req: MarginUpdateRequest):
    items = [item.model_dump() for item in req.items]
    target = _margin_target(req, items)
    updated = engine.apply_profit_margin_update(items, target)
    logger.info(f"Margin update prepared for {len(updated)} items at {target}%")
    return {"profit_percentage": target, "items": updated}
