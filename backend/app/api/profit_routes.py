"""
Profit Analysis API Routes

POST /api/profit/summary  — theoretical vs actual profit, breakdowns, insights
POST /api/profit/items    — per-item profit rows, sorted
POST /api/profit/export   — profit analysis workbook (.xlsx)
"""
import logging
from typing import List, Tuple

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from app.models.item_schema import ProfitAnalysisRequest
from app.services import profit_engine as engine
from app.services.report_engine import ProfitReportBuilder

router = APIRouter(prefix="/api/profit", tags=["Profit Analysis"])
logger = logging.getLogger("jeweler-api.profit-routes")

_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _build_filters(req: ProfitAnalysisRequest) -> engine.ProfitFilters:
    """
    Explicit dates win over a named time period. A lone start or end date
    bounds the range on that side only.
    """
    start = end = None
    if req.start_date or req.end_date:
        start, end = engine.to_date(req.start_date), engine.to_date(req.end_date)
    elif req.time_period:
        period_range = engine.resolve_time_period(req.time_period)
        if period_range:
            start, end = period_range
    return engine.ProfitFilters(
        start_date=start,
        end_date=end,
        branch=req.branch,
        category=req.category,
        payment_status=req.payment_status,
    )


def _filtered_items(req: ProfitAnalysisRequest) -> Tuple[List[dict], engine.ProfitFilters]:
    try:
        filters = _build_filters(req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    items = [item.model_dump() for item in req.items]
    return engine.filter_items(items, filters), filters


@router.post("/summary")
def profit_summary(req: ProfitAnalysisRequest):
    items, filters = _filtered_items(req)
    summary = engine.summarize_profit(items)
    return {
        "summary": summary.to_dict(),
        "profit_efficiency": engine.profit_efficiency(summary),
        "by_status": engine.profit_by_status(items),
        "by_category": engine.profit_by_category(items),
        "by_branch": engine.profit_by_branch(items),
        "insights": engine.profit_insights(summary),
        "filters": {
            "start_date": filters.start_date,
            "end_date": filters.end_date,
            "branch": filters.branch,
            "category": filters.category,
            "payment_status": filters.payment_status,
        },
    }


@router.post("/items")
def profit_items(req: ProfitAnalysisRequest):
    items, _ = _filtered_items(req)
    try:
        rows = engine.profit_item_rows(items, sort_by=req.sort_by, descending=req.descending)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"count": len(rows), "items": rows}


@router.post("/export")
def export_profit_report(req: ProfitAnalysisRequest):
    items, _ = _filtered_items(req)
    summary = engine.summarize_profit(items)
    try:
        content = ProfitReportBuilder().build(
            items,
            summary,
            filters={
                "time_period": req.time_period,
                "branch": req.branch,
                "category": req.category,
                "payment_status": req.payment_status,
            },
        )
    except Exception as e:
        logger.error(f"Profit report generation failed: {e}")
        raise HTTPException(status_code=500, detail="Report generation failed")

    return Response(
        content=content,
        media_type=_XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="foyda_tahlili.xlsx"'},
    )
