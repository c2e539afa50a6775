"""
Supplier Payment API Routes

POST /api/suppliers/unpaid-items     — a supplier's unpaid items, oldest first
POST /api/suppliers/payment-preview  — items a payment amount covers, with totals
POST /api/suppliers/payment          — settle selected items at a paid price
POST /api/suppliers/balances         — paid / unpaid / returned balances
"""
import logging

from fastapi import APIRouter, HTTPException

from app.models.item_schema import (
    PaymentPreviewRequest,
    SupplierBalanceRequest,
    SupplierItemsRequest,
    SupplierPaymentRequest,
)
from app.services import supplier_payments as payments
from app.services.profit_engine import to_date

router = APIRouter(prefix="/api/suppliers", tags=["Supplier Payments"])
logger = logging.getLogger("jeweler-api.supplier-routes")


def _dump(items) -> list:
    return [item.model_dump() for item in items]


@router.post("/unpaid-items")
def unpaid_items(req: SupplierItemsRequest):
    items = payments.unpaid_items_for_supplier(_dump(req.items), req.supplier_name)
    return {"supplier_name": req.supplier_name, "count": len(items), "items": items}


@router.post("/payment-preview")
def payment_preview(req: PaymentPreviewRequest):
    unpaid = payments.unpaid_items_for_supplier(_dump(req.items), req.supplier_name)
    selected = payments.auto_select_items(unpaid, req.payment_amount, req.payed_lom_narxi)
    totals = payments.calculate_payment_totals(selected, req.payed_lom_narxi)
    return {
        "supplier_name": req.supplier_name,
        "payment_amount": req.payment_amount,
        "selected_item_ids": [item["id"] for item in selected],
        "remaining_amount": req.payment_amount - totals.total_payment_cost,
        "totals": totals.to_dict(),
    }


@router.post("/payment")
def settle_payment(req: SupplierPaymentRequest):
    try:
        result = payments.settle_supplier_payment(
            _dump(req.items),
            req.supplier_name,
            req.payed_lom_narxi,
            req.payment_date,
            reference=req.reference,
            notes=req.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"transaction": result["transaction"].to_dict(), "items": result["items"]}


@router.post("/balances")
def supplier_balances(req: SupplierBalanceRequest):
    items = _dump(req.items)
    filters = payments.SupplierFilters(
        search=req.search,
        supplier_name=req.supplier_name,
        payment_status=req.payment_status,
        start_date=to_date(req.start_date),
        end_date=to_date(req.end_date),
    )
    return {
        "balances": payments.supplier_balances(items, filters),
        "suppliers": payments.supplier_names(items),
    }
