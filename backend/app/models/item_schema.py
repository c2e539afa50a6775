"""
Item and pricing request schemas.

Field names are snake_case; the camelCase keys used by the dashboard and the
bulk-import spreadsheets (``lomNarxi``, ``lomNarxiKirim``, ``payedLomNarxi``,
...) are accepted as input aliases.

Numbers must be finite and stay inside the limits from ``app.config``, so
every amount the engines derive from them is finite as well.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.config import (
    DEFAULT_PROFIT_PERCENTAGE,
    DEFAULT_TRANSFER_MARGIN,
    MAX_PAYMENT_AMOUNT,
    MAX_PRICE_PER_GRAM,
    MAX_PROFIT_PERCENTAGE,
    MAX_WEIGHT_GRAMS,
    MIN_PRICE_PER_GRAM,
)
from app.services.profit_engine import to_date

Category = Literal["Uzuk", "Sirg'a", "Bilakuzuk", "Zanjir", "Boshqa"]
ItemStatus = Literal["available", "sold", "returned", "transferred", "reserved", "returned_to_supplier"]
PaymentStatus = Literal["unpaid", "partially_paid", "paid"]
Quality = Literal["A", "B", "C"]
Karat = Literal["14K", "18K", "21K", "22K", "24K"]
Fineness = Annotated[float, Field(gt=0, le=1000)]
Purity = Union[Karat, Fineness]


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


def _check_iso_date(value: Optional[str]) -> Optional[str]:
    if value:
        to_date(value)  # raises ValueError on malformed dates
    return value


# ── Single-item calculation inputs ───────────────────────────────────────────
# Weight has no lower bound here; the engine answers zero or negative weight
# with zeros.

class CostInputs(_Schema):
    weight: float = Field(..., le=MAX_WEIGHT_GRAMS)
    lom_narxi: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM, description="Central material price per gram")
    lom_narxi_kirim: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM, description="Branch material price per gram")
    labor_cost: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM, description="Labour cost per gram")
    is_provider: bool = False


class SellingPriceRequest(CostInputs):
    profit_percentage: float = Field(DEFAULT_PROFIT_PERCENTAGE, ge=0, le=MAX_PROFIT_PERCENTAGE)


class ProfitRequest(CostInputs):
    selling_price: float = Field(..., ge=-MAX_PAYMENT_AMOUNT, le=MAX_PAYMENT_AMOUNT)


class ItemCostsRequest(_Schema):
    weight: float = Field(..., le=MAX_WEIGHT_GRAMS)
    lom_narxi: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM)
    lom_narxi_kirim: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM)
    labor_cost: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM)
    profit_percentage: float = Field(DEFAULT_PROFIT_PERCENTAGE, ge=0, le=MAX_PROFIT_PERCENTAGE)
    quality: Optional[Quality] = None
    purity: Optional[Purity] = Field(
        None, description="Fineness (e.g. 750) or karat label (e.g. '18K')"
    )


class OptimalKirimRequest(_Schema):
    lom_narxi: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM)
    desired_margin: float = Field(DEFAULT_TRANSFER_MARGIN, ge=-100, le=MAX_PROFIT_PERCENTAGE)


# ── Inventory item ───────────────────────────────────────────────────────────

class InventoryItem(_Schema):
    """
    Stored item record as read from the database collaborator.
    Validation follows the item-entry form and bulk-import rules.
    """
    id: Optional[str] = None
    model: str = Field(..., min_length=1)
    category: Category = "Boshqa"
    weight: float = Field(..., gt=0, le=MAX_WEIGHT_GRAMS, description="Grams")
    quantity: int = Field(1, ge=1)
    lom_narxi: float = Field(..., ge=MIN_PRICE_PER_GRAM, le=MAX_PRICE_PER_GRAM)
    lom_narxi_kirim: float = Field(..., ge=MIN_PRICE_PER_GRAM, le=MAX_PRICE_PER_GRAM)
    labor_cost: float = Field(..., ge=0, le=MAX_PRICE_PER_GRAM)
    profit_percentage: float = Field(DEFAULT_PROFIT_PERCENTAGE, ge=0, le=MAX_PROFIT_PERCENTAGE)
    selling_price: float = Field(0, ge=0, le=MAX_PAYMENT_AMOUNT)
    status: ItemStatus = "available"
    is_provider: bool = False
    branch: Optional[str] = None
    supplier_name: Optional[str] = None
    purity: Optional[Purity] = None
    quality: Optional[Quality] = Field(
        None, validation_alias=AliasChoices("quality", "qualityGrade", "quality_grade")
    )
    payed_lom_narxi: Optional[float] = Field(
        None, gt=0, le=MAX_PRICE_PER_GRAM, description="Price per gram actually paid to the supplier"
    )
    price_difference: Optional[float] = Field(None, ge=-MAX_PRICE_PER_GRAM, le=MAX_PRICE_PER_GRAM)
    payment_status: PaymentStatus = "unpaid"
    payment_date: Optional[str] = None
    payment_reference: Optional[str] = None
    purchase_date: Optional[str] = None
    sold_date: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("payment_date", "purchase_date", "sold_date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_date(value)


# ── Bulk requests ────────────────────────────────────────────────────────────

class PriceAdjustmentRequest(_Schema):
    items: List[InventoryItem]
    new_lom_narxi: float = Field(..., ge=MIN_PRICE_PER_GRAM, le=MAX_PRICE_PER_GRAM)


class MarginUpdateRequest(_Schema):
    items: List[InventoryItem]
    profit_percentage: Optional[float] = Field(
        None, ge=0, le=MAX_PROFIT_PERCENTAGE,
        description="Defaults to the selection's average profit percentage",
    )


class ProfitAnalysisRequest(_Schema):
    items: List[InventoryItem]
    time_period: Optional[str] = Field(None, description="last_7_days | last_30_days | current_month | last_3_months | current_year | all_time")
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    branch: Optional[str] = None
    category: Optional[str] = None
    payment_status: Optional[str] = None
    sort_by: str = "actual_profit"
    descending: bool = True


# ── Supplier payments ────────────────────────────────────────────────────────

class SupplierItemsRequest(_Schema):
    items: List[InventoryItem]
    supplier_name: str = Field(..., min_length=1)


class PaymentPreviewRequest(SupplierItemsRequest):
    payment_amount: float = Field(..., gt=0, le=MAX_PAYMENT_AMOUNT)
    payed_lom_narxi: float = Field(..., gt=0, le=MAX_PRICE_PER_GRAM)


class SupplierPaymentRequest(_Schema):
    """Settle the given (already selected) items at ``payed_lom_narxi``."""
    items: List[InventoryItem] = Field(..., min_length=1)
    supplier_name: str = Field(..., min_length=1)
    payed_lom_narxi: float = Field(..., gt=0, le=MAX_PRICE_PER_GRAM)
    payment_date: str = Field(..., min_length=1)
    reference: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("payment_date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        return _check_iso_date(value)


class SupplierBalanceRequest(_Schema):
    items: List[InventoryItem]
    search: Optional[str] = None
    supplier_name: Optional[str] = None
    payment_status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_date(value)
