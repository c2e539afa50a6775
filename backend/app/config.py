"""
Pricing configuration — single source of truth for pricing defaults,
quality/purity adjustment tables, branches and categories.

Import from here in all engines and routes rather than hardcoding values.
Numeric defaults can be overridden through environment variables (a ``.env``
file is loaded by ``app.main`` in development).
"""
from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


# ── Currency ──────────────────────────────────────────────────────────────────
CURRENCY_CODE: str = os.getenv("CURRENCY_CODE", "UZS")
CURRENCY_SUFFIX: str = "so'm"


# ── Item-entry defaults (UZS per gram unless stated) ──────────────────────────
DEFAULT_PROFIT_PERCENTAGE: float = _env_float("DEFAULT_PROFIT_PERCENTAGE", 20.0)
DEFAULT_LOM_NARXI: float = _env_float("DEFAULT_LOM_NARXI", 800_000.0)
DEFAULT_LOM_NARXI_KIRIM: float = _env_float("DEFAULT_LOM_NARXI_KIRIM", 850_000.0)
DEFAULT_LABOR_COST: float = _env_float("DEFAULT_LABOR_COST", 70_000.0)

# Markup applied to lom narxi when suggesting a branch (kirim) price, in %
DEFAULT_TRANSFER_MARGIN: float = _env_float("DEFAULT_TRANSFER_MARGIN", 10.0)

# Seed value for the bulk profit-margin form when no items are selected
DEFAULT_BULK_PROFIT_PERCENTAGE: float = 30.0


# ── Quality and purity adjustments ────────────────────────────────────────────
QUALITY_MULTIPLIERS: dict[str, float] = {
    "A": 1.1,
    "B": 1.0,
    "C": 0.9,
}

# 585 fineness (14K) is the reference all material prices are quoted against
PURITY_REFERENCE: float = 585.0

KARAT_FINENESS: dict[str, float] = {
    "14K": 585.0,
    "18K": 750.0,
    "21K": 875.0,
    "22K": 916.0,
    "24K": 999.0,
}


# ── Reference data ────────────────────────────────────────────────────────────
CATEGORIES: list[str] = ["Uzuk", "Sirg'a", "Bilakuzuk", "Zanjir", "Boshqa"]

ITEM_STATUSES: list[str] = [
    "available",
    "sold",
    "returned",
    "transferred",
    "reserved",
    "returned_to_supplier",
]

PAYMENT_STATUSES: list[str] = ["unpaid", "partially_paid", "paid"]

# Uzbek display labels used in exported reports
STATUS_LABELS: dict[str, str] = {
    "sold": "Sotilgan",
    "available": "Mavjud",
    "transferred": "O'tkazilgan",
    "returned": "Qaytarilgan",
}

PAYMENT_STATUS_LABELS: dict[str, str] = {
    "paid": "To'langan",
    "unpaid": "To'lanmagan",
    "partially_paid": "Qisman to'langan",
}

BRANCHES: list[dict] = [
    {"id": "central", "name": "Markaz (Ta'minotchi)", "location": "Toshkent", "is_provider": True},
    {"id": "narpay", "name": "Narpay", "location": "Samarqand viloyati", "is_provider": False},
    {"id": "kitob", "name": "Kitob", "location": "Qashqadaryo viloyati", "is_provider": False},
    {"id": "bulungur", "name": "Bulung'ur", "location": "Samarqand viloyati", "is_provider": False},
    {"id": "qiziltepa", "name": "Qizil Tepa", "location": "Navoiy viloyati", "is_provider": False},
]


# ── Profit analysis thresholds ────────────────────────────────────────────────
# Revenue margin (%) above which the analysis reports a healthy margin
GOOD_MARGIN_PCT: float = 20.0
# Revenue margin (%) below which the analysis flags a low margin
LOW_MARGIN_PCT: float = 15.0

TIME_PERIODS: list[str] = [
    "last_7_days",
    "last_30_days",
    "current_month",
    "last_3_months",
    "current_year",
    "all_time",
]


# ── Input limits ──────────────────────────────────────────────────────────────
# Upper bounds on request numbers; products of values inside these limits stay
# finite so every computed amount can be serialised.
MAX_WEIGHT_GRAMS: float = 100_000.0
MAX_PRICE_PER_GRAM: float = 1e12
# Item prices are whole UZS per gram
MIN_PRICE_PER_GRAM: float = 1.0
MAX_PROFIT_PERCENTAGE: float = 10_000.0
MAX_PAYMENT_AMOUNT: float = 1e18
