"""
conftest.py — Shared pytest fixtures for the jewelry pricing test suite.

No database or external service fixtures are defined here. Engine tests are
pure unit tests; route tests go through FastAPI's in-process TestClient.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

os.environ.setdefault("LOG_FORMAT", "text")


# ---------------------------------------------------------------------------
# Pricing inputs
# ---------------------------------------------------------------------------

@pytest.fixture
def default_item_inputs():
    """
    The dashboard's default entry values for a 10 g item:
      lom narxi = 800 000, lom narxi kirim = 850 000,
      labour = 70 000 per gram, profit = 20 %.
    """
    return {
        "weight": 10.0,
        "lom_narxi": 800_000.0,
        "lom_narxi_kirim": 850_000.0,
        "labor_cost": 70_000.0,
        "profit_percentage": 20.0,
    }


# ---------------------------------------------------------------------------
# Inventory items for profit analysis
# ---------------------------------------------------------------------------

@pytest.fixture
def sold_branch_item():
    """
    Sold branch item paid below list price.
      theoretical = (850 000 − 800 000) × 10 = 500 000
      cost        = 10 × 790 000 + 10 × 70 000 = 8 600 000
      revenue     = 1 100 000 × 10 = 11 000 000
      actual      = 2 400 000
      price diff impact = (790 000 − 800 000) × 10 = −100 000
    """
    return {
        "id": "item-1",
        "model": "U-101",
        "category": "Uzuk",
        "weight": 10.0,
        "lom_narxi": 800_000.0,
        "lom_narxi_kirim": 850_000.0,
        "labor_cost": 70_000.0,
        "profit_percentage": 20.0,
        "selling_price": 1_100_000.0,
        "status": "sold",
        "is_provider": False,
        "branch": "narpay",
        "supplier_name": "Oltin Savdo",
        "payed_lom_narxi": 790_000.0,
        "price_difference": -10_000.0,
        "payment_status": "paid",
        "payment_date": "2026-10-05T09:30:00Z",
        "purchase_date": "2026-09-20",
    }


@pytest.fixture
def available_item():
    """
    Unsold branch item, no payment recorded.
      theoretical = (860 000 − 800 000) × 5 = 300 000
      cost        = 5 × 800 000 + 5 × 60 000 = 4 300 000
      revenue     = 0 → actual = −4 300 000
    """
    return {
        "id": "item-2",
        "model": "S-202",
        "category": "Sirg'a",
        "weight": 5.0,
        "lom_narxi": 800_000.0,
        "lom_narxi_kirim": 860_000.0,
        "labor_cost": 60_000.0,
        "profit_percentage": 25.0,
        "selling_price": 1_000_000.0,
        "status": "available",
        "is_provider": False,
        "branch": "kitob",
        "supplier_name": "Oltin Savdo",
        "payed_lom_narxi": None,
        "price_difference": None,
        "payment_status": "unpaid",
        "payment_date": None,
        "purchase_date": "2026-08-01",
    }


@pytest.fixture
def sold_central_item():
    """
    Sold central item, no branch.
      theoretical = 50 000 × 2 = 100 000
      cost        = 2 × 800 000 + 2 × 70 000 = 1 740 000
      revenue     = 1 050 000 × 2 = 2 100 000 → actual = 360 000
      price diff impact = stored −5 000 × 2 = −10 000 (no paid price)
    """
    return {
        "id": "item-3",
        "model": "U-303",
        "category": "Uzuk",
        "weight": 2.0,
        "lom_narxi": 800_000.0,
        "lom_narxi_kirim": 850_000.0,
        "labor_cost": 70_000.0,
        "profit_percentage": 20.0,
        "selling_price": 1_050_000.0,
        "status": "sold",
        "is_provider": True,
        "branch": None,
        "supplier_name": "Zargar Gold",
        "payed_lom_narxi": None,
        "price_difference": -5_000.0,
        "payment_status": "partially_paid",
        "payment_date": "2026-10-10",
        "purchase_date": "2026-09-01",
    }


@pytest.fixture
def inventory(sold_branch_item, available_item, sold_central_item):
    return [sold_branch_item, available_item, sold_central_item]


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def client():
    from fastapi.testclient import TestClient
    from app.main import app
    return TestClient(app)


@pytest.fixture
def perf_tracker():
    """Module-level PerformanceTracker, reset before and after the test."""
    from app.services.perf_monitor import tracker
    tracker.reset()
    yield tracker
    tracker.reset()
