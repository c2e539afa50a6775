"""
test_supplier_payments.py — Unit tests for app.services.supplier_payments.

Tests cover:
  - Per-gram price difference (payed − lom)
  - Unpaid items of one supplier, oldest purchase first
  - Automatic item selection for a payment amount
  - Payment totals and settlement
  - Paid / unpaid / returned balances

Ledger used throughout (lom narxi 800 000 unless noted):
  s-1  Oltin Savdo  10 g   bought 2026-07-01  unpaid
  s-2  Oltin Savdo   5 g   bought 2026-08-15  unpaid  lom narxi 810 000
  s-3  Oltin Savdo  20 g   bought 2026-09-01  unpaid
  s-4  Oltin Savdo 0.5 g   undated            unpaid
  s-5  Oltin Savdo   4 g   bought 2026-06-01  paid at 790 000
  z-1  Zargar Gold   3 g   bought 2026-05-01  unpaid, returned to supplier
"""

from datetime import date

import pytest

from app.services.supplier_payments import (
    SupplierFilters,
    auto_select_items,
    calculate_payment_totals,
    filter_supplier_items,
    payment_price_difference,
    settle_supplier_payment,
    supplier_balances,
    supplier_names,
    unpaid_items_for_supplier,
)


def _item(item_id, weight, purchase_date, **overrides):
    item = {
        "id": item_id,
        "model": f"M-{item_id}",
        "category": "Uzuk",
        "weight": weight,
        "lom_narxi": 800_000.0,
        "lom_narxi_kirim": 850_000.0,
        "labor_cost": 70_000.0,
        "status": "available",
        "supplier_name": "Oltin Savdo",
        "payment_status": "unpaid",
        "payed_lom_narxi": None,
        "price_difference": None,
        "purchase_date": purchase_date,
    }
    item.update(overrides)
    return item


@pytest.fixture
def ledger():
    return [
        _item("s-3", 20.0, "2026-09-01"),
        _item("s-4", 0.5, None),
        _item("s-1", 10.0, "2026-07-01"),
        _item("s-2", 5.0, "2026-08-15", lom_narxi=810_000.0),
        _item("s-5", 4.0, "2026-06-01", payment_status="paid", payed_lom_narxi=790_000.0),
        _item("z-1", 3.0, "2026-05-01", supplier_name="Zargar Gold", status="returned_to_supplier"),
    ]


def _ids(items):
    return [item["id"] for item in items]


# ===========================================================================
# Class 1: Price difference
# ===========================================================================

class TestPaymentPriceDifference:

    def test_paid_below_recorded_price(self):
        assert payment_price_difference(790_000, 800_000) == pytest.approx(-10_000)

    def test_paid_above_recorded_price(self):
        assert payment_price_difference(815_000, 800_000) == pytest.approx(15_000)

    @pytest.mark.parametrize("payed,lom", [(None, 800_000), (790_000, None), (0, 800_000)])
    def test_missing_price(self, payed, lom):
        assert payment_price_difference(payed, lom) is None


# ===========================================================================
# Class 2: Unpaid items and auto-selection
# ===========================================================================

class TestUnpaidItems:

    def test_oldest_first_undated_last(self, ledger):
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert _ids(unpaid) == ["s-1", "s-2", "s-3", "s-4"]

    def test_unknown_supplier(self, ledger):
        assert unpaid_items_for_supplier(ledger, "Nomalum") == []


class TestAutoSelect:

    def test_selects_while_amount_covers(self, ledger):
        """
        12 000 000 at 790 000 per gram:
          s-1  7 900 000 → 4 100 000 left
          s-2  3 950 000 →   150 000 left
          s-3 15 800 000 → does not fit
        """
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert _ids(auto_select_items(unpaid, 12_000_000, 790_000)) == ["s-1", "s-2"]

    def test_stops_at_first_item_that_does_not_fit(self, ledger):
        """
        8 500 000 covers s-1 (7 900 000) leaving 600 000. s-2 (3 950 000) does
        not fit, so s-4 (395 000) is not reached even though it would fit.
        """
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert _ids(auto_select_items(unpaid, 8_500_000, 790_000)) == ["s-1"]

    def test_sorts_its_input(self, ledger):
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert _ids(auto_select_items(list(reversed(unpaid)), 7_900_000, 790_000)) == ["s-1"]

    def test_exact_amount_fits(self, ledger):
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert _ids(auto_select_items(unpaid, 11_850_000, 790_000)) == ["s-1", "s-2"]

    @pytest.mark.parametrize("amount,price", [(0, 790_000), (12_000_000, 0)])
    def test_nothing_without_amount_or_price(self, ledger, amount, price):
        assert auto_select_items(ledger, amount, price) == []

    def test_amount_below_oldest_item(self, ledger):
        unpaid = unpaid_items_for_supplier(ledger, "Oltin Savdo")
        assert auto_select_items(unpaid, 1_000_000, 790_000) == []


# ===========================================================================
# Class 3: Totals and settlement
# ===========================================================================

class TestPaymentTotals:
    """
    s-1 and s-2 at 790 000:
      weight        = 15
      original cost = 10 × 800 000 + 5 × 810 000 = 12 050 000
      payment cost  = 15 × 790 000 = 11 850 000
      difference    = −200 000
      average lom   = 12 050 000 / 15 = 803 333.33
    """

    def test_totals(self, ledger):
        selected = [item for item in ledger if item["id"] in ("s-1", "s-2")]
        totals = calculate_payment_totals(selected, 790_000)
        assert totals.item_count == 2
        assert totals.total_weight == pytest.approx(15)
        assert totals.total_original_cost == pytest.approx(12_050_000)
        assert totals.total_payment_cost == pytest.approx(11_850_000)
        assert totals.price_difference == pytest.approx(-200_000)
        assert totals.original_lom_narxi == pytest.approx(12_050_000 / 15)

    def test_empty_selection(self):
        totals = calculate_payment_totals([], 790_000)
        assert totals.to_dict() == {
            "item_count": 0,
            "total_weight": 0,
            "total_original_cost": 0,
            "total_payment_cost": 0,
            "price_difference": 0,
            "original_lom_narxi": 0,
        }


class TestSettlePayment:

    def _selected(self, ledger):
        return [item for item in ledger if item["id"] in ("s-1", "s-2")]

    def test_transaction(self, ledger):
        result = settle_supplier_payment(
            self._selected(ledger), "Oltin Savdo", 790_000, "2026-10-18", reference="PAY-7", notes="naqd",
        )
        tx = result["transaction"]
        assert tx.type == "payment"
        assert tx.item_ids == ["s-1", "s-2"]
        assert tx.total_amount == pytest.approx(11_850_000)
        assert tx.original_lom_narxi == pytest.approx(12_050_000 / 15)
        assert tx.price_difference == pytest.approx(790_000 - 12_050_000 / 15)
        assert tx.to_dict()["reference"] == "PAY-7"

    def test_items_marked_paid(self, ledger):
        result = settle_supplier_payment(self._selected(ledger), "Oltin Savdo", 790_000, "2026-10-18")
        s1, s2 = result["items"]
        assert s1["payment_status"] == s2["payment_status"] == "paid"
        assert s1["payed_lom_narxi"] == 790_000
        assert s1["payment_date"] == "2026-10-18"
        assert s1["price_difference"] == pytest.approx(-10_000)
        assert s2["price_difference"] == pytest.approx(-20_000)

    def test_inputs_not_modified(self, ledger):
        selected = self._selected(ledger)
        settle_supplier_payment(selected, "Oltin Savdo", 790_000, "2026-10-18")
        assert {item["payment_status"] for item in selected} == {"unpaid"}

    def test_other_supplier_rejected(self, ledger):
        with pytest.raises(ValueError, match="z-1"):
            settle_supplier_payment(ledger, "Oltin Savdo", 790_000, "2026-10-18")

    def test_records_timing(self, ledger, perf_tracker):
        settle_supplier_payment(self._selected(ledger), "Oltin Savdo", 790_000, "2026-10-18")
        assert perf_tracker.get_metrics()["calls_by_operation"]["settle_supplier_payment"] == 1


# ===========================================================================
# Class 4: Balances
# ===========================================================================

class TestBalances:
    """
    Whole ledger:
      total value  = 10×800 000 + 5×810 000 + 20×800 000 + 0.5×800 000
                     + 4×800 000 + 3×800 000 = 34 050 000
      paid value   = 4 × 790 000 = 3 160 000
      unpaid value = 34 050 000 − 3 200 000 = 30 850 000
      difference   = (790 000 − 800 000) × 4 = −40 000
    """

    def test_whole_ledger(self, ledger):
        balances = supplier_balances(ledger)
        assert balances["total_items"] == 6
        assert balances["paid_items"] == 1
        assert balances["unpaid_items"] == 5
        assert balances["partially_paid_items"] == 0
        assert balances["returned_to_supplier_items"] == 1
        assert balances["total_value"] == pytest.approx(34_050_000)
        assert balances["paid_value"] == pytest.approx(3_160_000)
        assert balances["unpaid_value"] == pytest.approx(30_850_000)
        assert balances["returned_value"] == pytest.approx(2_400_000)
        assert balances["price_difference"] == pytest.approx(-40_000)

    def test_returned_counted_regardless_of_filters(self, ledger):
        balances = supplier_balances(ledger, SupplierFilters(supplier_name="Oltin Savdo"))
        assert balances["total_items"] == 5
        assert balances["returned_to_supplier_items"] == 1

    def test_supplier_names(self, ledger):
        assert supplier_names(ledger) == ["Oltin Savdo", "Zargar Gold"]


class TestSupplierFilters:

    def test_search_is_case_insensitive(self, ledger):
        assert _ids(filter_supplier_items(ledger, SupplierFilters(search="zargar"))) == ["z-1"]
        assert _ids(filter_supplier_items(ledger, SupplierFilters(search="m-s-1"))) == ["s-1"]

    def test_payment_status(self, ledger):
        assert _ids(filter_supplier_items(ledger, SupplierFilters(payment_status="paid"))) == ["s-5"]
        assert len(filter_supplier_items(ledger, SupplierFilters(payment_status="all"))) == 6

    def test_start_date_alone_keeps_undated(self, ledger):
        filters = SupplierFilters(start_date=date(2026, 8, 1))
        assert _ids(filter_supplier_items(ledger, filters)) == ["s-3", "s-4", "s-2"]

    def test_end_date_alone(self, ledger):
        filters = SupplierFilters(end_date=date(2026, 7, 1))
        assert _ids(filter_supplier_items(ledger, filters)) == ["s-4", "s-1", "s-5", "z-1"]
