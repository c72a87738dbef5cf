from math import isclose

import pytest

from cims.services.metrics import (
    available_years,
    calc_metrics,
    country_sales,
    filter_by_year_and_size,
    report_totals,
    totals,
)
from cims.store import Collections


def _data():
    return Collections(
        purchases=[
            {"size": "5ml", "batch_number": "A", "units": 10, "cost": 10.0, "purchase_date": "2025-02-01"},
            {"size": "5ml", "batch_number": "B", "units": 10, "cost": 20.0, "purchase_date": "2026-02-01"},
            {"size": "100ml", "batch_number": "C", "units": 4, "cost": 50.0, "purchase_date": "2026-03-01"},
        ],
        sales=[
            {"size": "5ml", "batch_number": "A", "units": 5, "price": 30.0, "end_destination": "Norway", "sale_date": "2025-06-01"},
            {"size": "5ml", "batch_number": "B", "units": 2, "price": 40.0, "country": "Spain", "sale_date": "2026-01-15"},
            {"size": "100ml", "batch_number": "C", "units": 1, "price": 100.0, "sale_date": "", "created_at": "2026-04-01T10:00:00+00:00"},
        ],
        stock_adjustments=[
            {"size": "5ml", "batch_number": "A", "units": 1, "vials": 5, "cost_per_pack": 10.0, "total_cost": 10.0, "adjustment_date": "2026-01-02"},
        ],
    )


def test_stock_is_purchased_minus_sold_minus_adjusted():
    m = calc_metrics(_data())
    five = m["5ml"]
    assert five.purchased == 20
    assert five.sold == 7
    assert five.adjusted == 1
    assert five.stock == 12
    assert five.stock_vials == 60
    assert five.sold_vials == 35
    assert five.vials_per_pack == 5

    hundred = m["100ml"]
    assert hundred.stock == 3
    assert hundred.stock_vials == 3

    assert m["10ml"].stock == 0
    assert m["10ml"].avg_cost == 0


def test_average_cost_drives_value_and_margin():
    five = calc_metrics(_data())["5ml"]
    # (10*10 + 10*20) / 20
    assert isclose(five.avg_cost, 15.0)
    assert isclose(five.cost, 300.0)
    assert isclose(five.revenue, 5 * 30 + 2 * 40)
    assert isclose(five.stock_value, 12 * 15.0)
    assert isclose(five.margin, 230.0 - 7 * 15.0)
    assert isclose(five.adjusted_value, 10.0)


def test_non_numeric_units_count_as_zero():
    data = Collections(
        purchases=[{"size": "10ml", "units": "abc", "cost": 5}, {"size": "10ml", "units": "4", "cost": "2.5"}],
        sales=[{"size": "10ml", "units": None, "price": 9}],
    )
    ten = calc_metrics(data)["10ml"]
    assert ten.purchased == 4
    assert ten.sold == 0
    assert isclose(ten.cost, 10.0)


def test_totals_sum_sizes():
    t = totals(calc_metrics(_data()))
    assert t["stock"] == 15
    assert t["stock_vials"] == 63
    assert isclose(t["revenue"], 330.0)
    assert "avg_cost" not in t


def test_country_sales_groups_by_destination():
    rows, total = country_sales(_data().sales)
    assert isclose(total, 330.0)
    assert [r["country"] for r in rows] == ["Norway", "Unknown", "Spain"]
    assert rows[0]["percentage"] == pytest.approx(45.5)


def test_country_sales_year_filter_uses_created_at_fallback():
    rows, total = country_sales(_data().sales, year="2026")
    assert {r["country"] for r in rows} == {"Spain", "Unknown"}
    assert isclose(total, 180.0)
    assert country_sales([], year=2026) == ([], 0.0)


def test_available_years_newest_first():
    d = _data()
    assert available_years((d.sales, "sale_date")) == [2026, 2025]
    assert available_years((d.purchases, "purchase_date"), (d.stock_adjustments, "adjustment_date")) == [2026, 2025]


def test_filter_by_year_and_size():
    d = _data()
    assert len(filter_by_year_and_size(d.sales, "sale_date", "all", "all")) == 3
    assert len(filter_by_year_and_size(d.sales, "sale_date", 2026, "all")) == 2
    assert len(filter_by_year_and_size(d.sales, "sale_date", "2026", "5ml")) == 1
    assert filter_by_year_and_size(d.sales, "sale_date", 2024, None) == []


def test_report_totals():
    d = _data()
    t = report_totals(d.sales, d.purchases, d.stock_adjustments)
    assert isclose(t["sales_value"], 330.0)
    assert isclose(t["purchases_value"], 500.0)
    assert isclose(t["adjustments_value"], 10.0)
    assert t["adjustments_vials"] == 5
