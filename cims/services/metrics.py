from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Iterable, Optional, Union

from cims.constants import SIZES
from cims.services.units import vials_per_pack
from cims.utils import record_year, safe_div, to_float

YearFilter = Optional[Union[int, str]]


@dataclass
class SizeMetrics:
    stock: float = 0.0
    revenue: float = 0.0
    cost: float = 0.0
    sold: float = 0.0
    purchased: float = 0.0
    adjusted: float = 0.0
    avg_cost: float = 0.0
    stock_value: float = 0.0
    margin: float = 0.0
    adjusted_value: float = 0.0
    vials_per_pack: int = 0
    sold_vials: float = 0.0
    purchased_vials: float = 0.0
    adjusted_vials: float = 0.0
    stock_vials: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _units(r: dict) -> float:
    return to_float(r.get("units"))


def size_metrics(size: str, sales: list[dict], purchases: list[dict], adjustments: list[dict]) -> SizeMetrics:
    ss = [s for s in sales if s.get("size") == size]
    ps = [p for p in purchases if p.get("size") == size]
    adj = [a for a in adjustments if a.get("size") == size]

    sold = sum(_units(s) for s in ss)
    purchased = sum(_units(p) for p in ps)
    adjusted = sum(_units(a) for a in adj)
    adjusted_value = sum(_units(a) * to_float(a.get("cost_per_pack")) for a in adj)
    revenue = sum(_units(s) * to_float(s.get("price")) for s in ss)
    cost = sum(_units(p) * to_float(p.get("cost")) for p in ps)

    # Weighted average purchase cost per pack drives both stock value and margin.
    avg_cost = safe_div(cost, purchased)
    stock = purchased - sold - adjusted
    vpp = vials_per_pack(size)

    return SizeMetrics(
        stock=stock,
        revenue=revenue,
        cost=cost,
        sold=sold,
        purchased=purchased,
        adjusted=adjusted,
        avg_cost=avg_cost,
        stock_value=stock * avg_cost,
        margin=revenue - sold * avg_cost,
        adjusted_value=adjusted_value,
        vials_per_pack=vpp,
        sold_vials=sold * vpp,
        purchased_vials=purchased * vpp,
        adjusted_vials=adjusted * vpp,
        stock_vials=stock * vpp,
    )


def calc_metrics(collections) -> dict[str, SizeMetrics]:
    return {
        size: size_metrics(size, collections.sales, collections.purchases, collections.stock_adjustments)
        for size in SIZES
    }


def totals(metrics: dict[str, SizeMetrics]) -> dict[str, float]:
    """Sum every field across sizes (avg_cost and vials_per_pack are not meaningful totals)."""
    out = {}
    for f in fields(SizeMetrics):
        if f.name in ("avg_cost", "vials_per_pack"):
            continue
        out[f.name] = sum(getattr(m, f.name) for m in metrics.values())
    return out


def _year_matches(record: dict, date_field: str, year: YearFilter) -> bool:
    if year in (None, "all", ""):
        return True
    return record_year(record, date_field) == int(year)


def country_sales(sales: list[dict], year: YearFilter = None) -> tuple[list[dict], float]:
    """Sales value by end destination (falling back to the customer's country)."""
    by_country: dict[str, float] = {}
    total = 0.0
    for s in sales:
        if not _year_matches(s, "sale_date", year):
            continue
        country = s.get("end_destination") or s.get("country") or "Unknown"
        value = _units(s) * to_float(s.get("price"))
        by_country[country] = by_country.get(country, 0.0) + value
        total += value

    rows = [
        {
            "country": country,
            "value": value,
            "percentage": round(value / total * 100.0, 1) if total > 0 else 0.0,
        }
        for country, value in by_country.items()
    ]
    rows.sort(key=lambda r: r["value"], reverse=True)
    return rows, total


def available_years(*sources: tuple[Iterable[dict], str]) -> list[int]:
    """Distinct years across ``(records, date_field)`` pairs, newest first."""
    years = set()
    for records, date_field in sources:
        for r in records:
            y = record_year(r, date_field)
            if y is not None:
                years.add(y)
    return sorted(years, reverse=True)


def filter_by_year_and_size(records: list[dict], date_field: str, year: YearFilter = "all", size: Optional[str] = "all") -> list[dict]:
    return [
        r
        for r in records
        if _year_matches(r, date_field, year) and (size in (None, "all", "") or r.get("size") == size)
    ]


def report_totals(sales: list[dict], purchases: list[dict], adjustments: list[dict]) -> dict[str, float]:
    return {
        "sales_value": sum(_units(s) * to_float(s.get("price")) for s in sales),
        "purchases_value": sum(_units(p) * to_float(p.get("cost")) for p in purchases),
        "adjustments_value": sum(to_float(a.get("total_cost")) for a in adjustments),
        "adjustments_vials": sum(to_float(a.get("vials")) for a in adjustments),
    }
