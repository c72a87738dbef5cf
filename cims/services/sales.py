from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from cims.constants import CONVERTED_FROM_HOLD
from cims.services.records import delete_record, insert_record, require_number, require_size, require_text
from cims.services.units import per_vial_to_per_pack, vials_per_pack, vials_to_packs
from cims.services.users import require_admin
from cims.utils import clean_text, iso_today, to_float

logger = logging.getLogger(__name__)

# Packs are fractional (vials / 5); allow for float noise when checking stock.
STOCK_EPSILON = 1e-9


@dataclass
class BatchAvailability:
    batch: str
    available_packs: float
    available_vials: float
    supplier: Optional[str]
    expiry_date: Optional[str]
    cost_per_pack: float


def available_batches(collections, size: str, *, include_empty: bool = False) -> list[BatchAvailability]:
    """
    Batches of one size, in first-purchase order.

    Supplier, expiry and cost come from the first purchase of the batch.
    Sales and samples against a batch nobody purchased are ignored here.
    Batches at or below zero are left out unless ``include_empty`` is set;
    ``available_packs`` goes negative once a batch is oversold.
    """
    batches: dict[str, dict] = {}
    for p in collections.purchases:
        if p.get("size") != size:
            continue
        b = batches.setdefault(
            p.get("batch_number"),
            {
                "purchased": 0.0,
                "sold": 0.0,
                "adjusted": 0.0,
                "supplier": p.get("supplier"),
                "expiry_date": p.get("expiry_date"),
                "cost": to_float(p.get("cost")),
            },
        )
        b["purchased"] += to_float(p.get("units"))

    for s in collections.sales:
        if s.get("size") == size and s.get("batch_number") in batches:
            batches[s["batch_number"]]["sold"] += to_float(s.get("units"))
    for a in collections.stock_adjustments:
        if a.get("size") == size and a.get("batch_number") in batches:
            batches[a["batch_number"]]["adjusted"] += to_float(a.get("units"))

    vpp = vials_per_pack(size)
    out: list[BatchAvailability] = []
    for batch, v in batches.items():
        left = v["purchased"] - v["sold"] - v["adjusted"]
        if left > STOCK_EPSILON or include_empty:
            out.append(
                BatchAvailability(
                    batch=str(batch),
                    available_packs=left,
                    available_vials=left * vpp,
                    supplier=v["supplier"],
                    expiry_date=v["expiry_date"],
                    cost_per_pack=v["cost"],
                )
            )
    return out


def batch_cost(collections, batch_number: str, size: str) -> float:
    for p in collections.purchases:
        if p.get("batch_number") == batch_number and p.get("size") == size:
            return to_float(p.get("cost"))
    return 0.0


def check_batch_stock(collections, size: str, batch_number: str, units: float) -> BatchAvailability:
    """
    Resolve the batch a sale, sample or conversion draws from.

    Only a batch that was never purchased in this size is refused. Taking
    more than is left is allowed and drives stock negative; it is logged
    so the oversell can be traced.
    """
    for b in available_batches(collections, size, include_empty=True):
        if b.batch == batch_number:
            if units > b.available_packs + STOCK_EPSILON:
                logger.warning(
                    "Batch %s (%s) oversold: %.2f packs taken, %.2f available",
                    batch_number,
                    size,
                    units,
                    b.available_packs,
                )
            return b
    raise ValueError(f"Batch {batch_number} was never purchased in {size}.")


def record_sale(store, user, record: dict) -> dict:
    """Low-level insert shared by the sale form and hold conversion."""
    return insert_record(store, "sales", record, user)


def add_sale(
    store,
    collections,
    user,
    *,
    customer: str,
    country: Optional[str],
    end_destination: str,
    size: str,
    batch_number: str,
    vials: float,
    price_per_vial: float,
    sale_date: Optional[str] = None,
    customer_id: Optional[Any] = None,
) -> dict:
    msg = "Fill all fields including End Destination."
    size = require_size(size)
    customer = require_text(customer, msg)
    end_destination = require_text(end_destination, msg)
    batch_number = require_text(batch_number, msg)
    vials = require_number(vials, "Vials")
    price_per_vial = require_number(price_per_vial, "Price per vial")

    units = vials_to_packs(vials, size)
    check_batch_stock(collections, size, batch_number, units)

    record = {
        "customer_id": customer_id or None,
        "customer": customer,
        "country": clean_text(country),
        "end_destination": end_destination,
        "size": size,
        "batch_number": batch_number,
        "units": units,
        "price": per_vial_to_per_pack(price_per_vial, size),
        "sale_date": sale_date or iso_today(),
    }
    return record_sale(store, user, record)


def delete_sale(store, user, sale_id: Any) -> None:
    require_admin(user)
    delete_record(store, "sales", sale_id)


def is_converted(sale: dict) -> bool:
    return sale.get("converted_from") == CONVERTED_FROM_HOLD
