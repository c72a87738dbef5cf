from __future__ import annotations

from typing import Any

from cims.constants import PIPELINE_STATUSES
from cims.logger import log_transaction
from cims.services.records import delete_record, insert_record, require_number, require_size, require_text
from cims.services.units import per_vial_to_per_pack, vials_to_packs
from cims.services.users import require_admin
from cims.utils import parse_date, to_float


def _normalize_status(status: str) -> str:
    s = str(status or "").strip()
    if s not in PIPELINE_STATUSES:
        raise ValueError(f"Invalid status '{status}'. Use one of: {', '.join(PIPELINE_STATUSES)}.")
    return s


def add_pipeline_order(
    store,
    user,
    *,
    po_number: str,
    supplier: str,
    size: str,
    vials: float,
    price_per_vial: float,
    expected_date: str,
    status: str = "Ordered",
) -> dict:
    msg = "Fill all fields."
    po_number = require_text(po_number, msg)
    supplier = require_text(supplier, msg)
    size = require_size(size)
    expected = parse_date(require_text(expected_date, msg))
    if expected is None:
        raise ValueError("Expected date must be an ISO date (YYYY-MM-DD).")
    vials = require_number(vials, "Vials")
    price_per_vial = require_number(price_per_vial, "Price per vial")

    units = vials_to_packs(vials, size)
    price = per_vial_to_per_pack(price_per_vial, size)
    record = {
        "po_number": po_number,
        "supplier": supplier,
        "size": size,
        "units": units,
        "price": price,
        "total_value": units * price,
        "expected_date": expected.isoformat(),
        "status": _normalize_status(status),
    }
    return insert_record(store, "pipeline_purchases", record, user)


def update_pipeline_status(store, order_id: Any, status: str) -> dict:
    status = _normalize_status(status)
    updated = store.update("pipeline_purchases", order_id, {"status": status})
    log_transaction("pipeline_purchases.status", {"id": order_id, "status": status}, result=True)
    return updated


def delete_pipeline_order(store, user, order_id: Any) -> None:
    require_admin(user)
    delete_record(store, "pipeline_purchases", order_id)


def pipeline_summary(orders: list[dict]) -> list[dict]:
    out = []
    for status in PIPELINE_STATUSES:
        rows = [o for o in orders if o.get("status") == status]
        out.append(
            {
                "status": status,
                "orders": len(rows),
                "units": sum(to_float(o.get("units")) for o in rows),
                "total_value": sum(to_float(o.get("total_value")) for o in rows),
            }
        )
    return out


def status_index(status: Any) -> int:
    """Position of ``status`` in PIPELINE_STATUSES, or 0 for a value outside it."""
    return PIPELINE_STATUSES.index(status) if status in PIPELINE_STATUSES else 0
