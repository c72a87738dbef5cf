from __future__ import annotations

from datetime import date
from typing import Any, Optional

from cims.services.records import delete_record, insert_record, require_number, require_size, require_text
from cims.services.units import per_vial_to_per_pack, vials_to_packs
from cims.services.users import require_admin
from cims.utils import iso_today, parse_date


def add_purchase(
    store,
    user,
    *,
    supplier: str,
    size: str,
    batch_number: str,
    expiry_date: str,
    vials: float,
    cost_per_vial: float,
    purchase_date: Optional[str] = None,
    supplier_id: Optional[Any] = None,
) -> dict:
    """
    Record a goods receipt. The form works in vials; the record is kept in
    packs with a per-pack cost so it lines up with sales and samples.
    """
    msg = "Fill all fields."
    size = require_size(size)
    supplier = require_text(supplier, msg)
    batch_number = require_text(batch_number, msg)
    expiry = parse_date(require_text(expiry_date, msg))
    if expiry is None:
        raise ValueError("Expiry date must be an ISO date (YYYY-MM-DD).")
    vials = require_number(vials, "Vials")
    cost_per_vial = require_number(cost_per_vial, "Cost per vial")

    record = {
        "supplier_id": supplier_id or None,
        "supplier": supplier,
        "size": size,
        "batch_number": batch_number,
        "expiry_date": expiry.isoformat(),
        "units": vials_to_packs(vials, size),
        "cost": per_vial_to_per_pack(cost_per_vial, size),
        "purchase_date": purchase_date or iso_today(),
    }
    return insert_record(store, "purchases", record, user)


def delete_purchase(store, user, purchase_id: Any) -> None:
    require_admin(user)
    delete_record(store, "purchases", purchase_id)


def is_expired(purchase: dict, today: Optional[date] = None) -> bool:
    exp = parse_date(purchase.get("expiry_date"))
    return bool(exp and exp < (today or date.today()))
