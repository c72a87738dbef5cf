from __future__ import annotations

from typing import Any, Optional

from cims.constants import SAMPLE_REASONS
from cims.services.records import delete_record, insert_record, require_number, require_size, require_text
from cims.services.sales import batch_cost, check_batch_stock
from cims.services.units import vials_to_packs
from cims.services.users import require_admin
from cims.utils import clean_text, iso_today


def add_sample(
    store,
    collections,
    user,
    *,
    size: str,
    batch_number: str,
    vials: float,
    reason: str,
    recipient: Optional[str] = None,
    notes: Optional[str] = None,
    adjustment_date: Optional[str] = None,
) -> dict:
    """
    Write stock off a batch as a sample.

    The batch's purchase cost is copied onto the record so later cost changes
    do not rewrite the value of samples already taken.
    """
    msg = "Batch, vials, and reason are required."
    size = require_size(size)
    batch_number = require_text(batch_number, msg)
    reason = require_text(reason, msg)
    if reason not in SAMPLE_REASONS:
        raise ValueError(f"Invalid reason '{reason}'.")
    vials = require_number(vials, "Vials")

    units = vials_to_packs(vials, size)
    check_batch_stock(collections, size, batch_number, units)
    cost_per_pack = batch_cost(collections, batch_number, size)

    record = {
        "size": size,
        "batch_number": batch_number,
        "units": units,
        "vials": int(round(vials)),
        "reason": reason,
        "recipient": clean_text(recipient),
        "notes": clean_text(notes),
        "cost_per_pack": cost_per_pack,
        "total_cost": units * cost_per_pack,
        "adjustment_date": adjustment_date or iso_today(),
    }
    return insert_record(store, "stock_adjustments", record, user)


def delete_sample(store, user, adjustment_id: Any) -> None:
    require_admin(user)
    delete_record(store, "stock_adjustments", adjustment_id)
