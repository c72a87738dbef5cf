from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from cims.constants import CONVERTED_FROM_HOLD, REVERTED_FROM_SALE
from cims.logger import log_transaction
from cims.services.records import (
    actor_initials,
    delete_record,
    insert_record,
    require_number,
    require_size,
    require_text,
)
from cims.services.sales import check_batch_stock, is_converted, record_sale
from cims.services.units import per_vial_to_per_pack, vials_per_pack, vials_to_packs
from cims.services.users import require_admin
from cims.utils import clean_text, iso_today, to_float

logger = logging.getLogger(__name__)


def record_hold(store, user, record: dict) -> dict:
    """Low-level insert shared by the hold form and sale reversion."""
    return insert_record(store, "stock_holds", record, user)


def add_hold(
    store,
    user,
    *,
    customer: str,
    country: Optional[str],
    end_destination: str,
    size: str,
    vials: float,
    notes: Optional[str] = None,
    hold_date: Optional[str] = None,
    customer_id: Optional[Any] = None,
) -> dict:
    msg = "Customer, vials, and End Destination are required."
    size = require_size(size)
    customer = require_text(customer, msg)
    end_destination = require_text(end_destination, msg)
    vials = require_number(vials, "Vials")

    record = {
        "customer_id": customer_id or None,
        "customer": customer,
        "country": clean_text(country),
        "end_destination": end_destination,
        "size": size,
        "units": vials_to_packs(vials, size),
        "vials": int(round(vials)),
        "notes": clean_text(notes),
        "hold_date": hold_date or iso_today(),
    }
    return record_hold(store, user, record)


def delete_hold(store, user, hold_id: Any) -> None:
    require_admin(user)
    delete_record(store, "stock_holds", hold_id)


def _finish_move(store, source: str, source_id: Any, created: dict, operation: str) -> None:
    # Second half of a move: no rollback, the created record stays if this fails.
    try:
        delete_record(store, source, source_id)
    except Exception as e:
        logger.error(
            "%s: created %s but could not remove %s %s: %s",
            operation, created.get("id"), source, source_id, e,
        )
        log_transaction(operation, {"source": source, "source_id": source_id, "created_id": created.get("id")}, error=str(e))
        raise


def convert_hold_to_sale(
    store,
    collections,
    user,
    hold_id: Any,
    *,
    batch_number: str,
    price_per_vial: float,
    sale_date: Optional[str] = None,
) -> dict:
    """
    Turn a stock hold into a sale and remove the hold.

    Customer, destination, size and units come from the hold; the sale keeps
    ``converted_from``/``original_hold_id``/``converted_by`` so it can be
    reverted later.
    """
    hold = collections.find("stock_holds", hold_id)
    if hold is None:
        raise ValueError("Stock hold not found")

    size = hold["size"]
    batch_number = require_text(batch_number, "Batch is required.")
    price_per_vial = require_number(price_per_vial, "Price per vial")
    units = to_float(hold.get("units"))
    check_batch_stock(collections, size, batch_number, units)

    sale = record_sale(
        store,
        user,
        {
            "customer_id": hold.get("customer_id"),
            "customer": hold.get("customer"),
            "country": hold.get("country"),
            "end_destination": hold.get("end_destination"),
            "size": size,
            "batch_number": batch_number,
            "units": units,
            "price": per_vial_to_per_pack(price_per_vial, size),
            "sale_date": sale_date or iso_today(),
            "converted_from": CONVERTED_FROM_HOLD,
            "original_hold_id": hold["id"],
            "converted_by": actor_initials(user),
        },
    )
    _finish_move(store, "stock_holds", hold["id"], sale, "holds.convert")
    log_transaction("holds.convert", {"hold_id": hold["id"]}, result=sale.get("id"))
    return sale


def revert_sale_to_hold(store, collections, user, sale_id: Any, *, today: Optional[date] = None) -> dict:
    """Undo a conversion: recreate the hold from the sale, then delete the sale."""
    require_admin(user)
    sale = collections.find("sales", sale_id)
    if sale is None:
        raise ValueError("Sale not found")
    if not is_converted(sale):
        raise ValueError("This sale was not converted from a stock hold")

    today = today or date.today()
    size = sale["size"]
    units = to_float(sale.get("units"))
    vials = sale.get("vials") or int(round(units * vials_per_pack(size)))

    hold = record_hold(
        store,
        user,
        {
            "customer_id": sale.get("customer_id"),
            "customer": sale.get("customer"),
            "country": sale.get("country"),
            "end_destination": sale.get("end_destination"),
            "size": size,
            "units": units,
            "vials": int(vials),
            "notes": f"Reverted from sale on {today.isoformat()}",
            "hold_date": today.isoformat(),
            "reverted_from": REVERTED_FROM_SALE,
            "original_sale_id": sale["id"],
            "reverted_by": actor_initials(user),
        },
    )
    _finish_move(store, "sales", sale["id"], hold, "holds.revert")
    log_transaction("holds.revert", {"sale_id": sale["id"]}, result=hold.get("id"))
    return hold
