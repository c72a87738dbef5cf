from __future__ import annotations

import logging
from typing import Any, Optional

from cims.constants import SIZES, SYSTEM_INITIALS
from cims.logger import log_transaction
from cims.utils import clean_text, iso_now

logger = logging.getLogger(__name__)


def actor_initials(user) -> str:
    initials = getattr(user, "initials", None) if user is not None else None
    return initials or SYSTEM_INITIALS


def require_text(value: Any, message: str) -> str:
    s = clean_text(value)
    if s is None:
        raise ValueError(message)
    return s


def require_number(value: Any, label: str, *, allow_zero: bool = False) -> float:
    if value is None or value == "":
        raise ValueError(f"{label} is required.")
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number.")
    if f < 0 or (f == 0 and not allow_zero):
        raise ValueError(f"{label} must be > 0.")
    return f


def require_size(size: Optional[str]) -> str:
    if size not in SIZES:
        raise ValueError(f"Unknown size '{size}'. Use one of: {', '.join(SIZES)}.")
    return str(size)


def insert_record(store, collection: str, record: dict, user) -> dict:
    """Stamp the audit fields and insert; every write path goes through here."""
    payload = {**record, "created_by": actor_initials(user), "created_at": iso_now()}
    try:
        stored = store.insert(collection, payload)
    except Exception as e:
        log_transaction(f"{collection}.insert", record, error=str(e))
        raise
    log_transaction(f"{collection}.insert", record, result=stored.get("id"))
    return stored


def delete_record(store, collection: str, record_id: Any) -> None:
    try:
        removed = store.delete(collection, record_id)
    except Exception as e:
        log_transaction(f"{collection}.delete", {"id": record_id}, error=str(e))
        raise
    if not removed:
        raise ValueError(f"Record {record_id} not found.")
    log_transaction(f"{collection}.delete", {"id": record_id}, result=True)
