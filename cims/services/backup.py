from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional

import pandas as pd

from cims.constants import COLLECTIONS, PIPELINE_STATUSES, ROLES, SIZES
from cims.logger import log_transaction
from cims.utils import iso_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1


def export_backup(store) -> dict:
    data = {name: store.all(name) for name in COLLECTIONS}
    return {"version": BACKUP_VERSION, "exported_at": iso_now(), "backend": store.backend, "data": data}


def dumps_backup(payload: dict) -> str:
    return json.dumps(payload, indent=2, default=str)


def loads_backup(raw: Any) -> dict:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise ValueError(f"Backup is not valid JSON: {e}")
    return payload


# Fields a restored record must carry, by collection.
REQUIRED_FIELDS = {
    "users": ("username", "password", "name", "role"),
    "customers": ("name",),
    "suppliers": ("name",),
    "purchases": ("supplier", "size", "batch_number", "units", "cost"),
    "sales": ("customer", "size", "units", "price"),
    "stock_holds": ("customer", "size", "units"),
    "stock_adjustments": ("size", "batch_number", "units", "reason"),
    "pipeline_purchases": ("po_number", "supplier", "size", "units", "price", "total_value", "status"),
}
NUMERIC_FIELDS = ("units", "cost", "price", "total_value", "vials", "cost_per_pack", "total_cost")
ENUM_FIELDS = {
    "role": ROLES,
    "size": SIZES,
    "status": PIPELINE_STATUSES,
}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _record_errors(name: str, record: dict) -> list[str]:
    errors = []
    rid = record.get("id")
    if rid is not None and not (isinstance(rid, int) and not isinstance(rid, bool) or str(rid).isdigit()):
        errors.append(f"id {rid!r} is not a number")
    for f in REQUIRED_FIELDS[name]:
        if record.get(f) in (None, ""):
            errors.append(f"missing '{f}'")
    for f in NUMERIC_FIELDS:
        if record.get(f) is not None and not _is_number(record[f]):
            errors.append(f"'{f}' must be a number")
    for f, allowed in ENUM_FIELDS.items():
        if f in REQUIRED_FIELDS[name] and record.get(f) not in (None, "") and record[f] not in allowed:
            errors.append(f"'{f}' must be one of {', '.join(allowed)}")
    return errors


def _validate(payload: Any) -> dict[str, list[dict]]:
    """Check the whole backup before anything is written; raise ValueError listing the first problems."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ValueError("Backup must be an object with a 'data' section.")
    version = payload.get("version", BACKUP_VERSION)
    if version != BACKUP_VERSION:
        raise ValueError(f"Unsupported backup version {version}.")

    data = {}
    problems = []
    for name, records in payload["data"].items():
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{name}' in backup.")
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ValueError(f"Collection '{name}' must be a list of records.")
        seen = set()
        for i, r in enumerate(records):
            problems += [f"{name}[{i}]: {e}" for e in _record_errors(name, r)]
            if r.get("id") is not None:
                if str(r["id"]) in seen:
                    problems.append(f"{name}[{i}]: duplicate id {r['id']}")
                seen.add(str(r["id"]))
        data[name] = records
    if "users" in data:
        if not data["users"]:
            raise ValueError("Backup would remove every user; refusing to restore.")
        names = [str(u.get("username", "")).casefold() for u in data["users"]]
        if len(set(names)) != len(names):
            problems.append("users: duplicate username")
    if problems:
        more = f" (and {len(problems) - 5} more)" if len(problems) > 5 else ""
        raise ValueError("Backup has invalid records: " + "; ".join(problems[:5]) + more)
    return data


def restore_backup(store, payload: Any) -> dict[str, int]:
    """Replace each collection present in the backup in one step; others are untouched."""
    data = _validate(payload)
    counts = store.replace_many(data)
    logger.info("Restored backup: %s", counts)
    log_transaction("backup.restore", {"collections": sorted(counts)}, result=counts)
    return counts


def records_to_frame(records: Iterable[dict], columns: Optional[list[str]] = None) -> pd.DataFrame:
    df = pd.DataFrame(list(records))
    if columns is not None:
        df = df.reindex(columns=columns)
    return df


def records_to_csv(records: Iterable[dict], columns: Optional[list[str]] = None) -> str:
    return records_to_frame(records, columns).to_csv(index=False)
