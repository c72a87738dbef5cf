from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Optional

from cims.constants import COLLECTIONS
from cims.db import ensure_schema, q, table_columns, x

logger = logging.getLogger(__name__)

KV_PREFIX = "cims-"
KV_UPSERT = (
    "INSERT INTO kv_store (key, value) VALUES (?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value=excluded.value"
)


class StoreError(RuntimeError):
    """A storage backend call failed."""


def _check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection '{collection}'.")
    return collection


def _same_id(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _id_key(record: dict) -> tuple:
    # Numeric ids sort by value, anything else after them as text.
    rid = str(record.get("id") if record.get("id") is not None else "")
    return (0, int(rid), "") if rid.isdigit() else (1, 0, rid)


class SqlStore:
    """Relational backend: one SQLite table per collection."""

    backend = "sql"

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._columns: dict[str, list[str]] = {}

    def _cols(self, collection: str) -> list[str]:
        if collection not in self._columns:
            self._columns[collection] = table_columns(self.conn, collection)
        return self._columns[collection]

    def _row(self, collection: str, record_id: Any) -> Optional[dict]:
        rows = q(self.conn, f"SELECT * FROM {collection} WHERE id=?", (record_id,))
        return dict(rows[0]) if rows else None

    def all(self, collection: str) -> list[dict]:
        _check_collection(collection)
        col, desc = COLLECTIONS[collection]
        direction = "DESC" if desc else "ASC"
        try:
            rows = q(
                self.conn,
                f"SELECT * FROM {collection} ORDER BY {col} COLLATE NOCASE {direction}, id {direction}",
            )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load {collection}: {e}") from e
        return [dict(r) for r in rows]

    def insert(self, collection: str, record: dict) -> dict:
        _check_collection(collection)
        cols = [c for c in self._cols(collection) if c != "id" and c in record]
        placeholders = ", ".join("?" for _ in cols)
        try:
            new_id = x(
                self.conn,
                f"INSERT INTO {collection} ({', '.join(cols)}) VALUES ({placeholders})",
                [record[c] for c in cols],
            )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert into {collection}: {e}") from e
        return self._row(collection, new_id) or {**record, "id": new_id}

    def update(self, collection: str, record_id: Any, changes: dict) -> dict:
        _check_collection(collection)
        cols = [c for c in self._cols(collection) if c != "id" and c in changes]
        if cols:
            assignments = ", ".join(f"{c}=?" for c in cols)
            try:
                x(
                    self.conn,
                    f"UPDATE {collection} SET {assignments} WHERE id=?",
                    [changes[c] for c in cols] + [record_id],
                )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to update {collection}: {e}") from e
        row = self._row(collection, record_id)
        if row is None:
            raise ValueError(f"Record {record_id} not found in {collection}.")
        return row

    def delete(self, collection: str, record_id: Any) -> bool:
        _check_collection(collection)
        try:
            cur = self.conn.execute(f"DELETE FROM {collection} WHERE id=?", (record_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete from {collection}: {e}") from e
        return cur.rowcount > 0

    def _replace_rows(self, collection: str, records: Iterable[dict]) -> int:
        table_cols = self._cols(collection)
        self.conn.execute(f"DELETE FROM {collection}")
        n = 0
        for r in records:
            cols = [c for c in table_cols if c in r]
            self.conn.execute(
                f"INSERT INTO {collection} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})",
                [r[c] for c in cols],
            )
            n += 1
        return n

    def replace_all(self, collection: str, records: Iterable[dict]) -> int:
        return self.replace_many({collection: records})[collection]

    def replace_many(self, data: dict[str, Iterable[dict]]) -> dict[str, int]:
        """Replace several collections in one transaction; a failure leaves all of them as they were."""
        for name in data:
            _check_collection(name)
        counts: dict[str, int] = {}
        current = None
        try:
            with self.conn:
                for name, records in data.items():
                    current = name
                    counts[name] = self._replace_rows(name, records)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to restore {current}: {e}") from e
        return counts


class KeyValueStore:
    """
    Local blob backend.

    Each collection is one JSON array stored under ``cims-<collection>`` in the
    ``kv_store`` table; every change rewrites the whole array. Ids are
    millisecond timestamps, bumped when two records land in the same ms.
    """

    backend = "local"

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._last_id = 0

    def _load(self, collection: str) -> list[dict]:
        try:
            rows = q(self.conn, "SELECT value FROM kv_store WHERE key=?", (KV_PREFIX + collection,))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load {collection}: {e}") from e
        if not rows:
            return []
        try:
            data = json.loads(rows[0]["value"])
        except ValueError as e:
            raise StoreError(f"Stored {collection} blob is not valid JSON: {e}") from e
        return [dict(r) for r in data] if isinstance(data, list) else []

    def _save(self, collection: str, records: list[dict]) -> None:
        try:
            x(self.conn, KV_UPSERT, (KV_PREFIX + collection, json.dumps(records)))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save {collection}: {e}") from e

    def _next_id(self, records: list[dict]) -> int:
        highest = max([int(r["id"]) for r in records if str(r.get("id", "")).isdigit()] or [0])
        new_id = max(int(time.time() * 1000), highest + 1, self._last_id + 1)
        self._last_id = new_id
        return new_id

    def all(self, collection: str) -> list[dict]:
        _check_collection(collection)
        col, desc = COLLECTIONS[collection]
        records = self._load(collection)
        filled = [r for r in records if r.get(col) not in (None, "")]
        blank = [r for r in records if r.get(col) in (None, "")]
        filled.sort(key=lambda r: (str(r[col]).casefold(), _id_key(r)), reverse=desc)
        blank.sort(key=_id_key, reverse=desc)
        # SQLite sorts NULL first ascending and last descending
        return filled + blank if desc else blank + filled

    def insert(self, collection: str, record: dict) -> dict:
        _check_collection(collection)
        records = self._load(collection)
        stored = {**record, "id": self._next_id(records)}
        records.append(stored)
        self._save(collection, records)
        return dict(stored)

    def update(self, collection: str, record_id: Any, changes: dict) -> dict:
        _check_collection(collection)
        records = self._load(collection)
        for r in records:
            if _same_id(r.get("id"), record_id):
                r.update({k: v for k, v in changes.items() if k != "id"})
                self._save(collection, records)
                return dict(r)
        raise ValueError(f"Record {record_id} not found in {collection}.")

    def delete(self, collection: str, record_id: Any) -> bool:
        _check_collection(collection)
        records = self._load(collection)
        kept = [r for r in records if not _same_id(r.get("id"), record_id)]
        if len(kept) == len(records):
            return False
        self._save(collection, kept)
        return True

    def replace_all(self, collection: str, records: Iterable[dict]) -> int:
        return self.replace_many({collection: records})[collection]

    def replace_many(self, data: dict[str, Iterable[dict]]) -> dict[str, int]:
        """Rewrite several blobs in one transaction; a failure leaves all of them as they were."""
        for name in data:
            _check_collection(name)
        blobs = {name: [dict(r) for r in records] for name, records in data.items()}
        try:
            with self.conn:
                for name, records in blobs.items():
                    self.conn.execute(KV_UPSERT, (KV_PREFIX + name, json.dumps(records)))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to restore {', '.join(blobs)}: {e}") from e
        return {name: len(records) for name, records in blobs.items()}


def open_store(backend: str, conn: sqlite3.Connection):
    ensure_schema(conn)
    if backend == "sql":
        return SqlStore(conn)
    if backend == "local":
        return KeyValueStore(conn)
    raise ValueError(f"Unknown storage backend '{backend}'.")


@dataclass
class Collections:
    """In-memory snapshot of every collection, reloaded after each change."""

    users: list[dict] = field(default_factory=list)
    customers: list[dict] = field(default_factory=list)
    suppliers: list[dict] = field(default_factory=list)
    purchases: list[dict] = field(default_factory=list)
    sales: list[dict] = field(default_factory=list)
    stock_holds: list[dict] = field(default_factory=list)
    stock_adjustments: list[dict] = field(default_factory=list)
    pipeline_purchases: list[dict] = field(default_factory=list)

    def get(self, collection: str) -> list[dict]:
        return getattr(self, _check_collection(collection))

    def find(self, collection: str, record_id: Any) -> Optional[dict]:
        for r in self.get(collection):
            if _same_id(r.get("id"), record_id):
                return r
        return None


def load_all(store) -> Collections:
    data = {f.name: store.all(f.name) for f in fields(Collections)}
    logger.debug("Loaded collections: %s", {k: len(v) for k, v in data.items()})
    return Collections(**data)
