from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from cims.constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME, ROLE_ADMIN, ROLES
from cims.logger import log_transaction
from cims.services.records import require_text
from cims.utils import iso_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    id: Any
    username: str
    role: str
    name: str
    initials: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return asdict(self)


def default_initials(username: str) -> str:
    return str(username)[:3].upper()


def _find_user(store, username: str) -> Optional[dict]:
    wanted = str(username or "").strip().casefold()
    if not wanted:
        return None
    for u in store.all("users"):
        if str(u.get("username", "")).casefold() == wanted:
            return u
    return None


def _session_from_row(row: dict) -> SessionUser:
    return SessionUser(
        id=row["id"],
        username=str(row["username"]),
        role=str(row.get("role") or "user"),
        name=str(row.get("name") or row["username"]),
        initials=str(row.get("initials") or default_initials(row["username"])),
    )


def authenticate(store, username: str, password: str) -> Optional[SessionUser]:
    """Username matches case-insensitively; password is compared as stored."""
    row = _find_user(store, username)
    if row is None or str(row.get("password")) != str(password or ""):
        logger.warning("Failed login for '%s'", username)
        return None
    logger.info("User '%s' signed in", row["username"])
    return _session_from_row(row)


def verify_password(store, username: str, password: str) -> bool:
    return authenticate(store, username, password) is not None


def refresh_session(store, user: Optional[SessionUser]) -> Optional[SessionUser]:
    """Drop a remembered session whose user no longer exists."""
    if user is None:
        return None
    for row in store.all("users"):
        if str(row.get("id")) == str(user.id):
            return user
    logger.info("Session for '%s' dropped: user removed", user.username)
    return None


def require_admin(user: Optional[SessionUser]) -> None:
    if user is None or not user.is_admin:
        raise PermissionError("Administrator role required.")


def list_users(store) -> list[dict]:
    return store.all("users")


def create_user(store, *, username: str, password: str, name: str, initials: str = "", role: str = "user") -> dict:
    username = require_text(username, "Username, password and name are required.")
    password = require_text(password, "Username, password and name are required.")
    name = require_text(name, "Username, password and name are required.")
    if role not in ROLES:
        raise ValueError(f"Invalid role '{role}'. Use one of: {', '.join(ROLES)}.")
    if _find_user(store, username) is not None:
        raise ValueError(f"User '{username}' already exists.")

    record = {
        "username": username,
        "password": password,
        "name": name,
        "initials": (initials or "").strip().upper() or default_initials(username),
        "role": role,
        "created_at": iso_now(),
    }
    stored = store.insert("users", record)
    log_transaction("users.insert", {"username": username, "role": role}, result=stored.get("id"))
    return stored


def delete_user(store, user_id: Any) -> None:
    row = next((u for u in store.all("users") if str(u.get("id")) == str(user_id)), None)
    if row is None:
        raise ValueError("User not found.")
    if str(row.get("username", "")).casefold() == DEFAULT_ADMIN_USERNAME:
        raise ValueError("Cannot delete admin user.")
    store.delete("users", row["id"])
    log_transaction("users.delete", {"id": row["id"], "username": row["username"]}, result=True)


def ensure_default_admin(store) -> Optional[dict]:
    if store.all("users"):
        return None
    logger.info("No users found; seeding default admin account")
    return create_user(
        store,
        username=DEFAULT_ADMIN_USERNAME,
        password=DEFAULT_ADMIN_PASSWORD,
        name="Administrator",
        initials="ADM",
        role=ROLE_ADMIN,
    )
