from __future__ import annotations

from pathlib import Path
from typing import Optional

import streamlit as st

from cims.config import Settings, get_settings
from cims.db import get_conn
from cims.logger import configure_logging
from cims.services.users import SessionUser, ensure_default_admin, refresh_session
from cims.store import Collections, load_all, open_store

SESSION_KEY = "cims_user"


@st.cache_resource
def _store_for(db_path: Path, backend: str):
    store = open_store(backend, get_conn(db_path))
    ensure_default_admin(store)
    return store


@st.cache_resource
def _logging_for(log_dir: Path, level: str) -> None:
    configure_logging(log_dir, level)


def get_store(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    _logging_for(settings.log_dir, settings.log_level)
    return _store_for(settings.db_path, settings.storage_backend)


def sign_in(user: SessionUser) -> None:
    st.session_state[SESSION_KEY] = user.to_dict()


def sign_out() -> None:
    st.session_state.pop(SESSION_KEY, None)


def current_user(store) -> Optional[SessionUser]:
    raw = st.session_state.get(SESSION_KEY)
    if not raw:
        return None
    user = refresh_session(store, SessionUser(**raw))
    if user is None:
        sign_out()
    return user


def bootstrap(*, admin_only: bool = False) -> tuple[Settings, object, SessionUser, Collections]:
    """Common page prologue: settings, store, signed-in user, fresh collections."""
    settings = get_settings()
    store = get_store(settings)
    user = current_user(store)
    if user is None:
        st.warning("Please sign in first.")
        st.stop()
    if admin_only and not user.is_admin:
        st.error("This section is for administrators only.")
        st.stop()

    with st.sidebar:
        st.write(f"**{user.name}** · {'Administrator' if user.is_admin else 'User'}")
        st.caption(f"Storage: {store.backend} · {settings.data_dir}")
        if st.button("Logout", key="logout"):
            sign_out()
            st.rerun()

    return settings, store, user, load_all(store)


def money(v: float, currency: str = "EUR") -> str:
    symbol = "€" if currency == "EUR" else f"{currency} "
    return f"{symbol}{float(v):,.2f}"
