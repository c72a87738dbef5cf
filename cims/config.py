from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "CIMS_DATA_DIR"
ENV_STORAGE = "CIMS_STORAGE"
ENV_LOG_LEVEL = "CIMS_LOG_LEVEL"

STORAGE_BACKENDS = ("sql", "local")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "EUR"
    storage_backend: str = "sql"
    log_level: str = "INFO"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


def _default_data_dir() -> Path:
    return Path.home() / ".pharma_cims"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def _normalize_backend(value: Optional[str]) -> str:
    backend = str(value or "sql").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend '{value}'. Use one of: {', '.join(STORAGE_BACKENDS)}.")
    return backend


def _normalize_log_level(value: Optional[str]) -> str:
    level = str(value or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


def persist_settings(data_dir_str: str, *, storage_backend: Optional[str] = None) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    payload = {"data_dir": str(data_dir)}
    if storage_backend is not None:
        payload["storage_backend"] = _normalize_backend(storage_backend)

    # The pointer always lives in the default folder so the next start can find it.
    for folder in {data_dir, _default_data_dir()}:
        folder.mkdir(parents=True, exist_ok=True)
        (folder / CONFIG_FILE_NAME).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state["cims_data_dir"] = str(data_dir)
    if storage_backend is not None:
        st.session_state["cims_storage"] = payload["storage_backend"]


def load_settings(
    session: Optional[Mapping] = None,
    environ: Optional[Mapping[str, str]] = None,
    default_dir: Optional[Path] = None,
) -> Settings:
    # Priority order:
    # 1) Session state (set via Setup page)
    # 2) Environment variables
    # 3) Persisted settings in default folder
    # 4) Defaults
    session = session if session is not None else {}
    environ = environ if environ is not None else os.environ
    default_dir = default_dir or _default_data_dir()
    persisted = _load_persisted_settings(default_dir)

    if session.get("cims_data_dir"):
        data_dir = Path(session["cims_data_dir"])
    elif environ.get(ENV_DATA_DIR):
        data_dir = Path(environ[ENV_DATA_DIR])
    else:
        data_dir = Path(persisted.get("data_dir", default_dir))
    data_dir = data_dir.expanduser().resolve()

    backend = session.get("cims_storage") or environ.get(ENV_STORAGE) or persisted.get("storage_backend")

    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "cims.db",
        storage_backend=_normalize_backend(backend),
        log_level=_normalize_log_level(environ.get(ENV_LOG_LEVEL)),
    )


@st.cache_resource
def get_settings() -> Settings:
    return load_settings(session=st.session_state)
