"""
Logging setup for the dashboard.

All application loggers live under the ``cims`` namespace, so one file handler
on that logger collects everything the services emit.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER = "cims"

transaction_logger = logging.getLogger("cims.transactions")


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configure a named logger that writes to ``log_file``.

    Existing handlers are replaced so Streamlit reruns do not stack duplicates.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


def configure_logging(log_dir: Path, level: str = "INFO") -> logging.Logger:
    return setup_logger(ROOT_LOGGER, str(Path(log_dir) / "cims.log"), getattr(logging, level, logging.INFO))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Record one create/delete/convert operation.

    Args:
        operation: e.g. ``sales.insert`` or ``holds.convert``
        data: identifying fields of the record
        result: outcome (usually the new id)
        error: message when the operation failed
    """
    if error:
        transaction_logger.error("TRANSACTION_FAILED: %s - %s - Data: %s", operation, error, data)
    else:
        transaction_logger.info("TRANSACTION_SUCCESS: %s - Result: %s - Data: %s", operation, result, data)
