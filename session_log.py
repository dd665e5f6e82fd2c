"""
session_log.py - timestamped session log for wup runs.

Every command writes a session-<timestamp>.log file next to the per-package
upgrade logs so results survive after the console window closes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from shared import timestamp_token, unique_path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_handler: logging.FileHandler | None = None


def configure_session_log(log_dir: Path, level: int = logging.INFO) -> Path | None:
    """Attach a file handler for this session to the root logger.

    Calling it again replaces the previous session handler.

    Returns:
        Path of the session log, or None if the directory is not writable.
    """
    global _handler

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        path = unique_path(log_dir / f"session-{timestamp_token()}.log")
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.warning("Session log disabled: %s", e)
        return None

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
        _handler.close()
    root.addHandler(handler)
    root.setLevel(min(root.level or level, level))
    _handler = handler
    return path


def close_session_log() -> None:
    """Detach and close the session handler, if any."""
    global _handler

    if _handler is not None:
        logging.getLogger().removeHandler(_handler)
        _handler.close()
        _handler = None


def log_step(name: str, ok: bool, detail: str = "") -> None:
    """Record one workflow step as PASS/FAIL."""
    status = "PASS" if ok else "FAIL"
    if detail:
        logger.info("[%s] %s: %s", status, name, detail)
    else:
        logger.info("[%s] %s", status, name)
