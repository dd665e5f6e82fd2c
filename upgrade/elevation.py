"""
elevation.py - Re-run wup elevated for a chosen subset of packages.

The elevated process is a separate process started through the UAC "runas"
verb. The only state it receives is its command line: the machine-phase flag
and the comma-joined package ids.
"""

from __future__ import annotations

import ctypes
import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .models import ElevationRequest, UpgradeCandidate

logger = logging.getLogger(__name__)

DEFAULT_HOST = "python.exe"
DEFAULT_HOST_ARGS = ["-m", "cli"]

MACHINE_PHASE_FLAG = "--machine-phase"
SELECTED_LIST_FLAG = "--selected-list"

# ShellExecuteW returns a value <= 32 on failure; these are the common ones.
SHELL_EXECUTE_ERRORS = {
    0: "out of memory or resources",
    2: "file not found",
    3: "path not found",
    5: "access denied (elevation was declined)",
    31: "no application associated",
}


class ElevationError(Exception):
    """The elevated process could not be started."""


def join_ids(ids: Sequence[str]) -> str:
    return ElevationRequest(ids=list(ids)).to_argument()


def parse_relayed_ids(text: str | None) -> list[UpgradeCandidate]:
    """Rebuild the candidates an interactive process relayed to us."""
    return ElevationRequest.from_argument(text).to_candidates()


def is_elevated() -> bool:
    """Return True when running as administrator (always False off Windows)."""
    if os.name != "nt":
        return False
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return False


def discover_host() -> tuple[str, list[str]]:
    """Find the executable (and leading arguments) running this program.

    Returns:
        (executable, args) such that ``executable args... <command>`` starts
        wup again. Falls back to ``python.exe -m cli`` when nothing better is
        known.
    """
    if getattr(sys, "frozen", False) and sys.executable:
        return sys.executable, []

    script = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if script is not None and script.suffix.lower() == ".py" and sys.executable:
        return sys.executable, [str(script.resolve())]
    if script is not None and script.suffix.lower() == ".exe" and script.is_file():
        # pip console-script launcher (wup.exe)
        return str(script.resolve()), []
    if sys.executable:
        return sys.executable, list(DEFAULT_HOST_ARGS)

    return DEFAULT_HOST, list(DEFAULT_HOST_ARGS)


def build_relay_arguments(ids: Sequence[str], no_pause: bool = False) -> list[str]:
    args = ["upgrade", MACHINE_PHASE_FLAG, SELECTED_LIST_FLAG, join_ids(ids)]
    if no_pause:
        args.append("--no-pause")
    return args


def _shell_execute_runas(executable: str, params: str, cwd: str | None) -> None:
    """Start ``executable`` through the UAC prompt; raise ElevationError on failure."""
    if os.name != "nt":
        raise ElevationError("elevation is only supported on Windows")

    result = ctypes.windll.shell32.ShellExecuteW(  # type: ignore[attr-defined]
        None, "runas", executable, params, cwd, 1
    )
    if int(result) <= 32:
        reason = SHELL_EXECUTE_ERRORS.get(int(result), f"error {int(result)}")
        raise ElevationError(reason)


def relaunch_elevated(ids: Sequence[str], printer: Any, no_pause: bool = False) -> bool:
    """Start an elevated wup that upgrades only ``ids``.

    Returns:
        True if the elevated process was started. An empty id list is a
        no-op (False); a declined prompt is reported as a warning (False).
    """
    ids = [i for i in ids if i.strip()]
    if not ids:
        return False

    executable, host_args = discover_host()
    params = subprocess.list2cmdline([*host_args, *build_relay_arguments(ids, no_pause=no_pause)])
    logger.info("Relaunching elevated: %s %s", executable, params)

    try:
        _shell_execute_runas(executable, params, os.getcwd())
    except (ElevationError, OSError) as e:
        printer.warn(f"Elevated run did not start: {e}")
        logger.warning("Elevation failed for %s: %s", join_ids(ids), e)
        return False

    printer.success(f"Started elevated session for {len(ids)} package(s)")
    printer.info("Results will appear in the new window")
    return True
