"""
executor.py - Run winget upgrades one package at a time.

Invocations are strictly sequential so diagnostic logs and console output
never interleave and two installers never contend for the MSI mutex.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from config import WupConfig
from session_log import log_step
from shared import run_streaming_command, sanitize_for_filename, timestamp_token, unique_path

from .models import UpgradeCandidate, UpgradeOutcome

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Exit Code Hints
# ═══════════════════════════════════════════════════════════════════════════════

# Windows Installer / common setup exit codes
INSTALLER_EXIT_HINTS: dict[int, str] = {
    1602: "Installation was canceled by the user",
    1603: "Fatal error during installation",
    1618: "Another installation is already in progress",
    1619: "Installer package could not be opened",
    1638: "Another version of this product is already installed",
    1641: "The installer initiated a restart",
    3010: "A restart is required to complete the installation",
}

# winget's own HRESULT-style exit codes, as signed 32-bit integers
WINGET_EXIT_HINTS: dict[int, str] = {
    -1978335189: "No applicable upgrade found",                  # 0x8A15002B
    -1978335215: "Installer hash does not match the manifest",   # 0x8A150011
    -1978335212: "No package found matching the criteria",       # 0x8A150014
    -1978334975: "Application is currently running; close it and retry",  # 0x8A150101
    -1978334974: "Another installation is already in progress",  # 0x8A150102
    -1978334973: "One or more files are in use",                 # 0x8A150103
}

INSTALLER_EXIT_PATTERNS = [
    re.compile(r"(?:Installer|Install|Installation|Uninstall|Uninstallation) failed with exit code:?\s*(-?\d+)", re.IGNORECASE),
    re.compile(r"Installer (?:return|exit) code:?\s*(-?\d+)", re.IGNORECASE),
    re.compile(r"MSI (?:return|exit) code:?\s*(-?\d+)", re.IGNORECASE),
    re.compile(r"MainEngineThread is returning\s*(-?\d+)", re.IGNORECASE),
]


def to_signed32(code: int) -> int:
    """Normalize an exit status to a signed 32-bit value (0x8A15002B -> negative)."""
    code &= 0xFFFFFFFF
    return code - (1 << 32) if code & 0x80000000 else code


def hint_for_exit_code(tool_exit_code: int, installer_exit_code: int | None = None) -> str:
    """Describe a failure from the installer code, falling back to winget's."""
    if installer_exit_code is not None and installer_exit_code in INSTALLER_EXIT_HINTS:
        return INSTALLER_EXIT_HINTS[installer_exit_code]

    signed = to_signed32(tool_exit_code)
    if signed in WINGET_EXIT_HINTS:
        return WINGET_EXIT_HINTS[signed]
    if signed in INSTALLER_EXIT_HINTS:
        return INSTALLER_EXIT_HINTS[signed]

    if installer_exit_code is not None:
        return f"Installer returned exit code {installer_exit_code}"
    return f"winget returned exit code {tool_exit_code} (0x{signed & 0xFFFFFFFF:08X})"


# ═══════════════════════════════════════════════════════════════════════════════
# Log Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def new_log_path(log_dir: Path, candidate_id: str) -> Path:
    """Return a fresh, collision-free diagnostic log path for one invocation."""
    name = f"{sanitize_for_filename(candidate_id)}-{timestamp_token()}.log"
    return unique_path(log_dir / name)


def read_log(path: Path | None) -> str:
    if path is None:
        return ""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def find_installer_exit_code(text: str) -> int | None:
    """Recover the nested installer exit code winget wrote to its log."""
    for pattern in INSTALLER_EXIT_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Executor
# ═══════════════════════════════════════════════════════════════════════════════


def build_upgrade_command(winget: str, candidate: UpgradeCandidate, log_path: Path | None = None) -> list[str]:
    cmd = [
        winget,
        "upgrade",
        "--id",
        candidate.id,
        "--exact",
        "--include-unknown",
        "--silent",
        "--accept-package-agreements",
        "--accept-source-agreements",
    ]
    if candidate.source:
        cmd += ["--source", candidate.source]
    if log_path is not None:
        cmd += ["--log", str(log_path)]
    return cmd


def run_selected(
    candidates: Sequence[UpgradeCandidate],
    stage: str,
    printer: Any,
    config: WupConfig,
) -> list[UpgradeOutcome]:
    """Upgrade each candidate in order and return the failures.

    A failed upgrade never stops the remaining ones.

    Args:
        candidates: Packages to upgrade (blank ids are skipped)
        stage: Label recorded on each outcome (current session or elevated)
        printer: Output sink
        config: Supplies the winget path and log directory

    Returns:
        One UpgradeOutcome per failed invocation, in invocation order.
    """
    log_dir: Path | None = config.upgrade_log_dir
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        printer.warn(f"Cannot create log directory {log_dir}: {e}")
        log_dir = None

    failures: list[UpgradeOutcome] = []
    succeeded = 0
    runnable = [c for c in candidates if c.id.strip()]

    for position, candidate in enumerate(runnable, start=1):
        log_path = new_log_path(log_dir, candidate.id) if log_dir is not None else None
        printer.action(f"[{position}/{len(runnable)}] Upgrading {candidate.display_name} ({candidate.id})")
        logger.info("Upgrading %s (stage: %s, log: %s)", candidate.id, stage, log_path)

        returncode, _output = run_streaming_command(
            build_upgrade_command(config.winget, candidate, log_path),
            printer=printer,
            indent=printer.INDENT2,
        )

        if returncode == 0:
            succeeded += 1
            printer.success(f"{candidate.id} upgraded")
            log_step(f"upgrade {candidate.id}", True, stage)
            continue

        produced_log = log_path if log_path is not None and log_path.exists() else None
        installer_code = find_installer_exit_code(read_log(produced_log))
        outcome = UpgradeOutcome(
            id=candidate.id,
            stage=stage,
            tool_exit_code=returncode,
            installer_exit_code=installer_code,
            log_path=produced_log,
            hint=hint_for_exit_code(returncode, installer_code),
        )
        failures.append(outcome)
        printer.error(f"{candidate.id} failed: {outcome.hint}")
        log_step(f"upgrade {candidate.id}", False, f"{stage}; exit {returncode}; installer {installer_code}")

    if runnable:
        printer.info(f"{succeeded} of {len(runnable)} upgrade(s) succeeded ({stage})")
    return failures
