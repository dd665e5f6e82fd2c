"""
node_update.py - Update Node.js under nvm-windows and as a system install.

Each routine returns per-step results instead of raising, so `wup node` can
report every step even when an early one fails.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from config import WupConfig
from installer import download_installer, fetch_latest_lts, node_arch, run_msi_installer
from retry_utils import NETWORK_ERRORS
from session_log import log_step
from shared import run_command, run_streaming_command, timestamp_token
from upgrade.elevation import is_elevated
from upgrade.executor import hint_for_exit_code, run_selected, to_signed32
from upgrade.models import STAGE_CURRENT, STAGE_MACHINE, UpgradeCandidate

logger = logging.getLogger(__name__)

WINGET_NO_APPLICABLE_UPGRADE = -1978335189  # 0x8A15002B
MSI_SUCCESS_CODES = {0, 1641, 3010}

# nvm-windows exits 0 on most failures, so its output is checked as well.
_NVM_ERROR_RE = re.compile(r"^\s*(?:error|exit status|.*not (?:installed|found|recognized)).*$", re.IGNORECASE | re.MULTILINE)


@dataclass
class StepResult:
    """Pass/fail of one update step, with error text when it failed."""

    name: str
    ok: bool
    error: str = ""


class _Steps:
    def __init__(self, printer: Any):
        self.printer = printer
        self.results: list[StepResult] = []

    def record(self, name: str, ok: bool, error: str = "") -> bool:
        self.results.append(StepResult(name=name, ok=ok, error=error))
        self.printer.step_result(name, ok, error or None)
        log_step(name, ok, error)
        return ok


def _nvm_step(config: WupConfig, printer: Any, args: list[str]) -> tuple[bool, str]:
    returncode, output = run_streaming_command([config.nvm, *args], printer=printer, indent=printer.INDENT2)
    error_match = _NVM_ERROR_RE.search(output)
    if returncode != 0 or error_match:
        detail = error_match.group(0).strip() if error_match else output.strip()
        return False, detail or f"nvm exited with code {returncode}"
    return True, ""


def update_version_manager_node(config: WupConfig, printer: Any) -> list[StepResult]:
    """Install and activate the latest LTS through nvm-windows."""
    steps = _Steps(printer)

    ok, output = run_command([config.nvm, "version"], timeout=30)
    if not steps.record("nvm available", ok, "" if ok else (output or "nvm not found on PATH")):
        return steps.results

    printer.action("Installing latest Node.js LTS with nvm")
    ok, error = _nvm_step(config, printer, ["install", "lts"])
    if not steps.record("nvm install lts", ok, error):
        return steps.results

    # Switching versions rewrites the nvm symlink, which needs administrator rights.
    ok, error = _nvm_step(config, printer, ["use", "lts"])
    if not ok and not is_elevated():
        error = f"{error} (try again from an elevated session)"
    if not steps.record("nvm use lts", ok, error):
        return steps.results

    ok, output = run_command(["node", "--version"], timeout=30)
    steps.record("node --version", ok, "" if ok else output)
    if ok:
        printer.info(f"Active Node.js: {output.strip()}")
    return steps.results


def _system_node_exe() -> Path:
    program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
    return Path(program_files) / "nodejs" / "node.exe"


def _winget_manages(config: WupConfig, package_id: str) -> bool:
    ok, output = run_command(
        [config.winget, "list", "--id", package_id, "--exact", "--accept-source-agreements"],
        timeout=None,
    )
    return ok and package_id.lower() in output.lower()


def _update_with_winget(config: WupConfig, printer: Any, steps: _Steps) -> list[StepResult]:
    candidate = UpgradeCandidate(id=config.node_package_id, name="Node.js LTS")
    stage = STAGE_MACHINE if is_elevated() else STAGE_CURRENT
    failures = run_selected([candidate], stage, printer, config)

    if not failures:
        steps.record(f"winget upgrade {candidate.id}", True)
    elif to_signed32(failures[0].tool_exit_code) == WINGET_NO_APPLICABLE_UPGRADE:
        steps.record(f"winget upgrade {candidate.id}", True)
        printer.info("System Node.js is already up to date")
    else:
        steps.record(f"winget upgrade {candidate.id}", False, failures[0].hint or "upgrade failed")
    return steps.results


def _update_with_msi(config: WupConfig, printer: Any, steps: _Steps) -> list[StepResult]:
    arch = node_arch()
    release = fetch_latest_lts(config.node_index_url, arch)
    if not steps.record("resolve latest LTS", release is not None, "" if release else "release index unavailable"):
        return steps.results
    assert release is not None

    node_exe = _system_node_exe()
    if node_exe.is_file():
        ok, current = run_command([str(node_exe), "--version"], timeout=30)
        if ok and current.strip() == release.version:
            steps.record("system Node.js up to date", True)
            printer.info(f"System Node.js {current.strip()} is the latest LTS ({release.lts})")
            return steps.results

    url = release.msi_url(arch)
    printer.action(f"Downloading Node.js {release.version} ({release.lts})")
    try:
        msi_path = download_installer(url, config.download_dir)
    except NETWORK_ERRORS + (OSError, ValueError) as e:
        steps.record("download installer", False, str(e))
        return steps.results
    steps.record("download installer", True)

    printer.action(f"Installing {msi_path.name}")
    log_path = config.upgrade_log_dir / f"node-msi-{timestamp_token()}.log"
    returncode = run_msi_installer(msi_path, log_path)
    ok = returncode in MSI_SUCCESS_CODES
    steps.record("install MSI", ok, "" if ok else hint_for_exit_code(returncode, returncode))
    if returncode in (1641, 3010):
        printer.warn("Restart Windows to finish the Node.js installation")
    return steps.results


def update_system_node(config: WupConfig, printer: Any) -> list[StepResult]:
    """Update the system-wide Node.js via winget, or the official MSI."""
    steps = _Steps(printer)
    try:
        config.ensure_dirs()
    except OSError as e:
        steps.record("prepare log directory", False, str(e))
        return steps.results

    printer.action("Updating system Node.js")
    if _winget_manages(config, config.node_package_id):
        return _update_with_winget(config, printer, steps)

    logger.info("%s not managed by winget; using the MSI installer", config.node_package_id)
    return _update_with_msi(config, printer, steps)
