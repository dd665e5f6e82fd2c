"""
workflow.py - The interactive upgrade workflow and its elevated counterpart.

Interactive role:
    list -> select -> run mode -> run here or relay elevated -> summarize
    -> (failures, not elevated) offer elevated retry -> pause -> exit
Elevated role:
    parse relayed ids -> run (machine scope) -> summarize -> pause -> exit
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from config import WupConfig

from .classifier import summarize
from .elevation import is_elevated, parse_relayed_ids, relaunch_elevated
from .executor import run_selected
from .models import STAGE_CURRENT, STAGE_MACHINE, RunMode, WorkflowResult
from .selection import prompt_run_mode, prompt_selection
from .winget_listing import list_upgrades

logger = logging.getLogger(__name__)


@contextmanager
def final_pause(printer: Any, enabled: bool = True) -> Iterator[None]:
    """Pause exactly once when the block exits, however it exits."""
    try:
        yield
    finally:
        if enabled:
            printer.pause()


def run_interactive(printer: Any, config: WupConfig, no_pause: bool = False) -> WorkflowResult:
    printer.action("Checking for available upgrades")
    candidates = list_upgrades(config, warn=printer.warn)
    if not candidates:
        printer.complete("No upgrades available")
        return WorkflowResult(0, "no upgrades")

    printer.section("Available upgrades", count=len(candidates))
    printer.candidate_table(candidates)

    print()
    indices = prompt_selection(printer, len(candidates))
    if not indices:
        printer.info("No selection; nothing was changed")
        return WorkflowResult(0, "no selection")

    chosen = [candidates[i - 1] for i in indices]
    logger.info("Selected: %s", ", ".join(c.id for c in chosen))

    already_elevated = is_elevated()
    if already_elevated:
        mode = RunMode.CURRENT_SESSION
        printer.info("Already running as administrator")
    else:
        print()
        mode = prompt_run_mode(printer)

    if mode is RunMode.ELEVATED:
        relaunch_elevated([c.id for c in chosen], printer, no_pause=no_pause)
        return WorkflowResult(0, "relayed")

    stage = STAGE_MACHINE if already_elevated else STAGE_CURRENT
    failures = run_selected(chosen, stage, printer, config)
    summarize(failures, printer)

    if failures and not already_elevated:
        print()
        if printer.confirm(f"Retry {len(failures)} failed upgrade(s) in an elevated session?", default=False):
            relaunch_elevated([f.id for f in failures], printer, no_pause=no_pause)

    return WorkflowResult(0, "completed with failures" if failures else "completed")


def run_elevated(printer: Any, config: WupConfig, selected_list: str | None) -> WorkflowResult:
    candidates = parse_relayed_ids(selected_list)
    if not candidates:
        printer.warn("No packages were passed to the elevated session")
        return WorkflowResult(0, "no selection")

    printer.action(f"Elevated upgrade of {len(candidates)} package(s)")
    failures = run_selected(candidates, STAGE_MACHINE, printer, config)
    summarize(failures, printer)
    return WorkflowResult(0, "completed with failures" if failures else "completed")


def run_workflow(
    printer: Any,
    config: WupConfig,
    machine_phase: bool = False,
    selected_list: str | None = None,
    pause: bool = True,
) -> int:
    """Dispatch on role and return the process exit code.

    Unexpected exceptions are reported and turned into exit code 1; the
    final pause still happens.
    """
    result = WorkflowResult(1, "not started")
    with final_pause(printer, enabled=pause):
        try:
            if machine_phase:
                result = run_elevated(printer, config, selected_list)
            else:
                result = run_interactive(printer, config, no_pause=not pause)
        except Exception as e:
            logger.exception("Upgrade workflow failed")
            printer.error(f"Unexpected error: {e}")
            result = WorkflowResult(1, str(e))

    logger.info("Workflow finished: %s (exit %d)", result.message, result.exit_code)
    return result.exit_code
