"""
classifier.py - Explain failed upgrades and suggest a remedy.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from .executor import read_log
from .models import STAGE_CURRENT, UpgradeOutcome

logger = logging.getLogger(__name__)

# First match wins, so order is significant.
FAILURE_SIGNATURES: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            r"files? in use|FilesInUse|(?:applications?|processes) (?:are|is) (?:using|blocking|locking)"
            r"|close the following (?:applications|programs)|being used by another process",
            re.IGNORECASE,
        ),
        "Running processes are blocking the uninstall of the old version",
    ),
    (
        re.compile(
            r"(?:failed|unable) to (?:shut ?down|close|stop) (?:all )?(?:running )?(?:applications|processes)"
            r"|RestartManager.*(?:fail|error)|Restart Manager .*(?:fail|could not)",
            re.IGNORECASE,
        ),
        "Could not shut down running applications",
    ),
    (
        re.compile(r"cancell?ed by (?:the )?user|user cancell?ed|User cancell?ed installation", re.IGNORECASE),
        "Installation was canceled by the user",
    ),
]

GENERIC_REASON = "Upgrade failed"
REMEDY_ELEVATE = "Retry in an elevated (administrator) session"
REMEDY_CLOSE = "Close related applications and retry"


def classify_failure(outcome: UpgradeOutcome) -> str:
    """Return the most specific reason known for a failed upgrade."""
    text = read_log(outcome.log_path)
    if text:
        for pattern, reason in FAILURE_SIGNATURES:
            if pattern.search(text):
                return reason
    return outcome.hint or GENERIC_REASON


def remedy_for(outcome: UpgradeOutcome) -> str:
    if outcome.stage == STAGE_CURRENT:
        return REMEDY_ELEVATE
    return REMEDY_CLOSE


def summarize(outcomes: Sequence[UpgradeOutcome], printer: Any) -> None:
    """Print the end-of-run report and mirror it to the session log."""
    if not outcomes:
        printer.complete("All selected upgrades succeeded")
        logger.info("All selected upgrades succeeded")
        return

    printer.section("Failed upgrades", count=len(outcomes))
    for outcome in outcomes:
        if outcome.retry_hint is None:
            outcome.retry_hint = remedy_for(outcome)
        reason = classify_failure(outcome)

        printer.error(outcome.id)
        printer.kv_line("Reason", reason)
        printer.kv_line("Fix", outcome.retry_hint)
        if outcome.log_path is not None:
            printer.kv_line("Log", str(outcome.log_path))

        logger.warning(
            "Upgrade of %s failed (%s): %s; remedy: %s; log: %s",
            outcome.id,
            outcome.stage,
            reason,
            outcome.retry_hint,
            outcome.log_path,
        )
