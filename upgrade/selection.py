"""
selection.py - Operator prompts for choosing upgrades and the run mode.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from .models import RunMode

_RANGE_RE = re.compile(r"^(\d+)-(\d+)$")
_TOKEN_SPLIT_RE = re.compile(r"[,\s]+")


def _bounded_index(digits: str, count: int) -> int:
    """Convert a run of digits, capping anything above ``count`` at ``count + 1``.

    Long inputs never reach ``int()``, which rejects strings over the
    interpreter's digit limit.
    """
    significant = digits.lstrip("0") or "0"
    if len(significant) > len(str(count)):
        return count + 1
    return min(int(significant), count + 1)


def _shorten(token: str, limit: int = 16) -> str:
    return token if len(token) <= limit else f"{token[:limit]}..."


def parse_selection(
    text: str,
    count: int,
    warn: Callable[[str], None] | None = None,
) -> list[int]:
    """Turn free-form input into ordered, unique 1-based indices.

    Accepts single numbers, ``start-end`` ranges and ``all``, separated by
    commas and/or whitespace. Bad tokens are dropped with a warning; the
    function never raises.

    Args:
        text: Raw operator input
        count: Number of listed candidates
        warn: Called once per dropped token or value

    Returns:
        Selected indices in first-seen order; empty means "skip".
    """
    def report(message: str) -> None:
        if warn:
            warn(message)

    tokens = [t for t in _TOKEN_SPLIT_RE.split((text or "").strip()) if t]
    if not tokens:
        return []
    if len(tokens) == 1 and tokens[0].lower() == "all":
        return list(range(1, count + 1))

    selected: list[int] = []
    seen: set[int] = set()

    def add(index: int) -> None:
        if index not in seen:
            seen.add(index)
            selected.append(index)

    for token in tokens:
        match = _RANGE_RE.match(token)
        if match:
            start, end = _bounded_index(match.group(1), count), _bounded_index(match.group(2), count)
            if end < start:
                report(f"Ignoring reversed range '{_shorten(token)}'")
                continue
            for index in range(max(start, 1), min(end, count) + 1):
                add(index)
            if start < 1 or end > count:
                report(f"Ignoring values of '{_shorten(token)}' outside 1-{count}")
            continue

        if not token.isdecimal():
            report(f"Ignoring '{_shorten(token)}': not a number or range")
            continue
        index = _bounded_index(token, count)
        if 1 <= index <= count:
            add(index)
        else:
            report(f"Ignoring {_shorten(token)}: out of range 1-{count}")

    return selected


def prompt_selection(printer: Any, count: int) -> list[int]:
    """Ask which of ``count`` listed upgrades to run."""
    printer.info("Enter numbers or ranges (e.g. 1,3,5-7), 'all', or leave empty to skip")
    text = printer.ask("Upgrades to run")
    return parse_selection(text, count, warn=printer.warn)


def prompt_run_mode(printer: Any) -> RunMode:
    """Ask whether to run in this session or in an elevated one."""
    printer.numbered_option(1, "Current session (default)")
    printer.numbered_option(2, "Elevated session (administrator, machine-wide installs)")
    answer = printer.ask("Run mode", default="1").strip().lower()

    if answer in ("", "1", "c", "current"):
        return RunMode.CURRENT_SESSION
    if answer in ("2", "e", "elevated", "admin"):
        return RunMode.ELEVATED

    printer.warn(f"Unrecognised run mode '{answer}', using current session")
    return RunMode.CURRENT_SESSION
