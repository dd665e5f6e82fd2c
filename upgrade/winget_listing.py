"""
winget_listing.py - Pending upgrade detection via winget.

Prefers a structured (JSON) listing and falls back to parsing the
human-readable table that `winget upgrade` prints.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wcwidth import wcwidth

from config import WupConfig
from shared import run_command, run_json_command

from .models import UpgradeCandidate

logger = logging.getLogger(__name__)

Warn = Callable[[str], None]

# ═══════════════════════════════════════════════════════════════════════════════
# Field Aliases
# ═══════════════════════════════════════════════════════════════════════════════

ID_KEYS = ("PackageIdentifier", "Id", "PackageId")
NAME_KEYS = ("PackageName", "Name")
INSTALLED_KEYS = ("InstalledVersion", "Version")
AVAILABLE_KEYS = ("AvailableVersion", "Available")
SOURCE_KEYS = ("Source", "SourceName")

# Table header words per column; winget localizes "Id" as "ID" in some builds.
TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "name": ("Name",),
    "id": ("Id", "ID"),
    "version": ("Version",),
    "available": ("Available",),
    "source": ("Source",),
}

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
_SEPARATOR_RE = re.compile(r"^\s*-{3,}\s*$")
_SUMMARY_RE = re.compile(r"^\s*\d+\s+(?:upgrades?|packages?|package\(s\))\b", re.IGNORECASE)


def _dedupe(candidates: Iterable[UpgradeCandidate]) -> list[UpgradeCandidate]:
    """Keep the first candidate per id, preserving encounter order."""
    seen: set[str] = set()
    unique: list[UpgradeCandidate] = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        unique.append(candidate)
    return unique


# ═══════════════════════════════════════════════════════════════════════════════
# Structured Listing
# ═══════════════════════════════════════════════════════════════════════════════


def first_field(node: dict[str, Any], keys: Iterable[str]) -> str | None:
    """Return the first non-blank scalar found under any of ``keys``."""
    for key in keys:
        value = node.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            if text:
                return text
    return None


def _declared_source(node: dict[str, Any]) -> str | None:
    """Source tag a group node declares for its children."""
    details = node.get("SourceDetails")
    if isinstance(details, dict):
        name = first_field(details, ("Name",))
        if name:
            return name
    return first_field(node, SOURCE_KEYS)


def _walk(node: Any, inherited_source: str | None, out: list[UpgradeCandidate]) -> None:
    if isinstance(node, list):
        for item in node:
            _walk(item, inherited_source, out)
        return
    if not isinstance(node, dict):
        return

    source = _declared_source(node) or inherited_source
    candidate_id = first_field(node, ID_KEYS)
    if candidate_id:
        out.append(
            UpgradeCandidate(
                id=candidate_id,
                name=first_field(node, NAME_KEYS) or "",
                installed_version=first_field(node, INSTALLED_KEYS),
                available_version=first_field(node, AVAILABLE_KEYS),
                source=source,
            )
        )

    for value in node.values():
        if isinstance(value, (dict, list)):
            _walk(value, source, out)


def parse_structured_listing(data: Any) -> list[UpgradeCandidate]:
    """Extract candidates from a parsed JSON listing of any nesting shape."""
    found: list[UpgradeCandidate] = []
    _walk(data, None, found)
    return _dedupe(found)


# ═══════════════════════════════════════════════════════════════════════════════
# Table Listing
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class _Columns:
    """Column starts derived from a header row, as display columns, in order."""

    starts: list[tuple[str, int]]

    def slice(self, row: str) -> dict[str, str] | None:
        """Cut ``row`` at the header columns; None when a cell crosses a boundary.

        winget pads cells by display width, so East Asian wide glyphs take
        two columns each.
        """
        bounds: list[int] = []
        for i, (_key, column) in enumerate(self.starts):
            index = _char_index(row, column)
            if index is None:
                return None
            if i > 0 and 0 < index < len(row) and not row[index - 1].isspace() and not row[index].isspace():
                return None
            bounds.append(index)
        bounds.append(len(row))

        return {
            key: row[bounds[i]:bounds[i + 1]].strip()
            for i, (key, _column) in enumerate(self.starts)
        }


def _char_width(ch: str) -> int:
    return max(wcwidth(ch), 0)


def _char_index(row: str, column: int) -> int | None:
    """Index of the character starting at display ``column``.

    Returns ``len(row)`` for a row that ends before ``column`` and None when a
    wide character straddles it.
    """
    width = 0
    for index, ch in enumerate(row):
        if width == column:
            return index
        if width > column:
            return None
        width += _char_width(ch)
    return None if width > column else len(row)


def _find_word(header: str, word: str) -> int:
    match = re.search(rf"(?<!\S){re.escape(word)}(?!\S)", header)
    if not match:
        return -1
    return sum(_char_width(ch) for ch in header[:match.start()])


def parse_header(line: str) -> _Columns | None:
    """Recognise a table header row and compute its column offsets."""
    starts: list[tuple[str, int]] = []
    for key, words in TABLE_COLUMNS.items():
        for word in words:
            pos = _find_word(line, word)
            if pos >= 0:
                starts.append((key, pos))
                break

    keys = {key for key, _ in starts}
    if not {"name", "id", "version"} <= keys:
        return None

    starts.sort(key=lambda item: item[1])
    if starts[0][0] != "name":
        return None
    return _Columns(starts=starts)


def _clean_line(raw: str) -> str:
    """Drop progress redraws and ANSI sequences from one output line."""
    return _ANSI_RE.sub("", raw.split("\r")[-1]).rstrip()


def parse_table_listing(text: str, warn: Warn | None = None) -> list[UpgradeCandidate]:
    """Parse the fixed-width table printed by `winget upgrade`.

    Rows are sliced at offsets taken from the header rather than split on
    whitespace, since display names contain spaces. Each table ends at a
    blank or summary row; a later header (winget prints a second table for
    packages that need explicit targeting) starts a new one.
    """
    candidates: list[UpgradeCandidate] = []
    columns: _Columns | None = None

    for raw in text.splitlines():
        line = _clean_line(raw)

        header = parse_header(line)
        if header is not None:
            columns = header
            continue
        if columns is None:
            continue
        if not line.strip() or _SUMMARY_RE.match(line):
            columns = None
            continue
        if _SEPARATOR_RE.match(line):
            continue

        cells = columns.slice(line)
        candidate_id = cells.get("id", "") if cells else ""
        if cells is None or not candidate_id or " " in candidate_id:
            logger.warning("Skipping misaligned winget row: %r", line)
            if warn:
                warn(f"Skipped unreadable row: {line.strip()}")
            continue

        candidates.append(
            UpgradeCandidate(
                id=candidate_id,
                name=cells.get("name", ""),
                installed_version=cells.get("version") or None,
                available_version=cells.get("available") or None,
                source=cells.get("source") or None,
            )
        )

    return _dedupe(candidates)


# ═══════════════════════════════════════════════════════════════════════════════
# Adapter
# ═══════════════════════════════════════════════════════════════════════════════


def winget_available(config: WupConfig) -> bool:
    return bool(shutil.which(config.winget)) or Path(config.winget).is_file()


def list_upgrades(config: WupConfig, warn: Warn | None = None) -> list[UpgradeCandidate]:
    """Return pending upgrades; never raises.

    An empty list means either nothing to upgrade or that winget could not be
    queried, in which case a warning has been reported through ``warn``.
    """
    def report(message: str) -> None:
        logger.warning(message)
        if warn:
            warn(message)

    if not winget_available(config):
        report("winget not found. Install 'App Installer' from the Microsoft Store.")
        return []

    try:
        ok, data = run_json_command(
            [config.winget, "upgrade", "--include-unknown", "--output", "json", "--accept-source-agreements"],
            timeout=None,
        )
        candidates = parse_structured_listing(data) if ok else []
        if candidates:
            logger.info("Structured listing returned %d candidate(s)", len(candidates))
            return candidates

        ok, output = run_command(
            [config.winget, "upgrade", "--include-unknown", "--accept-source-agreements"],
            timeout=None,
        )
        if not ok and not output:
            report("winget upgrade listing failed")
            return []
        candidates = parse_table_listing(output, warn=warn)
        logger.info("Table listing returned %d candidate(s)", len(candidates))
        return candidates
    except Exception as e:
        logger.exception("Failed to list upgrades")
        report(f"Could not read winget upgrade list: {e}")
        return []
