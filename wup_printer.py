"""
WupPrinter - wup-specific terminal output extensions.

Extends the generic Printer class with upgrade and Node.js step output.
"""

from __future__ import annotations

from collections.abc import Sequence

from printer import Printer
from upgrade.models import UpgradeCandidate


class WupPrinter(Printer):
    """Printer subclass with package upgrade extensions."""

    CANDIDATE_COLUMNS = [
        ("#", "right"),
        ("Name", "left"),
        ("Id", "left"),
        ("Installed", "left"),
        ("Available", "left"),
        ("Source", "left"),
    ]

    def candidate_table(self, candidates: Sequence[UpgradeCandidate]) -> None:
        """Numbered list of pending upgrades; missing versions show as 'unknown'."""
        rows = [
            [
                str(index),
                candidate.display_name,
                candidate.id,
                candidate.display_installed,
                candidate.display_available,
                candidate.source or "",
            ]
            for index, candidate in enumerate(candidates, start=1)
        ]
        print()
        self.table(self.CANDIDATE_COLUMNS, rows)

    def step_result(self, name: str, ok: bool, error: str | None = None) -> None:
        """One Node.js update step: check or cross, with error text below."""
        if ok:
            self.success(name)
            return
        self.error(name)
        if error:
            self.detail(error)
