"""
models.py - Data types shared by the interactive upgrade workflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

STAGE_CURRENT = "current session"
STAGE_MACHINE = "machine-scope (elevated)"

RELAY_DELIMITER = ","

UNKNOWN_VERSION = "unknown"


def _display_version(value: str | None) -> str:
    if value is None or not value.strip():
        return UNKNOWN_VERSION
    return value.strip()


@dataclass
class UpgradeCandidate:
    """One package winget reports as upgradable."""

    id: str
    name: str = ""
    installed_version: str | None = None
    available_version: str | None = None
    source: str | None = None

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.id

    @property
    def display_installed(self) -> str:
        return _display_version(self.installed_version)

    @property
    def display_available(self) -> str:
        return _display_version(self.available_version)


@dataclass
class UpgradeOutcome:
    """A failed upgrade invocation and its diagnostics.

    Created once per failed invocation; only ``retry_hint`` is filled later,
    the first time the outcome is summarized.
    """

    id: str
    stage: str
    tool_exit_code: int
    installer_exit_code: int | None = None
    log_path: Path | None = None
    hint: str | None = None
    retry_hint: str | None = None


class RunMode(Enum):
    CURRENT_SESSION = "current"
    ELEVATED = "elevated"


@dataclass
class ElevationRequest:
    """Candidate ids handed to the elevated process on its command line."""

    ids: list[str] = field(default_factory=list)

    def to_argument(self) -> str:
        return RELAY_DELIMITER.join(self.ids)

    @classmethod
    def from_argument(cls, text: str | None) -> ElevationRequest:
        if not text:
            return cls()
        parts = (part.strip() for part in text.split(RELAY_DELIMITER))
        return cls(ids=[part for part in parts if part])

    def to_candidates(self) -> list[UpgradeCandidate]:
        """Rebuild bare candidates; names and sources do not cross the boundary."""
        return [UpgradeCandidate(id=candidate_id) for candidate_id in self.ids]


@dataclass
class WorkflowResult:
    exit_code: int = 0
    message: str = ""
