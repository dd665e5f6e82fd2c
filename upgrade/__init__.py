"""
upgrade - Interactive winget bulk upgrade with selective elevation.

Workflow:
- List pending upgrades (structured listing, table fallback)
- Let the operator pick a subset by number or range
- Run each upgrade here or in an elevated session
- Explain failures and offer an elevated retry of just those
"""

from .classifier import classify_failure, remedy_for, summarize
from .elevation import (
    discover_host,
    is_elevated,
    join_ids,
    parse_relayed_ids,
    relaunch_elevated,
)
from .executor import (
    build_upgrade_command,
    find_installer_exit_code,
    hint_for_exit_code,
    new_log_path,
    run_selected,
)
from .models import (
    STAGE_CURRENT,
    STAGE_MACHINE,
    ElevationRequest,
    RunMode,
    UpgradeCandidate,
    UpgradeOutcome,
    WorkflowResult,
)
from .selection import parse_selection, prompt_run_mode, prompt_selection
from .winget_listing import list_upgrades, parse_structured_listing, parse_table_listing
from .workflow import final_pause, run_elevated, run_interactive, run_workflow

__all__ = [
    "STAGE_CURRENT",
    "STAGE_MACHINE",
    "ElevationRequest",
    "RunMode",
    "UpgradeCandidate",
    "UpgradeOutcome",
    "WorkflowResult",
    "build_upgrade_command",
    "classify_failure",
    "discover_host",
    "final_pause",
    "find_installer_exit_code",
    "hint_for_exit_code",
    "is_elevated",
    "join_ids",
    "list_upgrades",
    "new_log_path",
    "parse_relayed_ids",
    "parse_selection",
    "parse_structured_listing",
    "parse_table_listing",
    "prompt_run_mode",
    "prompt_selection",
    "relaunch_elevated",
    "remedy_for",
    "run_elevated",
    "run_interactive",
    "run_selected",
    "run_workflow",
    "summarize",
]
