"""
cli.py - Typer-based CLI for wup.

Windows upgrade helper: interactive winget upgrades with selective
elevation, and Node.js updates for nvm and system installs.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, ParamSpec, TypeVar, cast

import typer

from config import WupConfig, load_config
from node_update import update_system_node, update_version_manager_node
from session_log import configure_session_log
from upgrade import final_pause, list_upgrades, run_workflow
from wup_printer import WupPrinter as Printer

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Application State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class AppState:
    """Global application state, initialized in the main callback."""

    printer: Printer | None = None
    config: WupConfig | None = None
    session_log: Path | None = None
    verbose: bool = False


state = AppState()

# ═══════════════════════════════════════════════════════════════════════════════
# Typer App
# ═══════════════════════════════════════════════════════════════════════════════

app = typer.Typer(
    name="wup",
    help="Interactive winget upgrades and Node.js updates for Windows",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=False,
)

P = ParamSpec("P")
R = TypeVar("R")


def _typed_command(*args: Any, **kwargs: Any) -> Callable[[Callable[P, R]], Callable[P, R]]:
    return cast(Callable[[Callable[P, R]], Callable[P, R]], app.command(*args, **kwargs))


def _typed_callback(*args: Any, **kwargs: Any) -> Callable[[Callable[P, R]], Callable[P, R]]:
    return cast(Callable[[Callable[P, R]], Callable[P, R]], app.callback(*args, **kwargs))


# ═══════════════════════════════════════════════════════════════════════════════
# Type Aliases for Common Options
# ═══════════════════════════════════════════════════════════════════════════════

OptPlain = Annotated[bool, typer.Option("--plain", help="Plain text output")]
OptVerbose = Annotated[bool, typer.Option("--verbose", "-v", help="Also log debug detail to the session log")]
OptNoPause = Annotated[bool, typer.Option("--no-pause", help="Do not wait for Enter before exiting")]

# Elevation relay (set by wup itself when it re-launches elevated)
OptMachinePhase = Annotated[bool, typer.Option("--machine-phase", hidden=True)]
OptSelectedList = Annotated[str | None, typer.Option("--selected-list", hidden=True)]

# Node-specific options
OptSkipNvm = Annotated[bool, typer.Option("--skip-nvm", help="Skip the nvm-windows update")]
OptSkipSystem = Annotated[bool, typer.Option("--skip-system", help="Skip the system Node.js update")]


def _init_state(
    plain: bool | None = None,
    unicode: bool | None = None,
    minimal: bool | None = None,
    verbose: bool | None = None,
) -> None:
    """Initialize global state (called at start of each command)."""
    use_plain = plain if plain is not None else (state.printer.use_plain if state.printer else False)
    use_minimal = minimal if minimal is not None else (state.printer.use_minimal if state.printer else False)
    use_unicode = unicode if unicode is not None else (state.printer.use_unicode if state.printer else False)

    if state.printer is None or (
        state.printer.use_plain != use_plain
        or state.printer.use_minimal != use_minimal
        or state.printer.use_unicode != use_unicode
    ):
        state.printer = Printer(
            use_plain=use_plain,
            use_minimal=use_minimal,
            use_unicode=use_unicode,
        )

    if verbose is not None:
        state.verbose = verbose


def _ensure_config() -> WupConfig:
    """Load configuration and open the session log on first use."""
    if state.config is None:
        state.config = load_config()
        state.session_log = configure_session_log(
            state.config.log_dir,
            level=logging.DEBUG if state.verbose else logging.INFO,
        )
        logger.info("wup started: %s", " ".join(sys.argv))
    return state.config


def _require_state() -> tuple[Printer, WupConfig]:
    """Return initialized state or exit if missing."""
    if state.printer is None:
        raise typer.Exit(1)
    return state.printer, _ensure_config()


# ═══════════════════════════════════════════════════════════════════════════════
# Main Callback (global options only)
# ═══════════════════════════════════════════════════════════════════════════════


@_typed_callback()
def main(
    plain: OptPlain = False,
    unicode: Annotated[bool, typer.Option("--unicode", help="Use Unicode glyphs")] = False,
    minimal: Annotated[bool, typer.Option("--minimal", help="Use ASCII glyphs")] = False,
    verbose: OptVerbose = False,
) -> None:
    """
    Interactive winget upgrades and Node.js updates for Windows.

    Examples:
        wup                 # Pick upgrades interactively
        wup list            # Show pending upgrades
        wup node            # Update Node.js (nvm and system)
    """
    _init_state(
        plain=plain if plain else None,
        unicode=unicode if unicode else None,
        minimal=minimal if minimal else None,
        verbose=verbose,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Subcommands
# ═══════════════════════════════════════════════════════════════════════════════


@_typed_command("upgrade")
def upgrade_cmd(
    no_pause: OptNoPause = False,
    plain: OptPlain = False,
    machine_phase: OptMachinePhase = False,
    selected_list: OptSelectedList = None,
) -> None:
    """Choose pending upgrades and run them, elevated if needed."""
    _init_state(plain=plain if plain else None)
    if state.printer is None:
        raise typer.Exit(1)
    printer = state.printer

    try:
        config = _ensure_config()
    except Exception as e:
        with final_pause(printer, enabled=not no_pause):
            logger.exception("Could not start the upgrade workflow")
            printer.error(f"Unexpected error: {e}")
        raise typer.Exit(1) from e

    if state.session_log is not None:
        printer.info(f"Session log: {state.session_log}")

    result = run_workflow(
        printer,
        config,
        machine_phase=machine_phase,
        selected_list=selected_list,
        pause=not no_pause,
    )
    raise typer.Exit(result)


@_typed_command("list")
def list_cmd(plain: OptPlain = False) -> None:
    """List pending upgrades without changing anything."""
    _init_state(plain=plain if plain else None)
    printer, config = _require_state()

    candidates = list_upgrades(config, warn=printer.warn)
    if not candidates:
        printer.complete("No upgrades available")
        raise typer.Exit(0)

    printer.section("Available upgrades", count=len(candidates))
    printer.candidate_table(candidates)
    raise typer.Exit(0)


@_typed_command("node")
def node_cmd(
    skip_nvm: OptSkipNvm = False,
    skip_system: OptSkipSystem = False,
    plain: OptPlain = False,
) -> None:
    """Update Node.js under nvm-windows and the system-wide install."""
    _init_state(plain=plain if plain else None)
    printer, config = _require_state()

    results = []
    if not skip_nvm:
        printer.action("Updating Node.js (nvm-windows)")
        results += update_version_manager_node(config, printer)
    if not skip_system:
        results += update_system_node(config, printer)

    failed = [r for r in results if not r.ok]
    if failed:
        printer.section("Failed steps", count=len(failed))
        for step in failed:
            printer.error(f"{step.name}: {step.error}" if step.error else step.name)
        raise typer.Exit(1)

    printer.complete("Node.js update finished")
    raise typer.Exit(0)


# ═══════════════════════════════════════════════════════════════════════════════
# CLI Entry Point
# ═══════════════════════════════════════════════════════════════════════════════

COMMANDS = {"upgrade", "list", "node"}


def run_cli() -> None:
    """Entry point that runs the interactive upgrade when no command is given."""
    argv = sys.argv[1:]

    # Global options only (e.g. "wup --plain") also default to upgrade.
    if not any(arg in COMMANDS for arg in argv) and not any(arg in ("--help", "-h") for arg in argv):
        argv = [*argv, "upgrade"]

    sys.argv = [sys.argv[0], *argv]
    app()


if __name__ == "__main__":
    run_cli()
