"""
shared.py - Common utilities for wup

Single home for the helpers every command needs:
- Subprocess wrappers that report (success, output) instead of raising
- Filename and timestamp helpers for per-run diagnostic logs
"""

from __future__ import annotations

import io
import json
import re
import shutil
import subprocess
import textwrap
from datetime import datetime
from pathlib import Path
from typing import Any

# ═══════════════════════════════════════════════════════════════════════════════
# Filename Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def sanitize_for_filename(value: str, fallback: str = "package") -> str:
    """Reduce a package id to characters that are safe in a Windows filename.

    Args:
        value: Raw value (e.g., "Microsoft.VisualStudioCode")
        fallback: Returned when nothing usable remains

    Returns:
        Sanitized name (e.g., "Microsoft.VisualStudioCode")
    """
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", value.strip()).strip("._")
    return cleaned[:80] or fallback


def timestamp_token(now: datetime | None = None) -> str:
    """Return a sortable timestamp with microsecond resolution."""
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S-%f")


def unique_path(path: Path) -> Path:
    """Return ``path`` or the first ``name-N.ext`` sibling that does not exist."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


# ═══════════════════════════════════════════════════════════════════════════════
# Subprocess Helpers
# ═══════════════════════════════════════════════════════════════════════════════

def run_command(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: int | None = 120,
) -> tuple[bool, str]:
    """Run a command and return (success, stdout).

    Output is decoded as UTF-8 with replacement so localized winget output
    never raises.

    Args:
        cmd: Command and arguments as list
        cwd: Working directory (optional)
        timeout: Timeout in seconds (None waits indefinitely)

    Returns:
        Tuple of (success: bool, output: str)
        On timeout/error, returns (False, error_message)
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
        return result.returncode == 0, (result.stdout or "").rstrip()
    except subprocess.TimeoutExpired:
        return False, f"Timeout after {timeout}s"
    except OSError as e:
        return False, str(e)


def run_json_command(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: int | None = 120,
) -> tuple[bool, Any]:
    """Run a command expecting JSON output.

    Tools such as winget may print a banner before the payload, so parsing
    starts at the first ``{`` or ``[``.

    Returns:
        Tuple of (success: bool, parsed_data or None)
    """
    success, output = run_command(cmd, cwd=cwd, timeout=timeout)
    if not success or not output:
        return False, None

    data = extract_json_payload(output)
    return data is not None, data


def extract_json_payload(text: str) -> Any:
    """Parse the JSON document embedded in ``text``, or return None."""
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        return None
    try:
        return json.loads(text[min(starts):])
    except json.JSONDecodeError:
        return None


def _print_wrapped_plain_line(line: str, indent: str) -> None:
    """Print one line with wrapped continuation aligned to indent."""
    term_width = shutil.get_terminal_size(fallback=(80, 24)).columns
    wrapper = textwrap.TextWrapper(
        width=max(len(indent) + 20, term_width),
        initial_indent=indent,
        subsequent_indent=indent,
        replace_whitespace=False,
        drop_whitespace=False,
        expand_tabs=False,
    )
    print(wrapper.fill(line))


def run_streaming_command(
    cmd: list[str],
    cwd: Path | None = None,
    printer: Any = None,
    indent: str = "  ",
    skip_blank_lines: bool = True,
) -> tuple[int, str]:
    """Run a command and stream its output with consistent indentation.

    Blocks until the process exits. winget redraws progress bars with
    carriage returns; only the text after the last ``\\r`` of a line is kept.

    Args:
        cmd: Command and arguments.
        cwd: Optional working directory.
        printer: Optional printer with ``stream_line`` method.
        indent: Left padding applied to streamed output.
        skip_blank_lines: If True, suppress blank output lines.

    Returns:
        Tuple of (returncode, collected_output). A command that cannot be
        started returns (-1, error text).
    """
    try:
        process = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        return -1, str(e)
    assert process.stdout is not None

    # Split on \n only so progress redraws (\r) stay on their line.
    stream = io.TextIOWrapper(process.stdout, encoding="utf-8", errors="replace", newline="\n")

    output_lines: list[str] = []
    try:
        for raw_line in stream:
            line = raw_line.rstrip("\r\n").split("\r")[-1]
            stripped = line.rstrip()

            if not stripped:
                if not skip_blank_lines:
                    print()
                continue

            output_lines.append(stripped)
            if printer and hasattr(printer, "stream_line"):
                printer.stream_line(line, indent=indent)
            else:
                _print_wrapped_plain_line(line, indent)
    finally:
        stream.close()

    process.wait()
    return process.returncode, "\n".join(output_lines)
