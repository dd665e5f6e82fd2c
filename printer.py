"""
Terminal UI printer with Rich formatting support.

Provides consistent output formatting for interactive console tools:
- Semantic colors via Rich theme
- Glyph-based status indicators (Nerd Font, Unicode, ASCII tiers)
- Line, confirmation and choice prompts that tolerate closed stdin
- Plain-text mode for redirected output and legacy consoles
"""

from __future__ import annotations

import shutil
import sys
import textwrap
from typing import Any, ClassVar

from rich import box
from rich.console import Console
from rich.padding import Padding
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme
from wcwidth import wcswidth

THEME = Theme({
    "success": "green",
    "error": "bold red",
    "warning": "yellow",
    "heading": "bold",
    "path": "cyan",
    "number": "cyan",
    "callout": "cyan",
    "dim": "dim",
    "activity": "magenta",
})


class Printer:
    """Terminal output with Rich formatting.

    Layout grid:
    - Columns 0-2: Gutter (glyphs only)
    - Column 2+: Content starts here
    - Column 4+: Sub-indent for nested details
    """

    INDENT = "  "
    INDENT2 = "    "

    GLYPHS_NERD: ClassVar[dict[str, str]] = {
        "success": "󰄬",      # nf-md-check
        "error": "󰅖",        # nf-md-close
        "warning": "󰀦",      # nf-md-alert
        "action": "󰁔",       # nf-md-arrow_decision
    }

    GLYPHS_UNICODE: ClassVar[dict[str, str]] = {
        "success": "✔",
        "error": "✘",
        "warning": "!",
        "action": "➜",
    }

    GLYPHS_MINIMAL: ClassVar[dict[str, str]] = {
        "success": "+",
        "error": "x",
        "warning": "!",
        "action": ">",
    }

    def __init__(
        self,
        use_plain: bool = False,
        use_minimal: bool = False,
        use_unicode: bool = False,
    ):
        self.use_plain = use_plain
        self.use_minimal = use_minimal
        self.use_unicode = use_unicode
        self.console: Console | None = None

        # minimal > unicode > nerd (auto-detect)
        if use_minimal:
            self.glyphs = self.GLYPHS_MINIMAL
        elif use_unicode or not self._detect_nerd_font():
            self.glyphs = self.GLYPHS_UNICODE
        else:
            self.glyphs = self.GLYPHS_NERD

        if not use_plain:
            self.console = Console(theme=THEME, highlight=False)

    @staticmethod
    def _detect_nerd_font() -> bool:
        """Check if terminal can render Nerd Font (Material Design) icons.

        wcwidth reports 0 or -1 for glyphs the font does not cover.
        """
        return int(wcswidth("󰁔")) > 0

    def _pad_glyph(self, glyph: str, target_width: int = 2) -> str:
        """Pad glyph so text after it always starts at the same column."""
        width = int(wcswidth(glyph))
        if width <= 0:
            width = 1
        return glyph + " " * max(0, target_width - width)

    @staticmethod
    def _wrap_plain_line(text: str, indent: str) -> str:
        term_width = shutil.get_terminal_size(fallback=(80, 24)).columns
        wrapper = textwrap.TextWrapper(
            width=max(len(indent) + 20, term_width),
            initial_indent=indent,
            subsequent_indent=indent,
            replace_whitespace=False,
            drop_whitespace=False,
            expand_tabs=False,
        )
        return wrapper.fill(text)

    def _print_indented_text(self, text: str, indent: str, style: str | None = None) -> None:
        """Print text at a fixed indent with wrapped continuation alignment."""
        for line in text.splitlines() or [text]:
            if not line:
                print()
                continue
            if self.console is not None:
                rendered = Text(line)
                if style:
                    rendered.stylize(style)
                self.console.print(Padding(rendered, (0, 0, 0, len(indent)), expand=False), overflow="fold")
            else:
                print(self._wrap_plain_line(line, indent))

    def _glyph_line(self, kind: str, text: str, style: str, stream: Any = None) -> None:
        g = self._pad_glyph(self.glyphs[kind])
        if self.console is not None:
            rendered = Text()
            rendered.append(g, style=style)
            rendered.append(text)
            self.console.print(rendered, overflow="fold")
        else:
            print(f"{g}{text}", file=stream or sys.stdout)

    # === Output ===

    def stream_line(self, text: str, indent: str = "  ") -> None:
        """Print one streamed command output line."""
        self._print_indented_text(text, indent, style="dim")

    def action(self, text: str) -> None:
        """Print action header with arrow at column 0."""
        print()
        g = self._pad_glyph(self.glyphs["action"])
        if self.console is not None:
            rendered = Text()
            rendered.append(g, style="callout")
            rendered.append(text, style="heading")
            self.console.print(rendered)
        else:
            print(f"{g}{text}")

    def section(self, title: str, count: int = 0) -> None:
        """Print a bold section header: **Title** (count)."""
        print()
        suffix = f" ({count})" if count > 0 else ""
        if self.console is not None:
            rendered = Text(title, style="heading")
            rendered.append(suffix)
            self.console.print(Padding(rendered, (0, 0, 0, len(self.INDENT)), expand=False))
        else:
            print(f"{self.INDENT}{title}{suffix}")

    def detail(self, text: str) -> None:
        """Print dim text at column 4."""
        self._print_indented_text(text, self.INDENT2, style="dim")

    def info(self, text: str) -> None:
        """Print dim informational text at column 2."""
        self._print_indented_text(text, self.INDENT, style="dim")

    def numbered_option(self, num: int, text: str) -> None:
        """Print a numbered option at column 4."""
        if self.console is not None:
            rendered = Text()
            rendered.append(f"{num}.", style="callout")
            rendered.append(f" {text}")
            self.console.print(Padding(rendered, (0, 0, 0, len(self.INDENT2)), expand=False))
        else:
            print(f"{self.INDENT2}{num}. {text}")

    def kv_line(self, key: str, value: str) -> None:
        """Print a key-value pair with fixed-width key at column 4."""
        if self.console is not None:
            rendered = Text(f"{key + ':':<10}")
            rendered.append(value, style="dim")
            self.console.print(Padding(rendered, (0, 0, 0, len(self.INDENT2)), expand=False), overflow="fold")
        else:
            print(f"{self.INDENT2}{key + ':':<10}{value}")

    def success(self, text: str) -> None:
        self._glyph_line("success", text, "success")

    def complete(self, text: str) -> None:
        """Print completion message with a blank line before."""
        print()
        self._glyph_line("success", text, "success")

    def warn(self, text: str) -> None:
        self._glyph_line("warning", text, "warning")

    def error(self, text: str) -> None:
        self._glyph_line("error", text, "error", stream=sys.stderr)

    def table(self, columns: list[tuple[str, str]], rows: list[list[str]]) -> None:
        """Render rows as a table.

        Args:
            columns: (header, justify) pairs
            rows: Cell text per row
        """
        if self.console is not None:
            table = Table(box=box.SIMPLE_HEAD, show_header=True, header_style="heading", pad_edge=False)
            for header, justify in columns:
                table.add_column(header, justify=justify, overflow="fold")  # type: ignore[arg-type]
            for row in rows:
                table.add_row(*row)
            self.console.print(Padding(table, (0, 0, 0, len(self.INDENT)), expand=False))
            return

        widths = [len(header) for header, _ in columns]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))

        def fmt(cells: list[str]) -> str:
            parts = []
            for (_, justify), cell, width in zip(columns, cells, widths):
                parts.append(cell.rjust(width) if justify == "right" else cell.ljust(width))
            return "  ".join(parts).rstrip()

        print(f"{self.INDENT}{fmt([header for header, _ in columns])}")
        print(f"{self.INDENT}{'  '.join('-' * w for w in widths)}")
        for row in rows:
            print(f"{self.INDENT}{fmt(row)}")

    # === Input ===

    def ask(self, prompt: str, default: str = "") -> str:
        """Read one line of free-form input. Closed stdin returns ``default``."""
        try:
            if self.console is not None:
                return str(Prompt.ask(f"{self.INDENT}{prompt}", default=default, show_default=False, console=self.console))
            return input(f"{self.INDENT}{prompt}: ")
        except EOFError:
            return default

    def confirm(self, prompt: str, default: bool = True) -> bool:
        """Ask for confirmation with proper indentation."""
        if self.console is not None:
            try:
                return bool(Confirm.ask(f"{self.INDENT}{prompt}", default=default, console=self.console))
            except EOFError:
                return default
        suffix = " [Y/n]: " if default else " [y/N]: "
        try:
            response = input(f"{self.INDENT}{prompt}{suffix}").strip().lower()
        except EOFError:
            return default
        if not response:
            return default
        return response in ("y", "yes")

    def pause(self, prompt: str = "Press Enter to exit") -> None:
        """Block until the operator presses Enter."""
        print()
        try:
            input(f"{self.INDENT}{prompt}...")
        except (EOFError, KeyboardInterrupt):
            print()
