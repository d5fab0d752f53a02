"""Shared utility functions for genapp.

Provides YAML I/O, file-system helpers and the Rich-based console output used
to report generation progress.  All user-facing output goes through the
module-level ``console``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()


# ---------------------------------------------------------------------------
# YAML I/O
# ---------------------------------------------------------------------------


def load_yaml(path: str | Path) -> Any:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed document (``None`` for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid YAML.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"{file_path}: {exc}") from exc


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Safe to call concurrently for the same directory.

    Args:
        path: Directory path.

    Returns:
        The ``Path`` object.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.25)   -> "0.2s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def format_rights(rights: int) -> str:
    """Format permission bits the way ``ls`` users read them (``0755``)."""
    return f"{rights:04o}"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    """Print a full-width rule announcing *title*."""
    console.print()
    console.print(Rule(f"[bold bright_green] {title} [/bold bright_green]", style="bright_green"))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
