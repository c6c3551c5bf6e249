"""
Rendering functions for mirrorforge output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional

from .domain import Classification

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print(f"[yellow]No {title.lower() if title else 'data'} to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(val) for val in row])

    console.print(table)


def render_classification(result: Classification) -> None:
    """Render discovered modules and uncovered repositories as tables."""
    render_table(
        ["Module", "Repository"],
        [[module_id, candidate.full_name] for module_id, candidate in sorted(result.assignments.items())],
        title="Modules",
    )
    render_table(
        ["Repository"],
        [[candidate.full_name] for candidate in result.self_declared],
        title="Self-declaring candidates",
    )
    render_table(
        ["Owner", "Repository"],
        [[repo.owner, repo.name] for repo in result.sorted_unknown()],
        title="Unknown repositories",
    )
