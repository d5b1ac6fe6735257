"""Rich rendering helpers shared by the commands."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..changesets import CHANGE_TYPES, Changeset
from ..validate import ValidationIssue
from ..versions import VersionInfo
from ..utils import print_renderable
from ._core import _format_change_type

__all__ = [
    "render_changesets",
    "render_version_preview",
    "render_release_preview",
    "render_issues",
]


def render_changesets(changesets: Sequence[Changeset], *, title: Optional[str] = None) -> None:
    table = Table(title=title, show_lines=False, pad_edge=False)
    table.add_column("#", style="dim", justify="right", no_wrap=True)
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Type", justify="center", no_wrap=True)
    table.add_column("Summary", style="bold", overflow="fold")
    table.add_column("Created", style="yellow", no_wrap=True)
    for index, changeset in enumerate(changesets, start=1):
        table.add_row(
            str(index),
            changeset.id,
            _format_change_type(changeset.type),
            changeset.summary,
            changeset.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    print_renderable(table)


def _counts_line(info: VersionInfo) -> Text:
    text = Text()
    for idx, change_type in enumerate(CHANGE_TYPES):
        if idx:
            text.append("  ")
        text.append_text(_format_change_type(change_type))
        text.append(f": {info.changes_by_type.get(change_type, 0)}")
    return text


def render_version_preview(info: VersionInfo, changesets: Sequence[Changeset]) -> None:
    """Show the bump and the changesets it is derived from."""
    summary = Text()
    summary.append(f"{info.current}", style="dim")
    summary.append(" → ")
    summary.append(f"{info.next}", style="bold green")
    if info.bump:
        summary.append(f"  ({info.bump} bump)", style="dim")
    summary.append("\n")
    summary.append_text(_counts_line(info))
    print_renderable(Panel(summary, title="Version", title_align="left", expand=False))
    render_changesets(changesets, title="Pending changesets")


def render_release_preview(version: str, tag: str, notes: Optional[str]) -> None:
    header = Text()
    header.append("Version: ", style="bold")
    header.append(version, style="green")
    header.append("   Tag: ", style="bold")
    header.append(tag, style="cyan")
    print_renderable(Panel(header, title="Publish", title_align="left", expand=False))
    if notes:
        print_renderable(Panel(Markdown(notes), title="Release notes", title_align="left"))
    else:
        print_renderable(Text("No release notes found in the changelog.", style="dim"))


def render_issues(issues: Iterable[ValidationIssue]) -> None:
    table = Table(show_lines=False, pad_edge=False)
    table.add_column("Severity", no_wrap=True)
    table.add_column("File", style="cyan", overflow="fold")
    table.add_column("Problem", overflow="fold")
    for issue in issues:
        style = "red" if issue.severity == "error" else "yellow"
        table.add_row(Text(issue.severity, style=style), issue.path.name, issue.message)
    print_renderable(table)
