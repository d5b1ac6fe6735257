"""Status command: current version, pending changesets, next version."""

from __future__ import annotations

from typing import Any

import click
from rich.text import Text

from ..changesets import Changeset
from ..versions import VersionInfo, calculate_next_version
from ..utils import emit_json, log_info, log_warning, print_renderable
from ._core import CLIContext, output_option, structured_errors
from ._rendering import render_version_preview

__all__ = ["collect_status", "status_payload", "status_cmd"]

FALLBACK_VERSION = "0.0.0"


def collect_status(ctx: CLIContext) -> tuple[VersionInfo, list[Changeset], Any]:
    """Return the version info, pending changesets and release decision."""
    ctx.ensure_config()
    try:
        current = ctx.manifest().version
    except click.ClickException as exc:
        log_warning(f"{exc.message}; assuming version {FALLBACK_VERSION}.")
        current = FALLBACK_VERSION

    changesets = ctx.store().list_all()
    info = calculate_next_version(current, changesets)
    return info, changesets, ctx.release_gate().can_publish()


def status_payload(ctx: CLIContext) -> dict[str, Any]:
    info, changesets, decision = collect_status(ctx)
    return {
        "currentVersion": str(info.current),
        "latestTag": decision.latest_tag,
        "pendingChangesets": [changeset.to_dict() for changeset in changesets],
        "nextVersion": str(info.next),
        "hasChanges": info.has_changes,
        "changesByType": dict(info.changes_by_type),
        "needsPublish": info.has_changes,
        "canPublish": decision.allowed,
    }


@click.command("status")
@output_option()
@click.pass_obj
def status_cmd(ctx: CLIContext, output_format: str) -> None:
    """Show the current version and pending changesets."""
    if output_format == "json":
        with structured_errors(output_format):
            payload = status_payload(ctx)
        emit_json(payload)
        return

    info, changesets, decision = collect_status(ctx)
    header = Text()
    header.append("Current version: ", style="bold")
    header.append(str(info.current), style="cyan")
    header.append("\nLatest tag: ", style="bold")
    header.append(decision.latest_tag or "none", style="cyan")
    print_renderable(header)

    if not changesets:
        log_info("no pending changesets; nothing to release.")
    else:
        render_version_preview(info, changesets)
        log_info(f"{len(changesets)} pending changeset(s); run 'vership version' to release.")

    if decision.allowed:
        log_info(f"version {info.current} has not been published yet.")
    elif decision.reason:
        log_info(decision.reason)
