"""Edit and delete commands for pending changesets."""

from __future__ import annotations

from typing import Optional, Sequence

import click

from ..changesets import Changeset
from ..utils import log_info, log_success
from ._core import CLIContext, _confirm, _prompt_change_type, _prompt_text, yes_option
from ._rendering import render_changesets

__all__ = ["edit_cmd", "delete_cmd"]


def _choose_changeset(changesets: Sequence[Changeset], action: str) -> Changeset:
    render_changesets(changesets, title=f"Select a changeset to {action}")
    choice = _prompt_text(
        "Number",
        type=click.IntRange(1, len(changesets)),
        default=1,
    )
    return changesets[int(choice) - 1]


def _resolve_target(ctx: CLIContext, changeset_id: Optional[str], action: str) -> Optional[Changeset]:
    store = ctx.store()
    if changeset_id:
        return store.get(changeset_id)
    changesets = store.list_all()
    if not changesets:
        log_info("no pending changesets.")
        return None
    return _choose_changeset(changesets, action)


@click.command("edit")
@click.option("--id", "changeset_id", help="Id of the changeset to edit.")
@click.option("--type", "-t", "change_type", help="New change type.")
@click.option("--message", "-m", "summary", help="New summary.")
@click.pass_obj
def edit_cmd(
    ctx: CLIContext,
    changeset_id: Optional[str],
    change_type: Optional[str],
    summary: Optional[str],
) -> None:
    """Change the type or summary of a pending changeset."""
    ctx.ensure_config()
    target = _resolve_target(ctx, changeset_id, "edit")
    if target is None:
        return

    if change_type is None and summary is None:
        log_info(f"editing {target.id} ({target.type}); press Enter to keep the current type.")
        change_type = _prompt_change_type(default=target.type)
        summary = _prompt_text("Summary", default=target.summary)

    updated = ctx.store().edit(target.id, change_type=change_type, summary=summary)
    log_success(f"changeset {updated.id} updated ({updated.type}): {updated.summary}")


@click.command("delete")
@click.option("--id", "changeset_id", help="Id of the changeset to delete.")
@click.option("--all", "delete_all", is_flag=True, help="Delete every pending changeset.")
@yes_option()
@click.pass_obj
def delete_cmd(
    ctx: CLIContext,
    changeset_id: Optional[str],
    delete_all: bool,
    assume_yes: bool,
) -> None:
    """Remove one or all pending changesets."""
    if changeset_id and delete_all:
        raise click.UsageError("--id and --all are mutually exclusive.")
    ctx.ensure_config()
    store = ctx.store()

    if delete_all:
        pending = store.list_all()
        if not pending:
            log_info("no pending changesets.")
            return
        if not assume_yes and not _confirm(
            f"Delete all {len(pending)} pending changeset(s)?", default=False
        ):
            log_info("nothing deleted.")
            return
        removed = store.consume(pending)
        log_success(f"deleted {len(removed)} changeset(s).")
        return

    target = _resolve_target(ctx, changeset_id, "delete")
    if target is None:
        return
    if not assume_yes and not _confirm(f"Delete changeset {target.id}?", default=False):
        log_info("nothing deleted.")
        return
    store.delete(target.id)
    log_success(f"deleted changeset {target.id}.")
