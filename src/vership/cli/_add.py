"""Add command for recording changesets."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..changesets import Changeset, normalize_change_type
from ..utils import log_success
from ._core import CLIContext, _prompt_change_type, _prompt_text

__all__ = ["create_changeset", "add"]


def create_changeset(
    ctx: CLIContext,
    *,
    change_type: Optional[str] = None,
    summary: Optional[str] = None,
    author: Optional[str] = None,
    pr: Optional[str] = None,
    allow_interactive: bool = True,
) -> Changeset:
    """Python wrapper for creating changesets that mirrors the CLI behavior."""

    ctx.ensure_config(create_if_missing=True)

    if change_type:
        normalized_type = normalize_change_type(change_type)
    elif allow_interactive:
        normalized_type = normalize_change_type(_prompt_change_type())
    else:
        raise click.ClickException("Change type is required when running non-interactively.")

    text = (summary or "").strip()
    if not text:
        if not allow_interactive:
            raise click.ClickException("Summary is required when running non-interactively.")
        text = _prompt_text("Summary")

    changeset = ctx.store().create(normalized_type, text, author=author, pr=pr)
    path = changeset.path or ctx.store().path_for(changeset.id)
    try:
        display_path = path.relative_to(Path.cwd())
    except ValueError:
        display_path = path
    log_success(f"changeset created: {display_path} ({changeset.type})")
    return changeset


@click.command("add")
@click.option("--type", "-t", "change_type", help="Change type: major, minor or patch.")
@click.option("--message", "-m", "summary", help="One-line summary of the change.")
@click.option("--author", help="Username of the author (used by the github template).")
@click.option("--pr", help="Related pull request number.")
@click.pass_obj
def add(
    ctx: CLIContext,
    change_type: Optional[str],
    summary: Optional[str],
    author: Optional[str],
    pr: Optional[str],
) -> None:
    """Record a new changeset."""
    create_changeset(ctx, change_type=change_type, summary=summary, author=author, pr=pr)
