"""Version command: bump the manifest, update the changelog, consume changesets."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import click

from ..changelog import ChangelogEntry
from ..changesets import Changeset
from ..errors import PreflightFailure
from ..manifest import write_version
from ..utils import emit_output, log_info, log_success, log_warning
from ..versions import VersionInfo, calculate_next_version
from ._core import CLIContext, _confirm
from ._rendering import render_version_preview

__all__ = ["VersionOutcome", "apply_version", "version_cmd"]


@dataclass
class VersionOutcome:
    """What a version run did (or would do, for a dry run)."""

    info: VersionInfo
    changesets: list[Changeset] = field(default_factory=list)
    applied: bool = False
    committed: bool = False
    section: Optional[str] = None


def _relative(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def apply_version(
    ctx: CLIContext,
    *,
    dry_run: bool = False,
    skip_confirm: bool = False,
    ci: bool = False,
) -> Optional[VersionOutcome]:
    """Compute the next version and, unless dry-running, apply it.

    Returns None when there is nothing to release or the user declines.
    """
    config = ctx.ensure_config()
    git = ctx.git()
    in_repository = git.is_repository()
    if not in_repository:
        log_warning("not inside a git repository; the release will not be committed.")
    elif not ci and not dry_run and not git.is_clean():
        raise PreflightFailure(
            "Working tree has uncommitted changes; commit or stash them first."
        )

    manifest = ctx.manifest()
    changesets = ctx.store().list_all()
    if not changesets:
        log_info("no pending changesets; nothing to version.")
        return None

    info = calculate_next_version(manifest.version, changesets)
    render_version_preview(info, changesets)
    outcome = VersionOutcome(info=info, changesets=changesets)
    if dry_run:
        log_info(f"dry run: would release {info.next}.")
        return outcome

    if not (skip_confirm or ci) and not _confirm(
        f"Release version {info.next}?", default=True
    ):
        log_info("version bump cancelled.")
        return None

    write_version(manifest.path, str(info.next))
    log_success(f"updated {manifest.path.name}: {info.current} → {info.next}")

    changelog = ctx.changelog(manifest)
    entry = ChangelogEntry.from_changesets(
        info.next, changesets, previous_version=info.current
    )
    outcome.section = changelog.add_entry(entry)
    log_success(f"updated {_relative(changelog.path, ctx.project_root)}")

    ctx.store().consume(changesets)
    outcome.applied = True
    log_success(f"consumed {len(changesets)} changeset(s).")

    if in_repository:
        git.add(
            [
                _relative(manifest.path, ctx.project_root),
                _relative(changelog.path, ctx.project_root),
                _relative(ctx.store().directory, ctx.project_root),
            ]
        )
        git.commit(config.git.commit_message_for(info.next))
        outcome.committed = True
        log_success(f"committed release {config.git.tag_for(info.next)}.")
    return outcome


@click.command("version")
@click.option("--dry-run", is_flag=True, help="Preview the bump without writing anything.")
@click.option("--skip-confirm", is_flag=True, help="Do not ask for confirmation.")
@click.option(
    "--ci",
    is_flag=True,
    help="Non-interactive mode: no prompts and no clean working tree check.",
)
@click.pass_obj
def version_cmd(ctx: CLIContext, dry_run: bool, skip_confirm: bool, ci: bool) -> None:
    """Bump the version from pending changesets and update the changelog."""
    outcome = apply_version(ctx, dry_run=dry_run, skip_confirm=skip_confirm, ci=ci)
    if outcome is not None and outcome.applied:
        emit_output(str(outcome.info.next))
