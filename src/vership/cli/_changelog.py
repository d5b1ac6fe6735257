"""Changelog configuration command."""

from __future__ import annotations

from typing import Any, Optional

import click

from ..changelog import SAMPLE_CUSTOM_TEMPLATE
from ..changesets import CHANGE_TYPES
from ..config import DEFAULT_CUSTOM_TEMPLATE, TEMPLATE_CHOICES, Config, save_config, with_changelog
from ..utils import log_info, log_success
from ._core import CLIContext, _confirm, _prompt_text

__all__ = ["configure_changelog", "changelog_cmd"]


def _write_sample_template(ctx: CLIContext, relative_path: str) -> None:
    path = ctx.project_root / relative_path
    if path.exists():
        log_info(f"keeping existing custom template {relative_path}")
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_CUSTOM_TEMPLATE, encoding="utf-8")
    log_success(f"wrote sample custom template to {relative_path}")


def _interactive_changes(config: Config, template: Optional[str]) -> dict[str, Any]:
    settings = config.changelog
    changes: dict[str, Any] = {}
    changes["template"] = template or _prompt_text(
        "Template",
        type=click.Choice(TEMPLATE_CHOICES),
        default=settings.template,
    )
    changes["include_author"] = _confirm(
        "Mention authors in changelog items?", default=settings.include_author
    )
    changes["include_pr"] = _confirm(
        "Link pull requests in changelog items?", default=settings.include_pr
    )
    changes["include_commit_links"] = _confirm(
        "Add a compare link to each release?", default=settings.include_commit_links
    )
    if changes["template"] == "custom":
        changes["custom_template"] = _prompt_text(
            "Custom template path",
            default=settings.custom_template or DEFAULT_CUSTOM_TEMPLATE,
        )
    categories = dict(settings.categories)
    for change_type in CHANGE_TYPES:
        categories[change_type] = _prompt_text(
            f"Heading for {change_type} changes", default=categories[change_type]
        )
    changes["categories"] = categories
    return changes


def configure_changelog(
    ctx: CLIContext,
    *,
    template: Optional[str] = None,
    interactive: bool = False,
) -> Config:
    """Update the changelog settings and persist them to config.yaml."""
    config = ctx.ensure_config(create_if_missing=True)

    if interactive:
        changes = _interactive_changes(config, template)
    elif template:
        changes = {"template": template}
    else:
        settings = config.changelog
        log_info(
            f"changelog template: {settings.template} (written to {settings.path}); "
            "use --template or --interactive to change it."
        )
        return config

    if changes["template"] == "custom" and not (
        changes.get("custom_template") or config.changelog.custom_template
    ):
        changes["custom_template"] = DEFAULT_CUSTOM_TEMPLATE

    updated = with_changelog(config, **changes)
    if updated.changelog.template == "custom" and updated.changelog.custom_template:
        _write_sample_template(ctx, updated.changelog.custom_template)

    save_config(updated, ctx.config_path)
    ctx.reset_config(updated)
    log_success(f"changelog template set to {updated.changelog.template}.")
    return updated


@click.command("changelog")
@click.option(
    "--template",
    type=click.Choice(TEMPLATE_CHOICES),
    help="Template used to render new changelog sections.",
)
@click.option("--interactive", "-i", is_flag=True, help="Walk through every changelog setting.")
@click.pass_obj
def changelog_cmd(ctx: CLIContext, template: Optional[str], interactive: bool) -> None:
    """Configure how the changelog is rendered."""
    configure_changelog(ctx, template=template, interactive=interactive)
