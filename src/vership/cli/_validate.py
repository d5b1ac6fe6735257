"""Validate command."""

from __future__ import annotations

import click

from ..utils import emit_json, log_error, log_success, log_warning
from ..validate import run_validation
from ._core import CLIContext, output_option, structured_errors
from ._rendering import render_issues

__all__ = ["validate_cmd"]


@click.command("validate")
@output_option()
@click.pass_obj
def validate_cmd(ctx: CLIContext, output_format: str) -> None:
    """Check pending changesets for problems."""
    with structured_errors(output_format):
        ctx.ensure_config()
        changesets, issues = run_validation(ctx.project_root)
    errors = [issue for issue in issues if issue.severity == "error"]
    warnings = [issue for issue in issues if issue.severity == "warning"]

    if output_format == "json":
        emit_json(
            {
                "valid": not errors,
                "checked": len(changesets),
                "issues": [
                    {
                        "file": issue.path.name,
                        "id": issue.changeset_id,
                        "severity": issue.severity,
                        "message": issue.message,
                    }
                    for issue in issues
                ],
            }
        )
    elif issues:
        render_issues(issues)

    if errors:
        log_error(f"{len(errors)} error(s) found in pending changesets.")
        raise click.exceptions.Exit(1)
    if warnings:
        log_warning(f"{len(warnings)} warning(s) found in pending changesets.")
    log_success(f"{len(changesets)} changeset(s) are valid.")
