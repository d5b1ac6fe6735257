"""Publish command: gate, preview, confirm, run the pipeline."""

from __future__ import annotations

from typing import Optional

import click

from ..config import ACCESS_CHOICES
from ..publish import PublishConfig, PublishOrchestrator, PublishResult, render_progress
from ..utils import emit_json, log_error, log_info, log_success, log_warning
from ._core import CLIContext, _confirm, output_option, structured_errors
from ._rendering import render_release_preview

__all__ = ["run_publish", "publish_cmd"]


def run_publish(
    ctx: CLIContext,
    options: PublishConfig,
    *,
    skip_confirm: bool = False,
    ci: bool = False,
    output_format: str = "text",
) -> Optional[PublishResult]:
    """Run the release gate and the pipeline.

    Returns None when the gate refuses or the user declines; the refusal
    is reported through the exit code by the command.
    """
    config = ctx.ensure_config()
    decision = ctx.release_gate().can_publish()
    if not decision.allowed:
        reason = decision.reason or "Publishing is not allowed."
        if output_format == "json":
            payload = decision.to_dict()
            payload.update({"success": False, "errors": [reason]})
            emit_json(payload)
        elif ci:
            log_info(reason)
        else:
            log_error(reason)
        raise click.exceptions.Exit(0 if ci else 1)

    manifest = ctx.manifest()
    tag = config.git.tag_for(manifest.version)
    notes = ctx.changelog(manifest).release_notes(manifest.version)
    if output_format == "text":
        render_release_preview(manifest.version, tag, notes)

    interactive = not (skip_confirm or ci or options.dry_run or output_format == "json")
    if interactive and not _confirm(f"Publish {manifest.version} as {tag}?", default=True):
        log_info("publish cancelled.")
        return None

    orchestrator = PublishOrchestrator(
        ctx.project_root, config, options, git=ctx.git(), store=ctx.store()
    )
    result = orchestrator.run()

    if output_format == "json":
        emit_json(result.to_dict())
    if not result.success:
        if output_format == "text":
            for error in result.errors:
                log_error(error)
            render_progress(orchestrator.tracker)
        raise click.exceptions.Exit(1)

    for warning in result.warnings:
        log_warning(warning)
    if not options.dry_run:
        log_success(f"published {result.version} ({result.git_tag or tag}).")
    return result


@click.command("publish")
@click.option("--dry-run", is_flag=True, help="Validate and preview without changing anything.")
@click.option("--skip-confirm", is_flag=True, help="Do not ask for confirmation.")
@click.option("--skip-build", is_flag=True, help="Skip the build stage.")
@click.option("--skip-test", is_flag=True, help="Skip the test stage.")
@click.option("--skip-git-push", is_flag=True, help="Do not create or push the release tag.")
@click.option("--skip-npm-publish", is_flag=True, help="Do not publish to the registry.")
@click.option("--skip-github-release", is_flag=True, help="Do not create a GitHub release.")
@click.option(
    "--ci",
    is_flag=True,
    help="Non-interactive mode; an already released version exits with status 0.",
)
@output_option()
@click.option("--registry", help="Registry URL passed to the publish command.")
@click.option("--access", type=click.Choice(ACCESS_CHOICES), help="Package access level.")
@click.option("--tag", "dist_tag", help="Distribution tag for the registry publish.")
@click.pass_obj
def publish_cmd(
    ctx: CLIContext,
    dry_run: bool,
    skip_confirm: bool,
    skip_build: bool,
    skip_test: bool,
    skip_git_push: bool,
    skip_npm_publish: bool,
    skip_github_release: bool,
    ci: bool,
    output_format: str,
    registry: Optional[str],
    access: Optional[str],
    dist_tag: Optional[str],
) -> None:
    """Build, test, tag and publish the current version."""
    with structured_errors(output_format):
        config = ctx.ensure_config()
        options = PublishConfig.from_settings(
            config.publish,
            dry_run=dry_run,
            skip_build=skip_build,
            skip_test=skip_test,
            skip_git_push=skip_git_push,
            skip_npm_publish=skip_npm_publish,
            skip_github_release=skip_github_release,
            registry=registry,
            access=access,
            tag=dist_tag,
        )
        run_publish(ctx, options, skip_confirm=skip_confirm, ci=ci, output_format=output_format)
