"""Python-friendly facade for invoking vership functionality."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from .changesets import Changeset
from .cli import (
    CLIContext,
    VersionOutcome,
    apply_version,
    configure_changelog,
    create_changeset,
    create_cli_context,
    status_payload,
)
from .publish import PublishConfig, PublishOrchestrator, PublishResult
from .releases import ReleaseDecision
from .validate import ValidationIssue, run_validation
from .versions import VersionInfo, calculate_next_version


class Vership:
    """High-level helper that mirrors the CLI commands for Python callers.

    Nothing here prompts; operations that ask for confirmation on the
    command line run as if it had been given.
    """

    def __init__(self, *, root: Path | str | None = None, debug: bool = False) -> None:
        resolved_root = Path(root) if root is not None else None
        self._ctx = create_cli_context(root=resolved_root, debug=debug)

    @property
    def context(self) -> CLIContext:
        """Expose the underlying CLIContext for advanced scenarios."""

        return self._ctx

    def add(
        self,
        change_type: str,
        summary: str,
        *,
        author: Optional[str] = None,
        pr: Optional[str] = None,
    ) -> Changeset:
        """Record a changeset and return it."""

        return create_changeset(
            self._ctx,
            change_type=change_type,
            summary=summary,
            author=author,
            pr=pr,
            allow_interactive=False,
        )

    def changesets(self) -> list[Changeset]:
        return self._ctx.store().list_all()

    def edit(
        self,
        changeset_id: str,
        *,
        change_type: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> Changeset:
        return self._ctx.store().edit(changeset_id, change_type=change_type, summary=summary)

    def delete(self, changeset_id: str) -> Changeset:
        return self._ctx.store().delete(changeset_id)

    def delete_all(self) -> list[Changeset]:
        return self._ctx.store().delete_all()

    def status(self) -> dict[str, Any]:
        """Return the same document as ``vership status --output json``."""

        return status_payload(self._ctx)

    def next_version(self) -> VersionInfo:
        return calculate_next_version(self._ctx.manifest().version, self.changesets())

    def validate(self) -> list[ValidationIssue]:
        """Return every issue found in the pending changesets."""

        _, issues = run_validation(self._ctx.project_root)
        return issues

    def version(self, *, dry_run: bool = False, ci: bool = False) -> Optional[VersionOutcome]:
        """Apply the pending changesets; None when there is nothing to release."""

        return apply_version(self._ctx, dry_run=dry_run, skip_confirm=True, ci=ci)

    def set_changelog_template(self, template: str) -> None:
        configure_changelog(self._ctx, template=template)

    def can_publish(self) -> ReleaseDecision:
        return self._ctx.release_gate().can_publish()

    def publish(self, options: Optional[PublishConfig] = None, **overrides: Any) -> PublishResult:
        """Run the publish pipeline without consulting the release gate.

        ``overrides`` are applied on top of the ``publish`` settings from
        config.yaml, for example ``skip_npm_publish=True``.
        """

        config = self._ctx.ensure_config()
        resolved = options or PublishConfig.from_settings(config.publish, **overrides)
        orchestrator = PublishOrchestrator(
            self._ctx.project_root,
            config,
            resolved,
            git=self._ctx.git(),
            store=self._ctx.store(),
        )
        return orchestrator.run()
