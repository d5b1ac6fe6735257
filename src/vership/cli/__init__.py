"""CLI package for vership.

This package contains the modular CLI implementation:
- _core.py: CLIContext, decorators, shared utilities, main entry point
- _rendering.py: Rich rendering functions
- _add.py: add command for recording changesets
- _status.py: status command
- _validate.py: validate command
- _edit.py: edit and delete commands
- _version.py: version command
- _changelog.py: changelog configuration command
- _publish.py: publish command
"""

from __future__ import annotations

# Re-export core types and utilities
from ._core import (
    CLIContext,
    CHANGE_TYPE_STYLES,
    VERSION_FLAGS,
    create_cli_context,
    output_option,
    yes_option,
    _create_cli_group,
    main,
)

# Re-export rendering utilities
from ._rendering import (
    render_changesets,
    render_issues,
    render_release_preview,
    render_version_preview,
)

from ._add import create_changeset, add
from ._status import collect_status, status_payload, status_cmd
from ._validate import validate_cmd
from ._edit import edit_cmd, delete_cmd
from ._version import VersionOutcome, apply_version, version_cmd
from ._changelog import configure_changelog, changelog_cmd
from ._publish import run_publish, publish_cmd

# Create the main CLI group
cli = _create_cli_group()

# Register all commands with the cli group
cli.add_command(add)
cli.add_command(status_cmd)
cli.add_command(validate_cmd)
cli.add_command(edit_cmd)
cli.add_command(delete_cmd)
cli.add_command(version_cmd)
cli.add_command(changelog_cmd)
cli.add_command(publish_cmd)


__all__ = [
    # Core
    "cli",
    "main",
    "CLIContext",
    "CHANGE_TYPE_STYLES",
    "VERSION_FLAGS",
    "create_cli_context",
    "output_option",
    "yes_option",
    # Rendering
    "render_changesets",
    "render_issues",
    "render_release_preview",
    "render_version_preview",
    # Commands
    "create_changeset",
    "add",
    "collect_status",
    "status_payload",
    "status_cmd",
    "validate_cmd",
    "edit_cmd",
    "delete_cmd",
    "VersionOutcome",
    "apply_version",
    "version_cmd",
    "configure_changelog",
    "changelog_cmd",
    "run_publish",
    "publish_cmd",
]
