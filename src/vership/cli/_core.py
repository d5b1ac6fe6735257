"""Core CLI infrastructure: context, decorators, and shared utilities."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as metadata_version
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

import click
from rich.text import Text

from .. import __version__ as package_version
from ..changelog import ChangelogGenerator, Repository, resolve_repository
from ..changesets import ChangesetStore, changeset_directory
from ..config import (
    CHANGESET_DIRECTORY_NAME,
    Config,
    DEFAULT_MANIFEST,
    default_config_path,
    load_project_config,
    save_config,
)
from ..git import Git
from ..releases import ReleaseGate
from ..manifest import Manifest, read_manifest, resolve_manifest_path
from ..utils import (
    abort_on_user_interrupt,
    configure_logging,
    console,
    emit_json,
    log_debug,
    log_error,
    log_info,
    log_success,
)

F = TypeVar("F", bound=Callable[..., Any])

__all__ = [
    "CLIContext",
    "CHANGE_TYPE_STYLES",
    "create_cli_context",
    "output_option",
    "structured_errors",
    "yes_option",
    "_confirm",
    "_prompt_text",
    "_prompt_change_type",
    "_create_cli_group",
    "main",
]

VERSION_FLAGS = {"--version", "-V"}

CHANGE_TYPE_STYLES: dict[str, str] = {
    "major": "bold red",
    "minor": "green",
    "patch": "blue",
}

CHANGE_TYPE_EMOJIS: dict[str, str] = {
    "major": "💥",
    "minor": "🚀",
    "patch": "🐛",
}

CHANGE_TYPE_KEYS = (("major", "M"), ("minor", "m"), ("patch", "p"))

OUTPUT_CHOICES = ("text", "json")


def _resolve_cli_version() -> str:
    try:
        return metadata_version("vership")
    except PackageNotFoundError:
        return package_version


def output_option() -> Callable[[F], F]:
    """Add the shared --output option."""

    def decorator(f: F) -> F:
        return click.option(
            "--output",
            "-o",
            "output_format",
            type=click.Choice(OUTPUT_CHOICES),
            default="text",
            show_default=True,
            help="Output format; json prints a single document to stdout.",
        )(f)

    return decorator


@contextmanager
def structured_errors(output_format: str) -> Iterator[None]:
    """Report command errors as a JSON document when --output json is active."""
    if output_format != "json":
        yield
        return
    try:
        yield
    except click.ClickException as exc:
        log_error(exc.message)
        emit_json({"success": False, "errors": [exc.message]})
        raise click.exceptions.Exit(exc.exit_code) from exc


def yes_option(help_text: str = "Skip the confirmation prompt.") -> Callable[[F], F]:
    def decorator(f: F) -> F:
        return click.option("--yes", "-y", "assume_yes", is_flag=True, help=help_text)(f)

    return decorator


@dataclass
class CLIContext:
    """Shared command context."""

    project_root: Path
    _config: Optional[Config] = None

    @property
    def config_path(self) -> Path:
        return default_config_path(self.project_root)

    def ensure_config(self, *, create_if_missing: bool = False) -> Config:
        if self._config is None:
            try:
                config = load_project_config(self.project_root)
            except ValueError as error:
                raise click.ClickException(str(error)) from error
            if create_if_missing and not self.config_path.exists():
                save_config(config, self.config_path)
                log_success(
                    f"initialized {CHANGESET_DIRECTORY_NAME}/ in {self.project_root}"
                )
            self._config = config
        return self._config

    def reset_config(self, config: Config) -> None:
        self._config = config

    def store(self) -> ChangesetStore:
        return ChangesetStore(self.project_root)

    def git(self) -> Git:
        return Git(self.project_root)

    @property
    def manifest_path(self) -> Path:
        return resolve_manifest_path(self.project_root, self.ensure_config().manifest)

    def manifest(self) -> Manifest:
        return read_manifest(self.manifest_path)

    def repository(self, manifest: Optional[Manifest] = None) -> Optional[Repository]:
        config = self.ensure_config()
        return resolve_repository(
            [
                config.changelog.repository,
                manifest.repository if manifest else None,
                self.git().remote_url(),
            ]
        )

    def changelog(self, manifest: Optional[Manifest] = None) -> ChangelogGenerator:
        config = self.ensure_config()
        return ChangelogGenerator(
            self.project_root,
            config.changelog,
            repository=self.repository(manifest),
            tag_prefix=config.git.tag_prefix,
        )

    def release_gate(self) -> ReleaseGate:
        config = self.ensure_config()
        return ReleaseGate(
            lambda: self.manifest().version,
            self.git().latest_tag,
            tag_prefix=config.git.tag_prefix,
        )


def _resolve_project_root(value: Path) -> Path:
    """Walk upwards until a directory with .changesets/ or a manifest is found."""
    resolved = value.resolve()
    for candidate in [resolved] + list(resolved.parents):
        if changeset_directory(candidate).is_dir() or (candidate / DEFAULT_MANIFEST).is_file():
            return candidate
    return resolved


def create_cli_context(*, root: Path | None = None, debug: bool = False) -> CLIContext:
    """Return a CLIContext using the same resolution logic as the CLI entry point."""

    configure_logging(debug)
    resolved_root = root.resolve() if root is not None else _resolve_project_root(Path("."))
    log_debug(f"resolved project root: {resolved_root}")
    return CLIContext(project_root=resolved_root)


def _prompt_text(label: str, **kwargs: Any) -> str:
    prompt_suffix = kwargs.pop("prompt_suffix", ": ")
    try:
        result = click.prompt(click.style(label, bold=True), prompt_suffix=prompt_suffix, **kwargs)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)
    return str(result)


def _confirm(question: str, *, default: bool = True) -> bool:
    log_info(question)
    try:
        return click.confirm(
            "",
            default=default,
            prompt_suffix="[Y/n]: " if default else "[y/N]: ",
            show_default=False,
        )
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)


def _prompt_change_type(default: str = "patch") -> str:
    prompt_text = Text("Type: ", style="bold")
    for idx, (name, key) in enumerate(CHANGE_TYPE_KEYS):
        prompt_text.append(name)
        prompt_text.append(" [")
        prompt_text.append(key, style="bold cyan")
        prompt_text.append("]")
        if idx < len(CHANGE_TYPE_KEYS) - 1:
            prompt_text.append(", ")
    console.print(prompt_text)

    keys = {key: name for name, key in CHANGE_TYPE_KEYS}
    while True:
        try:
            key = click.getchar()
        except (KeyboardInterrupt, EOFError, click.exceptions.Abort) as exc:
            abort_on_user_interrupt(exc)
        if key in {"\r", "\n"}:
            selection = default
            break
        if key in keys:
            selection = keys[key]
            break
    console.print(Text(f"  {selection}", style=CHANGE_TYPE_STYLES.get(selection, "")))
    return selection


def _format_change_type(change_type: str) -> Text:
    label = f"{CHANGE_TYPE_EMOJIS.get(change_type, '')} {change_type}".strip()
    return Text(label, style=CHANGE_TYPE_STYLES.get(change_type, ""))


def _create_cli_group() -> click.Group:
    """Create the main CLI group. Called after all commands are defined."""

    @click.group(context_settings={"help_option_names": ["-h", "--help"]})
    @click.option(
        "--root",
        type=click.Path(path_type=Path, exists=True, file_okay=False),
        help="Project root containing the manifest and .changesets/.",
    )
    @click.option(
        "--debug",
        "-d",
        is_flag=True,
        help="Enable debug logging.",
    )
    @click.pass_context
    def _cli(ctx: click.Context, root: Path | None, debug: bool) -> None:
        """Record changesets, bump versions, and publish releases."""

        ctx.obj = create_cli_context(root=root, debug=debug)

    return click.version_option(version=_resolve_cli_version())(_cli)


def main(argv: list[str] | None = None) -> int:
    """Entry point for console_scripts."""
    # Import cli here to avoid circular import at module load time
    from . import cli

    args = list(argv) if argv is not None else list(sys.argv[1:])

    if any(flag in args for flag in VERSION_FLAGS):
        click.echo(_resolve_cli_version())
        return 0

    try:
        result = cli.main(args=args, prog_name="vership", standalone_mode=False)
    except click.ClickException as exc:
        exc.show(file=sys.stderr)
        exit_code = getattr(exc, "exit_code", 1)
        return exit_code if isinstance(exit_code, int) else 1
    except click.exceptions.Exit as exc:
        return exc.exit_code if isinstance(exc.exit_code, int) else 0
    except click.exceptions.Abort:
        return 1
    except KeyboardInterrupt as exc:
        try:
            abort_on_user_interrupt(exc)
        except click.exceptions.Exit as exit_exc:
            exit_code = getattr(exit_exc, "exit_code", 130)
            return exit_code if isinstance(exit_code, int) else 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0
    return result if isinstance(result, int) else 0

