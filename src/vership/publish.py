"""The publish pipeline: validate, build, test, tag, publish, release."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

import click
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .changelog import ChangelogGenerator, Repository, resolve_repository
from .changesets import Changeset, ChangesetStore
from .config import AccessLevel, Config, PublishSettings
from .errors import CommandError, PreflightFailure, StageFailure
from .git import Git
from .github import GitHubCli
from .manifest import Manifest, read_manifest, resolve_manifest_path
from .process import CommandRunner, run_command, split_command
from .utils import console, log_debug, log_info, log_success, log_warning, print_renderable
from .versions import SemVer


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    VALIDATE = "validate"
    BUILD = "build"
    TEST = "test"
    TAG_AND_PUSH = "tag"
    REGISTRY_PUBLISH = "publish"
    REMOTE_RELEASE = "release"


class StepStatus(Enum):
    """Status of a publish step."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PublishStep:
    """A single step in the publish workflow."""

    name: str
    command: str
    status: StepStatus = StepStatus.PENDING


@dataclass
class StepTracker:
    """Tracks progress through publish workflow steps."""

    steps: list[PublishStep] = field(default_factory=list)

    def add(self, name: str, command: str) -> None:
        self.steps.append(PublishStep(name, command))

    def _set(self, name: str, status: StepStatus) -> None:
        for step in self.steps:
            if step.name == name:
                step.status = status

    def complete(self, name: str) -> None:
        self._set(name, StepStatus.COMPLETED)

    def skip(self, name: str) -> None:
        self._set(name, StepStatus.SKIPPED)

    def fail(self, name: str) -> None:
        self._set(name, StepStatus.FAILED)

    def status_of(self, name: str) -> Optional[StepStatus]:
        for step in self.steps:
            if step.name == name:
                return step.status
        return None

    def finish(self, name: str) -> None:
        """Mark a step completed unless it was skipped or already failed."""
        if self.status_of(name) == StepStatus.PENDING:
            self.complete(name)


def render_progress(tracker: StepTracker) -> None:
    """Render publish progress to stderr after a failure."""
    total = len([s for s in tracker.steps if s.status != StepStatus.SKIPPED])
    done = len([s for s in tracker.steps if s.status == StepStatus.COMPLETED])

    lines: list[str] = []
    for step in tracker.steps:
        if step.status == StepStatus.COMPLETED:
            icon = "[green]✔[/green]"
            cmd = f"[dim]{escape(step.command)}[/dim]"
        elif step.status == StepStatus.FAILED:
            icon = "[red]✘[/red]"
            cmd = f"[red]{escape(step.command)}[/red]"
        elif step.status == StepStatus.SKIPPED:
            continue
        else:
            icon = "[dim]○[/dim]"
            cmd = f"[dim]{escape(step.command)}[/dim]"
        lines.append(f"{icon} {cmd}")

    if lines:
        content = Text.from_markup("\n".join(lines))
        print_renderable(Panel(content, title=f"Publish Progress ({done}/{total})", border_style="red"))

    for step in tracker.steps:
        if step.status == StepStatus.FAILED:
            console.print()
            console.print("[bold]To retry the failed step, run:[/bold]", highlight=False)
            console.print(f"  {step.command}", highlight=False, markup=False, soft_wrap=True)


@dataclass(frozen=True)
class PublishConfig:
    """Per-run switches; stage skips and registry options."""

    dry_run: bool = False
    skip_build: bool = False
    skip_test: bool = False
    skip_git_push: bool = False
    skip_npm_publish: bool = False
    skip_github_release: bool = False
    registry: Optional[str] = None
    access: AccessLevel = "public"
    tag: str = "latest"
    build_command: Optional[str] = None
    test_command: Optional[str] = None
    publish_command: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: PublishSettings, **overrides: Any) -> "PublishConfig":
        """Combine config.yaml defaults with explicit per-run overrides."""
        base = cls(
            registry=settings.registry,
            access=settings.access,
            tag=settings.tag,
            build_command=settings.build_command,
            test_command=settings.test_command,
            publish_command=settings.publish_command,
        )
        explicit = {key: value for key, value in overrides.items() if value is not None}
        return replace(base, **explicit)


@dataclass
class PublishResult:
    """What the pipeline did, suitable for JSON output."""

    success: bool = False
    version: str = ""
    git_tag: Optional[str] = None
    npm_published: bool = False
    git_pushed: bool = False
    release_created: bool = False
    release_url: Optional[str] = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False
    failed_stage: Optional[str] = None
    rolled_back: bool = False
    release_notes: Optional[str] = None
    consumed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "version": self.version,
            "gitTag": self.git_tag,
            "npmPublished": self.npm_published,
            "gitPushed": self.git_pushed,
            "releaseCreated": self.release_created,
            "releaseUrl": self.release_url,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "dryRun": self.dry_run,
        }
        if self.failed_stage:
            payload["failedStage"] = self.failed_stage
        if self.rolled_back:
            payload["rolledBack"] = True
        if self.consumed:
            payload["consumed"] = list(self.consumed)
        return payload


class PublishOrchestrator:
    """Drives the ordered publish stages and rolls back an orphaned tag.

    Stages run strictly one after another. A failing stage stops the
    pipeline; if a tag was created but the registry publish did not
    happen, the tag is deleted locally and, best effort, on the remote.
    A failing remote release only produces a warning.
    """

    def __init__(
        self,
        project_root: Path,
        config: Config,
        options: PublishConfig,
        *,
        runner: CommandRunner = run_command,
        git: Optional[Git] = None,
        github: Optional[GitHubCli] = None,
        store: Optional[ChangesetStore] = None,
    ) -> None:
        self.project_root = project_root
        self.config = config
        self.options = options
        self._runner = runner
        self.git = git or Git(project_root, runner)
        self._github = github
        self.store = store
        self.tracker = StepTracker()

    # Planning

    def build_command(self, manifest: Manifest) -> Optional[list[str]]:
        if self.options.build_command:
            return split_command(self.options.build_command)
        if manifest.has_script("build"):
            return ["npm", "run", "build"]
        return None

    def test_command(self, manifest: Manifest) -> Optional[list[str]]:
        if self.options.test_command:
            return split_command(self.options.test_command)
        if manifest.has_script("test"):
            return ["npm", "test"]
        return None

    def publish_command(self) -> list[str]:
        if self.options.publish_command:
            return split_command(self.options.publish_command)
        command = ["npm", "publish", "--access", self.options.access, "--tag", self.options.tag]
        if self.options.registry:
            command.extend(["--registry", self.options.registry])
        return command

    def tag_for(self, version: str) -> str:
        return self.config.git.tag_for(version)

    def _plan(self, manifest: Manifest) -> None:
        options = self.options
        tag = self.tag_for(manifest.version)
        build = self.build_command(manifest)
        test = self.test_command(manifest)
        self.tracker = StepTracker()
        self.tracker.add(Stage.VALIDATE.value, "vership publish --dry-run")
        self.tracker.add(Stage.BUILD.value, shlex.join(build) if build else "build")
        self.tracker.add(Stage.TEST.value, shlex.join(test) if test else "test")
        self.tracker.add(
            Stage.TAG_AND_PUSH.value,
            f'git tag -a {tag} -m "Release {tag}" && git push --follow-tags',
        )
        self.tracker.add(Stage.REGISTRY_PUBLISH.value, shlex.join(self.publish_command()))
        self.tracker.add(Stage.REMOTE_RELEASE.value, f"gh release create {tag} --notes-file ...")
        self.tracker.complete(Stage.VALIDATE.value)
        skipped = {
            Stage.BUILD: options.skip_build or build is None,
            Stage.TEST: options.skip_test or test is None,
            Stage.TAG_AND_PUSH: options.skip_git_push,
            Stage.REGISTRY_PUBLISH: options.skip_npm_publish,
            Stage.REMOTE_RELEASE: options.skip_github_release,
        }
        for stage, skip in skipped.items():
            if skip:
                self.tracker.skip(stage.value)

    # Stages

    def validate(self) -> Manifest:
        """Run the pre-flight checks and return the manifest to publish."""
        manifest_path = resolve_manifest_path(self.project_root, self.config.manifest)
        if not manifest_path.is_file():
            raise PreflightFailure(f"Manifest not found: {manifest_path}")
        try:
            manifest = read_manifest(manifest_path)
            SemVer.parse(manifest.version)
        except click.ClickException as exc:
            raise PreflightFailure(exc.message) from exc

        if not self.git.is_repository():
            raise PreflightFailure("Not a git repository; publishing requires one.")
        if not self.git.is_clean():
            raise PreflightFailure(
                "The working tree has uncommitted changes; commit or stash them first."
            )

        branch = self.git.current_branch()
        release_branches = self.config.git.release_branches
        if branch is None:
            log_warning("HEAD is detached; publishing from a release branch is recommended.")
        elif release_branches and branch not in release_branches:
            log_warning(
                f"publishing from branch '{branch}' (recommended: {', '.join(release_branches)})."
            )
        if not self.options.skip_build and self.build_command(manifest) is None:
            log_warning("no build script found; the build stage will be skipped.")
        if not self.options.skip_test and self.test_command(manifest) is None:
            log_warning("no test script found; the test stage will be skipped.")
        return manifest

    def _run_stage_command(self, stage: Stage, command: Sequence[str]) -> None:
        try:
            self._runner(command, self.project_root).check()
        except CommandError as exc:
            raise StageFailure(stage.value, f"{stage.value} failed: {exc.message}") from exc

    def run_build(self, manifest: Manifest) -> None:
        command = self.build_command(manifest)
        if command is None:
            return
        log_info(f"building with {shlex.join(command)}.")
        self._run_stage_command(Stage.BUILD, command)
        log_success("build completed.")

    def run_tests(self, manifest: Manifest) -> None:
        command = self.test_command(manifest)
        if command is None:
            return
        log_info(f"testing with {shlex.join(command)}.")
        self._run_stage_command(Stage.TEST, command)
        log_success("tests passed.")

    def tag_and_push(self, version: str, result: PublishResult) -> None:
        tag = self.tag_for(version)
        try:
            if self.git.tag_exists(tag):
                raise StageFailure(Stage.TAG_AND_PUSH.value, f"Tag {tag} already exists.")
            self.git.create_tag(tag, f"Release {tag}")
            result.git_tag = tag
            log_success(f"created git tag {tag}.")
            self.git.push_with_tags()
        except CommandError as exc:
            raise StageFailure(Stage.TAG_AND_PUSH.value, f"tagging failed: {exc.message}") from exc
        result.git_pushed = True
        log_success(f"pushed {tag} with --follow-tags.")

    def publish_to_registry(self, result: PublishResult) -> None:
        command = self.publish_command()
        log_info(f"publishing with {shlex.join(command)}.")
        self._run_stage_command(Stage.REGISTRY_PUBLISH, command)
        result.npm_published = True
        log_success(f"published {result.version} to the registry.")

    def _repository(self, manifest: Manifest) -> Optional[Repository]:
        return resolve_repository(
            [self.config.changelog.repository, manifest.repository, self.git.remote_url()]
        )

    def github(self, manifest: Manifest) -> GitHubCli:
        if self._github is None:
            self._github = GitHubCli(
                self.project_root, self._runner, repository=self._repository(manifest)
            )
        return self._github

    def release_notes(self, version: str) -> Optional[str]:
        generator = ChangelogGenerator(
            self.project_root, self.config.changelog, tag_prefix=self.config.git.tag_prefix
        )
        return generator.release_notes(version)

    def create_remote_release(self, manifest: Manifest, result: PublishResult) -> None:
        tag = self.tag_for(manifest.version)
        notes = result.release_notes or f"Release {tag}"
        try:
            url = self.github(manifest).create_release(tag, notes, title=f"Release {tag}")
        except Exception as exc:
            detail = exc.message if isinstance(exc, click.ClickException) else str(exc)
            message = f"GitHub release failed: {detail}"
            result.warnings.append(message)
            log_warning(message)
            self.tracker.fail(Stage.REMOTE_RELEASE.value)
            return
        result.release_created = True
        result.release_url = url
        log_success(f"created GitHub release {url or tag}.")

    # Rollback

    def _rollback_tag(self, result: PublishResult, tag: str) -> None:
        log_warning(f"rolling back git tag {tag}.")
        try:
            remote_deleted = self.git.delete_tag(tag, remote="origin" if result.git_pushed else None)
        except CommandError as exc:
            result.errors.append(f"Tag rollback failed: {exc.message}")
            return
        result.rolled_back = True
        if result.git_pushed and not remote_deleted:
            message = f"Could not delete remote tag {tag}; remove it manually."
            result.warnings.append(message)
            log_warning(message)
        log_success(f"rolled back git tag {tag}.")

    def _fail(self, result: PublishResult, message: str, failed_stage: str) -> None:
        result.errors.append(message)
        result.failed_stage = failed_stage
        self.tracker.fail(failed_stage)
        if (
            result.git_tag is not None
            and not result.npm_published
            and not self.options.skip_npm_publish
        ):
            self._rollback_tag(result, result.git_tag)

    # Driver

    def run(self, changesets: Sequence[Changeset] = ()) -> PublishResult:
        """Execute the pipeline and return its result without raising."""
        result = PublishResult(dry_run=self.options.dry_run)
        stage = Stage.VALIDATE
        try:
            manifest = self.validate()
            result.version = manifest.version
            result.release_notes = self.release_notes(manifest.version)
            self._plan(manifest)

            if self.options.dry_run:
                result.git_tag = self.tag_for(manifest.version)
                result.success = True
                log_info(f"dry run: would publish {manifest.version} as {result.git_tag}.")
                return result

            if not self.options.skip_build:
                stage = Stage.BUILD
                self.run_build(manifest)
                self.tracker.finish(stage.value)
            if not self.options.skip_test:
                stage = Stage.TEST
                self.run_tests(manifest)
                self.tracker.finish(stage.value)
            if not self.options.skip_git_push:
                stage = Stage.TAG_AND_PUSH
                self.tag_and_push(manifest.version, result)
                self.tracker.finish(stage.value)
            if not self.options.skip_npm_publish:
                stage = Stage.REGISTRY_PUBLISH
                self.publish_to_registry(result)
                self.tracker.finish(stage.value)
            if not self.options.skip_github_release:
                stage = Stage.REMOTE_RELEASE
                self.create_remote_release(manifest, result)
                self.tracker.finish(stage.value)
        except (PreflightFailure, StageFailure) as exc:
            self._fail(result, exc.message, getattr(exc, "stage", stage.value))
            return result
        except Exception as exc:
            log_debug(f"{stage.value} stage raised {type(exc).__name__}: {exc}")
            self._fail(result, str(exc) or type(exc).__name__, stage.value)
            return result

        result.success = True
        if self.store is not None and changesets:
            consumed = self.store.consume(changesets)
            result.consumed = [changeset.id for changeset in consumed]
            log_debug(f"consumed {len(consumed)} changeset(s) after publishing.")
        return result
