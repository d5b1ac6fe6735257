"""Thin wrapper around the git command line."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from .errors import CommandError
from .process import CommandResult, CommandRunner, run_command
from .utils import log_debug


class Git:
    """Version-control operations for one working tree."""

    def __init__(self, project_root: Path, runner: CommandRunner = run_command) -> None:
        self.project_root = project_root
        self._runner = runner

    def _run(self, *args: str) -> CommandResult:
        return self._runner(("git", *args), self.project_root)

    def _output(self, *args: str) -> str:
        return self._run(*args).check().stdout.strip()

    def is_repository(self) -> bool:
        result = self._run("rev-parse", "--is-inside-work-tree")
        return result.ok and result.stdout.strip() == "true"

    def status_porcelain(self) -> str:
        return self._output("status", "--porcelain")

    def is_clean(self) -> bool:
        return not self.status_porcelain()

    def current_branch(self) -> Optional[str]:
        """Return the current branch name, or None when HEAD is detached."""
        result = self._run("rev-parse", "--abbrev-ref", "HEAD")
        branch = result.stdout.strip()
        if not result.ok or not branch or branch == "HEAD":
            return None
        return branch

    def latest_tag(self) -> Optional[str]:
        """Return the most recent tag reachable from HEAD, if any."""
        result = self._run("describe", "--tags", "--abbrev=0")
        if not result.ok:
            log_debug(f"no tag reachable from HEAD: {result.stderr.strip()}")
            return None
        return result.stdout.strip() or None

    def tag_exists(self, tag: str) -> bool:
        return bool(self._output("tag", "--list", tag))

    def create_tag(self, tag: str, message: Optional[str] = None) -> None:
        self._output("tag", "-a", tag, "-m", message or tag)

    def push_with_tags(self) -> None:
        self._output("push", "--follow-tags")

    def delete_tag(self, tag: str, *, remote: Optional[str] = "origin") -> bool:
        """Delete a tag locally and, best effort, on the remote.

        Returns whether the remote deletion succeeded. A local failure raises.
        """
        self._output("tag", "-d", tag)
        if remote is None:
            return False
        result = self._run("push", remote, f":refs/tags/{tag}")
        if not result.ok:
            log_debug(f"could not delete remote tag {tag}: {result.stderr.strip()}")
        return result.ok

    def add(self, paths: Sequence[str]) -> None:
        self._output("add", "--all", "--", *paths)

    def commit(self, message: str) -> None:
        self._output("commit", "-m", message)

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        try:
            return self._output("remote", "get-url", remote) or None
        except CommandError:
            return None
