"""Shared fixtures: throwaway npm-style projects and git repositories."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from vership.process import CommandResult


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def write_package_json(project_dir: Path, version: str = "1.0.2", **extra: Any) -> Path:
    payload: dict[str, Any] = {"name": "demo", "version": version}
    payload.update(extra)
    path = project_dir / "package.json"
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path


def commit_all(project_dir: Path, message: str = "update") -> None:
    git(project_dir, "add", "--all")
    git(project_dir, "commit", "-m", message, "--no-gpg-sign")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory holding only a package.json at version 1.0.2."""
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    write_package_json(project_dir)
    return project_dir


@pytest.fixture
def git_project(project: Path, tmp_path: Path) -> Path:
    """The project as a git repository on ``main`` tracking a bare remote."""
    git(project, "init")
    git(project, "symbolic-ref", "HEAD", "refs/heads/main")
    git(project, "config", "user.email", "release@example.com")
    git(project, "config", "user.name", "Release Bot")
    git(project, "config", "commit.gpgsign", "false")
    git(project, "config", "tag.gpgsign", "false")
    remote_dir = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote_dir)], check=True, capture_output=True)
    git(project, "remote", "add", "origin", str(remote_dir))
    commit_all(project, "Initial commit")
    git(project, "push", "-u", "origin", "main")
    return project


class FakeRunner:
    """Records commands and answers them from a list of rules.

    A rule is ``(predicate, result_factory)``; the first matching rule
    wins and unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self._rules: list[tuple[Callable[[tuple[str, ...]], bool], int, str, str]] = []
        self._errors: list[tuple[tuple[str, ...], BaseException]] = []

    def on(
        self,
        prefix: Sequence[str],
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> "FakeRunner":
        expected = tuple(prefix)
        self._rules.append(
            (lambda command: command[: len(expected)] == expected, returncode, stdout, stderr)
        )
        return self

    def raises(self, prefix: Sequence[str], error: BaseException) -> "FakeRunner":
        self._errors.append((tuple(prefix), error))
        return self

    def __call__(self, command: Sequence[str], cwd: Path) -> CommandResult:
        recorded = tuple(command)
        self.calls.append(recorded)
        for prefix, error in self._errors:
            if recorded[: len(prefix)] == prefix:
                raise error
        for predicate, returncode, stdout, stderr in self._rules:
            if predicate(recorded):
                return CommandResult(recorded, returncode, stdout, stderr)
        return CommandResult(recorded, 0, "", "")

    def ran(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == prefix for call in self.calls)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
