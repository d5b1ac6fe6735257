"""Creating hosting-platform releases through the ``gh`` CLI."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional

from .changelog import Repository
from .errors import VershipError
from .process import CommandResult, CommandRunner, run_command
from .utils import log_debug


class GitHubCli:
    """Release operations backed by an installed and authenticated ``gh``."""

    def __init__(
        self,
        project_root: Path,
        runner: CommandRunner = run_command,
        *,
        repository: Optional[Repository] = None,
    ) -> None:
        self.project_root = project_root
        self.repository = repository
        self._runner = runner

    def _run(self, *args: str) -> CommandResult:
        return self._runner(("gh", *args), self.project_root)

    def is_available(self) -> bool:
        return self._run("--version").ok

    def is_authenticated(self) -> bool:
        return self._run("auth", "status").ok

    def ensure_ready(self) -> None:
        if not self.is_available():
            raise VershipError("The 'gh' CLI is required but was not found in PATH.")
        if not self.is_authenticated():
            raise VershipError("The 'gh' CLI is not authenticated; run 'gh auth login'.")

    def create_release(self, tag: str, notes: str, *, title: Optional[str] = None) -> Optional[str]:
        """Create a release for ``tag`` and return its URL when known."""
        self.ensure_ready()
        with tempfile.TemporaryDirectory(prefix="vership-") as directory:
            notes_path = Path(directory) / "release-notes.md"
            notes_path.write_text(notes, encoding="utf-8")
            args = ["release", "create", tag, "--notes-file", str(notes_path)]
            args.extend(["--title", title or tag])
            if self.repository is not None:
                args.extend(["--repo", self.repository.slug])
            result = self._run(*args).check()

        url = result.stdout.strip().splitlines()[-1:] if result.stdout.strip() else []
        if url and url[0].startswith("http"):
            return url[0]
        log_debug("gh did not print a release URL; deriving it from the repository.")
        return self.release_url(tag)

    def release_url(self, tag: str) -> Optional[str]:
        if self.repository is None:
            return None
        return self.repository.release_url(tag)
