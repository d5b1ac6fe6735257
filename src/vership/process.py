"""Synchronous execution of external commands (git, npm, gh)."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from .errors import CommandError
from .utils import log_debug

__all__ = ["CommandResult", "CommandRunner", "run_command", "split_command"]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished command."""

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> "CommandResult":
        """Raise CommandError unless the command exited successfully."""
        if not self.ok:
            raise CommandError(self.command, self.returncode, self.stderr, self.stdout)
        return self


CommandRunner = Callable[[Sequence[str], Path], CommandResult]


def run_command(
    command: Sequence[str],
    cwd: Path,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """Run a command to completion and capture its output.

    No timeout is applied; the call blocks until the process exits. A
    missing executable is reported as exit status 127 rather than raised.
    """
    log_debug(f"running {shlex.join(command)} in {cwd}")
    try:
        proc = subprocess.run(
            list(command),
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        return CommandResult(tuple(command), 127, "", str(exc))
    return CommandResult(tuple(command), proc.returncode, proc.stdout, proc.stderr)


def split_command(command: str) -> list[str]:
    """Split a configured shell-style command line into arguments."""
    return shlex.split(command)
