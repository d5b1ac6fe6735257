"""Error kinds raised by the release pipeline."""

from __future__ import annotations

from typing import Sequence

from click import ClickException


class VershipError(ClickException):
    """Base class for errors surfaced to the user with a readable message."""


class ValidationError(VershipError, ValueError):
    """Rejected input: malformed changeset fields or version strings."""


class StoreCorruption(VershipError):
    """A changeset record on disk could not be read or failed validation."""

    def __init__(self, path: object, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message


class ChangesetNotFound(VershipError):
    """No changeset record exists for the requested id."""

    def __init__(self, changeset_id: str) -> None:
        super().__init__(f"Changeset '{changeset_id}' not found.")
        self.changeset_id = changeset_id


class IdGenerationExhausted(VershipError):
    """Every generated id collided with an existing record."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not generate a unique changeset id after {attempts} attempts; try again."
        )
        self.attempts = attempts


class PreflightFailure(VershipError):
    """A hard pre-publish check failed before any mutating stage ran."""


class StageFailure(VershipError):
    """A pipeline stage failed and aborted the remaining stages."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


class CommandError(VershipError):
    """An external command exited unsuccessfully or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stderr: str = "",
        stdout: str = "",
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        super().__init__(self._describe())

    def _describe(self) -> str:
        command_text = " ".join(self.command[:3])
        if len(self.command) > 3:
            command_text += " ..."
        detail = self.stderr.strip().splitlines()
        suffix = f": {detail[-1]}" if detail else ""
        return f"'{command_text}' failed (exit status {self.returncode}){suffix}"
