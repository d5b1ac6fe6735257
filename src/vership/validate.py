"""Validation routines for pending changesets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .changesets import (
    ID_PATTERN,
    SUMMARY_MAX_LENGTH,
    SUMMARY_MIN_LENGTH,
    Changeset,
    ChangesetStore,
)
from .utils import utc_now

_MARKER_PATTERN = re.compile(r"\b(todo|fixme)\b", re.IGNORECASE)


@dataclass
class ValidationIssue:
    """Represents a warning or error encountered during validation."""

    path: Path
    message: str
    severity: str = "error"  # can be "error" or "warning"
    changeset_id: Optional[str] = None


def validate_changeset(changeset: Changeset, *, now: datetime | None = None) -> Iterable[ValidationIssue]:
    """Check the content rules a structurally valid changeset must also meet."""
    path = changeset.path or Path(f"{changeset.id}.md")
    if not ID_PATTERN.match(changeset.id):
        yield ValidationIssue(
            path, "Id does not follow the adjective-noun-verb pattern", changeset_id=changeset.id
        )
    if changeset.created_at > (now or utc_now()):
        yield ValidationIssue(path, "Creation date lies in the future", changeset_id=changeset.id)
    length = len(changeset.summary)
    if "\n" in changeset.summary:
        yield ValidationIssue(path, "Summary spans multiple lines", changeset_id=changeset.id)
    if not SUMMARY_MIN_LENGTH <= length <= SUMMARY_MAX_LENGTH:
        yield ValidationIssue(
            path,
            f"Summary length {length} is outside {SUMMARY_MIN_LENGTH}-{SUMMARY_MAX_LENGTH}",
            changeset_id=changeset.id,
        )
    if _MARKER_PATTERN.search(changeset.summary):
        yield ValidationIssue(path, "Summary contains TODO or FIXME", changeset_id=changeset.id)


def find_duplicate_summaries(changesets: Iterable[Changeset]) -> Iterable[ValidationIssue]:
    seen: dict[str, Changeset] = {}
    for changeset in changesets:
        key = " ".join(changeset.summary.lower().split())
        original = seen.get(key)
        if original is None:
            seen[key] = changeset
            continue
        yield ValidationIssue(
            changeset.path or Path(f"{changeset.id}.md"),
            f"Summary duplicates changeset '{original.id}'",
            severity="warning",
            changeset_id=changeset.id,
        )


def run_validation(
    project_root: Path, *, now: datetime | None = None
) -> tuple[list[Changeset], list[ValidationIssue]]:
    """Validate every changeset file, returning readable changesets and issues."""
    store = ChangesetStore(project_root)
    changesets, problems = store.scan()
    issues = [ValidationIssue(Path(str(problem.path)), problem.reason) for problem in problems]
    for changeset in changesets:
        issues.extend(validate_changeset(changeset, now=now))
    issues.extend(find_duplicate_summaries(changesets))
    return changesets, issues
