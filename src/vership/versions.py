"""Semantic versions and the changeset-driven bump rule."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from .changesets import CHANGE_TYPES, Changeset, ChangeType, count_by_type
from .errors import ValidationError

_SEMVER_RE = re.compile(r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> "SemVer":
        """Parse ``X.Y.Z`` (optionally ``vX.Y.Z``) or raise ValidationError."""
        text = str(value).strip()
        match = _SEMVER_RE.match(text)
        if match is None:
            raise ValidationError(
                f"Invalid version '{value}': expected three non-negative integers like 1.2.3."
            )
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    def bump(self, kind: ChangeType) -> "SemVer":
        if kind == "major":
            return SemVer(self.major + 1, 0, 0)
        if kind == "minor":
            return SemVer(self.major, self.minor + 1, 0)
        if kind == "patch":
            return SemVer(self.major, self.minor, self.patch + 1)
        raise AssertionError(f"unexpected bump kind: {kind}")

    def to_tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def is_valid_version(value: str) -> bool:
    return _SEMVER_RE.match(str(value).strip()) is not None


@dataclass(frozen=True)
class VersionInfo:
    """The current version, the next one and how the pending changes classify."""

    current: SemVer
    next: SemVer
    has_changes: bool
    changes_by_type: dict[str, int] = field(
        default_factory=lambda: {change_type: 0 for change_type in CHANGE_TYPES}
    )

    @property
    def bump(self) -> ChangeType | None:
        for change_type in CHANGE_TYPES:
            if self.changes_by_type.get(change_type):
                return change_type
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": str(self.current),
            "next": str(self.next),
            "hasChanges": self.has_changes,
            "changesByType": dict(self.changes_by_type),
        }


def calculate_next_version(current: SemVer | str, changesets: Sequence[Changeset]) -> VersionInfo:
    """Derive the next version from the pending changesets.

    Precedence is major over minor over patch; only the highest
    classification present determines the bump, regardless of counts.
    """
    base = current if isinstance(current, SemVer) else SemVer.parse(current)
    counts = count_by_type(changesets)
    if not changesets:
        return VersionInfo(current=base, next=base, has_changes=False, changes_by_type=counts)

    kind = next(change_type for change_type in CHANGE_TYPES if counts[change_type])
    return VersionInfo(
        current=base,
        next=base.bump(kind),
        has_changes=True,
        changes_by_type=counts,
    )
