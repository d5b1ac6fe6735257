"""Changeset store: one Markdown file with YAML frontmatter per pending change."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Literal, Optional, Sequence, cast

import yaml
from yaml.nodes import Node

from .config import CHANGESET_DIRECTORY_NAME, CONFIG_FILENAME
from .errors import ChangesetNotFound, IdGenerationExhausted, StoreCorruption, ValidationError
from .utils import coerce_datetime, format_timestamp, log_debug, log_warning, utc_now

ChangeType = Literal["major", "minor", "patch"]

CHANGE_TYPES: tuple[ChangeType, ...] = ("major", "minor", "patch")
CHANGE_TYPE_SHORTCUTS: dict[str, ChangeType] = {
    "major": "major",
    "breaking": "major",
    "M": "major",
    "minor": "minor",
    "feature": "minor",
    "m": "minor",
    "patch": "patch",
    "fix": "patch",
    "bugfix": "patch",
    "p": "patch",
}

SUMMARY_MIN_LENGTH = 5
SUMMARY_MAX_LENGTH = 200
MAX_ID_ATTEMPTS = 50
CHANGESET_SUFFIX = ".md"
IGNORED_FILENAMES = frozenset({CONFIG_FILENAME, "README.md"})

ID_PATTERN = re.compile(r"^[a-z]+-[a-z]+-[a-z]+$")

ADJECTIVES = ("happy", "funny", "clever", "brave", "kind", "swift", "calm", "bold")
NOUNS = ("cat", "dog", "bird", "fish", "lion", "tiger", "otter", "panda")
VERBS = ("runs", "jumps", "flies", "swims", "dances", "sings", "naps", "hops")


def _represent_datetime(dumper: yaml.SafeDumper, data: datetime) -> Node:
    return dumper.represent_scalar("tag:yaml.org,2002:timestamp", format_timestamp(data))


yaml.SafeDumper.add_representer(datetime, _represent_datetime)


@dataclass(frozen=True)
class Changeset:
    """A pending change awaiting inclusion in the next release."""

    id: str
    type: ChangeType
    summary: str
    created_at: datetime
    author: Optional[str] = None
    pr: Optional[int] = None
    path: Optional[Path] = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "summary": self.summary,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.author:
            payload["author"] = self.author
        if self.pr is not None:
            payload["pr"] = self.pr
        return payload


def changeset_directory(project_root: Path) -> Path:
    """Return the directory containing pending changesets."""
    return project_root / CHANGESET_DIRECTORY_NAME


def normalize_change_type(value: object) -> ChangeType:
    """Map user input (case-insensitive, shortcuts allowed) onto a change type."""
    text = str(value or "").strip()
    if text in CHANGE_TYPE_SHORTCUTS:
        return CHANGE_TYPE_SHORTCUTS[text]
    lowered = text.lower()
    if lowered in CHANGE_TYPE_SHORTCUTS:
        return CHANGE_TYPE_SHORTCUTS[lowered]
    raise ValidationError(
        f"Unknown change type '{text}'. Expected one of: {', '.join(CHANGE_TYPES)}"
    )


def validate_summary(summary: object) -> str:
    """Return the trimmed summary or raise ValidationError."""
    text = str(summary or "").strip()
    if "\n" in text or "\r" in text:
        raise ValidationError("Summary must be a single line.")
    if len(text) < SUMMARY_MIN_LENGTH:
        raise ValidationError(f"Summary must be at least {SUMMARY_MIN_LENGTH} characters long.")
    if len(text) > SUMMARY_MAX_LENGTH:
        raise ValidationError(f"Summary must be at most {SUMMARY_MAX_LENGTH} characters long.")
    return text


def _normalize_pr(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    text = str(value).strip().lstrip("#")
    if not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"PR value '{value}' must be a positive number.")
    return int(text)


def _normalize_author(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lstrip("@")
    return text or None


def generate_id(rng: random.Random | None = None) -> str:
    """Compose an adjective-noun-verb identifier."""
    source = rng or random
    return f"{source.choice(ADJECTIVES)}-{source.choice(NOUNS)}-{source.choice(VERBS)}"


def read_changeset(path: Path) -> Changeset:
    """Parse a changeset file, raising ValueError on any structural problem."""
    content = path.read_text(encoding="utf-8")
    if not content.startswith("---"):
        raise ValueError("missing YAML frontmatter")
    _, _, remainder = content.partition("---\n")
    frontmatter, separator, body = remainder.partition("\n---")
    if not separator:
        raise ValueError("unterminated YAML frontmatter")
    try:
        metadata = yaml.safe_load(frontmatter) or {}
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"invalid YAML frontmatter: {exc}") from exc
    if not isinstance(metadata, dict):
        raise ValueError("frontmatter must be a mapping")

    for key in ("id", "type", "created"):
        if metadata.get(key) in (None, ""):
            raise ValueError(f"missing required field '{key}'")
    changeset_id = str(metadata["id"]).strip()
    if changeset_id != path.stem:
        raise ValueError(f"id '{changeset_id}' does not match filename '{path.name}'")
    entry_type = str(metadata["type"]).strip().lower()
    if entry_type not in CHANGE_TYPES:
        raise ValueError(f"invalid type '{metadata['type']}'")
    created_at = coerce_datetime(metadata["created"])
    if created_at is None:
        raise ValueError(f"invalid created timestamp {metadata['created']!r}")
    summary = body.lstrip("-").strip()
    if not summary:
        raise ValueError("missing required field 'summary'")

    try:
        pr = _normalize_pr(metadata.get("pr"))
    except ValidationError as exc:
        raise ValueError(exc.message) from exc
    return Changeset(
        id=changeset_id,
        type=cast(ChangeType, entry_type),
        summary=summary,
        created_at=created_at,
        author=_normalize_author(metadata.get("author")),
        pr=pr,
        path=path,
    )


def format_changeset(changeset: Changeset) -> str:
    """Render a changeset as YAML frontmatter followed by its summary."""
    metadata: dict[str, Any] = {
        "id": changeset.id,
        "type": changeset.type,
        "created": changeset.created_at,
    }
    if changeset.author:
        metadata["author"] = changeset.author
    if changeset.pr is not None:
        metadata["pr"] = changeset.pr
    yaml_block = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True).strip()
    return f"---\n{yaml_block}\n---\n\n{changeset.summary}\n"


def _sort_key(changeset: Changeset) -> tuple[datetime, str]:
    return changeset.created_at, changeset.id


class ChangesetStore:
    """Owns the on-disk changeset records of a single project."""

    def __init__(
        self,
        project_root: Path,
        *,
        rng: random.Random | None = None,
        max_attempts: int = MAX_ID_ATTEMPTS,
    ) -> None:
        self.project_root = project_root
        self.directory = changeset_directory(project_root)
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts

    def path_for(self, changeset_id: str) -> Path:
        return self.directory / f"{changeset_id}{CHANGESET_SUFFIX}"

    def _record_paths(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return [
            path
            for path in sorted(self.directory.glob(f"*{CHANGESET_SUFFIX}"))
            if path.name not in IGNORED_FILENAMES and path.is_file()
        ]

    def create(
        self,
        change_type: str,
        summary: str,
        *,
        author: Optional[str] = None,
        pr: object = None,
        created_at: Optional[datetime] = None,
    ) -> Changeset:
        """Validate input, pick a fresh id and write a new record."""
        normalized_type = normalize_change_type(change_type)
        normalized_summary = validate_summary(summary)
        normalized_pr = _normalize_pr(pr)
        timestamp = utc_now() if created_at is None else coerce_datetime(created_at)
        if timestamp is None:
            raise ValidationError(f"Invalid creation timestamp: {created_at!r}")

        self.directory.mkdir(parents=True, exist_ok=True)
        for attempt in range(1, self._max_attempts + 1):
            candidate = generate_id(self._rng)
            path = self.path_for(candidate)
            if path.exists():
                log_debug(f"changeset id '{candidate}' is taken (attempt {attempt}).")
                continue
            changeset = Changeset(
                id=candidate,
                type=normalized_type,
                summary=normalized_summary,
                created_at=timestamp,
                author=_normalize_author(author),
                pr=normalized_pr,
                path=path,
            )
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(format_changeset(changeset))
            except FileExistsError:
                continue
            return changeset
        raise IdGenerationExhausted(self._max_attempts)

    def scan(self) -> tuple[list[Changeset], list[StoreCorruption]]:
        """Return readable changesets and the problems found in unreadable ones."""
        changesets: list[Changeset] = []
        problems: list[StoreCorruption] = []
        for path in self._record_paths():
            try:
                changesets.append(read_changeset(path))
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                problems.append(StoreCorruption(path, str(exc)))
        changesets.sort(key=_sort_key)
        return changesets, problems

    def list_all(self) -> list[Changeset]:
        """Return every valid changeset ordered by creation time.

        Corrupt records are logged and skipped so that a single bad file
        never blocks status or version operations.
        """
        changesets, problems = self.scan()
        for problem in problems:
            log_warning(f"skipping unreadable changeset {problem.message}")
        return changesets

    def get(self, changeset_id: str) -> Changeset:
        path = self.path_for(changeset_id)
        if not path.is_file():
            raise ChangesetNotFound(changeset_id)
        try:
            return read_changeset(path)
        except ValueError as exc:
            raise StoreCorruption(path, str(exc)) from exc

    def edit(
        self,
        changeset_id: str,
        change_type: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> Changeset:
        """Rewrite the type and/or summary of an existing record."""
        current = self.get(changeset_id)
        updated = replace(
            current,
            type=normalize_change_type(change_type) if change_type is not None else current.type,
            summary=validate_summary(summary) if summary is not None else current.summary,
        )
        path = self.path_for(changeset_id)
        path.write_text(format_changeset(updated), encoding="utf-8")
        return replace(updated, path=path)

    def delete(self, changeset_id: str) -> Changeset:
        changeset = self.get(changeset_id)
        self.path_for(changeset_id).unlink()
        return changeset

    def delete_all(self) -> list[Changeset]:
        return self.consume_all()

    def consume(self, changesets: Iterable[Changeset]) -> list[Changeset]:
        """Delete the given records; call only after their effects are committed."""
        consumed: list[Changeset] = []
        for changeset in changesets:
            path = self.path_for(changeset.id)
            try:
                path.unlink()
            except FileNotFoundError:
                log_debug(f"changeset '{changeset.id}' was already removed.")
                continue
            consumed.append(changeset)
        return consumed

    def consume_all(self) -> list[Changeset]:
        changesets = self.list_all()
        self.consume(changesets)
        return changesets


def count_by_type(changesets: Sequence[Changeset]) -> dict[str, int]:
    """Return the number of changesets per change type."""
    counts = {change_type: 0 for change_type in CHANGE_TYPES}
    for changeset in changesets:
        counts[changeset.type] += 1
    return counts


def group_by_type(changesets: Sequence[Changeset]) -> dict[str, list[Changeset]]:
    """Return changesets grouped by type, preserving input order."""
    groups: dict[str, list[Changeset]] = {change_type: [] for change_type in CHANGE_TYPES}
    for changeset in changesets:
        groups[changeset.type].append(changeset)
    return groups
