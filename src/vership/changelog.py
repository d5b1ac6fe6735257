"""Rendering changelog sections and inserting them into CHANGELOG.md."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from string import Template
from typing import Callable, Iterable, Literal, Mapping, Optional, Sequence

from .changesets import CHANGE_TYPES, Changeset, group_by_type
from .config import ChangelogSettings
from .errors import VershipError
from .utils import log_debug
from .versions import SemVer

CHANGELOG_TITLE = "# Changelog"
PREAMBLE_LINES: tuple[str, ...] = (
    "All notable changes to this project will be documented in this file.",
    "This project adheres to [Semantic Versioning](https://semver.org/).",
)
_PREAMBLE_PREFIXES: tuple[str, ...] = ("All notable changes", "This project adheres to")

SAMPLE_CUSTOM_TEMPLATE = """\
## v$version ($date)

$changes
"""

Provider = Literal["github", "gitlab", "bitbucket"]

_PROVIDER_HOSTS: dict[Provider, str] = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}
_SHORTHAND_PATTERN = re.compile(r"^(?:(?P<provider>github|gitlab|bitbucket):)?(?P<owner>[\w.-]+)/(?P<name>[\w.-]+)$")
_URL_PATTERN = re.compile(
    r"^(?:[a-z+]+://)?(?:[^@/]+@)?(?:www\.)?(?P<host>[^/:]+)(?::\d+)?[:/]"
    r"(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"
)


@dataclass(frozen=True)
class Repository:
    """A hosted repository used to build commit, PR and compare links."""

    provider: Provider
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"https://{_PROVIDER_HOSTS[self.provider]}/{self.slug}"

    def commit_url(self, commit: str) -> str:
        if self.provider == "gitlab":
            return f"{self.url}/-/commit/{commit}"
        if self.provider == "bitbucket":
            return f"{self.url}/commits/{commit}"
        return f"{self.url}/commit/{commit}"

    def pull_request_url(self, number: int) -> str:
        if self.provider == "gitlab":
            return f"{self.url}/-/merge_requests/{number}"
        if self.provider == "bitbucket":
            return f"{self.url}/pull-requests/{number}"
        return f"{self.url}/pull/{number}"

    def compare_url(self, base: str, head: str) -> str:
        if self.provider == "gitlab":
            return f"{self.url}/-/compare/{base}...{head}"
        if self.provider == "bitbucket":
            return f"{self.url}/branches/compare/{head}..{base}"
        return f"{self.url}/compare/{base}...{head}"

    def release_url(self, tag: str) -> str:
        if self.provider == "gitlab":
            return f"{self.url}/-/releases/{tag}"
        if self.provider == "bitbucket":
            return f"{self.url}/src/{tag}"
        return f"{self.url}/releases/tag/{tag}"


def parse_repository(value: Optional[str]) -> Optional[Repository]:
    """Parse ``owner/name``, ``gitlab:owner/name`` or a clone/web URL."""
    if not value:
        return None
    text = value.strip()
    if text.startswith("git+"):
        text = text[len("git+") :]

    shorthand = _SHORTHAND_PATTERN.match(text)
    if shorthand:
        provider = shorthand.group("provider") or "github"
        name = shorthand.group("name")
        if name.endswith(".git"):
            name = name[: -len(".git")]
        return Repository(provider, shorthand.group("owner"), name)  # type: ignore[arg-type]

    match = _URL_PATTERN.match(text)
    if match is None:
        return None
    host = match.group("host").lower()
    for provider in _PROVIDER_HOSTS:
        if provider in host:
            return Repository(provider, match.group("owner"), match.group("name"))
    log_debug(f"unsupported repository host '{host}', skipping links.")
    return None


def resolve_repository(candidates: Iterable[Optional[str]]) -> Optional[Repository]:
    """Return the first candidate that parses as a supported repository."""
    for candidate in candidates:
        repository = parse_repository(candidate)
        if repository is not None:
            return repository
    return None


@dataclass(frozen=True)
class ChangelogEntry:
    """One release worth of changes, grouped by classification."""

    version: SemVer
    date: date
    changes: Mapping[str, Sequence[Changeset]] = field(default_factory=dict)
    previous_version: Optional[SemVer] = None

    @classmethod
    def from_changesets(
        cls,
        version: SemVer,
        changesets: Sequence[Changeset],
        *,
        release_date: Optional[date] = None,
        previous_version: Optional[SemVer] = None,
    ) -> "ChangelogEntry":
        return cls(
            version=version,
            date=release_date or date.today(),
            changes=group_by_type(changesets),
            previous_version=previous_version,
        )

    def items(self, change_type: str) -> Sequence[Changeset]:
        return self.changes.get(change_type, ())


@dataclass(frozen=True)
class RenderContext:
    """Everything a template needs besides the entry itself."""

    settings: ChangelogSettings = field(default_factory=ChangelogSettings)
    repository: Optional[Repository] = None
    tag_prefix: str = "v"
    project_root: Path = Path(".")

    def compare_url(self, entry: ChangelogEntry) -> Optional[str]:
        if self.repository is None or entry.previous_version is None:
            return None
        return self.repository.compare_url(
            entry.previous_version.to_tag(self.tag_prefix),
            entry.version.to_tag(self.tag_prefix),
        )


Renderer = Callable[[ChangelogEntry, RenderContext], str]

_GITHUB_HEADINGS = {
    "major": "💥 Breaking Changes",
    "minor": "🚀 New Features",
    "patch": "🐛 Bug Fixes",
}
_CONVENTIONAL_HEADINGS = {
    "major": "⚠ BREAKING CHANGES",
    "minor": "Features",
    "patch": "Bug Fixes",
}


def _heading(entry: ChangelogEntry) -> str:
    return f"## v{entry.version} ({entry.date.isoformat()})"


def _sections(
    entry: ChangelogEntry,
    headings: Mapping[str, str],
    format_item: Callable[[Changeset], str],
) -> list[str]:
    lines: list[str] = []
    for change_type in CHANGE_TYPES:
        items = entry.items(change_type)
        if not items:
            continue
        lines.extend(["", f"### {headings[change_type]}", ""])
        lines.extend(format_item(changeset) for changeset in items)
    return lines


def _compare_line(url: Optional[str]) -> list[str]:
    return ["", f"[Compare changes]({url})"] if url else []


def render_default(entry: ChangelogEntry, context: RenderContext) -> str:
    lines = [_heading(entry)]
    if context.settings.include_commit_links:
        lines.extend(_compare_line(context.compare_url(entry)))
    lines.extend(
        _sections(entry, context.settings.categories, lambda changeset: f"- {changeset.summary}")
    )
    return "\n".join(lines) + "\n"


def _decorate(changeset: Changeset, context: RenderContext) -> str:
    text = f"- {changeset.summary}"
    settings = context.settings
    if settings.include_author and changeset.author:
        text += f" by @{changeset.author}"
    if settings.include_pr and changeset.pr is not None and context.repository is not None:
        text += f" ([#{changeset.pr}]({context.repository.pull_request_url(changeset.pr)}))"
    return text


def render_github(entry: ChangelogEntry, context: RenderContext) -> str:
    lines = [_heading(entry)]
    lines.extend(_compare_line(context.compare_url(entry)))
    lines.extend(_sections(entry, _GITHUB_HEADINGS, lambda changeset: _decorate(changeset, context)))
    return "\n".join(lines) + "\n"


def render_conventional(entry: ChangelogEntry, context: RenderContext) -> str:
    lines = [_heading(entry)]
    lines.extend(_compare_line(context.compare_url(entry)))
    lines.extend(
        _sections(entry, _CONVENTIONAL_HEADINGS, lambda changeset: f"* {changeset.summary}")
    )
    return "\n".join(lines) + "\n"


def _bullets(items: Sequence[Changeset]) -> str:
    return "\n".join(f"- {changeset.summary}" for changeset in items)


def render_custom(entry: ChangelogEntry, context: RenderContext) -> str:
    """Substitute ``$name`` placeholders in the user's template file.

    Unknown placeholders are left untouched; nothing in the file is executed.
    """
    template_path = context.settings.custom_template
    if not template_path:
        raise VershipError(
            "The custom changelog template needs 'changelog.custom_template' in config.yaml."
        )
    path = Path(template_path)
    if not path.is_absolute():
        path = context.project_root / path
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise VershipError(f"Cannot read custom changelog template {path}: {exc}") from exc

    values = {
        "version": str(entry.version),
        "date": entry.date.isoformat(),
        "previous_version": str(entry.previous_version) if entry.previous_version else "",
        "compare_url": context.compare_url(entry) or "",
        "repository": context.repository.url if context.repository else "",
        "changes": "\n".join(
            _sections(entry, context.settings.categories, lambda changeset: f"- {changeset.summary}")
        ).strip("\n"),
    }
    for change_type in CHANGE_TYPES:
        values[change_type] = _bullets(entry.items(change_type))
    rendered = Template(source).safe_substitute(values)
    rendered = re.sub(r"\n{3,}", "\n\n", rendered)
    return rendered.strip("\n") + "\n"


RENDERERS: dict[str, Renderer] = {
    "default": render_default,
    "github": render_github,
    "conventional": render_conventional,
    "custom": render_custom,
}


def render_entry(entry: ChangelogEntry, context: RenderContext) -> str:
    renderer = RENDERERS.get(context.settings.template, render_default)
    return renderer(entry, context)


def new_document() -> str:
    """Return the content of a freshly created changelog."""
    lines = [CHANGELOG_TITLE]
    for line in PREAMBLE_LINES:
        lines.extend(["", line])
    return "\n".join(lines) + "\n"


def insert_entry(content: str, section: str) -> str:
    """Insert a rendered section right after the title and preamble.

    Existing sections keep their bytes and relative order; the new section
    is separated from its neighbours by exactly one blank line and uses the
    document's line endings.
    """
    newline = "\r\n" if "\r\n" in content else "\n"
    entry = newline.join(section.strip("\n").splitlines())
    lines = content.split("\n")
    title_index = next(
        (index for index, line in enumerate(lines) if line.startswith(CHANGELOG_TITLE)), None
    )
    if title_index is None:
        if not content.strip():
            return entry + newline
        return entry + newline + newline + content

    index = title_index + 1
    head_end = index
    while index < len(lines) and (
        not lines[index].strip() or lines[index].startswith(_PREAMBLE_PREFIXES)
    ):
        index += 1
        if lines[index - 1].strip():
            head_end = index

    head = "\n".join(lines[:head_end])
    if head.endswith("\r"):
        head = head[:-1]
    tail = "\n".join(lines[index:])
    if not tail:
        return head + newline + newline + entry + newline
    return head + newline + newline + entry + newline + newline + tail


def extract_version_notes(content: str, version: SemVer | str) -> Optional[str]:
    """Return the body of the section for ``version``, or None when absent."""
    escaped = re.escape(str(version).lstrip("v"))
    pattern = re.compile(
        rf"^## \[?v?{escaped}(?![\w.-])\]?[^\n]*\n(?P<body>.*?)(?=\n## |\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )
    match = pattern.search(content)
    if match is None:
        return None
    body = match.group("body").strip()
    return body or None


class ChangelogGenerator:
    """Renders entries with the configured template and updates the document."""

    def __init__(
        self,
        project_root: Path,
        settings: ChangelogSettings,
        *,
        repository: Optional[Repository] = None,
        tag_prefix: str = "v",
    ) -> None:
        self.project_root = project_root
        self.context = RenderContext(
            settings=settings,
            repository=repository,
            tag_prefix=tag_prefix,
            project_root=project_root,
        )

    @property
    def path(self) -> Path:
        path = Path(self.context.settings.path)
        return path if path.is_absolute() else self.project_root / path

    def render(self, entry: ChangelogEntry) -> str:
        return render_entry(entry, self.context)

    def read(self) -> Optional[str]:
        if not self.path.is_file():
            return None
        return self.path.read_text(encoding="utf-8")

    def add_entry(self, entry: ChangelogEntry) -> str:
        """Render the entry, insert it into the document and return the section."""
        section = self.render(entry)
        if self.path.is_file():
            existing = self.path.read_bytes().decode("utf-8")
        else:
            existing = new_document()
        updated = insert_entry(existing, section)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(updated.encode("utf-8"))
        return section

    def release_notes(self, version: SemVer | str) -> Optional[str]:
        content = self.read()
        if content is None:
            return None
        return extract_version_notes(content, version)
