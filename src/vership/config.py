"""Configuration helpers for vership."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, MutableMapping, Optional, cast

import yaml

TemplateName = Literal["default", "github", "conventional", "custom"]
AccessLevel = Literal["public", "restricted"]

CHANGESET_DIRECTORY_NAME = ".changesets"
CONFIG_FILENAME = "config.yaml"
DEFAULT_MANIFEST = "package.json"
DEFAULT_CHANGELOG = "CHANGELOG.md"
DEFAULT_COMMIT_MESSAGE = "chore: release v{version}"
DEFAULT_CUSTOM_TEMPLATE = f"{CHANGESET_DIRECTORY_NAME}/changelog-template.md"

TEMPLATE_DEFAULT: TemplateName = "default"
TEMPLATE_CHOICES: tuple[TemplateName, ...] = ("default", "github", "conventional", "custom")
ACCESS_CHOICES: tuple[AccessLevel, ...] = ("public", "restricted")

DEFAULT_CATEGORIES: dict[str, str] = {
    "major": "💥 Breaking Changes",
    "minor": "🚀 Features",
    "patch": "🐛 Bug Fixes",
}


def default_config_path(project_root: Path) -> Path:
    """Return the default config path for a project root."""
    return project_root / CHANGESET_DIRECTORY_NAME / CONFIG_FILENAME


@dataclass(frozen=True)
class ChangelogSettings:
    """How changelog sections are rendered and where they are written."""

    path: str = DEFAULT_CHANGELOG
    template: TemplateName = TEMPLATE_DEFAULT
    custom_template: Optional[str] = None
    include_author: bool = False
    include_pr: bool = False
    include_commit_links: bool = False
    repository: Optional[str] = None
    categories: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CATEGORIES))


@dataclass(frozen=True)
class GitSettings:
    """Tagging and commit conventions."""

    tag_prefix: str = "v"
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    release_branches: tuple[str, ...] = ("main", "master")

    def tag_for(self, version: object) -> str:
        return f"{self.tag_prefix}{version}"

    def commit_message_for(self, version: object) -> str:
        """Fill the {version} placeholder; other braces are kept verbatim."""
        return self.commit_message.replace("{version}", str(version))


@dataclass(frozen=True)
class PublishSettings:
    """Registry publication defaults; CLI flags override them per run."""

    registry: Optional[str] = None
    access: AccessLevel = "public"
    tag: str = "latest"
    build_command: Optional[str] = None
    test_command: Optional[str] = None
    publish_command: Optional[str] = None


@dataclass(frozen=True)
class Config:
    """Structured representation of `.changesets/config.yaml`."""

    manifest: str = DEFAULT_MANIFEST
    changelog: ChangelogSettings = field(default_factory=ChangelogSettings)
    git: GitSettings = field(default_factory=GitSettings)
    publish: PublishSettings = field(default_factory=PublishSettings)


def _mapping(raw: object, name: str) -> MutableMapping[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, MutableMapping):
        raise ValueError(f"Config option '{name}' must be a mapping.")
    return raw


def _optional_str(raw: object, name: str) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"Config option '{name}' must be a string.")
    return raw.strip() or None


def _bool(raw: object, name: str, default: bool) -> bool:
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ValueError(f"Config option '{name}' must be a boolean.")
    return raw


def _choice(raw: object, name: str, choices: tuple[str, ...], default: str) -> str:
    if raw is None:
        return default
    if not isinstance(raw, str):
        raise ValueError(f"Config option '{name}' must be a string.")
    normalized = raw.strip().lower()
    if normalized not in choices:
        allowed = ", ".join(choices)
        raise ValueError(f"Config option '{name}' must be one of: {allowed}")
    return normalized


def _parse_changelog(raw: MutableMapping[str, Any]) -> ChangelogSettings:
    categories = dict(DEFAULT_CATEGORIES)
    for key, value in _mapping(raw.get("categories"), "changelog.categories").items():
        if key not in DEFAULT_CATEGORIES:
            allowed = ", ".join(DEFAULT_CATEGORIES)
            raise ValueError(f"Unknown changelog category '{key}'. Expected one of: {allowed}")
        title = str(value or "").strip()
        if title:
            categories[key] = title
    template = _choice(raw.get("template"), "changelog.template", TEMPLATE_CHOICES, TEMPLATE_DEFAULT)
    return ChangelogSettings(
        path=_optional_str(raw.get("path"), "changelog.path") or DEFAULT_CHANGELOG,
        template=cast(TemplateName, template),
        custom_template=_optional_str(raw.get("custom_template"), "changelog.custom_template"),
        include_author=_bool(raw.get("include_author"), "changelog.include_author", False),
        include_pr=_bool(raw.get("include_pr"), "changelog.include_pr", False),
        include_commit_links=_bool(
            raw.get("include_commit_links"), "changelog.include_commit_links", False
        ),
        repository=_optional_str(raw.get("repository"), "changelog.repository"),
        categories=categories,
    )


def _parse_git(raw: MutableMapping[str, Any]) -> GitSettings:
    tag_prefix_raw = raw.get("tag_prefix", "v")
    if not isinstance(tag_prefix_raw, str):
        raise ValueError("Config option 'git.tag_prefix' must be a string.")
    commit_message = _optional_str(raw.get("commit_message"), "git.commit_message")
    branches_raw = raw.get("release_branches")
    if branches_raw is None:
        branches: tuple[str, ...] = ("main", "master")
    elif isinstance(branches_raw, str):
        branches = (branches_raw.strip(),)
    elif isinstance(branches_raw, list):
        branches = tuple(str(item).strip() for item in branches_raw if str(item).strip())
    else:
        raise ValueError("Config option 'git.release_branches' must be a list of strings.")
    return GitSettings(
        tag_prefix=tag_prefix_raw.strip(),
        commit_message=commit_message or DEFAULT_COMMIT_MESSAGE,
        release_branches=branches,
    )


def _parse_publish(raw: MutableMapping[str, Any]) -> PublishSettings:
    access = _choice(raw.get("access"), "publish.access", ACCESS_CHOICES, "public")
    return PublishSettings(
        registry=_optional_str(raw.get("registry"), "publish.registry"),
        access=cast(AccessLevel, access),
        tag=_optional_str(raw.get("tag"), "publish.tag") or "latest",
        build_command=_optional_str(raw.get("build_command"), "publish.build_command"),
        test_command=_optional_str(raw.get("test_command"), "publish.test_command"),
        publish_command=_optional_str(raw.get("publish_command"), "publish.publish_command"),
    )


def load_config(path: Path) -> Config:
    """Load the configuration from disk."""
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, MutableMapping):
        raise ValueError("Config root must be a mapping")

    return Config(
        manifest=_optional_str(raw.get("manifest"), "manifest") or DEFAULT_MANIFEST,
        changelog=_parse_changelog(_mapping(raw.get("changelog"), "changelog")),
        git=_parse_git(_mapping(raw.get("git"), "git")),
        publish=_parse_publish(_mapping(raw.get("publish"), "publish")),
    )


def load_project_config(project_root: Path) -> Config:
    """Load the project config, falling back to defaults when none exists."""

    config_path = default_config_path(project_root)
    if config_path.exists():
        return load_config(config_path)
    return Config()


def with_changelog(config: Config, **changes: Any) -> Config:
    """Return a copy of the config with changelog settings replaced."""
    return replace(config, changelog=replace(config.changelog, **changes))


def dump_config(config: Config) -> dict[str, Any]:
    """Convert a Config into a plain dictionary suitable for YAML output."""
    defaults = Config()
    data: dict[str, Any] = {}
    if config.manifest != defaults.manifest:
        data["manifest"] = config.manifest

    changelog = config.changelog
    changelog_data: dict[str, Any] = {"template": changelog.template}
    if changelog.path != DEFAULT_CHANGELOG:
        changelog_data["path"] = changelog.path
    if changelog.custom_template:
        changelog_data["custom_template"] = changelog.custom_template
    for flag in ("include_author", "include_pr", "include_commit_links"):
        if getattr(changelog, flag):
            changelog_data[flag] = True
    if changelog.repository:
        changelog_data["repository"] = changelog.repository
    if changelog.categories != DEFAULT_CATEGORIES:
        changelog_data["categories"] = dict(changelog.categories)
    data["changelog"] = changelog_data

    if config.git != defaults.git:
        git_data: dict[str, Any] = {}
        if config.git.tag_prefix != defaults.git.tag_prefix:
            git_data["tag_prefix"] = config.git.tag_prefix
        if config.git.commit_message != defaults.git.commit_message:
            git_data["commit_message"] = config.git.commit_message
        if config.git.release_branches != defaults.git.release_branches:
            git_data["release_branches"] = list(config.git.release_branches)
        data["git"] = git_data

    if config.publish != defaults.publish:
        publish_data = {
            key: value
            for key, value in vars(config.publish).items()
            if value != getattr(defaults.publish, key)
        }
        data["publish"] = publish_data
    return data


def save_config(config: Config, path: Path) -> None:
    """Write the configuration to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dump_config(config), handle, sort_keys=False, allow_unicode=True)
