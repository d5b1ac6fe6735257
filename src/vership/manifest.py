"""Reading and rewriting the version field of a project manifest."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional

import click

SUPPORTED_MANIFESTS: tuple[str, ...] = (
    "package.json",
    "pyproject.toml",
    "project.toml",
    "Cargo.toml",
)

ManifestKind = Literal["package_json", "pyproject", "cargo"]

_TABLE_PATTERN = re.compile(r"^\s*\[(?P<table>[^\]]+)\]\s*(?:#.*)?$")
_VERSION_ASSIGNMENT_PATTERN = re.compile(
    r'^(?P<prefix>\s*version\s*=\s*)(?P<quote>["\'])(?P<value>[^"\']*)(?P=quote)'
    r"(?P<suffix>\s*(?:#.*)?)(?P<newline>\r?\n?)$"
)
_REPOSITORY_PATTERN = re.compile(
    r'^\s*repository\s*=\s*["\'](?P<value>[^"\']+)["\']', re.MULTILINE
)

_TOML_TABLES: dict[ManifestKind, tuple[str, ...]] = {
    "pyproject": ("project", "tool.poetry"),
    "cargo": ("package", "workspace.package"),
}


@dataclass(frozen=True)
class Manifest:
    """Snapshot of the fields vership reads from a manifest."""

    path: Path
    kind: ManifestKind
    version: str
    scripts: dict[str, str] = field(default_factory=dict)
    repository: Optional[str] = None

    def has_script(self, name: str) -> bool:
        return name in self.scripts


@dataclass(frozen=True)
class _TomlMatch:
    found_table: bool
    found_version: bool
    old_version: str | None
    content: str


def manifest_kind(path: Path) -> ManifestKind:
    """Return the manifest flavour for a path based on its filename."""
    lowered = path.name.lower()
    if lowered == "package.json":
        return "package_json"
    if lowered in {"pyproject.toml", "project.toml"}:
        return "pyproject"
    if lowered == "cargo.toml":
        return "cargo"
    raise click.ClickException(
        f"Unsupported manifest {path}. Supported filenames: {', '.join(SUPPORTED_MANIFESTS)}."
    )


def resolve_manifest_path(project_root: Path, raw_path: str) -> Path:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = project_root / path
    return path


def _replace_toml_table_version(
    content: str, table_name: str, new_version: str | None
) -> _TomlMatch:
    lines = content.splitlines(keepends=True)
    active = False
    found_table = False
    old_version: str | None = None

    for index, line in enumerate(lines):
        stripped = line.rstrip("\r\n")
        table_match = _TABLE_PATTERN.match(stripped)
        if table_match:
            current_table = table_match.group("table").strip()
            if current_table == table_name:
                active = True
                found_table = True
            elif active:
                break
            continue

        if not active:
            continue

        version_match = _VERSION_ASSIGNMENT_PATTERN.match(line)
        if version_match is None:
            continue

        old_version = version_match.group("value")
        if new_version is not None and old_version != new_version:
            quote = version_match.group("quote")
            lines[index] = (
                f"{version_match.group('prefix')}{quote}{new_version}{quote}"
                f"{version_match.group('suffix')}{version_match.group('newline')}"
            )
        return _TomlMatch(True, True, old_version, "".join(lines))

    return _TomlMatch(found_table, False, None, content)


def _toml_version(path: Path, content: str, kind: ManifestKind, new_version: str | None) -> _TomlMatch:
    tables = _TOML_TABLES[kind]
    found_any = False
    for table in tables:
        result = _replace_toml_table_version(content, table, new_version)
        if result.found_version:
            return result
        found_any = found_any or result.found_table
    names = " or ".join(f"[{table}]" for table in tables)
    if found_any:
        raise click.ClickException(f"{path} has a {names} table but no static 'version' field.")
    raise click.ClickException(f"{path} is missing a {names} table with a static 'version' field.")


def _load_package_json(path: Path, content: str) -> dict[str, Any]:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Cannot parse JSON in {path}: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException(f"Expected a JSON object in {path}.")
    return parsed


def _package_json_version(path: Path, parsed: dict[str, Any]) -> str:
    value = parsed.get("version")
    if not isinstance(value, str) or not value.strip():
        raise click.ClickException(f"{path} does not declare a string 'version' field.")
    return value.strip()


def _package_json_repository(parsed: dict[str, Any]) -> Optional[str]:
    repository = parsed.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")
    if isinstance(repository, str) and repository.strip():
        return repository.strip()
    return None


def read_manifest(path: Path) -> Manifest:
    """Load the version, scripts and repository declared by a manifest."""
    if not path.is_file():
        raise click.ClickException(f"Manifest not found: {path}")
    content = path.read_text(encoding="utf-8")
    kind = manifest_kind(path)
    if kind == "package_json":
        parsed = _load_package_json(path, content)
        raw_scripts = parsed.get("scripts")
        scripts = (
            {str(key): str(value) for key, value in raw_scripts.items()}
            if isinstance(raw_scripts, dict)
            else {}
        )
        return Manifest(
            path=path,
            kind=kind,
            version=_package_json_version(path, parsed),
            scripts=scripts,
            repository=_package_json_repository(parsed),
        )

    match = _toml_version(path, content, kind, None)
    if match.old_version is None:
        raise click.ClickException(f"{path} does not declare a static 'version' field.")
    repository_match = _REPOSITORY_PATTERN.search(content)
    return Manifest(
        path=path,
        kind=kind,
        version=match.old_version,
        repository=repository_match.group("value") if repository_match else None,
    )


def read_version(path: Path) -> str:
    """Return the raw version string stored in the manifest."""
    return read_manifest(path).version


def render_version_update(path: Path, content: str, new_version: str) -> str:
    """Return manifest content with only the version value replaced."""
    kind = manifest_kind(path)
    if kind == "package_json":
        parsed = _load_package_json(path, content)
        _package_json_version(path, parsed)
        parsed["version"] = new_version
        return json.dumps(parsed, indent=2, ensure_ascii=False) + "\n"
    return _toml_version(path, content, kind, new_version).content


def write_version(path: Path, new_version: str) -> str:
    """Rewrite the manifest's version in place and return the previous value."""
    content = path.read_text(encoding="utf-8")
    previous = read_version(path)
    updated = render_version_update(path, content, new_version)
    if updated != content:
        path.write_text(updated, encoding="utf-8")
    return previous
