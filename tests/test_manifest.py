"""Tests for reading and rewriting manifest versions."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest

from vership.manifest import read_manifest, read_version, write_version


def test_package_json_fields_and_rewrite(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo",
                "version": "1.0.2",
                "scripts": {"build": "tsc", "test": "vitest"},
                "repository": {"type": "git", "url": "git+https://github.com/acme/demo.git"},
                "dependencies": {"left-pad": "^1.3.0"},
            },
            indent=4,
        ),
        encoding="utf-8",
    )

    manifest = read_manifest(path)
    assert manifest.version == "1.0.2"
    assert manifest.has_script("build") and manifest.has_script("test")
    assert manifest.repository == "git+https://github.com/acme/demo.git"

    previous = write_version(path, "1.1.0")

    assert previous == "1.0.2"
    rewritten = json.loads(path.read_text(encoding="utf-8"))
    assert rewritten["version"] == "1.1.0"
    assert rewritten["dependencies"] == {"left-pad": "^1.3.0"}
    assert list(rewritten) == ["name", "version", "scripts", "repository", "dependencies"]
    assert path.read_text(encoding="utf-8").endswith("}\n")


def test_pyproject_rewrite_preserves_formatting(tmp_path: Path) -> None:
    path = tmp_path / "pyproject.toml"
    original = (
        "[build-system]\n"
        'requires = ["hatchling"]\n'
        "\n"
        "[project]\n"
        'name = "demo"\n'
        'version = "0.3.1"  # bumped by vership\n'
        'dependencies = ["click"]\n'
        "\n"
        "[tool.other]\n"
        'version = "9.9.9"\n'
    )
    path.write_text(original, encoding="utf-8")

    assert read_version(path) == "0.3.1"
    write_version(path, "0.4.0")

    assert path.read_text(encoding="utf-8") == original.replace(
        'version = "0.3.1"', 'version = "0.4.0"'
    )


def test_cargo_workspace_package_version(tmp_path: Path) -> None:
    path = tmp_path / "Cargo.toml"
    path.write_text(
        '[workspace]\nmembers = ["core"]\n\n[workspace.package]\nversion = \'2.0.0\'\n',
        encoding="utf-8",
    )

    assert write_version(path, "2.1.0") == "2.0.0"
    assert "version = '2.1.0'" in path.read_text(encoding="utf-8")


def test_missing_and_invalid_manifests(tmp_path: Path) -> None:
    with pytest.raises(click.ClickException, match="Manifest not found"):
        read_manifest(tmp_path / "package.json")

    broken = tmp_path / "package.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(click.ClickException, match="Cannot parse JSON"):
        read_manifest(broken)

    broken.write_text('{"name": "demo"}', encoding="utf-8")
    with pytest.raises(click.ClickException, match="version"):
        read_manifest(broken)

    dynamic = tmp_path / "pyproject.toml"
    dynamic.write_text('[project]\nname = "demo"\ndynamic = ["version"]\n', encoding="utf-8")
    with pytest.raises(click.ClickException, match="no static 'version'"):
        read_manifest(dynamic)

    unsupported = tmp_path / "setup.cfg"
    unsupported.write_text("[metadata]\nversion = 1.0\n", encoding="utf-8")
    with pytest.raises(click.ClickException, match="Unsupported manifest"):
        read_manifest(unsupported)
