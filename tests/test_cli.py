"""Integration-style tests for the vership CLI."""

from __future__ import annotations

import json
import os
from pathlib import Path

import click
import pytest
import yaml
from click.testing import CliRunner

from vership import __version__
from vership.changesets import ChangesetStore
from vership.cli import cli, main

from conftest import commit_all, git


def invoke(project: Path, *args: str, **kwargs: object) -> click.testing.Result:
    runner = CliRunner()
    return runner.invoke(cli, ["--root", str(project), *args], **kwargs)  # type: ignore[arg-type]


def test_cli_version_option(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["--version"])
    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out.strip() == __version__


def test_add_bootstraps_store_and_records_changeset(project: Path) -> None:
    result = invoke(project, "add", "--type", "feature", "--message", "Add dark mode", "--pr", "12")

    assert result.exit_code == 0, result.output
    assert (project / ".changesets" / "config.yaml").exists()
    assert "changeset created" in click.utils.strip_ansi(result.output)
    [changeset] = ChangesetStore(project).list_all()
    assert changeset.type == "minor"
    assert changeset.summary == "Add dark mode"
    assert changeset.pr == 12


def test_add_prompts_for_missing_fields(project: Path) -> None:
    result = invoke(project, "add", input="M" + "Remove the legacy API\n")

    assert result.exit_code == 0, result.output
    [changeset] = ChangesetStore(project).list_all()
    assert changeset.type == "major"
    assert changeset.summary == "Remove the legacy API"


def test_add_rejects_invalid_input(project: Path) -> None:
    result = invoke(project, "add", "--type", "huge", "--message", "Add dark mode")
    assert result.exit_code == 1
    assert "Unknown change type 'huge'" in result.output

    result = invoke(project, "add", "--type", "patch", "--message", "tiny")
    assert result.exit_code == 1
    assert "at least 5 characters" in result.output
    assert ChangesetStore(project).list_all() == []


def test_status_json_document(project: Path) -> None:
    store = ChangesetStore(project)
    minor = store.create("minor", "dark mode")
    store.create("patch", "fix login")

    result = invoke(project, "status", "--output", "json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["currentVersion"] == "1.0.2"
    assert payload["nextVersion"] == "1.1.0"
    assert payload["hasChanges"] is True
    assert payload["needsPublish"] is True
    assert payload["changesByType"] == {"major": 0, "minor": 1, "patch": 1}
    assert payload["latestTag"] is None
    assert {item["id"] for item in payload["pendingChangesets"]} >= {minor.id}
    assert set(payload["pendingChangesets"][0]) == {"id", "type", "summary", "createdAt"}


def test_status_text_without_changesets(project: Path) -> None:
    result = invoke(project, "status")

    assert result.exit_code == 0, result.output
    plain = click.utils.strip_ansi(result.output)
    assert "Current version: 1.0.2" in plain
    assert "no pending changesets" in plain
    assert result.stdout == ""


def test_validate_exit_codes(project: Path) -> None:
    ChangesetStore(project).create("patch", "Fix login redirect")
    ok = invoke(project, "validate")
    assert ok.exit_code == 0, ok.output
    assert "1 changeset(s) are valid" in click.utils.strip_ansi(ok.output)

    (project / ".changesets" / "broken-record-here.md").write_text(
        "---\nid: broken-record-here\ntype: giant\ncreated: 2024-01-01T00:00:00Z\n---\n\nBroken one\n",
        encoding="utf-8",
    )
    failing = invoke(project, "validate", "--output", "json")
    assert failing.exit_code == 1
    payload = json.loads(failing.stdout)
    assert payload["valid"] is False
    assert payload["issues"][0]["file"] == "broken-record-here.md"

    assert main(["--root", str(project), "validate"]) == 1


def test_edit_updates_changeset(project: Path) -> None:
    changeset = ChangesetStore(project).create("patch", "Fix login redirect", author="octocat")

    result = invoke(project, "edit", "--id", changeset.id, "--type", "minor", "--message", "Add SSO login")

    assert result.exit_code == 0, result.output
    updated = ChangesetStore(project).get(changeset.id)
    assert (updated.type, updated.summary, updated.author) == ("minor", "Add SSO login", "octocat")


def test_edit_interactively_selects_changeset(project: Path) -> None:
    changeset = ChangesetStore(project).create("patch", "Fix login redirect")

    result = invoke(project, "edit", input="1\n" + "M" + "Rework login flow\n")

    assert result.exit_code == 0, result.output
    updated = ChangesetStore(project).get(changeset.id)
    assert updated.type == "major"
    assert updated.summary == "Rework login flow"


def test_delete_commands(project: Path) -> None:
    store = ChangesetStore(project)
    first = store.create("patch", "Fix login redirect")
    store.create("minor", "Add dark mode")

    declined = invoke(project, "delete", "--id", first.id, input="n\n")
    assert declined.exit_code == 0
    assert len(store.list_all()) == 2

    single = invoke(project, "delete", "--id", first.id, "--yes")
    assert single.exit_code == 0, single.output
    assert first.id not in {changeset.id for changeset in store.list_all()}

    missing = invoke(project, "delete", "--id", first.id, "--yes")
    assert missing.exit_code == 1
    assert "not found" in missing.output

    conflicting = invoke(project, "delete", "--id", first.id, "--all")
    assert conflicting.exit_code == 2

    everything = invoke(project, "delete", "--all", "--yes")
    assert everything.exit_code == 0, everything.output
    assert store.list_all() == []


def test_version_bumps_manifest_changelog_and_commits(git_project: Path) -> None:
    assert invoke(git_project, "add", "-t", "minor", "-m", "Add dark mode").exit_code == 0
    assert invoke(git_project, "add", "-t", "patch", "-m", "Fix login redirect").exit_code == 0

    result = invoke(git_project, "version", "--ci")

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "1.1.0"
    manifest = json.loads((git_project / "package.json").read_text(encoding="utf-8"))
    assert manifest["version"] == "1.1.0"
    changelog = (git_project / "CHANGELOG.md").read_text(encoding="utf-8")
    assert changelog.startswith("# Changelog\n")
    assert "## v1.1.0 (" in changelog
    assert "- Add dark mode" in changelog and "- Fix login redirect" in changelog
    assert ChangesetStore(git_project).list_all() == []
    assert git(git_project, "log", "-1", "--format=%s") == "chore: release v1.1.0"
    assert git(git_project, "status", "--porcelain") == ""


def test_version_requires_clean_tree_unless_ci(git_project: Path) -> None:
    assert invoke(git_project, "add", "-t", "patch", "-m", "Fix login redirect").exit_code == 0

    result = invoke(git_project, "version", "--skip-confirm")

    assert result.exit_code == 1
    assert "uncommitted changes" in result.output
    assert json.loads((git_project / "package.json").read_text())["version"] == "1.0.2"


def test_version_dry_run_and_declined_confirmation(git_project: Path) -> None:
    assert invoke(git_project, "add", "-t", "major", "-m", "Drop the v1 API").exit_code == 0
    commit_all(git_project, "add changeset")

    dry = invoke(git_project, "version", "--dry-run")
    assert dry.exit_code == 0, dry.output
    assert "2.0.0" in click.utils.strip_ansi(dry.output)
    assert dry.stdout == ""

    declined = invoke(git_project, "version", input="n\n")
    assert declined.exit_code == 0, declined.output
    assert "cancelled" in declined.output

    assert json.loads((git_project / "package.json").read_text())["version"] == "1.0.2"
    assert not (git_project / "CHANGELOG.md").exists()
    assert len(ChangesetStore(git_project).list_all()) == 1


def test_version_with_nothing_pending(project: Path) -> None:
    result = invoke(project, "version", "--ci")

    assert result.exit_code == 0, result.output
    assert "nothing to version" in result.output


def test_changelog_template_configuration(project: Path) -> None:
    github = invoke(project, "changelog", "--template", "github")
    assert github.exit_code == 0, github.output
    config = yaml.safe_load((project / ".changesets" / "config.yaml").read_text(encoding="utf-8"))
    assert config["changelog"]["template"] == "github"

    custom = invoke(project, "changelog", "--template", "custom")
    assert custom.exit_code == 0, custom.output
    config = yaml.safe_load((project / ".changesets" / "config.yaml").read_text(encoding="utf-8"))
    assert config["changelog"]["custom_template"] == ".changesets/changelog-template.md"
    sample = project / ".changesets" / "changelog-template.md"
    assert "$version" in sample.read_text(encoding="utf-8")

    bad = invoke(project, "changelog", "--template", "fancy")
    assert bad.exit_code == 2


def test_changelog_interactive(project: Path) -> None:
    answers = "\n".join(["conventional", "y", "n", "n", "Breaking", "", "Fixes"]) + "\n"

    result = invoke(project, "changelog", "--interactive", input=answers)

    assert result.exit_code == 0, result.output
    config = yaml.safe_load((project / ".changesets" / "config.yaml").read_text(encoding="utf-8"))
    assert config["changelog"]["template"] == "conventional"
    assert config["changelog"]["include_author"] is True
    assert config["changelog"]["categories"] == {
        "major": "Breaking",
        "minor": "🚀 Features",
        "patch": "Fixes",
    }


def test_publish_gate_refuses_released_version(git_project: Path) -> None:
    git(git_project, "tag", "-a", "v1.0.2", "-m", "Release v1.0.2")

    refused = invoke(git_project, "publish", "--skip-confirm")
    assert refused.exit_code == 1
    assert "already been released" in refused.output

    in_ci = invoke(git_project, "publish", "--ci")
    assert in_ci.exit_code == 0

    as_json = invoke(git_project, "publish", "--output", "json")
    assert as_json.exit_code == 1
    payload = json.loads(as_json.stdout)
    assert payload["canPublish"] is False
    assert payload["success"] is False
    assert payload["latestTag"] == "v1.0.2"


def test_publish_dry_run_json(git_project: Path) -> None:
    result = invoke(git_project, "publish", "--dry-run", "--output", "json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["success"] is True
    assert payload["dryRun"] is True
    assert payload["gitTag"] == "v1.0.2"
    assert payload["npmPublished"] is False
    assert git(git_project, "tag", "--list") == ""


def _install_npm_stub(bin_dir: Path) -> dict[str, str]:
    bin_dir.mkdir()
    stub = bin_dir / "npm"
    stub.write_text(
        "\n".join(
            [
                "#!/usr/bin/env python3",
                "import sys",
                "if sys.argv[1:2] == ['publish']:",
                "    sys.stderr.write('npm ERR! 403 Forbidden\\n')",
                "    sys.exit(1)",
                "sys.exit(0)",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    stub.chmod(0o755)
    env = os.environ.copy()
    env["PATH"] = f"{bin_dir}{os.pathsep}{env.get('PATH', '')}"
    return env


def test_publish_failure_rolls_back_and_shows_progress(git_project: Path, tmp_path: Path) -> None:
    env = _install_npm_stub(tmp_path / "bin")

    result = invoke(
        git_project,
        "publish",
        "--skip-confirm",
        "--skip-github-release",
        env=env,
    )

    assert result.exit_code == 1
    plain = click.utils.strip_ansi(result.output)
    assert "403 Forbidden" in plain
    assert "Publish Progress" in plain
    assert "rolled back git tag v1.0.2" in plain
    assert git(git_project, "tag", "--list") == ""


def test_status_json_reports_errors_as_document(project: Path) -> None:
    (project / "package.json").write_text('{"name": "demo", "version": "1.0"}\n', encoding="utf-8")

    result = invoke(project, "status", "--output", "json")

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["success"] is False
    assert "1.0" in payload["errors"][0]


def test_publish_json_reports_config_errors_as_document(git_project: Path) -> None:
    config_path = git_project / ".changesets" / "config.yaml"
    config_path.parent.mkdir(exist_ok=True)
    config_path.write_text("changelog:\n  template: fancy\n", encoding="utf-8")

    result = invoke(git_project, "publish", "--dry-run", "--output", "json")

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload == {"success": False, "errors": [payload["errors"][0]]}
    assert "changelog.template" in payload["errors"][0]


def test_version_commit_message_with_extra_braces(git_project: Path) -> None:
    assert invoke(git_project, "add", "-t", "patch", "-m", "Fix login redirect").exit_code == 0
    config_path = git_project / ".changesets" / "config.yaml"
    config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    config["git"] = {"commit_message": "release {v}: {version}"}
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")

    result = invoke(git_project, "version", "--ci")

    assert result.exit_code == 0, result.output
    assert git(git_project, "log", "-1", "--format=%s") == "release {v}: 1.0.3"
