from __future__ import annotations

import json
from pathlib import Path

import pytest

from vership import Vership
from vership.errors import ChangesetNotFound

from conftest import commit_all, git


def test_python_api_records_and_lists_changesets(project: Path) -> None:
    client = Vership(root=project)

    changeset = client.add("minor", "Add dark mode", author="octocat")

    assert changeset.path is not None and changeset.path.exists()
    assert changeset.path.parent == project / ".changesets"
    assert client.changesets() == [changeset]
    assert client.next_version().to_dict()["next"] == "1.1.0"
    assert client.status()["pendingChangesets"][0]["id"] == changeset.id


def test_python_api_never_prompts(project: Path) -> None:
    client = Vership(root=project)

    with pytest.raises(Exception, match="non-interactively"):
        client.add("", "Add dark mode")


def test_python_api_edit_and_delete(project: Path) -> None:
    client = Vership(root=project)
    changeset = client.add("patch", "Fix login redirect")

    edited = client.edit(changeset.id, summary="Fix logout redirect")
    assert edited.summary == "Fix logout redirect"

    client.delete(changeset.id)
    with pytest.raises(ChangesetNotFound):
        client.delete(changeset.id)

    client.add("patch", "Fix login redirect")
    assert len(client.delete_all()) == 1
    assert client.changesets() == []


def test_python_api_validate_returns_issues(project: Path) -> None:
    client = Vership(root=project)
    client.add("patch", "FIXME before shipping")

    issues = client.validate()

    assert [issue.message for issue in issues] == ["Summary contains TODO or FIXME"]


def test_python_api_version_and_publish(git_project: Path) -> None:
    client = Vership(root=git_project)
    client.add("patch", "Fix login redirect")
    commit_all(git_project, "add changeset")

    outcome = client.version()

    assert outcome is not None and outcome.committed
    assert str(outcome.info.next) == "1.0.3"
    assert json.loads((git_project / "package.json").read_text())["version"] == "1.0.3"
    assert client.can_publish().allowed is True

    result = client.publish(skip_npm_publish=True, skip_github_release=True)

    assert result.success is True, result.errors
    assert result.git_tag == "v1.0.3"
    assert git(git_project, "tag", "--list") == "v1.0.3"
    decision = client.can_publish()
    assert decision.allowed is False
    assert client.version() is None
