from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from vership.changesets import ChangesetStore
from vership.validate import run_validation

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _write(directory: Path, name: str, body: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / name).write_text(body, encoding="utf-8")


def test_clean_store_has_no_issues(tmp_path: Path) -> None:
    store = ChangesetStore(tmp_path)
    store.create("minor", "Add dark mode", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc))

    changesets, issues = run_validation(tmp_path, now=NOW)

    assert len(changesets) == 1
    assert issues == []


def test_reports_content_and_structure_problems(tmp_path: Path) -> None:
    directory = tmp_path / ".changesets"
    _write(
        directory,
        "Happy-Cat-Runs.md",
        "---\nid: Happy-Cat-Runs\ntype: patch\ncreated: 2024-05-01T00:00:00Z\n---\n\nFix crash on start\n",
    )
    _write(
        directory,
        "calm-otter-naps.md",
        "---\nid: calm-otter-naps\ntype: minor\ncreated: 2030-01-01T00:00:00Z\n---\n\nAdd export\n",
    )
    _write(
        directory,
        "kind-fish-swims.md",
        "---\nid: kind-fish-swims\ntype: patch\ncreated: 2024-05-02T00:00:00Z\n---\n\n"
        "TODO: describe the fix\n",
    )
    _write(
        directory,
        "brave-lion-sings.md",
        "---\nid: brave-lion-sings\ntype: feature\ncreated: 2024-05-02T00:00:00Z\n---\n\nBad type\n",
    )

    changesets, issues = run_validation(tmp_path, now=NOW)

    assert {changeset.id for changeset in changesets} == {
        "Happy-Cat-Runs",
        "calm-otter-naps",
        "kind-fish-swims",
    }
    by_file = {(issue.path.name, issue.message) for issue in issues}
    assert ("Happy-Cat-Runs.md", "Id does not follow the adjective-noun-verb pattern") in by_file
    assert ("calm-otter-naps.md", "Creation date lies in the future") in by_file
    assert ("kind-fish-swims.md", "Summary contains TODO or FIXME") in by_file
    assert any(
        issue.path.name == "brave-lion-sings.md" and "invalid type" in issue.message
        for issue in issues
    )
    assert all(issue.severity == "error" for issue in issues)


def test_markers_need_word_boundaries(tmp_path: Path) -> None:
    store = ChangesetStore(tmp_path)
    store.create("patch", "Fix the todolist widget", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc))

    _, issues = run_validation(tmp_path, now=NOW)

    assert issues == []


def test_duplicate_summaries_are_warnings(tmp_path: Path) -> None:
    store = ChangesetStore(tmp_path)
    first = store.create("patch", "Fix login", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc))
    second = store.create("patch", "fix  LOGIN", created_at=datetime(2024, 5, 2, tzinfo=timezone.utc))

    _, issues = run_validation(tmp_path, now=NOW)

    assert len(issues) == 1
    assert issues[0].severity == "warning"
    assert issues[0].changeset_id == second.id
    assert first.id in issues[0].message
