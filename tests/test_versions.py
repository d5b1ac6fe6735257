"""Tests for semantic version parsing and the bump rule."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import product

import pytest

from vership.changesets import Changeset
from vership.errors import ValidationError
from vership.versions import SemVer, calculate_next_version, is_valid_version


def make_changeset(change_type: str, summary: str = "Some change", index: int = 0) -> Changeset:
    return Changeset(
        id=f"happy-cat-runs{'x' * index}",
        type=change_type,  # type: ignore[arg-type]
        summary=summary,
        created_at=datetime(2024, 5, 1, 12, index, tzinfo=timezone.utc),
    )


def make_changesets(major: int, minor: int, patch: int) -> list[Changeset]:
    changesets: list[Changeset] = []
    for change_type, count in (("major", major), ("minor", minor), ("patch", patch)):
        for _ in range(count):
            changesets.append(make_changeset(change_type, index=len(changesets)))
    return changesets


def test_minor_and_patch_changes_bump_minor() -> None:
    info = calculate_next_version(
        "1.0.2",
        [make_changeset("minor", "dark mode"), make_changeset("patch", "fix login", 1)],
    )

    assert str(info.next) == "1.1.0"
    assert info.has_changes is True
    assert info.changes_by_type == {"major": 0, "minor": 1, "patch": 1}
    assert info.bump == "minor"


def test_empty_changesets_keep_version() -> None:
    info = calculate_next_version("3.4.5", [])

    assert info.next == info.current == SemVer(3, 4, 5)
    assert info.has_changes is False
    assert info.bump is None


@pytest.mark.parametrize(
    ("minor", "patch"), list(product(range(3), range(3)))
)
def test_major_dominates(minor: int, patch: int) -> None:
    current = SemVer(2, 7, 9)
    info = calculate_next_version(current, make_changesets(1, minor, patch))

    assert info.next == SemVer(current.major + 1, 0, 0)


@pytest.mark.parametrize("patch", [0, 1, 4])
def test_minor_resets_patch(patch: int) -> None:
    current = SemVer(2, 7, 9)
    info = calculate_next_version(current, make_changesets(0, 2, patch))

    assert info.next == SemVer(2, 8, 0)


def test_patch_only_increments_patch() -> None:
    info = calculate_next_version("0.9.9", make_changesets(0, 0, 3))

    assert info.next == SemVer(0, 9, 10)
    assert info.next > info.current


def test_counts_not_order_decide_the_bump() -> None:
    changesets = make_changesets(1, 1, 1)
    forward = calculate_next_version("1.0.0", changesets)
    backward = calculate_next_version("1.0.0", list(reversed(changesets)))

    assert forward == backward


@pytest.mark.parametrize("value", ["1.2", "1.2.3.4", "01.2.3", "1.2.3-beta.1", "abc", "", "-1.0.0"])
def test_parse_rejects_malformed_versions(value: str) -> None:
    assert not is_valid_version(value)
    with pytest.raises(ValidationError):
        calculate_next_version(value, [make_changeset("patch")])


def test_parse_accepts_v_prefix_and_orders_numerically() -> None:
    assert SemVer.parse("v1.10.0") == SemVer(1, 10, 0)
    assert SemVer.parse("1.10.0") > SemVer.parse("1.9.12")
    assert SemVer(1, 2, 3).to_tag() == "v1.2.3"
    assert SemVer(1, 2, 3).to_tag("release-") == "release-1.2.3"


def test_version_info_to_dict() -> None:
    info = calculate_next_version("1.0.0", make_changesets(0, 0, 1))

    assert info.to_dict() == {
        "current": "1.0.0",
        "next": "1.0.1",
        "hasChanges": True,
        "changesByType": {"major": 0, "minor": 0, "patch": 1},
    }
