"""Deciding whether the current version may still be published."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import click
from packaging.version import InvalidVersion, Version

from .utils import log_debug


@dataclass(frozen=True)
class ReleaseDecision:
    """Outcome of a release gate check."""

    allowed: bool
    reason: Optional[str] = None
    current_version: Optional[str] = None
    latest_tag: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"canPublish": self.allowed}
        if self.reason:
            payload["reason"] = self.reason
        if self.current_version is not None:
            payload["currentVersion"] = self.current_version
        if self.latest_tag is not None:
            payload["latestTag"] = self.latest_tag
        return payload


def _tag_version(tag: str, tag_prefix: str) -> Optional[Version]:
    text = tag[len(tag_prefix) :] if tag_prefix and tag.startswith(tag_prefix) else tag
    try:
        return Version(text)
    except InvalidVersion:
        return None


class ReleaseGate:
    """Compares the manifest version with the most recent release tag."""

    def __init__(
        self,
        read_current_version: Callable[[], str],
        read_latest_tag: Callable[[], Optional[str]],
        *,
        tag_prefix: str = "v",
    ) -> None:
        self._read_current_version = read_current_version
        self._read_latest_tag = read_latest_tag
        self.tag_prefix = tag_prefix

    def can_publish(self) -> ReleaseDecision:
        try:
            current = self._read_current_version()
            latest_tag = self._read_latest_tag()
        except (click.ClickException, OSError, ValueError) as exc:
            log_debug(f"release gate could not determine state: {exc}")
            return ReleaseDecision(
                allowed=False, reason=f"Cannot determine the release state: {exc}"
            )

        expected_tag = f"{self.tag_prefix}{current}"
        if latest_tag == expected_tag:
            return ReleaseDecision(
                allowed=False,
                reason=f"Version {current} has already been released ({expected_tag}).",
                current_version=current,
                latest_tag=latest_tag,
            )

        if latest_tag is not None:
            released = _tag_version(latest_tag, self.tag_prefix)
            try:
                candidate = Version(current)
            except InvalidVersion:
                candidate = None
            if released is not None and candidate is not None and released > candidate:
                return ReleaseDecision(
                    allowed=False,
                    reason=(
                        f"Version {current} is older than the latest release {latest_tag}; "
                        "run 'vership version' first."
                    ),
                    current_version=current,
                    latest_tag=latest_tag,
                )

        return ReleaseDecision(allowed=True, current_version=current, latest_tag=latest_tag)
