from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from releng.release.semver import SemVer


class VersionBump(IntEnum):
    """Magnitude of a version increment, ordered none < patch < minor < major."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str) -> VersionBump | None:
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None


@dataclass(frozen=True, slots=True)
class CommitRecord:
    hash: str
    # Open set: feat, fix, breaking, chore, docs, ... ("" when the header did not parse).
    type: str
    breaking: bool
    raw_message: str
    scope: str | None = None
    subject: str = ""

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


@dataclass(frozen=True, slots=True)
class ChannelPolicy:
    """Release policy of the branches matching `branch_pattern`."""

    branch_pattern: str
    prerelease: bool = False
    tag_name: str | None = None

    @property
    def identifier(self) -> str | None:
        """Prerelease label carried by versions released on this channel."""
        if not self.prerelease:
            return None
        return self.tag_name or self.branch_pattern

    @property
    def display_name(self) -> str:
        return self.identifier or "stable"


@dataclass(frozen=True, slots=True)
class ReleaseDecision:
    should_release: bool
    next_version: SemVer
    # None when the branch is not release-eligible.
    channel: ChannelPolicy | None
