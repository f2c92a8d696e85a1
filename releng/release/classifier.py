"""Commit classification.

Turns a batch of commits into the version bump they imply. Classification is
total: commits with unknown types or unparseable headers contribute no bump
instead of failing, so a messy history never blocks the release decision.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence

from releng.release.model import CommitRecord, VersionBump

__all__ = [
    "ANGULAR_RULES",
    "DEFAULT_BREAKING_MARKERS",
    "classify",
    "commit_bump",
    "has_breaking_marker",
    "parse_commit",
    "release_rules",
    "unrecognized_types",
]


# Angular preset: types that trigger a release. Everything else maps to none.
ANGULAR_RULES: Mapping[str, VersionBump] = {
    "feat": VersionBump.MINOR,
    "fix": VersionBump.PATCH,
    "perf": VersionBump.PATCH,
    "revert": VersionBump.PATCH,
}

# Types that are known but intentionally release nothing.
_QUIET_TYPES = frozenset({"build", "chore", "ci", "docs", "refactor", "style", "test"})

DEFAULT_BREAKING_MARKERS: tuple[str, ...] = ("BREAKING CHANGE", "BREAKING CHANGES")

_PRESETS: Mapping[str, Mapping[str, VersionBump]] = {
    "angular": ANGULAR_RULES,
    "conventionalcommits": ANGULAR_RULES,
}

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()\r\n]*)\))?(?P<bang>!)?: (?P<subject>.+)$")


def release_rules(
    preset: str = "angular",
    overrides: Mapping[str, VersionBump] | None = None,
) -> dict[str, VersionBump] | None:
    """Build the type -> bump mapping for a preset plus configured overrides.

    Returns None for an unknown preset.
    """
    base = _PRESETS.get(preset)
    if base is None:
        return None
    rules = dict(base)
    if overrides:
        rules.update(overrides)
    return rules


def has_breaking_marker(message: str, markers: Iterable[str]) -> bool:
    """True if a line of `message` starts with one of `markers` as a whole token.

    Matching is case-sensitive. The marker must be followed by the end of the
    line, a colon or whitespace, so "BREAKING CHANGES" does not also count as
    "BREAKING CHANGE" + "S".
    """
    lines = [line.lstrip() for line in message.splitlines()]
    for marker in markers:
        if not marker:
            continue
        for line in lines:
            if not line.startswith(marker):
                continue
            rest = line[len(marker) :]
            if not rest or rest[0] == ":" or rest[0].isspace() or marker.endswith(":"):
                return True
    return False


def commit_bump(
    commit: CommitRecord,
    rules: Mapping[str, VersionBump],
    breaking_markers: Iterable[str] = DEFAULT_BREAKING_MARKERS,
) -> VersionBump:
    if commit.breaking or has_breaking_marker(commit.raw_message, breaking_markers):
        return VersionBump.MAJOR
    return rules.get(commit.type, VersionBump.NONE)


def classify(
    commits: Iterable[CommitRecord],
    rules: Mapping[str, VersionBump],
    breaking_markers: Iterable[str] = DEFAULT_BREAKING_MARKERS,
) -> VersionBump:
    """Return the maximum bump implied by any single commit (NONE if empty)."""
    markers = tuple(breaking_markers)
    result = VersionBump.NONE
    for commit in commits:
        bump = commit_bump(commit, rules, markers)
        if bump > result:
            result = bump
        if result is VersionBump.MAJOR:
            break
    return result


def unrecognized_types(
    commits: Sequence[CommitRecord],
    rules: Mapping[str, VersionBump],
) -> list[CommitRecord]:
    """Commits whose type is neither a release rule nor a known quiet type."""
    return [c for c in commits if c.type not in rules and c.type not in _QUIET_TYPES]


def parse_commit(hash: str, message: str) -> CommitRecord:
    """Parse a Conventional/Angular commit message.

    The header is `type(scope)!: subject`. A `!` before the colon marks the
    commit as breaking. A header that does not follow the convention yields a
    record with an empty type.
    """
    header = message.strip().splitlines()[0] if message.strip() else ""
    m = _HEADER_RE.match(header)
    if m is None:
        return CommitRecord(hash=hash, type="", breaking=False, raw_message=message, subject=header)

    return CommitRecord(
        hash=hash,
        type=m.group("type").lower(),
        breaking=m.group("bang") is not None,
        raw_message=message,
        scope=m.group("scope") or None,
        subject=m.group("subject").strip(),
    )
