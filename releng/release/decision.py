from __future__ import annotations

from collections.abc import Iterable

from releng.release.model import ChannelPolicy, ReleaseDecision, VersionBump
from releng.release.semver import DEFAULT_TAG_FORMAT, SemVer, parse_tag


INITIAL_VERSION = SemVer(0, 0, 0)


def increment(version: SemVer, bump: VersionBump) -> SemVer:
    """Apply `bump` to the version triple, returning a stable version.

    When `version` is a prerelease, the bump finalises its line if the
    prerelease already sits on the bumped component (1.1.0-alpha.2 + minor ->
    1.1.0) instead of skipping past it.
    """
    pre = version.is_prerelease
    match bump:
        case VersionBump.MAJOR:
            if pre and version.minor == 0 and version.patch == 0:
                return version.finalize()
            return SemVer(version.major + 1, 0, 0)
        case VersionBump.MINOR:
            if pre and version.patch == 0:
                return version.finalize()
            return SemVer(version.major, version.minor + 1, 0)
        case VersionBump.PATCH:
            if pre:
                return version.finalize()
            return SemVer(version.major, version.minor, version.patch + 1)
        case _:
            return version


def _next_version(current: SemVer, bump: VersionBump, channel: ChannelPolicy) -> SemVer:
    label = channel.identifier
    if label is None:
        return increment(current, bump)

    if current.prerelease == label and current.prerelease_number is not None:
        return current.with_prerelease(label, current.prerelease_number + 1)

    nxt = increment(current, bump).with_prerelease(label, 0)
    if nxt <= current:
        # Another channel's prerelease on the same triple outranks the seed.
        nxt = increment(current.finalize(), bump).with_prerelease(label, 0)
    return nxt


def decide(current: SemVer, bump: VersionBump, channel: ChannelPolicy | None) -> ReleaseDecision:
    """Decide whether a release fires and which version it produces.

    Never raises for a channel accepted by `parse_config`. An unresolved
    channel or a NONE bump yields a decision that keeps `current` and does not
    release.
    """
    if channel is None or bump is VersionBump.NONE:
        return ReleaseDecision(should_release=False, next_version=current, channel=channel)

    nxt = _next_version(current, bump, channel)
    return ReleaseDecision(should_release=nxt != current, next_version=nxt, channel=channel)


def current_version(
    tags: Iterable[str],
    channel: ChannelPolicy,
    *,
    tag_format: str = DEFAULT_TAG_FORMAT,
) -> SemVer:
    """Derive the channel's current version from existing release tags.

    Stable channels only see stable tags. Prerelease channels see stable tags
    plus the tags of their own prerelease line; other channels' prereleases are
    ignored. Non-version tags are skipped. Defaults to 0.0.0.
    """
    label = channel.identifier
    candidates: list[SemVer] = []
    for tag in tags:
        v = parse_tag(tag, tag_format)
        if v is None:
            continue
        if v.prerelease is None or (label is not None and v.prerelease == label):
            candidates.append(v)

    if not candidates:
        return INITIAL_VERSION
    return max(candidates)
