from __future__ import annotations

import pytest

from releng.release.decision import INITIAL_VERSION, current_version, decide, increment
from releng.release.model import ChannelPolicy, VersionBump
from releng.release.semver import SemVer

STABLE = ChannelPolicy(branch_pattern="main")
ALPHA = ChannelPolicy(branch_pattern="alpha", prerelease=True)
BETA = ChannelPolicy(branch_pattern="next", prerelease=True, tag_name="beta")


def test_patch_on_stable() -> None:
    d = decide(SemVer(1, 2, 3), VersionBump.PATCH, STABLE)
    assert d.should_release is True
    assert d.next_version == SemVer(1, 2, 4)
    assert d.channel == STABLE


def test_major_on_stable_zeroes_lower_components() -> None:
    d = decide(SemVer(1, 2, 3), VersionBump.MAJOR, STABLE)
    assert d.should_release is True
    assert d.next_version == SemVer(2, 0, 0)


def test_minor_on_stable_zeroes_patch() -> None:
    assert decide(SemVer(1, 2, 3), VersionBump.MINOR, STABLE).next_version == SemVer(1, 3, 0)


def test_none_bump_keeps_version() -> None:
    d = decide(SemVer(1, 2, 3), VersionBump.NONE, STABLE)
    assert d.should_release is False
    assert d.next_version == SemVer(1, 2, 3)


def test_unresolved_channel_short_circuits() -> None:
    d = decide(SemVer(1, 2, 3), VersionBump.MAJOR, None)
    assert d.should_release is False
    assert d.next_version == SemVer(1, 2, 3)
    assert d.channel is None


def test_decide_is_idempotent() -> None:
    args = (SemVer(1, 2, 3, "alpha", 1), VersionBump.MINOR, ALPHA)
    assert decide(*args) == decide(*args)


@pytest.mark.parametrize("bump", [VersionBump.PATCH, VersionBump.MINOR, VersionBump.MAJOR])
@pytest.mark.parametrize(
    "current",
    [SemVer(0, 0, 0), SemVer(1, 2, 3), SemVer(1, 3, 0, "alpha", 2), SemVer(2, 0, 0, "beta", 0)],
)
@pytest.mark.parametrize("channel", [STABLE, ALPHA, BETA])
def test_next_version_is_strictly_greater(
    bump: VersionBump, current: SemVer, channel: ChannelPolicy
) -> None:
    d = decide(current, bump, channel)
    assert d.next_version > current
    assert d.should_release is True
    assert d.next_version.is_prerelease == channel.prerelease


class TestPrereleaseChannel:
    def test_first_release_seeds_counter_at_zero(self) -> None:
        d = decide(SemVer(1, 2, 3), VersionBump.MINOR, ALPHA)
        assert d.next_version == SemVer(1, 3, 0, "alpha", 0)

    def test_existing_line_increments_counter(self) -> None:
        d = decide(SemVer(1, 3, 0, "alpha", 0), VersionBump.PATCH, ALPHA)
        assert d.next_version == SemVer(1, 3, 0, "alpha", 1)

    def test_existing_line_keeps_triple_on_major(self) -> None:
        d = decide(SemVer(1, 3, 0, "alpha", 4), VersionBump.MAJOR, ALPHA)
        assert d.next_version == SemVer(1, 3, 0, "alpha", 5)

    def test_explicit_tag_name_is_the_label(self) -> None:
        d = decide(SemVer(2, 0, 0), VersionBump.PATCH, BETA)
        assert d.next_version == SemVer(2, 0, 1, "beta", 0)

    def test_other_channel_line_is_not_continued(self) -> None:
        d = decide(SemVer(1, 3, 0, "beta", 2), VersionBump.PATCH, ALPHA)
        assert d.next_version.prerelease == "alpha"
        assert d.next_version.prerelease_number == 0
        assert d.next_version > SemVer(1, 3, 0, "beta", 2)


class TestIncrement:
    def test_stable_promotion_finalises_matching_line(self) -> None:
        assert increment(SemVer(1, 1, 0, "alpha", 3), VersionBump.MINOR) == SemVer(1, 1, 0)
        assert increment(SemVer(2, 0, 0, "alpha", 0), VersionBump.MAJOR) == SemVer(2, 0, 0)
        assert increment(SemVer(1, 0, 1, "alpha", 0), VersionBump.PATCH) == SemVer(1, 0, 1)

    def test_stable_promotion_moves_past_smaller_line(self) -> None:
        assert increment(SemVer(1, 0, 1, "alpha", 0), VersionBump.MINOR) == SemVer(1, 1, 0)
        assert increment(SemVer(1, 1, 0, "alpha", 0), VersionBump.MAJOR) == SemVer(2, 0, 0)

    def test_none_is_identity(self) -> None:
        assert increment(SemVer(1, 2, 3), VersionBump.NONE) == SemVer(1, 2, 3)


class TestCurrentVersion:
    TAGS = ["v1.0.0", "v1.2.3", "v1.3.0-alpha.0", "v1.3.0-alpha.1", "v2.0.0-beta.0", "nightly"]

    def test_stable_channel_ignores_prereleases(self) -> None:
        assert current_version(self.TAGS, STABLE) == SemVer(1, 2, 3)

    def test_prerelease_channel_sees_its_own_line(self) -> None:
        assert current_version(self.TAGS, ALPHA) == SemVer(1, 3, 0, "alpha", 1)

    def test_prerelease_channel_ignores_other_lines(self) -> None:
        assert current_version(["v1.2.3", "v1.3.0-alpha.1"], BETA) == SemVer(1, 2, 3)

    def test_stable_release_supersedes_prerelease_line(self) -> None:
        assert current_version(["v1.3.0-alpha.1", "v1.3.0"], ALPHA) == SemVer(1, 3, 0)

    def test_no_tags(self) -> None:
        assert current_version([], STABLE) == INITIAL_VERSION

    def test_custom_tag_format(self) -> None:
        tags = ["release-1.0.0", "v9.9.9"]
        assert current_version(tags, STABLE, tag_format="release-${version}") == SemVer(1, 0, 0)
