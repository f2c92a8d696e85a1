"""Branch -> release channel resolution."""

from __future__ import annotations

from collections.abc import Sequence
from fnmatch import fnmatchcase

from releng.release.model import ChannelPolicy

_GLOB_CHARS = frozenset("*?[")


def _matches(pattern: str, branch: str) -> bool:
    if _GLOB_CHARS.isdisjoint(pattern):
        return pattern == branch
    return fnmatchcase(branch, pattern)


class ChannelResolver:
    """Maps branch names to channel policies.

    Policies are tried in declaration order and the first match wins. A
    pattern is either an exact branch name or a glob such as "release/*".
    """

    def __init__(self, policies: Sequence[ChannelPolicy]) -> None:
        self._policies = tuple(policies)

    def resolve(self, branch: str) -> ChannelPolicy | None:
        """Return the channel for `branch`, or None if it is not release-eligible."""
        if not branch.strip():
            raise ValueError("branch name must not be empty")
        for policy in self._policies:
            if _matches(policy.branch_pattern, branch):
                return policy
        return None
