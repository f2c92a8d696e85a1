from __future__ import annotations

import re
from dataclasses import dataclass


_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+)\.(0|[1-9]\d*))?$"
)

_LABEL_RE = re.compile(r"^[0-9A-Za-z-]+$")

DEFAULT_TAG_FORMAT = "v${version}"
_VERSION_PLACEHOLDER = "${version}"


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    prerelease_number: int | None = None

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"negative version component: {self.triple}")
        if (self.prerelease is None) != (self.prerelease_number is None):
            raise ValueError("prerelease label and counter must be set together")
        if self.prerelease is not None and not is_prerelease_label(self.prerelease):
            raise ValueError(f"invalid prerelease label: {self.prerelease!r}")
        if self.prerelease_number is not None and self.prerelease_number < 0:
            raise ValueError(f"negative prerelease counter: {self.prerelease_number}")

    @property
    def triple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def _sort_key(self) -> tuple[int, int, int, int, str, int]:
        # A prerelease has lower precedence than the release of the same triple.
        if self.prerelease is None:
            return (*self.triple, 1, "", 0)
        return (*self.triple, 0, self.prerelease, self.prerelease_number or 0)

    def __lt__(self, other: SemVer) -> bool:
        return self._sort_key() < other._sort_key()

    def __le__(self, other: SemVer) -> bool:
        return self._sort_key() <= other._sort_key()

    def __gt__(self, other: SemVer) -> bool:
        return self._sort_key() > other._sort_key()

    def __ge__(self, other: SemVer) -> bool:
        return self._sort_key() >= other._sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease is None:
            return base
        return f"{base}-{self.prerelease}.{self.prerelease_number}"

    def finalize(self) -> SemVer:
        """Drop the prerelease suffix."""
        return SemVer(self.major, self.minor, self.patch)

    def with_prerelease(self, label: str, number: int) -> SemVer:
        return SemVer(self.major, self.minor, self.patch, label, number)

    def to_tag(self, tag_format: str = DEFAULT_TAG_FORMAT) -> str:
        return tag_format.replace(_VERSION_PLACEHOLDER, str(self))


def parse_version(text: str) -> SemVer | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    label = m.group(4)
    number = m.group(5)
    return SemVer(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        label,
        int(number) if number is not None else None,
    )


def parse_tag(tag: str, tag_format: str = DEFAULT_TAG_FORMAT) -> SemVer | None:
    """Parse a VCS tag written with `tag_format` (e.g. "v${version}")."""
    prefix, sep, suffix = tag_format.partition(_VERSION_PLACEHOLDER)
    if not sep:
        return None
    if not tag.startswith(prefix) or not tag.endswith(suffix):
        return None
    end = len(tag) - len(suffix) if suffix else len(tag)
    return parse_version(tag[len(prefix) : end])


def is_prerelease_label(label: str) -> bool:
    """True for a single SemVer identifier usable as `<label>.<n>` (no dots)."""
    return _LABEL_RE.match(label) is not None
