from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from releng.release.model import CommitRecord, ReleaseDecision
from releng.release.semver import DEFAULT_TAG_FORMAT

_PLACEHOLDER_RE = re.compile(r"\$\{(nextRelease\.[A-Za-z]+|branch\.name)\}")


def _empty_commits() -> list[CommitRecord]:
    return []


def _empty_vars() -> dict[str, str]:
    return {}


@dataclass
class PipelineContext:
    """State shared by the steps of one pipeline run.

    Steps read what earlier steps produced (the decision, rendered notes) and
    may add their own entries to `outputs`.
    """

    cwd: Path
    branch: str
    decision: ReleaseDecision | None = None
    commits: list[CommitRecord] = field(default_factory=_empty_commits)
    tag_format: str = DEFAULT_TAG_FORMAT
    notes: str | None = None
    outputs: dict[str, str] = field(default_factory=_empty_vars)

    @property
    def releasing(self) -> bool:
        return self.decision is not None and self.decision.should_release

    @property
    def git_tag(self) -> str | None:
        if self.decision is None:
            return None
        return self.decision.next_version.to_tag(self.tag_format)

    def template_values(self) -> dict[str, str]:
        values = {"branch.name": self.branch}
        if self.decision is not None:
            values["nextRelease.version"] = str(self.decision.next_version)
            values["nextRelease.gitTag"] = self.git_tag or ""
            channel = self.decision.channel
            values["nextRelease.channel"] = channel.display_name if channel else ""
            values["nextRelease.notes"] = self.notes or ""
        return values

    def render(self, template: str) -> str:
        """Substitute ${nextRelease.*} and ${branch.name}; other text is left alone."""
        values = self.template_values()

        def _sub(m: re.Match[str]) -> str:
            return values.get(m.group(1), m.group(0))

        return _PLACEHOLDER_RE.sub(_sub, template)
