"""Release use case: resolve the branch, classify commits, decide, run steps."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from releng.core.config import ReleaseConfig
from releng.core.result import Err, Ok, Result
from releng.output.console import ConsoleProtocol
from releng.pipeline.context import PipelineContext
from releng.pipeline.executor import PipelineResult, StepReport, run
from releng.pipeline.registry import ConfiguredPipeline
from releng.release.channels import ChannelResolver
from releng.release.classifier import classify, unrecognized_types
from releng.release.decision import INITIAL_VERSION, current_version, decide
from releng.release.model import ChannelPolicy, CommitRecord, ReleaseDecision, VersionBump
from releng.release.semver import DEFAULT_TAG_FORMAT, SemVer
from releng.vcs.git import CommitSource, Vcs

__all__ = ["ConsoleNotifier", "ReleaseError", "ReleaseOutcome", "ReleasePlan", "ReleaseService"]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: Literal["invalid_input", "vcs_failed", "tag_exists"]
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    branch: str
    channel: ChannelPolicy | None
    current: SemVer
    last_tag: str | None
    commits: tuple[CommitRecord, ...]
    bump: VersionBump
    decision: ReleaseDecision
    gaps: tuple[CommitRecord, ...] = ()
    tag_format: str = DEFAULT_TAG_FORMAT

    @property
    def next_tag(self) -> str | None:
        if not self.decision.should_release:
            return None
        return self.decision.next_version.to_tag(self.tag_format)


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    plan: ReleasePlan
    pipeline: PipelineResult

    @property
    def released(self) -> bool:
        return self.pipeline.ok and self.plan.decision.should_release


@dataclass(frozen=True, slots=True)
class ConsoleNotifier:
    """Notifier that reports the release on the console."""

    console: ConsoleProtocol

    def notify(self, message: str) -> Result[None, str]:
        self.console.success(message)
        return Ok(None)


class ReleaseService:
    def __init__(
        self,
        *,
        config: ReleaseConfig,
        pipeline: ConfiguredPipeline,
        vcs: Vcs,
        commits: CommitSource,
    ) -> None:
        self._resolver = ChannelResolver(config.branches)
        self._pipeline = pipeline
        self._vcs = vcs
        self._commits = commits

    def plan(self, branch: str) -> Result[ReleasePlan, ReleaseError]:
        if not branch.strip():
            return Err(ReleaseError(kind="invalid_input", message="branch name is empty"))

        tag_format = self._pipeline.tag_format
        channel = self._resolver.resolve(branch)
        if channel is None:
            return Ok(
                ReleasePlan(
                    branch=branch,
                    channel=None,
                    current=INITIAL_VERSION,
                    last_tag=None,
                    commits=(),
                    bump=VersionBump.NONE,
                    decision=decide(INITIAL_VERSION, VersionBump.NONE, None),
                    tag_format=tag_format,
                )
            )

        tags = self._vcs.list_tags()
        if isinstance(tags, Err):
            return Err(
                ReleaseError(kind="vcs_failed", message=f"failed to list tags: {tags.error.message}")
            )
        existing = set(tags.value)

        current = current_version(tags.value, channel, tag_format=tag_format)
        last_tag = current.to_tag(tag_format)
        if last_tag not in existing:
            last_tag = None

        commits = self._commits.commits_since(last_tag)
        if isinstance(commits, Err):
            return Err(
                ReleaseError(
                    kind="vcs_failed",
                    message=f"failed to read commits: {commits.error.message}",
                )
            )

        settings = self._pipeline.analyzer
        bump = classify(commits.value, settings.rules, settings.breaking_markers)
        decision = decide(current, bump, channel)

        plan = ReleasePlan(
            branch=branch,
            channel=channel,
            current=current,
            last_tag=last_tag,
            commits=tuple(commits.value),
            bump=bump,
            decision=decision,
            gaps=tuple(unrecognized_types(commits.value, settings.rules)),
            tag_format=tag_format,
        )

        if plan.next_tag is not None and plan.next_tag in existing:
            return Err(
                ReleaseError(
                    kind="tag_exists",
                    message=f"tag already exists: {plan.next_tag}",
                    hint="another branch already released this version; merge it or delete the tag",
                )
            )
        return Ok(plan)

    def execute(
        self,
        plan: ReleasePlan,
        *,
        cwd: Path,
        on_report: Callable[[StepReport], None] | None = None,
    ) -> ReleaseOutcome:
        """Run the configured steps for an already computed plan."""
        context = PipelineContext(
            cwd=cwd,
            branch=plan.branch,
            decision=plan.decision,
            commits=list(plan.commits),
            tag_format=self._pipeline.tag_format,
        )
        result = run(self._pipeline.steps, context, on_report)
        return ReleaseOutcome(plan=plan, pipeline=result)
