from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from releng.ci.env import CiEnvironment
from releng.core.result import Err, Ok, Result
from releng.pipeline.context import PipelineContext
from releng.pipeline.executor import StepFailure
from releng.platform.process import run_shell
from releng.release.model import CommitRecord
from releng.vcs.git import Vcs

__all__ = [
    "ChangelogStep",
    "ExecStep",
    "ExportStep",
    "Notifier",
    "NotifyStep",
    "PublishStep",
    "Publisher",
    "ShellPublisher",
    "TagStep",
    "render_notes",
]

NO_RELEASE = "no release decided"

_EXEC_TIMEOUT_SECONDS = 10 * 60.0

_SECTIONS: tuple[tuple[str, str], ...] = (
    ("feat", "Features"),
    ("fix", "Bug Fixes"),
    ("perf", "Performance Improvements"),
    ("revert", "Reverts"),
)


class Publisher(Protocol):
    def publish(self, context: PipelineContext) -> Result[None, str]: ...


class Notifier(Protocol):
    def notify(self, message: str) -> Result[None, str]: ...


def _skip_unless_releasing(context: PipelineContext) -> str | None:
    if context.releasing:
        return None
    return NO_RELEASE


def _commit_line(c: CommitRecord) -> str:
    lines = c.raw_message.strip().splitlines()
    subject = c.subject or (lines[0] if lines else c.short_hash)
    if c.scope:
        return f"- **{c.scope}:** {subject} ({c.short_hash})"
    return f"- {subject} ({c.short_hash})"


def render_notes(context: PipelineContext) -> str:
    title = context.git_tag or context.branch
    lines: list[str] = [f"## {title}"]

    for commit_type, heading in _SECTIONS:
        matching = [c for c in context.commits if c.type == commit_type]
        if not matching:
            continue
        lines.append("")
        lines.append(f"### {heading}")
        lines.append("")
        lines.extend(_commit_line(c) for c in matching)

    breaking = [c for c in context.commits if c.breaking or c.type == "breaking"]
    if breaking:
        lines.append("")
        lines.append("### BREAKING CHANGES")
        lines.append("")
        lines.extend(_commit_line(c) for c in breaking)

    return "\n".join(lines).rstrip() + "\n"


@dataclass(frozen=True, slots=True)
class TagStep:
    vcs: Vcs
    push: bool = True
    remote: str = "origin"
    name: str = "git"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        tag = context.git_tag
        if tag is None:
            return Err(StepFailure(step=self.name, message="no version to tag"))

        created = self.vcs.create_tag(tag, f"Release {tag}")
        if isinstance(created, Err):
            return Err(
                StepFailure(
                    step=self.name,
                    message=f"failed to create tag {tag}: {created.error.message}",
                )
            )
        context.outputs["gitTag"] = tag

        if not self.push:
            return Ok(None)

        pushed = self.vcs.push_tag(tag, self.remote)
        if isinstance(pushed, Err):
            return Err(
                StepFailure(
                    step=self.name,
                    message=f"failed to push tag {tag}: {pushed.error.message}",
                    hint=f"the tag exists locally; push it with: git push {self.remote} {tag}",
                )
            )
        return Ok(None)


@dataclass(frozen=True, slots=True)
class ChangelogStep:
    """Renders release notes into the context, optionally prepending them to a file."""

    file: Path | None = None
    name: str = "changelog"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        notes = render_notes(context)
        context.notes = notes

        if self.file is None:
            return Ok(None)

        path = self.file if self.file.is_absolute() else context.cwd / self.file
        try:
            existing = path.read_text(encoding="utf-8") if path.exists() else ""
            body = notes if not existing.strip() else f"{notes}\n{existing}"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
        except OSError as e:
            return Err(
                StepFailure(step=self.name, message=f"failed to write changelog: {e}", hint=str(path))
            )
        context.outputs["changelogFile"] = str(path)
        return Ok(None)


@dataclass(frozen=True, slots=True)
class ShellPublisher:
    """Publishes by running a shell command line."""

    command: str

    def publish(self, context: PipelineContext) -> Result[None, str]:
        result = run_shell(context.render(self.command), cwd=context.cwd, timeout=_EXEC_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(result.error.detail)
        return Ok(None)


@dataclass(frozen=True, slots=True)
class PublishStep:
    publisher: Publisher
    name: str = "publish"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        result = self.publisher.publish(context)
        if isinstance(result, Err):
            return Err(StepFailure(step=self.name, message=f"publish failed: {result.error}"))
        return Ok(None)


@dataclass(frozen=True, slots=True)
class NotifyStep:
    notifier: Notifier
    message: str = "Released ${nextRelease.gitTag} on ${branch.name}"
    name: str = "notify"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        result = self.notifier.notify(context.render(self.message))
        if isinstance(result, Err):
            return Err(StepFailure(step=self.name, message=f"notification failed: {result.error}"))
        return Ok(None)


@dataclass(frozen=True, slots=True)
class ExecStep:
    """Runs shell command templates in order (e.g. prepare then publish)."""

    commands: Sequence[tuple[str, str]]
    name: str = "exec"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        for phase, template in self.commands:
            command = context.render(template)
            result = run_shell(command, cwd=context.cwd, timeout=_EXEC_TIMEOUT_SECONDS)
            if isinstance(result, Err):
                e = result.error
                return Err(
                    StepFailure(
                        step=self.name,
                        message=f"{phase} command failed (exit {e.returncode})",
                        hint=e.stderr.strip() or None,
                    )
                )
            context.outputs[f"{phase}Output"] = result.value.strip()
        return Ok(None)


@dataclass(frozen=True, slots=True)
class ExportStep:
    """Exports release values to the CI environment for later job steps."""

    env: CiEnvironment
    variables: Mapping[str, str]
    name: str = "export"

    def skip_reason(self, context: PipelineContext) -> str | None:
        return _skip_unless_releasing(context)

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]:
        for key, template in self.variables.items():
            exported = self.env.export(key, context.render(template))
            if isinstance(exported, Err):
                return Err(StepFailure(step=self.name, message=exported.error))
        return Ok(None)
