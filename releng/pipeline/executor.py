"""Sequential, fail-fast pipeline execution.

Steps run one at a time in declared order. A step may skip itself when its
precondition is unmet; skipping does not abort the run. The first failure
aborts the run and every later step is reported as not run. Effects of steps
that already succeeded are kept: there is no rollback.

State machine of a run:

    PENDING -> RUNNING -> COMPLETED
                       -> ABORTED
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from releng.core.result import Err, Result
from releng.pipeline.context import PipelineContext

__all__ = [
    "PipelineResult",
    "PipelineRun",
    "PipelineState",
    "PipelineStep",
    "StepFailure",
    "StepReport",
    "StepStatus",
    "run",
]


@dataclass(frozen=True, slots=True)
class StepFailure:
    """Failure reported by a pipeline step."""

    step: str
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class PipelineStep(Protocol):
    @property
    def name(self) -> str: ...

    def skip_reason(self, context: PipelineContext) -> str | None:
        """Return why the step should be skipped, or None to run it."""
        ...

    def execute(self, context: PipelineContext) -> Result[None, StepFailure]: ...


class StepStatus(Enum):
    SUCCESS = auto()
    SKIPPED = auto()
    FAILED = auto()
    NOT_RUN = auto()
    """The run aborted before reaching the step."""

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


class PipelineState(Enum):
    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    ABORTED = auto()

    def __str__(self) -> str:
        return self.name.lower()


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.PENDING: frozenset({PipelineState.RUNNING}),
    PipelineState.RUNNING: frozenset({PipelineState.COMPLETED, PipelineState.ABORTED}),
    PipelineState.COMPLETED: frozenset(),
    PipelineState.ABORTED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class StepReport:
    name: str
    status: StepStatus
    error: str | None = None
    hint: str | None = None

    @classmethod
    def success(cls, name: str) -> StepReport:
        return cls(name=name, status=StepStatus.SUCCESS)

    @classmethod
    def skipped(cls, name: str, reason: str) -> StepReport:
        return cls(name=name, status=StepStatus.SKIPPED, error=reason)

    @classmethod
    def failed(cls, failure: StepFailure) -> StepReport:
        return cls(name=failure.step, status=StepStatus.FAILED, error=failure.message, hint=failure.hint)

    @classmethod
    def not_run(cls, name: str) -> StepReport:
        return cls(name=name, status=StepStatus.NOT_RUN)


@dataclass(frozen=True, slots=True)
class PipelineResult:
    state: PipelineState
    reports: tuple[StepReport, ...]

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.COMPLETED

    @property
    def failed_step(self) -> StepReport | None:
        for r in self.reports:
            if r.status is StepStatus.FAILED:
                return r
        return None

    def status_of(self, name: str) -> StepStatus | None:
        for r in self.reports:
            if r.name == name:
                return r.status
        return None

    def summary(self) -> str:
        failed = self.failed_step
        if failed is None:
            return f"pipeline {self.state}"
        return f"step '{failed.name}' failed: {failed.error}"


class PipelineRun:
    """One execution of a step sequence."""

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        self._steps = tuple(steps)
        self._state = PipelineState.PENDING
        self._reports: list[StepReport] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    def _transition(self, target: PipelineState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"illegal pipeline transition: {self._state} -> {target}")
        self._state = target

    def _run_step(self, step: PipelineStep, context: PipelineContext) -> StepReport:
        try:
            reason = step.skip_reason(context)
            if reason is not None:
                return StepReport.skipped(step.name, reason)
            outcome = step.execute(context)
        except Exception as e:  # noqa: BLE001
            return StepReport.failed(StepFailure(step=step.name, message=f"{type(e).__name__}: {e}"))

        if isinstance(outcome, Err):
            failure = outcome.error
            if failure.step != step.name:
                failure = StepFailure(step=step.name, message=failure.message, hint=failure.hint)
            return StepReport.failed(failure)
        return StepReport.success(step.name)

    def execute(
        self,
        context: PipelineContext,
        on_report: Callable[[StepReport], None] | None = None,
    ) -> PipelineResult:
        self._transition(PipelineState.RUNNING)

        for index, step in enumerate(self._steps):
            report = self._run_step(step, context)
            self._reports.append(report)
            if on_report is not None:
                on_report(report)

            if report.status is StepStatus.FAILED:
                self._reports.extend(StepReport.not_run(s.name) for s in self._steps[index + 1 :])
                self._transition(PipelineState.ABORTED)
                break
        else:
            self._transition(PipelineState.COMPLETED)

        return PipelineResult(state=self._state, reports=tuple(self._reports))


def run(
    steps: Sequence[PipelineStep],
    context: PipelineContext,
    on_report: Callable[[StepReport], None] | None = None,
) -> PipelineResult:
    """Run `steps` in order against `context`."""
    return PipelineRun(steps).execute(context, on_report)
