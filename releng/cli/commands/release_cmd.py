from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from releng.cli.context import CLIContext, build_context
from releng.core.errors import ErrorCode
from releng.core.result import Err
from releng.output.console import ConsoleProtocol, Style
from releng.pipeline.executor import PipelineResult, StepReport, StepStatus
from releng.services.release import ReleaseError, ReleasePlan, ReleaseService


def _exit(console: ConsoleProtocol, err: ReleaseError) -> NoReturn:
    console.error(err.message)
    if err.hint:
        console.print(f"hint: {err.hint}", Style.DIM)
    code = ErrorCode.ENV_ERROR if err.kind == "vcs_failed" else ErrorCode.RELEASE_FAILED
    raise typer.Exit(code=int(code))


def _resolve_branch(ctx: CLIContext, branch: str | None) -> str:
    if branch is not None:
        if not branch.strip():
            ctx.console.error("--branch must not be empty")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        return branch.strip()

    current = ctx.vcs.current_branch()
    if isinstance(current, Err):
        ctx.console.error(f"cannot determine branch: {current.error.message}")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    return current.value


def _service(ctx: CLIContext) -> ReleaseService:
    return ReleaseService(config=ctx.config, pipeline=ctx.pipeline, vcs=ctx.vcs, commits=ctx.vcs)


def print_plan(console: ConsoleProtocol, plan: ReleasePlan) -> None:
    console.kv("branch", plan.branch)
    if plan.channel is None:
        console.info(f"branch '{plan.branch}' is not a release branch")
        return

    console.kv("channel", plan.channel.display_name)
    console.kv("current", plan.last_tag or f"{plan.current} (no release yet)")
    console.kv("commits", str(len(plan.commits)))
    console.kv("bump", str(plan.bump))
    for commit in plan.gaps:
        label = commit.type or "unparsed"
        console.warning(f"{commit.short_hash}: unrecognized commit type '{label}' (no release impact)")

    if plan.next_tag is None:
        return
    console.kv("next", plan.next_tag)


def print_report(console: ConsoleProtocol, report: StepReport) -> None:
    match report.status:
        case StepStatus.SUCCESS:
            console.success(report.name)
        case StepStatus.SKIPPED:
            console.print(f"- {report.name}: skipped ({report.error})", Style.DIM)
        case StepStatus.FAILED:
            console.error(f"{report.name}: {report.error}")
            if report.hint:
                console.print(f"hint: {report.hint}", Style.DIM)
        case StepStatus.NOT_RUN:
            console.print(f"- {report.name}: not run", Style.DIM)


def _finish(console: ConsoleProtocol, plan: ReleasePlan, result: PipelineResult) -> None:
    for report in result.reports:
        if report.status is StepStatus.NOT_RUN:
            print_report(console, report)

    if not result.ok:
        console.error(f"release aborted: {result.summary()}")
        raise typer.Exit(code=int(ErrorCode.RELEASE_FAILED))

    if plan.next_tag is None:
        console.success("no release needed")
        return
    console.success(f"released {plan.next_tag}")


def run(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to release.toml"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch to release (default: current)"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Repository root (default: current directory)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute the release without running steps"),
) -> None:
    """Decide the next release and run the configured pipeline."""
    ctx = build_context(config_path=config, cwd=cwd)
    name = _resolve_branch(ctx, branch)

    service = _service(ctx)

    ctx.console.header("Release")
    planned = service.plan(name)
    if isinstance(planned, Err):
        _exit(ctx.console, planned.error)
    plan = planned.value
    print_plan(ctx.console, plan)

    if dry_run:
        if plan.next_tag is None:
            ctx.console.success("no release needed")
        else:
            ctx.console.info(f"dry run: would release {plan.next_tag}")
        return

    ctx.console.header("Steps")
    outcome = service.execute(plan, cwd=ctx.root, on_report=lambda r: print_report(ctx.console, r))
    _finish(ctx.console, plan, outcome.pipeline)


def plan(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to release.toml"),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch to plan (default: current)"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Repository root (default: current directory)"),
) -> None:
    """Show the release that would be made, without side effects."""
    ctx = build_context(config_path=config, cwd=cwd)
    name = _resolve_branch(ctx, branch)

    planned = _service(ctx).plan(name)
    if isinstance(planned, Err):
        _exit(ctx.console, planned.error)
    print_plan(ctx.console, planned.value)
    if planned.value.next_tag is None:
        ctx.console.success("no release needed")
