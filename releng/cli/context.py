from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from releng.ci.env import detect_environment
from releng.core.config import CONFIG_FILENAME, ReleaseConfig, load_config
from releng.core.errors import ErrorCode
from releng.core.result import Err
from releng.output.console import ConsoleProtocol, RichConsole
from releng.pipeline.registry import Collaborators, ConfiguredPipeline, build_pipeline
from releng.services.release import ConsoleNotifier
from releng.vcs.git import GitVcs, Repository


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: ReleaseConfig
    pipeline: ConfiguredPipeline
    vcs: Repository
    console: ConsoleProtocol


def resolve_root(cwd: Path | None) -> Path:
    try:
        return (cwd or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --cwd: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def build_context(*, config_path: Path | None, cwd: Path | None) -> CLIContext:
    """Load config and wire collaborators. Config errors exit before anything runs."""
    root = resolve_root(cwd)
    path = config_path if config_path is not None else root / CONFIG_FILENAME
    console = RichConsole()

    loaded = load_config(path)
    if isinstance(loaded, Err):
        console.error(loaded.error.pretty())
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    vcs = GitVcs(root)
    deps = Collaborators(vcs=vcs, env=detect_environment(), notifier=ConsoleNotifier(console))
    pipeline = build_pipeline(loaded.value, deps)
    if isinstance(pipeline, Err):
        console.error(f"{path}: {pipeline.error.message}")
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(
        root=root,
        config=loaded.value,
        pipeline=pipeline.value,
        vcs=vcs,
        console=console,
    )
