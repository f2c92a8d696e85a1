from __future__ import annotations

from pathlib import Path

import typer

from releng.cli.context import build_context
from releng.output.console import Style


def check_config(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to release.toml"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Repository root (default: current directory)"),
) -> None:
    """Validate the release configuration and list the resulting pipeline."""
    ctx = build_context(config_path=config, cwd=cwd)
    console = ctx.console

    console.header("Branches")
    for policy in ctx.config.branches:
        console.print(f"{policy.branch_pattern} -> {policy.display_name}")

    console.header("Pipeline")
    rules = ", ".join(f"{t}={b}" for t, b in sorted(ctx.pipeline.analyzer.rules.items()))
    console.print(f"commit analysis: {rules}", Style.DIM)
    console.print(f"breaking markers: {', '.join(ctx.pipeline.analyzer.breaking_markers)}", Style.DIM)
    console.print(f"tag format: {ctx.pipeline.tag_format}", Style.DIM)
    for index, step in enumerate(ctx.pipeline.steps, start=1):
        console.print(f"{index}. {step.name}")

    console.success("configuration is valid")
