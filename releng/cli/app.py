from __future__ import annotations

import typer

from releng import __version__
from releng.cli.commands.config_cmd import check_config
from releng.cli.commands.release_cmd import plan, run


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command()(run)
app.command()(plan)
app.command("check-config")(check_config)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", callback=_show_version, is_eager=True
    ),
) -> None:
    pass


def main() -> None:
    app()
