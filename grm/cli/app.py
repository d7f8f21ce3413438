from __future__ import annotations

import typer

from grm import __version__
from grm.cli._helpers import fail
from grm.cli.context import build_context, make_confirm
from grm.core.errors import ErrorCode
from grm.core.mode import Mode
from grm.core.result import Err, Ok
from grm.services.engine import Engine, Invocation

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=int(ErrorCode.OK))


@app.command(
    context_settings={
        # everything after MODE belongs to git
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
    }
)
def grm(
    mode: Mode = typer.Argument(..., help="clone | git | set-remote | configure | list-rrel | list-rurl | list-lrel | run | new"),
    git_args: list[str] | None = typer.Argument(None, help="Arguments passed to git in git mode."),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    config_stdin: bool = typer.Option(
        False,
        "--config-stdin",
        hidden=True,
        help="Read the inherited configuration from stdin (sub-tree workers).",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Create remotes without asking."),
) -> None:
    """Clone, configure and sync every repository listed in the manifest tree."""
    ctx = build_context(config_stdin=config_stdin, interactive=mode is Mode.NEW and not yes)

    engine = Engine(
        invocation=Invocation(mode=mode, git_args=tuple(git_args or ()), assume_yes=yes),
        console=ctx.console,
        confirm=make_confirm(yes),
    )
    match engine.run(ctx.cwd, ctx.config):
        case Err(e):
            fail(ctx.console, e)
        case Ok(_):
            # only the root process reports
            if not mode.is_listing and not config_stdin:
                ctx.console.success(engine.summary.describe())


def main() -> None:
    app()
