"""grm-bootstrap: create the remote for one local directory.

Settings come from GRM_* environment variables only (GRM_RLOGIN,
GRM_RPATH_BASE, GRM_RPATH_TEMPLATE, GRM_CONFIG_CMD, ...).
"""

from __future__ import annotations

from pathlib import Path

import typer

from grm import __version__
from grm.cli._helpers import fail
from grm.cli.context import make_confirm
from grm.core.config import DEFAULTS, ConfigSnapshot, env_overlay
from grm.core.errors import ErrorCode
from grm.core.manifest import ManifestEntry
from grm.core.result import Err, Ok
from grm.output.console import RichConsole
from grm.services.bootstrap import RemoteBootstrapper, missing_settings, transport_command
from grm.services.repo_state import RepoContext

bootstrap_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=int(ErrorCode.OK))


@bootstrap_app.command()
def bootstrap(
    local_path: Path = typer.Argument(..., help="Existing local directory to put under version control."),
    remote_rel: str = typer.Argument(..., help="Remote path relative to RPATH_BASE."),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Create the remote without asking."),
) -> None:
    """Create a remote repository from RPATH_TEMPLATE and wire LOCAL_PATH to it."""
    console = RichConsole()
    config = ConfigSnapshot.from_mapping(DEFAULTS).merge(env_overlay())

    missing = missing_settings(config)
    if missing:
        console.error(f"missing settings: {', '.join('GRM_' + key for key in missing)}")
        raise typer.Exit(code=int(ErrorCode.MISSING_SETTINGS))

    transport = transport_command(config.get_str("RLOGIN"))
    if isinstance(transport, Err):
        console.error(transport.error)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    target = local_path.expanduser().absolute()
    if not target.is_dir():
        console.error(f"{local_path} is not a directory")
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    entry = ManifestEntry.from_fields(remote_rel, str(target))
    ctx = RepoContext.build(entry, config, Path.cwd())

    bootstrapper = RemoteBootstrapper(console=console, confirm=make_confirm(yes))
    match bootstrapper.bootstrap(ctx):
        case Err(e):
            fail(console, e)
        case Ok(_):
            pass


def main() -> None:
    bootstrap_app()
