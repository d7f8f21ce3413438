from __future__ import annotations

import atexit
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import typer

from grm.core.config import ConfigSnapshot, load_root_config
from grm.core.errors import ErrorCode
from grm.core.result import Err
from grm.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    config: ConfigSnapshot
    console: ConsoleProtocol


def _reattach_terminal() -> None:
    """Point stdin back at the terminal after the config stream was consumed."""
    try:
        tty = open("/dev/tty", encoding="utf-8")  # noqa: SIM115
    except OSError:
        pass  # no terminal: prompts will be refused
    else:
        atexit.register(tty.close)
        sys.stdin = tty


def build_context(*, config_stdin: bool = False, interactive: bool = False) -> CLIContext:
    """Load the configuration for this process.

    With `config_stdin` the snapshot is read from stdin; `interactive`
    then points stdin back at the terminal for confirmation prompts.
    """
    console = RichConsole()
    cwd = Path.cwd()

    stream: str | None = None
    if config_stdin:
        stream = sys.stdin.read()
        if interactive:
            _reattach_terminal()

    config_result = load_root_config(cwd, stream=stream)
    if isinstance(config_result, Err):
        console.error(str(config_result.error))
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return CLIContext(cwd=cwd, config=config_result.value, console=console)


def make_confirm(assume_yes: bool) -> Callable[[str], bool]:
    """Confirmation prompt for remote creation; --yes answers for the operator."""
    if assume_yes:
        return lambda _message: True

    def ask(message: str) -> bool:
        try:
            return typer.confirm(message, default=False, err=True)
        except typer.Abort:
            return False

    return ask
