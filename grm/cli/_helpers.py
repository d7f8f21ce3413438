"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from grm.core.errors import ErrorCode
from grm.output.console import ConsoleProtocol
from grm.services.repo_state import SubprocessError
from grm.services.tree_walker import RecursionFailed


def exit_code_for(error: object) -> int:
    """Exit code for a fatal run error.

    Failed subprocesses and workers surface their own exit code.
    """
    match error:
        case SubprocessError(returncode=code) | RecursionFailed(returncode=code) if code > 0:
            return code
        case _:
            return int(ErrorCode.FAILURE)


def fail(console: ConsoleProtocol, error: object) -> NoReturn:
    console.error(str(error))
    raise typer.Exit(code=exit_code_for(error))
