# SPDX-License-Identifier: MIT
"""Create a remote repository for an existing local directory ("new" mode).

The remote side is driven by a small POSIX shell script piped into a
transport: `ssh HOST sh -s` for `ssh://` logins, a local `sh -s` for
`file://` logins. The script leaves an existing remote repository alone,
refuses to clobber anything else, and otherwise copies RPATH_TEMPLATE into
place (or creates a bare repository when the template is empty).
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from pathlib import Path

from grm.core.config import ConfigSnapshot
from grm.core.remote import bootstrap_target, remote_url
from grm.core.result import Err, Ok, Result
from grm.git.repository import Repository
from grm.output.console import ConsoleProtocol
from grm.platform.process import run_silent
from grm.services.repo_state import RepoContext, SubprocessError, run_config_cmd

__all__ = [
    "DEFAULT_LOGIN",
    "EXIT_IS_FILE",
    "EXIT_NOT_REPO",
    "EXIT_OTHER_FILETYPE",
    "REQUIRED_SETTINGS",
    "RemoteBootstrapper",
    "missing_settings",
    "origin_url",
    "remote_script",
    "transport_command",
]

REQUIRED_SETTINGS = ("RPATH_TEMPLATE", "RLOGIN", "RPATH_BASE")
DEFAULT_LOGIN = "ssh://localhost"

EXIT_NOT_REPO = 90
EXIT_IS_FILE = 91
EXIT_OTHER_FILETYPE = 92

_EXIT_MESSAGES = {
    EXIT_NOT_REPO: "exists but is not a git repository",
    EXIT_IS_FILE: "exists as a regular file",
    EXIT_OTHER_FILETYPE: "exists as a special file (symlink, device, pipe or socket)",
}


def missing_settings(config: ConfigSnapshot) -> list[str]:
    """Required keys that are not defined at all (empty values are fine)."""
    return [key for key in REQUIRED_SETTINGS if not config.defined(key)]


def transport_command(login: str) -> Result[list[str], str]:
    """Command that runs a shell script fed on stdin at the remote end."""
    login = login or DEFAULT_LOGIN
    if login.startswith("file://"):
        return Ok(["sh", "-s"])
    if login.startswith("ssh://"):
        host = login.removeprefix("ssh://").strip("/")
        if not host:
            return Err(f"no host in RLOGIN {login!r}")
        return Ok(["ssh", host, "sh", "-s"])
    return Err(f"cannot create remotes through {login!r}; use ssh://[user@]host or file://")


def origin_url(config: ConfigSnapshot, remote_rel: str) -> str:
    """URL of the created remote, as seen from the local repository."""
    login = config.get_str("RLOGIN") or DEFAULT_LOGIN
    return remote_url(config.with_value("RLOGIN", login), remote_rel)


def remote_script(target: str, template: str) -> str:
    return f"""set -e
TARGET={shlex.quote(target)}
TEMPLATE={shlex.quote(template)}

if [ -d "$TARGET" ]; then
    if git -C "$TARGET" rev-parse --git-dir >/dev/null 2>&1; then
        exit 0
    fi
    exit {EXIT_NOT_REPO}
elif [ -f "$TARGET" ]; then
    exit {EXIT_IS_FILE}
elif [ -e "$TARGET" ] || [ -L "$TARGET" ]; then
    exit {EXIT_OTHER_FILETYPE}
fi

mkdir -p "$(dirname "$TARGET")"
if [ -z "$TEMPLATE" ]; then
    git init --bare -q "$TARGET"
else
    cp -a --reflink=auto "$TEMPLATE" "$TARGET"
fi
"""


class RemoteBootstrapper:
    """Create the remote for a local directory and wire it up as `origin`."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        confirm: Callable[[str], bool] | None = None,
        repo_factory: Callable[[Path], Repository] = Repository,
    ) -> None:
        self._console = console
        self._confirm = confirm
        self._repo_factory = repo_factory

    def bootstrap(self, ctx: RepoContext) -> Result[bool, SubprocessError]:
        """Returns Ok(False) when the entry was skipped (settings, refusal)."""
        config = ctx.config

        missing = missing_settings(config)
        if missing:
            self._console.error(f"{ctx.display_path}: cannot create remote, {', '.join(missing)} not set")
            return Ok(False)

        transport = transport_command(config.get_str("RLOGIN"))
        if isinstance(transport, Err):
            self._console.error(f"{ctx.display_path}: {transport.error}")
            return Ok(False)

        target = bootstrap_target(config, ctx.entry.remote_rel)
        if self._confirm is None:
            self._console.error("Cannot prompt for confirmation (no prompt available)")
            return Ok(False)
        if not self._confirm(f"About to create remote repo '{target}'; are you sure?"):
            self._console.print("(aborted)")
            return Ok(False)

        created = self._create_remote(transport.value, target, config.get_str("RPATH_TEMPLATE"))
        if isinstance(created, Err):
            return created

        return self._wire_local(ctx, origin_url(config, ctx.entry.remote_rel)).map(lambda _: True)

    def _create_remote(self, transport: list[str], target: str, template: str) -> Result[None, SubprocessError]:
        result = run_silent(transport, cwd=Path.cwd(), input_text=remote_script(target, template))
        if isinstance(result, Err):
            code = result.error.returncode
            detail = _EXIT_MESSAGES.get(code, f"remote script exited with {code}")
            return Err(SubprocessError(operation="create remote", message=f"{target} {detail}", returncode=code))
        self._console.success(f"remote {target} ready")
        return Ok(None)

    def _wire_local(self, ctx: RepoContext, url: str) -> Result[None, SubprocessError]:
        repo = self._repo_factory(ctx.target)
        is_new = not repo.is_root()

        if is_new:
            initialized = repo.init()
            if isinstance(initialized, Err):
                return Err(SubprocessError.from_git(initialized.error))

        configured = run_config_cmd(ctx.config, ctx.target, ctx.media_path)
        if isinstance(configured, Err):
            return configured

        match repo.has_remote("origin"):
            case Err(e):
                return Err(SubprocessError.from_git(e))
            case Ok(True):
                wired = repo.set_remote_url("origin", url)
                if isinstance(wired, Ok):
                    wired = repo.fetch("origin")
            case Ok(_):
                wired = repo.add_remote("origin", url)
        if isinstance(wired, Err):
            return Err(SubprocessError.from_git(wired.error))

        if not is_new:
            return Ok(None)

        branch = repo.remote_default_branch("origin")
        if branch is None:
            self._console.info(f"{ctx.display_path}: remote has no branches yet, nothing to check out")
            return Ok(None)

        checked_out = repo.checkout(branch)
        if isinstance(checked_out, Err):
            return Err(SubprocessError.from_git(checked_out.error))
        self._console.success(f"{ctx.display_path} tracks origin/{branch}")
        return Ok(None)
