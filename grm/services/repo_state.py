# SPDX-License-Identifier: MIT
"""Per-entry repository state machine.

For every in-scope manifest entry the machine observes what is on disk at
the entry's local path and decides what to do:

| observed            | list-*  | new                | other modes                      |
|---------------------|---------|--------------------|----------------------------------|
| missing             | listing | "does not exist"   | clone, configure, checkout       |
| not a directory     | listing | "not a directory"  | "not a directory"                |
| repository root     | listing | "already exists"   | set remote, configure, git args  |
| plain directory     | listing | bootstrap          | "not a Git repository"           |

Problems with a single entry are reported and the run continues; a failing
git or hook subprocess aborts the whole invocation.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from grm.core.config import ConfigSnapshot
from grm.core.manifest import ManifestEntry
from grm.core.mode import (
    MODE_CLONE,
    MODE_CONFIGURE,
    MODE_GIT,
    MODE_LIST_LREL,
    MODE_LIST_RREL,
    MODE_LIST_RURL,
    MODE_NEW,
    MODE_SET_REMOTE,
)
from grm.core.paths import cat_path
from grm.core.remote import remote_path, remote_url
from grm.core.result import Err, Ok, Result
from grm.git.repository import GitError, Repository
from grm.output.console import ConsoleProtocol, Style
from grm.platform.process import run_silent

if TYPE_CHECKING:
    from grm.services.bootstrap import RemoteBootstrapper

__all__ = [
    "EntryOutcome",
    "NotARepoError",
    "PathError",
    "RepoContext",
    "RepoState",
    "RepoStateMachine",
    "RepositoryLike",
    "SubprocessError",
    "run_config_cmd",
]


# -----------------------------------------------------------------------------
# Error Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SubprocessError:
    """A git or hook subprocess failed; fatal to the invocation."""

    operation: str
    message: str
    returncode: int = 1

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"

    @classmethod
    def from_git(cls, error: GitError) -> SubprocessError:
        return cls(operation=f"git {error.command}", message=error.message, returncode=error.returncode)


@dataclass(frozen=True, slots=True)
class PathError:
    """Entry path is missing or not a directory; the entry is skipped."""

    display_path: str
    problem: str

    def __str__(self) -> str:
        return f"{self.display_path} {self.problem}"


@dataclass(frozen=True, slots=True)
class NotARepoError:
    """Entry path is a directory but not a working copy root."""

    display_path: str

    def __str__(self) -> str:
        return f"{self.display_path} is not a Git repository"


# -----------------------------------------------------------------------------
# Data Types
# -----------------------------------------------------------------------------


class RepoState(Enum):
    MISSING = auto()
    NOT_A_DIRECTORY = auto()
    REPO_ROOT = auto()
    PLAIN_DIRECTORY = auto()


class EntryOutcome(StrEnum):
    LISTED = "listed"
    CLONED = "cloned"
    UPDATED = "updated"
    BOOTSTRAPPED = "bootstrapped"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class RepoContext:
    """Everything resolved for one manifest entry.

    `local_path` and `media_path` stay as written (after config roots are
    applied) for display; `target` is the absolute working copy location.
    """

    entry: ManifestEntry
    config: ConfigSnapshot
    local_path: str
    target: Path
    remote_path: str
    remote_url: str
    media_path: str
    display_path: str

    @classmethod
    def build(cls, entry: ManifestEntry, config: ConfigSnapshot, base_dir: Path) -> RepoContext:
        local = cat_path(config.get_str("LOCAL_DIR"), entry.local_rel)
        return cls(
            entry=entry,
            config=config,
            local_path=local,
            target=base_dir / local,
            remote_path=remote_path(config, entry.remote_rel),
            remote_url=remote_url(config, entry.remote_rel),
            media_path=cat_path(
                config.get_str("GM_BASE_PATH"), config.get_str("GM_DIR"), entry.media_rel
            ),
            display_path=cat_path(config.get_str("RECURSE_PREFIX"), local),
        )


class RepositoryLike(Protocol):
    """The slice of Repository the state machine drives."""

    path: Path

    def is_root(self) -> bool: ...

    def clone_no_checkout(self, url: str) -> Result[None, GitError]: ...

    def checkout(self, ref: str | None = None, *, force: bool = False) -> Result[None, GitError]: ...

    def has_remote(self, name: str) -> Result[bool, GitError]: ...

    def set_remote_url(self, name: str, url: str) -> Result[None, GitError]: ...

    def add_remote(self, name: str, url: str) -> Result[None, GitError]: ...

    def passthrough(self, args: list[str]) -> Result[None, GitError]: ...


type RepoFactory = Callable[[Path], RepositoryLike]


# -----------------------------------------------------------------------------
# Config hook
# -----------------------------------------------------------------------------


def run_config_cmd(config: ConfigSnapshot, repo_dir: Path, media_path: str) -> Result[None, SubprocessError]:
    """Run CONFIG_CMD with the quoted media path through the operator's shell."""
    command = config.get_str("CONFIG_CMD")
    if not command:
        return Ok(None)

    shell = os.environ.get("SHELL") or "sh"
    full = f"{command} {shlex.quote(media_path)}"
    result = run_silent([shell, "-c", full], cwd=repo_dir)
    if isinstance(result, Err):
        return Err(
            SubprocessError(
                operation="CONFIG_CMD",
                message=f"{full!r} exited with {result.error.returncode}",
                returncode=result.error.returncode,
            )
        )
    return Ok(None)


# -----------------------------------------------------------------------------
# State machine
# -----------------------------------------------------------------------------


def _listing_flag(config: ConfigSnapshot) -> str | None:
    for key in (MODE_LIST_RREL, MODE_LIST_LREL, MODE_LIST_RURL):
        if config.get_bool(key):
            return key
    return None


class RepoStateMachine:
    """Decide and execute the action for one manifest entry at a time."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        git_args: Sequence[str] = (),
        bootstrapper: RemoteBootstrapper | None = None,
        repo_factory: RepoFactory = Repository,
    ) -> None:
        self._console = console
        self._git_args = list(git_args)
        self._bootstrapper = bootstrapper
        self._repo_factory = repo_factory

    def observe(self, ctx: RepoContext) -> RepoState:
        target = ctx.target
        if not target.exists() and not target.is_symlink():
            return RepoState.MISSING
        if not target.is_dir():
            return RepoState.NOT_A_DIRECTORY
        if self._repo_factory(target).is_root():
            return RepoState.REPO_ROOT
        return RepoState.PLAIN_DIRECTORY

    def process(self, ctx: RepoContext) -> Result[EntryOutcome, SubprocessError]:
        config = ctx.config

        listing = _listing_flag(config)
        if listing is not None:
            self._emit_listing(ctx, listing)
            return Ok(EntryOutcome.LISTED)

        state = self.observe(ctx)
        if config.get_bool("OPT_DEBUG_PRIMITIVES"):
            self._console.debug(f"{ctx.display_path}: {state.name.lower()}")

        if config.get_bool(MODE_NEW):
            return self._process_new(ctx, state)

        match state:
            case RepoState.MISSING:
                if not config.get_bool(MODE_CLONE):
                    return self._skip(PathError(ctx.display_path, "does not exist"))
                return self._clone(ctx)
            case RepoState.NOT_A_DIRECTORY:
                return self._skip(PathError(ctx.display_path, "is not a directory"))
            case RepoState.PLAIN_DIRECTORY:
                return self._skip(NotARepoError(ctx.display_path))
            case RepoState.REPO_ROOT:
                return self._update(ctx)

    def _process_new(self, ctx: RepoContext, state: RepoState) -> Result[EntryOutcome, SubprocessError]:
        match state:
            case RepoState.MISSING:
                return self._skip(PathError(ctx.display_path, "does not exist"))
            case RepoState.NOT_A_DIRECTORY:
                return self._skip(PathError(ctx.display_path, "is not a directory"))
            case RepoState.REPO_ROOT:
                self._console.print(f"{ctx.display_path} already exists (skipping)", Style.DIM)
                return Ok(EntryOutcome.SKIPPED)
            case RepoState.PLAIN_DIRECTORY:
                if self._bootstrapper is None:
                    return self._skip(NotARepoError(ctx.display_path))
                self._console.header(f"{ctx.display_path}: creating remote")
                result = self._bootstrapper.bootstrap(ctx)
                if isinstance(result, Err):
                    return result
                return Ok(EntryOutcome.BOOTSTRAPPED if result.value else EntryOutcome.SKIPPED)

    def _emit_listing(self, ctx: RepoContext, flag: str) -> None:
        prefix = ctx.config.get_str("RECURSE_PREFIX")
        match flag:
            case "MODE_LIST_RREL":
                self._console.line(cat_path(prefix, ctx.remote_path))
            case "MODE_LIST_LREL":
                self._console.line(cat_path(prefix, ctx.local_path))
            case _:
                self._console.line(ctx.remote_url)

    def _skip(self, problem: PathError | NotARepoError) -> Result[EntryOutcome, SubprocessError]:
        self._console.error(str(problem))
        return Ok(EntryOutcome.SKIPPED)

    def _clone(self, ctx: RepoContext) -> Result[EntryOutcome, SubprocessError]:
        self._console.header(f"{ctx.display_path}: cloning {ctx.remote_url}")
        repo = self._repo_factory(ctx.target)

        cloned = repo.clone_no_checkout(ctx.remote_url)
        if isinstance(cloned, Err):
            return Err(SubprocessError.from_git(cloned.error))

        configured = run_config_cmd(ctx.config, ctx.target, ctx.media_path)
        if isinstance(configured, Err):
            return configured

        checked_out = repo.checkout(force=True)
        if isinstance(checked_out, Err):
            return Err(SubprocessError.from_git(checked_out.error))

        self._console.success(f"{ctx.display_path} cloned")
        return Ok(EntryOutcome.CLONED)

    def _update(self, ctx: RepoContext) -> Result[EntryOutcome, SubprocessError]:
        config = ctx.config
        self._console.header(f"{ctx.display_path} exists")
        repo = self._repo_factory(ctx.target)

        if config.get_bool(MODE_SET_REMOTE):
            result = self._set_remote(repo, ctx.remote_url)
            if isinstance(result, Err):
                return result

        if config.get_bool(MODE_CONFIGURE):
            configured = run_config_cmd(config, ctx.target, ctx.media_path)
            if isinstance(configured, Err):
                return configured

        if config.get_bool(MODE_GIT) and self._git_args:
            passed = repo.passthrough(self._git_args)
            if isinstance(passed, Err):
                return Err(SubprocessError.from_git(passed.error))

        return Ok(EntryOutcome.UPDATED)

    def _set_remote(self, repo: RepositoryLike, url: str) -> Result[None, SubprocessError]:
        match repo.has_remote("origin"):
            case Err(e):
                return Err(SubprocessError.from_git(e))
            case Ok(True):
                result = repo.set_remote_url("origin", url)
            case Ok(_):
                self._console.info("adding remote origin")
                result = repo.add_remote("origin", url)

        if isinstance(result, Err):
            return Err(SubprocessError.from_git(result.error))
        return Ok(None)
