# SPDX-License-Identifier: MIT
"""Process one manifest and the tree below it.

The engine is what every grm process runs, root or sub-tree worker:

1. find the nearest manifest (LIST_FN) at or above the start directory
2. read it, applying config assignments in file order
3. run the state machine for each entry inside the tree filter
4. hand nested manifests to workers
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from grm.core.config import ConfigError, ConfigSnapshot, require_list_fn
from grm.core.manifest import DEFAULT_SEPARATOR, ConfigAssignment, ManifestEntry, ManifestError, read_manifest
from grm.core.mode import Mode
from grm.core.paths import is_within
from grm.core.result import Err, Ok, Result
from grm.git.repository import Repository
from grm.output.console import ConsoleProtocol
from grm.services.bootstrap import RemoteBootstrapper
from grm.services.repo_state import EntryOutcome, RepoContext, RepoFactory, RepoStateMachine, SubprocessError
from grm.services.tree_walker import InProcessWorker, RecursionFailed, SubprocessWorker, TreeWalker, Worker

__all__ = [
    "Engine",
    "Invocation",
    "RunError",
    "RunSummary",
    "find_manifest_dir",
]

type RunError = ConfigError | ManifestError | SubprocessError | RecursionFailed


def _no_args() -> tuple[str, ...]:
    return ()


def _empty_outcomes() -> dict[EntryOutcome, int]:
    return {}


@dataclass(frozen=True, slots=True)
class Invocation:
    """What the command line asked for."""

    mode: Mode
    git_args: tuple[str, ...] = field(default_factory=_no_args)
    assume_yes: bool = False


@dataclass(slots=True)
class RunSummary:
    """Per-process tally of entry outcomes."""

    outcomes: dict[EntryOutcome, int] = field(default_factory=_empty_outcomes)
    workers: int = 0

    def add(self, outcome: EntryOutcome) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def describe(self) -> str:
        """One-line tally, e.g. `2 cloned, 1 skipped, 1 sub-tree`."""
        parts = [f"{self.outcomes[outcome]} {outcome}" for outcome in EntryOutcome if self.outcomes.get(outcome)]
        if self.workers:
            parts.append(f"{self.workers} sub-tree" + ("s" if self.workers > 1 else ""))
        return ", ".join(parts) or "nothing to do"


def find_manifest_dir(start: Path, list_fn: str) -> Result[Path, ConfigError]:
    """Nearest directory at or above `start` holding the manifest."""
    for parent in (start, *start.parents):
        if (parent / list_fn).is_file():
            return Ok(parent)
    return Err(ConfigError(f"{list_fn} not found in {start} or any parent directory"))


class Engine:
    """Run an invocation against a manifest tree."""

    def __init__(
        self,
        *,
        invocation: Invocation,
        console: ConsoleProtocol,
        confirm: Callable[[str], bool] | None = None,
        worker: Worker | None = None,
        in_process: bool = False,
        repo_factory: RepoFactory = Repository,
    ) -> None:
        self._invocation = invocation
        self._console = console
        self.summary = RunSummary()

        if worker is None:
            if in_process:
                worker = InProcessWorker(self.run_tree)
            else:
                worker = SubprocessWorker(
                    invocation.mode,
                    invocation.git_args,
                    assume_yes=invocation.assume_yes,
                )
        self._worker = worker

        bootstrapper = None
        if invocation.mode is Mode.NEW:
            bootstrapper = RemoteBootstrapper(console=console, confirm=confirm)
        self._machine = RepoStateMachine(
            console=console,
            git_args=invocation.git_args,
            bootstrapper=bootstrapper,
            repo_factory=repo_factory,
        )

    def run(self, start: Path, config: ConfigSnapshot) -> Result[None, RunError]:
        """Entry point of a process: locate the manifest above `start`.

        The tree filter defaults to `start`, so running grm in a
        sub-directory only touches the repositories below it.
        """
        list_fn = require_list_fn(config)
        if isinstance(list_fn, Err):
            return list_fn

        found = find_manifest_dir(start, list_fn.value)
        if isinstance(found, Err):
            return found

        if not config.defined("TREE_FILTER"):
            config = config.with_value("TREE_FILTER", str(start))
        return self.run_tree(found.value, config)

    def run_tree(self, manifest_dir: Path, config: ConfigSnapshot) -> Result[None, RunError]:
        """Process the manifest in `manifest_dir`, then its sub-trees."""
        list_fn = require_list_fn(config)
        if isinstance(list_fn, Err):
            return list_fn

        config = config.with_mode(self._invocation.mode)
        separator = config.get_str("LIST_SEP") or DEFAULT_SEPARATOR
        manifest = manifest_dir / list_fn.value

        items = read_manifest(manifest, separator)
        if isinstance(items, Err):
            return items

        tree_filter = self._tree_filter(config)
        debug = config.get_bool("OPT_DEBUG_PRIMITIVES")

        for number, item in items.value:
            match item:
                case ConfigAssignment(key=key, value=value):
                    if key.startswith("MODE_"):
                        self._console.warning(f"{manifest}:{number}: {key} cannot be set from a manifest (ignored)")
                        continue
                    config = config.with_value(key, value)
                case ManifestEntry():
                    ctx = RepoContext.build(item, config, manifest_dir)
                    if tree_filter is not None and not is_within(ctx.target, tree_filter):
                        if debug:
                            self._console.debug(f"{ctx.display_path} is outside {tree_filter}")
                        continue
                    if debug:
                        self._console.debug(f"potential target: {ctx.target}")
                    outcome = self._machine.process(ctx)
                    if isinstance(outcome, Err):
                        return outcome
                    self.summary.add(outcome.value)

        walker = TreeWalker(worker=self._worker, console=self._console, tree_filter=tree_filter)
        walked = walker.walk(manifest_dir, config)
        if isinstance(walked, Err):
            return walked
        self.summary.workers += walked.value
        return Ok(None)

    @staticmethod
    def _tree_filter(config: ConfigSnapshot) -> Path | None:
        value = config.get_str("TREE_FILTER")
        return Path(value) if value else None
