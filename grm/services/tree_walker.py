# SPDX-License-Identifier: MIT
"""Discover nested manifests and hand each one to a worker.

A directory holding LIST_FN is a recursion boundary: its worker owns that
whole sub-tree, so the walker does not descend any further there. Every
other directory is searched directly. The walk is sequential and
depth-first in sorted order; dot-directories and symlinks are skipped.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from grm.core.config import ConfigSnapshot
from grm.core.mode import Mode
from grm.core.paths import touches_tree
from grm.core.result import Err, Ok, Result
from grm.output.console import ConsoleProtocol
from grm.platform.process import run_silent
from grm.services.repo_state import SubprocessError

__all__ = [
    "InProcessWorker",
    "RecursionFailed",
    "RecursionNode",
    "SubprocessWorker",
    "TreeWalker",
    "Worker",
]


@dataclass(frozen=True, slots=True)
class RecursionFailed:
    """A sub-tree worker did not finish cleanly."""

    path: Path
    returncode: int
    message: str = ""

    def __str__(self) -> str:
        detail = f": {self.message}" if self.message else ""
        return f"sub-tree {self.path} failed (exit {self.returncode}){detail}"


@dataclass(frozen=True, slots=True)
class RecursionNode:
    """A directory holding a manifest, relative to the walk root."""

    path: Path
    rel: str
    config: ConfigSnapshot


class Worker(Protocol):
    def run(self, node: RecursionNode) -> Result[None, RecursionFailed]: ...


class SubprocessWorker:
    """Run `python -m grm` inside the node directory.

    The derived snapshot is written to the child's stdin, which is then
    closed; the child reads it because of `--config-stdin`.
    """

    def __init__(self, mode: Mode, git_args: Sequence[str] = (), *, assume_yes: bool = False) -> None:
        self._mode = mode
        self._git_args = list(git_args)
        self._assume_yes = assume_yes

    def command(self) -> list[str]:
        cmd = [sys.executable, "-m", "grm", "--config-stdin"]
        if self._assume_yes:
            cmd.append("--yes")
        # everything after the mode is passed through untouched
        cmd.append(self._mode.value)
        cmd.extend(self._git_args)
        return cmd

    def run(self, node: RecursionNode) -> Result[None, RecursionFailed]:
        result = run_silent(self.command(), cwd=node.path, input_text=node.config.serialize())
        if isinstance(result, Err):
            return Err(
                RecursionFailed(
                    path=node.path,
                    returncode=result.error.returncode,
                    message=result.error.stderr,
                )
            )
        return Ok(None)


class InProcessWorker:
    """Process a node by calling back into the engine in this process."""

    def __init__(self, run_tree: Callable[[Path, ConfigSnapshot], Result[None, object]]) -> None:
        self._run_tree = run_tree

    def run(self, node: RecursionNode) -> Result[None, RecursionFailed]:
        match self._run_tree(node.path, node.config):
            case Err(SubprocessError(returncode=code) | RecursionFailed(returncode=code) as e) if code > 0:
                return Err(RecursionFailed(path=node.path, returncode=code, message=str(e)))
            case Err(e):
                return Err(RecursionFailed(path=node.path, returncode=1, message=str(e)))
            case Ok(_):
                return Ok(None)


class TreeWalker:
    """Find manifest directories below a root and delegate them."""

    def __init__(
        self,
        *,
        worker: Worker,
        console: ConsoleProtocol,
        tree_filter: Path | None = None,
    ) -> None:
        self._worker = worker
        self._console = console
        self._tree_filter = tree_filter

    def walk(self, root: Path, config: ConfigSnapshot) -> Result[int, RecursionFailed]:
        """Delegate every manifest directory below `root`.

        Returns the number of workers run.
        """
        if not config.get_bool("OPT_RECURSE"):
            return Ok(0)
        list_fn = config.get_str("LIST_FN")
        if not list_fn:
            return Ok(0)
        return self._walk(root, root, config, list_fn)

    def _walk(self, root: Path, directory: Path, config: ConfigSnapshot, list_fn: str) -> Result[int, RecursionFailed]:
        debug = config.get_bool("OPT_DEBUG_PRIMITIVES")
        try:
            children = sorted(directory.iterdir())
        except OSError as e:
            self._console.warning(f"cannot read {directory}: {e}")
            return Ok(0)

        delegated = 0
        for child in children:
            if child.name.startswith(".") or child.is_symlink() or not child.is_dir():
                continue
            if self._tree_filter is not None and not touches_tree(child, self._tree_filter):
                continue

            rel = child.relative_to(root).as_posix()
            if (child / list_fn).is_file():
                if debug:
                    self._console.debug(f"recursing into {rel}")
                node = RecursionNode(path=child, rel=rel, config=config.derive_child(rel))
                result = self._worker.run(node)
                if isinstance(result, Err):
                    return result
                delegated += 1
                continue

            nested = self._walk(root, child, config, list_fn)
            if isinstance(nested, Err):
                return nested
            delegated += nested.value

        return Ok(delegated)
