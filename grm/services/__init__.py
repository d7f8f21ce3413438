# SPDX-License-Identifier: MIT
"""Application services for grm.

Services implement the orchestration of a run, coordinating between the
domain layer (core/) and infrastructure (git/, platform/).
"""

from grm.services.bootstrap import RemoteBootstrapper
from grm.services.engine import Engine, Invocation, RunError
from grm.services.repo_state import (
    EntryOutcome,
    NotARepoError,
    PathError,
    RepoContext,
    RepoStateMachine,
    SubprocessError,
)
from grm.services.tree_walker import (
    InProcessWorker,
    RecursionFailed,
    RecursionNode,
    SubprocessWorker,
    TreeWalker,
)

__all__ = [
    # Engine
    "Engine",
    "Invocation",
    "RunError",
    # State machine
    "EntryOutcome",
    "NotARepoError",
    "PathError",
    "RepoContext",
    "RepoStateMachine",
    "SubprocessError",
    # Bootstrap
    "RemoteBootstrapper",
    # Recursion
    "InProcessWorker",
    "RecursionFailed",
    "RecursionNode",
    "SubprocessWorker",
    "TreeWalker",
]
