"""Git operations module.

Usage:
    from grm.git import Repository

    repo = Repository(Path("/path/to/repo"))
    if repo.is_root():
        repo.has_remote("origin")
"""

from grm.git.repository import (
    GitError,
    Repository,
)

__all__ = [
    "GitError",
    "Repository",
]
