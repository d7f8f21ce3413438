"""In-memory git double for state machine and engine tests."""

from __future__ import annotations

from pathlib import Path

from grm.core.result import Err, Ok, Result
from grm.git.repository import GitError


class FakeGit:
    """Records every git action; `roots` and `origins` model what is on disk."""

    def __init__(self) -> None:
        self.roots: set[Path] = set()
        self.origins: dict[Path, str] = {}
        self.calls: list[tuple[str, ...]] = []
        self.failing: dict[str, int] = {}

    def __call__(self, path: Path) -> FakeRepo:
        return FakeRepo(path, self)

    def add_repo(self, path: Path, origin: str | None = None) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        self.roots.add(path)
        if origin is not None:
            self.origins[path] = origin
        return path

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeRepo:
    def __init__(self, path: Path, git: FakeGit) -> None:
        self.path = path
        self._git = git

    def _record(self, *call: str) -> Result[None, GitError]:
        self._git.calls.append(call)
        code = self._git.failing.get(call[0])
        if code is not None:
            return Err(GitError(command=call[0], message="simulated failure", returncode=code))
        return Ok(None)

    def is_root(self) -> bool:
        return self.path in self._git.roots

    def clone_no_checkout(self, url: str) -> Result[None, GitError]:
        result = self._record("clone", url)
        if isinstance(result, Ok):
            self._git.add_repo(self.path, url)
        return result

    def checkout(self, ref: str | None = None, *, force: bool = False) -> Result[None, GitError]:
        return self._record("checkout", ref or "", "force" if force else "")

    def has_remote(self, name: str) -> Result[bool, GitError]:
        return Ok(self.path in self._git.origins)

    def set_remote_url(self, name: str, url: str) -> Result[None, GitError]:
        result = self._record("set-url", url)
        if isinstance(result, Ok):
            self._git.origins[self.path] = url
        return result

    def add_remote(self, name: str, url: str) -> Result[None, GitError]:
        result = self._record("add-remote", url)
        if isinstance(result, Ok):
            self._git.origins[self.path] = url
        return result

    def passthrough(self, args: list[str]) -> Result[None, GitError]:
        return self._record("git", *args)
