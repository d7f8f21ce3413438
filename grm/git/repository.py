"""Git repository abstraction.

All git access in grm goes through Repository. Quick probes capture their
output; clone, fetch, checkout and passthrough commands stream to the
terminal because they can take long and may prompt for credentials.

Usage:
    repo = Repository(Path("vendor/proj"))
    if not repo.is_root():
        match repo.clone_no_checkout("ssh://host/srv/git/proj.git"):
            case Err(e):
                print(f"{e.command} failed: {e.message}")
            case Ok(_):
                repo.checkout()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from grm.core.result import Err, Ok, Result
from grm.platform.process import ProcessError
from grm.platform.process import run as run_process
from grm.platform.process import run_silent

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = [
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "clone --no-checkout")
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or fallback,
        returncode=error.returncode,
    )


class Repository:
    """A (possibly not yet existing) git working copy.

    Attributes:
        path: Path to the working copy root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def is_root(self) -> bool:
        """True if the path is the top of a working copy.

        A directory merely inside some other repository has a non-empty
        repo-relative prefix and is not a root.
        """
        if not self.path.is_dir():
            return False
        match self._run(["rev-parse", "--show-prefix"]):
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def has_head(self) -> bool:
        """True once HEAD resolves to a commit."""
        return isinstance(self._run(["rev-parse", "--verify", "-q", "HEAD"]), Ok)

    def current_branch(self) -> str | None:
        """Branch HEAD points at (also for an unborn branch), None if detached."""
        match self._run(["symbolic-ref", "--short", "-q", "HEAD"]):
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def remotes(self) -> Result[list[str], GitError]:
        match self._run(["remote"]):
            case Err(e):
                return Err(_git_error("remote", e, "git remote failed"))
            case Ok(stdout):
                return Ok([line.strip() for line in stdout.splitlines() if line.strip()])

    def has_remote(self, name: str) -> Result[bool, GitError]:
        """Probe for a remote by name without changing anything."""
        return self.remotes().map(lambda names: name in names)

    def clone_no_checkout(self, url: str) -> Result[None, GitError]:
        """Clone into self.path, leaving the working tree empty.

        Objects exist afterwards, so repository config (filters, attributes)
        can be written before checkout materializes any file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        result = run_silent(
            ["git", "clone", "--no-checkout", url, str(self.path)],
            cwd=self.path.parent,
        )
        if isinstance(result, Err):
            return Err(_git_error("clone --no-checkout", result.error, f"cannot clone {url}"))
        return Ok(None)

    def checkout(self, ref: str | None = None, *, force: bool = False) -> Result[None, GitError]:
        """Check out `ref` (default: the current branch).

        `force` rewrites index and working tree, which is what a fresh
        `clone --no-checkout` needs. Does nothing for a repository without
        commits when no ref is given.
        """
        if ref is None:
            if not self.has_head():
                return Ok(None)
            ref = self.current_branch() or "HEAD"
        args = ["checkout", "-f", ref] if force else ["checkout", ref]
        return self._stream(args, "checkout")

    def init(self) -> Result[None, GitError]:
        self.path.mkdir(parents=True, exist_ok=True)
        return self._stream(["init", "-q"], "init")

    def set_remote_url(self, name: str, url: str) -> Result[None, GitError]:
        match self._run(["remote", "set-url", name, url]):
            case Err(e):
                return Err(_git_error("remote set-url", e, f"cannot repoint {name}"))
            case Ok(_):
                return Ok(None)

    def add_remote(self, name: str, url: str) -> Result[None, GitError]:
        """Add a remote and fetch it immediately."""
        return self._stream(["remote", "add", "-f", name, url], "remote add")

    def fetch(self, remote: str = "origin") -> Result[None, GitError]:
        return self._stream(["fetch", remote], "fetch")

    def remote_default_branch(self, remote: str = "origin") -> str | None:
        """Default branch advertised by a fetched remote, None if unknown."""
        if isinstance(self._run(["remote", "set-head", remote, "--auto"]), Err):
            return None
        match self._run(["symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD"]):
            case Ok(stdout):
                ref = stdout.strip()
                prefix = f"{remote}/"
                return ref[len(prefix) :] if ref.startswith(prefix) else ref or None
            case Err(_):
                return None

    def passthrough(self, args: list[str]) -> Result[None, GitError]:
        """Run an arbitrary git command inside the repository."""
        return self._stream(args, " ".join(args[:2]) if args else "")

    def _stream(self, args: list[str], command: str) -> Result[None, GitError]:
        result = run_silent(["git", "-C", str(self.path), *args], cwd=self.path)
        if isinstance(result, Err):
            return Err(_git_error(command, result.error, f"git {command} failed"))
        return Ok(None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a quick git probe in this repository, capturing output."""
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            timeout=_GIT_TIMEOUT_SECONDS,
        )
