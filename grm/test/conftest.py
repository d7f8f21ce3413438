from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

type GitRunner = Callable[..., str]


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


@pytest.fixture
def git() -> GitRunner:
    """Run git in a directory, raising on failure."""
    return _git


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Commit identity and a quiet, predictable git for repositories created in tests."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")


@pytest.fixture
def make_remote(tmp_path: Path, git_identity: None) -> Callable[[str], Path]:
    """Create a bare repository on branch main holding one commit (hello.txt)."""

    def _make(name: str) -> Path:
        remotes = tmp_path / "remotes"
        remotes.mkdir(exist_ok=True)
        remote = remotes / f"{name}.git"
        seed = tmp_path / "seeds" / name

        _git(tmp_path, "init", "--bare", "-q", "-b", "main", str(remote))

        seed.mkdir(parents=True)
        _git(seed, "init", "-q", "-b", "main")
        (seed / "hello.txt").write_text(f"{name}\n", encoding="utf-8")
        _git(seed, "add", "hello.txt")
        _git(seed, "commit", "-q", "-m", "init")
        _git(seed, "remote", "add", "origin", str(remote))
        _git(seed, "push", "-q", "origin", "main")
        return remote

    return _make
