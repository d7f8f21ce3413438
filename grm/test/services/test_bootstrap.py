"""Tests for remote creation in "new" mode."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

import grm.services.bootstrap as bootstrap_mod
from grm.core.config import ConfigSnapshot
from grm.core.manifest import ManifestEntry
from grm.core.mode import Mode
from grm.core.result import Err, Ok, Result
from grm.git.repository import GitError, Repository
from grm.output.console import MockConsole
from grm.platform.process import ProcessError, run_silent
from grm.services.bootstrap import (
    EXIT_IS_FILE,
    EXIT_NOT_REPO,
    RemoteBootstrapper,
    missing_settings,
    origin_url,
    remote_script,
    transport_command,
)
from grm.services.repo_state import RepoContext

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def _ctx(base: Path, remote: str = "proj", **values: str) -> RepoContext:
    config = ConfigSnapshot.from_mapping({"LIST_FN": ".grm.repos", **values}).with_mode(Mode.NEW)
    return RepoContext.build(ManifestEntry.from_fields(remote), config, base)


def _run_script(tmp_path: Path, target: Path, template: str = "") -> int:
    result = run_silent(["sh", "-s"], cwd=tmp_path, input_text=remote_script(str(target), template))
    return 0 if isinstance(result, Ok) else result.error.returncode


class TestSettings:
    def test_missing_settings_reported_together(self) -> None:
        assert missing_settings(ConfigSnapshot()) == ["RPATH_TEMPLATE", "RLOGIN", "RPATH_BASE"]

    def test_defined_empty_is_enough(self) -> None:
        config = ConfigSnapshot.from_mapping({"RPATH_TEMPLATE": "", "RLOGIN": "", "RPATH_BASE": ""})
        assert missing_settings(config) == []


class TestTransport:
    def test_empty_login_defaults_to_local_ssh(self) -> None:
        assert transport_command("") == Ok(["ssh", "localhost", "sh", "-s"])

    def test_ssh_login(self) -> None:
        assert transport_command("ssh://git@host/") == Ok(["ssh", "git@host", "sh", "-s"])

    def test_file_login_runs_locally(self) -> None:
        assert transport_command("file://") == Ok(["sh", "-s"])

    def test_unsupported_login(self) -> None:
        assert isinstance(transport_command("https://example.com"), Err)
        assert isinstance(transport_command("git@host"), Err)

    def test_ssh_without_host(self) -> None:
        assert isinstance(transport_command("ssh://"), Err)


class TestRemoteScript:
    def test_refuses_plain_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "exists"
        target.mkdir()
        assert _run_script(tmp_path, target) == EXIT_NOT_REPO

    def test_refuses_regular_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file.git"
        target.write_text("x", encoding="utf-8")
        assert _run_script(tmp_path, target) == EXIT_IS_FILE

    def test_copies_template(self, tmp_path: Path) -> None:
        template = tmp_path / "template"
        template.mkdir()
        (template / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        target = tmp_path / "srv" / "deep" / "proj.git"

        assert _run_script(tmp_path, target, str(template)) == 0
        assert (target / "HEAD").read_text(encoding="utf-8") == "ref: refs/heads/main\n"

    def test_quotes_paths(self, tmp_path: Path) -> None:
        template = tmp_path / "tem plate"
        template.mkdir()
        target = tmp_path / "it's here.git"

        assert _run_script(tmp_path, target, str(template)) == 0
        assert target.is_dir()


class WiringRepo:
    """Fresh local directory whose remote has no branches yet."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.urls: list[str] = []

    def is_root(self) -> bool:
        return False

    def init(self) -> Result[None, GitError]:
        return Ok(None)

    def has_remote(self, name: str) -> Result[bool, GitError]:
        return Ok(False)

    def add_remote(self, name: str, url: str) -> Result[None, GitError]:
        self.urls.append(url)
        return Ok(None)

    def remote_default_branch(self, remote: str) -> str | None:
        return None


class TestOriginUrl:
    def test_empty_login_points_at_local_ssh(self) -> None:
        config = ConfigSnapshot.from_mapping({"RLOGIN": "", "RPATH_BASE": "/srv/git"})
        assert origin_url(config, "group/proj.git") == "ssh://localhost/srv/git/group/proj.git"

    def test_explicit_login_is_kept(self) -> None:
        config = ConfigSnapshot.from_mapping({"RLOGIN": "ssh://git@host", "RPATH_BASE": "/srv/git"})
        assert origin_url(config, "proj") == "ssh://git@host/srv/git/proj.git"

    def test_default_login_wires_origin_over_ssh(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        sent: list[list[str]] = []

        def fake_run_silent(
            cmd: list[str], cwd: Path, env: object = None, *, input_text: str | None = None
        ) -> Result[None, ProcessError]:
            sent.append(cmd)
            return Ok(None)

        monkeypatch.setattr(bootstrap_mod, "run_silent", fake_run_silent)
        monkeypatch.delenv("SHELL", raising=False)
        (tmp_path / "proj").mkdir()
        repos: list[WiringRepo] = []

        def factory(path: Path) -> WiringRepo:
            repos.append(WiringRepo(path))
            return repos[-1]

        bootstrapper = RemoteBootstrapper(console=MockConsole(), confirm=lambda _m: True, repo_factory=factory)
        ctx = _ctx(tmp_path, "group/proj.git", RLOGIN="", RPATH_BASE="/srv/git", RPATH_TEMPLATE="")

        assert bootstrapper.bootstrap(ctx) == Ok(True)
        assert sent == [["ssh", "localhost", "sh", "-s"]]
        assert repos[0].urls == ["ssh://localhost/srv/git/group/proj.git"]


class TestBootstrapper:
    def test_missing_settings_skip_entry(self, tmp_path: Path) -> None:
        console = MockConsole()
        bootstrapper = RemoteBootstrapper(console=console, confirm=lambda _m: True)

        result = bootstrapper.bootstrap(_ctx(tmp_path, RLOGIN="file://"))

        assert result == Ok(False)
        assert console.find("RPATH_TEMPLATE, RPATH_BASE not set")

    def test_refusal_aborts_without_error(self, tmp_path: Path) -> None:
        console = MockConsole()
        asked: list[str] = []

        def refuse(message: str) -> bool:
            asked.append(message)
            return False

        bootstrapper = RemoteBootstrapper(console=console, confirm=refuse)
        ctx = _ctx(tmp_path, RLOGIN="file://", RPATH_BASE=str(tmp_path / "srv"), RPATH_TEMPLATE="")

        assert bootstrapper.bootstrap(ctx) == Ok(False)
        assert asked == [f"About to create remote repo '{tmp_path / 'srv' / 'proj.git'}'; are you sure?"]
        assert not (tmp_path / "srv").exists()
        assert console.has_error() is False

    def test_no_prompt_available(self, tmp_path: Path) -> None:
        console = MockConsole()
        ctx = _ctx(tmp_path, RLOGIN="file://", RPATH_BASE=str(tmp_path / "srv"), RPATH_TEMPLATE="")

        assert RemoteBootstrapper(console=console).bootstrap(ctx) == Ok(False)
        assert console.has_error() is True

    def test_remote_conflict_is_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "srv" / "proj.git").mkdir(parents=True)
        (tmp_path / "fleet" / "proj").mkdir(parents=True)
        ctx = _ctx(tmp_path / "fleet", RLOGIN="file://", RPATH_BASE=str(tmp_path / "srv"), RPATH_TEMPLATE="")

        result = RemoteBootstrapper(console=MockConsole(), confirm=lambda _m: True).bootstrap(ctx)

        assert isinstance(result, Err)
        assert result.error.returncode == EXIT_NOT_REPO
        assert "exists but is not a git repository" in result.error.message

    @needs_git
    def test_creates_remote_from_template_and_checks_out(
        self,
        tmp_path: Path,
        make_remote: Callable[[str], Path],
        git: Callable[..., str],
    ) -> None:
        template = make_remote("template")
        local = tmp_path / "fleet" / "proj"
        local.mkdir(parents=True)
        (local / "notes.txt").write_text("mine\n", encoding="utf-8")
        srv = tmp_path / "srv"
        ctx = _ctx(tmp_path / "fleet", RLOGIN="file://", RPATH_BASE=str(srv), RPATH_TEMPLATE=str(template))

        result = RemoteBootstrapper(console=MockConsole(), confirm=lambda _m: True).bootstrap(ctx)

        assert result == Ok(True)
        assert (srv / "proj.git" / "HEAD").is_file()
        assert Repository(local).is_root() is True
        assert git(local, "remote", "get-url", "origin") == f"file://{srv}/proj.git"
        assert git(local, "rev-parse", "--abbrev-ref", "HEAD") == "main"
        assert (local / "hello.txt").read_text(encoding="utf-8") == "template\n"
        assert (local / "notes.txt").read_text(encoding="utf-8") == "mine\n"

    @needs_git
    def test_empty_template_creates_bare_repo(self, tmp_path: Path, git_identity: None) -> None:
        local = tmp_path / "fleet" / "proj"
        local.mkdir(parents=True)
        srv = tmp_path / "srv"
        console = MockConsole()
        ctx = _ctx(tmp_path / "fleet", RLOGIN="file://", RPATH_BASE=str(srv), RPATH_TEMPLATE="")

        result = RemoteBootstrapper(console=console, confirm=lambda _m: True).bootstrap(ctx)

        assert result == Ok(True)
        assert (srv / "proj.git" / "HEAD").is_file()
        assert Repository(local).has_remote("origin") == Ok(True)
        assert console.find("nothing to check out")

    @needs_git
    def test_existing_origin_is_repointed(
        self,
        tmp_path: Path,
        make_remote: Callable[[str], Path],
        git: Callable[..., str],
    ) -> None:
        template = make_remote("template")
        local = tmp_path / "fleet" / "proj"
        local.mkdir(parents=True)
        git(local, "init", "-q")
        git(local, "remote", "add", "origin", "/somewhere/else.git")
        srv = tmp_path / "srv"
        ctx = _ctx(tmp_path / "fleet", RLOGIN="file://", RPATH_BASE=str(srv), RPATH_TEMPLATE=str(template))

        result = RemoteBootstrapper(console=MockConsole(), confirm=lambda _m: True).bootstrap(ctx)

        assert result == Ok(True)
        assert git(local, "remote", "get-url", "origin") == f"file://{srv}/proj.git"
        assert git(local, "rev-parse", "--verify", "-q", "refs/remotes/origin/main") != ""
