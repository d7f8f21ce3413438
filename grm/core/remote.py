"""Remote path and URL composition."""

from __future__ import annotations

from .config import ConfigSnapshot
from .paths import cat_path

__all__ = [
    "bootstrap_target",
    "ensure_git_suffix",
    "remote_path",
    "remote_url",
]


def ensure_git_suffix(path: str) -> str:
    path = path.rstrip("/")
    return path if path.endswith(".git") else f"{path}.git"


def remote_path(config: ConfigSnapshot, remote_rel: str) -> str:
    """Entry's remote path under the current REMOTE_DIR."""
    return cat_path(config.get_str("REMOTE_DIR"), remote_rel)


def remote_url(config: ConfigSnapshot, remote_rel: str) -> str:
    """URL that `origin` should point at for an entry.

    - RLOGIN with a scheme (ssh://user@host): login + RPATH_BASE + path
    - scp-style RLOGIN (user@host): login:RPATH_BASE/path
    - REMOTE_BASE_URL (legacy): plain concatenation
    - otherwise the remote path itself, for local-filesystem remotes
    """
    path = remote_path(config, remote_rel)
    login = config.get_str("RLOGIN")

    if "://" in login:
        full = ensure_git_suffix(cat_path(config.get_str("RPATH_BASE"), path))
        if login.endswith("://"):
            # file:// plus an absolute path
            return f"{login}{full}"
        return f"{login.rstrip('/')}/{full.lstrip('/')}"

    login = login.rstrip("/")

    if login:
        full = ensure_git_suffix(cat_path(config.get_str("RPATH_BASE"), path))
        return f"{login}:{full}"

    base_url = config.get_str("REMOTE_BASE_URL")
    if base_url:
        return f"{base_url}{path}"

    return path


def bootstrap_target(config: ConfigSnapshot, remote_rel: str) -> str:
    """Canonical path of a new bare repository on the remote host."""
    return ensure_git_suffix(cat_path(config.get_str("RPATH_BASE"), remote_path(config, remote_rel)))
