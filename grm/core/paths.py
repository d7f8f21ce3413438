"""Path composition for manifest entries.

Manifest paths are plain `/`-separated strings: a config root such as
LOCAL_DIR may be relative (joined under whatever sits to its left) or
absolute (discarding everything to its left).
"""

from __future__ import annotations

import os
import re
from pathlib import Path

__all__ = [
    "cat_path",
    "is_within",
    "join_prefix",
    "repo_name",
    "touches_tree",
]

_REPO_NAME_RE = re.compile(r"([^/]+?)(?:\.git)?$")


def _strip_dot_slash(part: str) -> str:
    while part.startswith("./"):
        part = part[2:]
    return part


def _join(left: str, right: str) -> str:
    if left.endswith("/"):
        return left + right
    return f"{left}/{right}"


def cat_path(*parts: str | None) -> str:
    """Join path parts, letting the right-most absolute part win.

    Empty and None parts are dropped and a leading `./` is stripped from
    each remaining part.

    Examples:
        cat_path("/a", "b", "c") == "/a/b/c"
        cat_path("x", "/y", "z") == "/y/z"
        cat_path("", None, "./proj") == "proj"
    """
    pieces = [p for p in (_strip_dot_slash(part) for part in parts if part) if p]
    if not pieces:
        return ""

    result = pieces[-1]
    for piece in reversed(pieces[:-1]):
        if result.startswith("/"):
            break
        result = _join(piece, result)
    return result


def repo_name(remote_rel: str) -> str:
    """Basename of a remote path with a trailing `.git` removed.

    `repo_name("group/proj.git") == "proj"`
    """
    match = _REPO_NAME_RE.search(remote_rel.rstrip("/"))
    if match is None:
        return ""
    return match.group(1)


def join_prefix(prefix: str, rel: str) -> str:
    """Extend a recursion prefix, keeping it free of outer slashes."""
    return cat_path(prefix.strip("/"), rel.strip("/")).strip("/")


def is_within(path: Path, root: Path) -> bool:
    """True if `path` is `root` or lies below it.

    Both paths are compared lexically after normalization; callers pass
    absolute paths.
    """
    p = Path(os.path.normpath(path))
    r = Path(os.path.normpath(root))
    return p == r or r in p.parents


def touches_tree(path: Path, tree_filter: Path) -> bool:
    """True if `path` is inside the filter or is an ancestor of it.

    Directories that fail this test cannot contain any in-scope entry.
    """
    return is_within(path, tree_filter) or is_within(tree_filter, path)
