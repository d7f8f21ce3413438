"""Manifest line grammar.

A manifest (`LIST_FN`, usually `.grm.repos`) holds one item per line:

    group/proj.git * proj * media/proj      # repository entry
    * LOCAL_DIR * vendor                    # config assignment

Fields are split on an unescaped separator (default `*`). A backslash makes
the next character literal, which is how the separator, `#`, a backslash or
leading/trailing whitespace get into a field. Unescaped whitespace around a
field is trimmed and an unescaped `#` starts a comment.

A line whose first field is empty is a config assignment; everything else
is a repository entry. The conffile uses the same grammar but may only
contain assignments.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from .paths import repo_name
from .result import Err, Ok, Result

__all__ = [
    "DEFAULT_SEPARATOR",
    "ConfigAssignment",
    "ManifestEntry",
    "ManifestError",
    "ManifestItem",
    "escape",
    "parse_line",
    "read_manifest",
    "split_fields",
    "unescape",
]

DEFAULT_SEPARATOR = "*"
MAX_FIELDS = 3


@dataclass(frozen=True, slots=True)
class ManifestError:
    """A manifest or conffile that cannot be read or tokenized."""

    message: str
    path: Path | None = None
    line: int | None = None

    def __str__(self) -> str:
        where = ""
        if self.path is not None:
            where = f"{self.path}:{self.line}: " if self.line is not None else f"{self.path}: "
        return f"{where}{self.message}"


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One repository: remote, local and media paths relative to their roots."""

    remote_rel: str
    local_rel: str = ""
    media_rel: str = ""

    @classmethod
    def from_fields(cls, remote_rel: str, local_rel: str = "", media_rel: str = "") -> ManifestEntry:
        """Build an entry, defaulting local/media to the repository name."""
        name = repo_name(remote_rel)
        return cls(
            remote_rel=remote_rel,
            local_rel=local_rel or name,
            media_rel=media_rel or name,
        )


@dataclass(frozen=True, slots=True)
class ConfigAssignment:
    """A `* KEY * VALUE` line."""

    key: str
    value: str


type ManifestItem = ManifestEntry | ConfigAssignment


class _State(Enum):
    FIELD = auto()
    ESCAPE = auto()


def split_fields(line: str, separator: str = DEFAULT_SEPARATOR) -> Result[list[str], str]:
    """Tokenize one line into unescaped, trimmed fields.

    Returns Ok([]) for blank and comment-only lines, Err(message) for a
    dangling backslash or more than three fields.
    """
    fields: list[str] = []
    buf: list[str] = []
    keep = 0
    state = _State.FIELD

    for ch in line.rstrip("\r\n"):
        if state is _State.ESCAPE:
            buf.append(ch)
            keep = len(buf)
            state = _State.FIELD
            continue
        if ch == "\\":
            state = _State.ESCAPE
            continue
        if ch == "#":
            break
        if ch == separator:
            fields.append("".join(buf[:keep]))
            buf = []
            keep = 0
            continue
        if ch.isspace() and not buf:
            continue
        buf.append(ch)
        if not ch.isspace():
            keep = len(buf)

    if state is _State.ESCAPE:
        return Err("trailing backslash with nothing to escape")

    fields.append("".join(buf[:keep]))

    if len(fields) == 1 and not fields[0]:
        return Ok([])
    if len(fields) > MAX_FIELDS:
        return Err(f"{len(fields)} fields found, at most {MAX_FIELDS} allowed")
    return Ok(fields)


def parse_line(line: str, separator: str = DEFAULT_SEPARATOR) -> Result[ManifestItem | None, str]:
    """Parse one manifest line into an entry, an assignment, or None."""
    result = split_fields(line, separator)
    if isinstance(result, Err):
        return result

    fields = result.value
    if not fields:
        return Ok(None)

    fields += [""] * (MAX_FIELDS - len(fields))
    first, second, third = fields

    if not first:
        if not second:
            return Err("config assignment without a key")
        return Ok(ConfigAssignment(key=second.upper(), value=third))

    return Ok(ManifestEntry.from_fields(first, second, third))


def read_manifest(
    path: Path, separator: str = DEFAULT_SEPARATOR
) -> Result[list[tuple[int, ManifestItem]], ManifestError]:
    """Read a manifest file, returning its items with 1-based line numbers."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ManifestError("file not found", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ManifestError(f"cannot read: {e}", path=path))

    items: list[tuple[int, ManifestItem]] = []
    for number, line in enumerate(text.splitlines(), start=1):
        match parse_line(line, separator):
            case Err(message):
                return Err(ManifestError(message, path=path, line=number))
            case Ok(None):
                continue
            case Ok(item):
                items.append((number, item))

    return Ok(items)


def unescape(text: str) -> str:
    """Drop each escaping backslash, keeping the escaped character.

    A lone backslash at the very end has nothing to escape and is kept.
    """
    out: list[str] = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            out.append(next(chars, "\\"))
        else:
            out.append(ch)
    return "".join(out)


def escape(text: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Escape a value so that it parses back as a single field.

    Backslashes, the separator and `#` are always escaped; whitespace is
    escaped only at the start and end of the value.
    """
    special = {"\\", "#", separator}
    lead = len(text) - len(text.lstrip())
    trail = len(text.rstrip())

    out: list[str] = []
    for i, ch in enumerate(text):
        if ch in special or (ch.isspace() and (i < lead or i >= trail)):
            out.append("\\")
        out.append(ch)
    return "".join(out)
