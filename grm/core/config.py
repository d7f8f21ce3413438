"""Layered, inheritable configuration.

A ConfigSnapshot is an immutable mapping of uppercase keys to string or
boolean values. Snapshots are seeded in priority order (later wins):

1. built-in defaults
2. GRM_* environment variables
3. the root conffile, or the stream a parent worker piped on stdin
4. config assignments met while reading a manifest, in file order
5. the MODE_* flags of the selected CLI mode

Key classes:
- path roots (REMOTE_DIR, LOCAL_DIR, GM_DIR): relative to one manifest's
  position in the tree, cleared whenever a snapshot crosses into a
  sub-tree worker
- mode flags (MODE_*): owned by the command line of each process, also
  cleared at that boundary
- options (OPT_*): booleans, any non-empty string is True
- everything else is a free-form string
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .manifest import DEFAULT_SEPARATOR, ConfigAssignment, escape, parse_line, read_manifest
from .mode import MODE_KEYS, Mode
from .paths import join_prefix
from .result import Err, Ok, Result

__all__ = [
    "DEFAULTS",
    "ENV_PREFIX",
    "PATH_ROOT_KEYS",
    "ConfigError",
    "ConfigSnapshot",
    "env_overlay",
    "find_conffile",
    "is_bool_key",
    "load_conffile",
    "load_root_config",
    "parse_stream",
    "require_list_fn",
]

ENV_PREFIX = "GRM_"

PATH_ROOT_KEYS: frozenset[str] = frozenset({"REMOTE_DIR", "LOCAL_DIR", "GM_DIR"})

DEFAULTS: dict[str, str | bool] = {
    "CONFIG_FILENAME": ".grm.conf",
    "LIST_SEP": DEFAULT_SEPARATOR,
    "OPT_RECURSE": True,
}

type ConfigValue = str | bool


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Fatal configuration problem (missing key, missing or bad conffile)."""

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"


def is_bool_key(key: str) -> bool:
    return key.startswith("OPT_") or key.startswith("MODE_")


def _coerce(key: str, value: ConfigValue) -> ConfigValue:
    if is_bool_key(key):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(value, bool):
        return "1" if value else ""
    return value


def _empty_values() -> dict[str, ConfigValue]:
    return {}


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    """Immutable configuration value threaded through every call.

    Every "setter" returns a new snapshot; nothing is ever mutated in place.
    """

    values: dict[str, ConfigValue] = field(default_factory=_empty_values)

    @classmethod
    def from_mapping(cls, data: Mapping[str, ConfigValue]) -> ConfigSnapshot:
        return cls({k.upper(): _coerce(k.upper(), v) for k, v in data.items()})

    def defined(self, key: str) -> bool:
        """True if the key is present, even with an empty value."""
        return key in self.values

    def get(self, key: str, default: ConfigValue | None = None) -> ConfigValue | None:
        return self.values.get(key, default)

    def get_str(self, key: str) -> str:
        """String value of a key; missing keys read as empty."""
        value = self.values.get(key, "")
        if isinstance(value, bool):
            return "1" if value else ""
        return value

    def get_bool(self, key: str) -> bool:
        return bool(self.values.get(key, False))

    def with_value(self, key: str, value: ConfigValue) -> ConfigSnapshot:
        key = key.upper()
        return ConfigSnapshot({**self.values, key: _coerce(key, value)})

    def merge(self, data: Mapping[str, ConfigValue]) -> ConfigSnapshot:
        return ConfigSnapshot(
            {**self.values, **{k.upper(): _coerce(k.upper(), v) for k, v in data.items()}}
        )

    def without(self, keys: Iterable[str]) -> ConfigSnapshot:
        drop = set(keys)
        return ConfigSnapshot({k: v for k, v in self.values.items() if k not in drop})

    def redacted(self) -> ConfigSnapshot:
        """Drop path roots and mode flags.

        The receiving process recomputes both from its own position in the
        tree and its own command line.
        """
        return ConfigSnapshot(
            {
                k: v
                for k, v in self.values.items()
                if k not in PATH_ROOT_KEYS and not k.startswith("MODE_")
            }
        )

    def derive_child(self, rel: str) -> ConfigSnapshot:
        """Snapshot handed to the worker of a sub-tree `rel` levels down."""
        child = self.redacted()
        return child.with_value("RECURSE_PREFIX", join_prefix(self.get_str("RECURSE_PREFIX"), rel))

    def with_mode(self, mode: Mode) -> ConfigSnapshot:
        """Apply a CLI mode; its flags replace any MODE_* already present."""
        flags = {key: key in mode.flags for key in MODE_KEYS}
        return self.without(MODE_KEYS).merge(flags)

    def serialize(self) -> str:
        """Render as conffile lines, parseable by parse_stream."""
        lines: list[str] = []
        for key in sorted(self.values):
            value = self.get_str(key)
            lines.append(f"{DEFAULT_SEPARATOR} {key} {DEFAULT_SEPARATOR} {escape(value)}")
        return "\n".join(lines) + "\n" if lines else ""


def parse_stream(text: str, *, source: Path | None = None) -> Result[dict[str, str], ConfigError]:
    """Parse conffile-syntax text made of config assignments only."""
    values: dict[str, str] = {}
    for number, line in enumerate(text.splitlines(), start=1):
        match parse_line(line, DEFAULT_SEPARATOR):
            case Err(message):
                return Err(ConfigError(f"line {number}: {message}", path=source))
            case Ok(None):
                continue
            case Ok(ConfigAssignment(key=key, value=value)):
                values[key] = value
            case Ok(_):
                return Err(
                    ConfigError(
                        f"line {number}: repository entry found in configuration",
                        path=source,
                    )
                )
    return Ok(values)


def load_conffile(path: Path, separator: str = DEFAULT_SEPARATOR) -> Result[dict[str, str], ConfigError]:
    """Load a conffile; it may only contain config assignments."""
    result = read_manifest(path, separator)
    if isinstance(result, Err):
        return Err(ConfigError(str(result.error)))

    values: dict[str, str] = {}
    for number, item in result.value:
        if not isinstance(item, ConfigAssignment):
            return Err(
                ConfigError(f"line {number}: repository entry found in configuration", path=path)
            )
        values[item.key] = item.value
    return Ok(values)


def find_conffile(start: Path, name: str) -> Result[Path, ConfigError]:
    """Search upward from `start` for the conffile."""
    for parent in (start, *start.parents):
        candidate = parent / name
        if candidate.is_file():
            return Ok(candidate)
    return Err(ConfigError(f"configuration file {name} not found in {start} or any parent directory"))


def env_overlay(environ: Mapping[str, str] | None = None) -> dict[str, ConfigValue]:
    """GRM_* variables mapped to config keys.

    Path roots and mode flags are ignored: they never come from the
    environment.
    """
    env = os.environ if environ is None else environ
    out: dict[str, ConfigValue] = {}
    for name, value in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX) :].upper()
        if not key or key in PATH_ROOT_KEYS or key in MODE_KEYS or key.startswith("MODE_"):
            continue
        out[key] = _coerce(key, value)
    return out


def load_root_config(
    start: Path,
    *,
    environ: Mapping[str, str] | None = None,
    stream: str | None = None,
) -> Result[ConfigSnapshot, ConfigError]:
    """Seed the snapshot for one process.

    With `stream` set (a parent worker piped its snapshot on stdin) the
    stream replaces conffile discovery and the result is redacted. A
    conffile may set path roots for the root manifest but never modes.
    """
    snapshot = ConfigSnapshot.from_mapping(DEFAULTS).merge(env_overlay(environ))

    if stream is not None:
        parsed = parse_stream(stream)
        if isinstance(parsed, Err):
            return parsed
        return Ok(snapshot.merge(parsed.value).redacted())

    found = find_conffile(start, snapshot.get_str("CONFIG_FILENAME"))
    if isinstance(found, Err):
        return found

    loaded = load_conffile(found.value, snapshot.get_str("LIST_SEP") or DEFAULT_SEPARATOR)
    if isinstance(loaded, Err):
        return loaded
    # path roots in the conffile apply to the root manifest
    modes = [key for key in loaded.value if key.startswith("MODE_")]
    return Ok(snapshot.merge(loaded.value).without(modes))


def require_list_fn(snapshot: ConfigSnapshot) -> Result[str, ConfigError]:
    """LIST_FN must be known before any manifest is read."""
    name = snapshot.get_str("LIST_FN")
    if not name:
        return Err(ConfigError("LIST_FN is not defined"))
    return Ok(name)
