"""Core domain types and logic."""

from .config import ConfigError, ConfigSnapshot, load_root_config, require_list_fn
from .errors import ErrorCode
from .manifest import ConfigAssignment, ManifestEntry, ManifestError, escape, unescape
from .mode import Mode
from .paths import cat_path
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "ConfigSnapshot",
    "load_root_config",
    "require_list_fn",
    # errors
    "ErrorCode",
    # manifest
    "ConfigAssignment",
    "ManifestEntry",
    "ManifestError",
    "escape",
    "unescape",
    # mode
    "Mode",
    # paths
    "cat_path",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
