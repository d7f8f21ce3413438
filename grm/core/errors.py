"""Error codes for CLI exit status.

These values are process exit codes and must stay stable: wrapper scripts
and parent grm workers branch on them.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for grm entry points.

    - 0: Success
    - 1: General failure (missing config, git failure, failed sub-tree worker)
    - 2: Missing bootstrap settings (standalone `grm-bootstrap` only)

    A failed subprocess may also surface its own nonzero exit code verbatim.
    """

    OK = 0
    FAILURE = 1
    MISSING_SETTINGS = 2

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
