"""CLI modes and the MODE_* flags each one implies."""

from __future__ import annotations

from enum import StrEnum

__all__ = ["MODE_KEYS", "Mode"]

MODE_CLONE = "MODE_CLONE"
MODE_CONFIGURE = "MODE_CONFIGURE"
MODE_SET_REMOTE = "MODE_SET_REMOTE"
MODE_GIT = "MODE_GIT"
MODE_NEW = "MODE_NEW"
MODE_LIST_RREL = "MODE_LIST_RREL"
MODE_LIST_RURL = "MODE_LIST_RURL"
MODE_LIST_LREL = "MODE_LIST_LREL"

MODE_KEYS: frozenset[str] = frozenset(
    {
        MODE_CLONE,
        MODE_CONFIGURE,
        MODE_SET_REMOTE,
        MODE_GIT,
        MODE_NEW,
        MODE_LIST_RREL,
        MODE_LIST_RURL,
        MODE_LIST_LREL,
    }
)


class Mode(StrEnum):
    """Primary operation mode, exactly one per invocation."""

    CLONE = "clone"
    GIT = "git"
    SET_REMOTE = "set-remote"
    CONFIGURE = "configure"
    LIST_RREL = "list-rrel"
    LIST_RURL = "list-rurl"
    LIST_LREL = "list-lrel"
    RUN = "run"
    NEW = "new"

    @property
    def flags(self) -> frozenset[str]:
        """MODE_* keys set to True for this mode."""
        match self:
            case Mode.CLONE:
                return frozenset({MODE_CLONE, MODE_CONFIGURE})
            case Mode.GIT:
                return frozenset({MODE_GIT, MODE_SET_REMOTE, MODE_CONFIGURE})
            case Mode.SET_REMOTE:
                return frozenset({MODE_SET_REMOTE})
            case Mode.CONFIGURE:
                return frozenset({MODE_CONFIGURE})
            case Mode.LIST_RREL:
                return frozenset({MODE_LIST_RREL})
            case Mode.LIST_RURL:
                return frozenset({MODE_LIST_RURL})
            case Mode.LIST_LREL:
                return frozenset({MODE_LIST_LREL})
            case Mode.RUN:
                return frozenset({MODE_CLONE, MODE_SET_REMOTE, MODE_CONFIGURE})
            case Mode.NEW:
                return frozenset({MODE_NEW})

    @property
    def is_listing(self) -> bool:
        return self in (Mode.LIST_RREL, Mode.LIST_RURL, Mode.LIST_LREL)
