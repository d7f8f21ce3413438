"""grm - bulk clone/configure/remote-sync for a tree of git repositories."""

__version__ = "0.4.0"
