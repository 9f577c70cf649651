"""Utility functions for sn-dotfiles."""
import os
from typing import Iterable, List, Union


def dedupe(values: Iterable[str]) -> List[str]:
    """Remove duplicates, keeping the first occurrence of each value.

    Matching is exact and case-sensitive.

    Examples:
        >>> dedupe(["lemon", "apple", "lemon"])
        ['lemon', 'apple']
    """
    return list(dict.fromkeys(values))


def strip_dot(value: str) -> str:
    """Remove a single leading '.' if present."""
    if value.startswith("."):
        return value[1:]
    return value


def strip_trailing_slash(value: str) -> str:
    if value.endswith("/") and len(value) > 1:
        return value[:-1]
    return value


def normalize_path(path: Union[str, "os.PathLike[str]"]) -> str:
    """Expand ``~`` and return an absolute path without a trailing separator."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def strip_home(path: str, home: str) -> str:
    """Return ``path`` relative to ``home``, or unchanged if not under it.

    Examples:
        >>> strip_home("/home/me/.config/nvim", "/home/me")
        '.config/nvim'
        >>> strip_home("/etc/hosts", "/home/me")
        '/etc/hosts'
    """
    if not path or not home:
        return path
    home = strip_trailing_slash(home)
    if path.startswith(home + "/"):
        return path[len(home) + 1:]
    return path
