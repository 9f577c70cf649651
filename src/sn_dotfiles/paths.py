"""Mapping between local paths and dotted tag titles.

A directory below home becomes a tag title by dropping the leading '.' of
its top-level segment and joining the segments with '.' under the root
tag, so ``~/.config/nvim`` maps to ``dotfiles.config.nvim``. A file
directly in home is stored under the root tag with its leading '.'
dropped from the note title. A literal '.' or '\\' inside a segment is
escaped with '\\' so every mapping round-trips.

All functions here are pure and perform no I/O.
"""
import os
from typing import List, Optional, Sequence, Tuple

from sn_dotfiles.config import DEFAULT_ROOT_TAG
from sn_dotfiles.exceptions import ConfigurationError, ErrorCode, InvalidPathError
from sn_dotfiles.utils import normalize_path, strip_dot

SEPARATOR = "."
ESCAPE = "\\"


class TagPath:
    """A tag title as a sequence of segments.

    Examples:
        >>> str(TagPath(["dotfiles", "config", "foo.d"]))
        'dotfiles.config.foo\\\\.d'
        >>> TagPath.parse("dotfiles.config.foo\\\\.d").segments
        ('dotfiles', 'config', 'foo.d')
    """

    __slots__ = ("segments",)

    def __init__(self, segments: Sequence[str]):
        if not segments:
            raise ValueError("tag path needs at least one segment")
        if any(not s for s in segments):
            raise ValueError("tag path segments cannot be empty")
        self.segments: Tuple[str, ...] = tuple(segments)

    @classmethod
    def parse(cls, title: str) -> "TagPath":
        """Split a title on unescaped separators."""
        segments: List[str] = []
        current: List[str] = []
        chars = iter(title)
        for ch in chars:
            if ch == ESCAPE:
                nxt = next(chars, None)
                if nxt is None:
                    raise ValueError(f"dangling escape in tag title '{title}'")
                current.append(nxt)
            elif ch == SEPARATOR:
                segments.append("".join(current))
                current = []
            else:
                current.append(ch)
        segments.append("".join(current))
        return cls(segments)

    @staticmethod
    def _escape(segment: str) -> str:
        return segment.replace(ESCAPE, ESCAPE * 2).replace(SEPARATOR, ESCAPE + SEPARATOR)

    def __str__(self) -> str:
        return SEPARATOR.join(self._escape(s) for s in self.segments)

    def __repr__(self) -> str:
        return f"TagPath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagPath):
            return NotImplemented
        return self.segments == other.segments

    def __hash__(self) -> int:
        return hash(self.segments)

    @property
    def is_root(self) -> bool:
        return len(self.segments) == 1

    @property
    def parent(self) -> Optional["TagPath"]:
        if self.is_root:
            return None
        return TagPath(self.segments[:-1])

    def child(self, segment: str) -> "TagPath":
        return TagPath(self.segments + (segment,))

    def ancestors(self) -> List["TagPath"]:
        """Every path from the root down to and including this one."""
        return [TagPath(self.segments[:i]) for i in range(1, len(self.segments) + 1)]

    def is_under(self, other: "TagPath") -> bool:
        """True if this path is ``other`` or one of its descendants."""
        return self.segments[:len(other.segments)] == other.segments


def _require_home(home: str) -> str:
    if not home:
        raise ConfigurationError(
            "home directory required", config_key="home", code=ErrorCode.HOME_REQUIRED
        )
    return normalize_path(home)


def home_relative(path: str, home: str) -> str:
    """Return ``path`` relative to ``home``; '' when they are the same."""
    home = _require_home(home)
    path = normalize_path(path)
    if path == home:
        return ""
    try:
        inside = os.path.commonpath([path, home]) == home
    except ValueError:
        inside = False
    if not inside:
        raise InvalidPathError(
            "path is not within the home directory",
            path=path,
            home=home,
            code=ErrorCode.PATH_OUTSIDE_HOME,
        )
    return os.path.relpath(path, home)


def _check_name(name: str, title: str) -> str:
    """Reject a remote title that would not stay one entry below its directory."""
    if not name or name in (".", "..") or "/" in name or os.sep in name or "\0" in name:
        raise InvalidPathError(f"'{name}' is not a valid file or directory name", path=title)
    return name


def path_to_tag_title(path: str, home: str, root: str = DEFAULT_ROOT_TAG) -> str:
    """Map a directory at or below home to its tag title.

    Only directories beneath a hidden top-level entry of home are mapped.
    This is narrower than requiring the directory to be within home:
    `~/projects/x` is inside home but is still rejected.

    Raises:
        ConfigurationError: If home is empty.
        InvalidPathError: If the directory is outside home, or its top-level
            segment below home is not a dot-directory.
    """
    rel = home_relative(path, home)
    if not rel:
        return root
    segments = rel.split(os.sep)
    if not segments[0].startswith(".") or segments[0] in (".", ".."):
        raise InvalidPathError(
            "only hidden directories directly under home can be tracked",
            path=normalize_path(path),
        )
    segments[0] = strip_dot(segments[0])
    return str(TagPath([root, *segments]))


def tag_title_to_path(
    tag_title: str, home: str, root: str = DEFAULT_ROOT_TAG
) -> Tuple[str, bool]:
    """Map a tag title to its local directory.

    Returns:
        The directory with a trailing '/', and whether it is home itself.

    Raises:
        ConfigurationError: If home or tag_title is empty.
        InvalidPathError: If the title is malformed, outside the root tag, or
            has a segment that would leave its parent directory.
    """
    home = _require_home(home)
    if not tag_title:
        raise ConfigurationError(
            "tag title required", config_key="tag_title", code=ErrorCode.TAG_TITLE_REQUIRED
        )
    if tag_title == root:
        return f"{home}/", True
    try:
        tag_path = TagPath.parse(tag_title)
    except ValueError as e:
        raise InvalidPathError(str(e), path=tag_title) from e
    if tag_path.segments[0] != root:
        raise InvalidPathError(f"tag is not under '{root}'", path=tag_title)
    segments = [_check_name(s, tag_title) for s in tag_path.segments[1:]]
    segments[0] = f".{segments[0]}"
    directory = os.path.join(home, *segments)
    home_relative(directory, home)
    return directory + "/", False


def note_path(
    tag_title: str, note_title: str, home: str, root: str = DEFAULT_ROOT_TAG
) -> str:
    """Local file path for a note under a tag.

    Raises:
        InvalidPathError: If the tag or note title does not map to a file
            inside home.
    """
    directory, is_home = tag_title_to_path(tag_title, home, root)
    name = _check_name(note_title, tag_title)
    path = f"{directory}.{name}" if is_home else f"{directory}{name}"
    home_relative(path, home)
    return path


def note_location(
    path: str, home: str, root: str = DEFAULT_ROOT_TAG
) -> Tuple[str, str]:
    """Map a local file path to ``(tag_title, note_title)``.

    Raises:
        InvalidPathError: If the path is home itself, outside home, or a
            non-hidden file directly in home.
    """
    path = normalize_path(path)
    if not home_relative(path, home):
        raise InvalidPathError("home directory cannot be tracked as a file", path=path)
    directory, name = os.path.split(path)
    tag_title = path_to_tag_title(directory, home, root)
    if tag_title == root:
        if not name.startswith(".") or name in (".", ".."):
            raise InvalidPathError(
                "only hidden files can be tracked directly under home", path=path
            )
        return tag_title, strip_dot(name)
    return tag_title, name
