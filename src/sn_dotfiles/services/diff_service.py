"""Comparison of tracked notes with local files."""
import datetime
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from sn_dotfiles.exceptions import InvalidPathError, LocalReadError, NoRemoteDotfilesError
from sn_dotfiles.models.schema import DiffState, Item, ItemDiff, TrackedRelationship
from sn_dotfiles.paths import note_path
from sn_dotfiles.utils import normalize_path, strip_home

logger = logging.getLogger(__name__)


def local_mtime(path: str) -> datetime.datetime:
    """Modification time of a local file as an aware UTC datetime."""
    return datetime.datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)


def classify(
    local: bytes,
    remote_text: str,
    local_updated: datetime.datetime,
    remote_updated: datetime.datetime,
) -> DiffState:
    """Classify existing local content against remote content.

    Differing content goes to whichever side changed last; when both
    timestamps are equal the remote side wins.
    """
    if local == remote_text.encode("utf-8"):
        return DiffState.IDENTICAL
    if local_updated > remote_updated:
        return DiffState.LOCAL_NEWER
    return DiffState.REMOTE_NEWER


def compare_file_to_note(
    tag_title: str, path: str, home: str, remote: Optional[Item]
) -> Optional[ItemDiff]:
    """Compare one local file with the note tracking it.

    Returns None when there is no remote note, i.e. the path is untracked.
    A dangling symlink counts as a missing file.

    Raises:
        InvalidPathError: If the tracked path is a directory.
        LocalReadError: If the file exists but cannot be read.
    """
    if remote is None:
        return None

    home_rel_path = strip_home(path, normalize_path(home))
    if not os.path.exists(path):
        return ItemDiff(
            tag_title=tag_title,
            note_title=remote.title,
            path=path,
            home_rel_path=home_rel_path,
            remote=remote,
            state=DiffState.LOCAL_MISSING,
        )
    if os.path.isdir(path):
        raise InvalidPathError("tracked path is a directory", path=path)

    try:
        with open(path, "rb") as f:
            local = f.read()
        local_updated = local_mtime(path)
    except OSError as e:
        raise LocalReadError(path, original_error=e) from e
    state = classify(local, remote.text, local_updated, remote.updated_at)
    return ItemDiff(
        tag_title=tag_title,
        note_title=remote.title,
        path=path,
        home_rel_path=home_rel_path,
        remote=remote,
        state=state,
        local_content=local,
    )


def _matches(path: str, wanted: Iterable[str]) -> bool:
    return any(path == w or path.startswith(w.rstrip("/") + "/") for w in wanted)


def tracked_targets(
    relationship: TrackedRelationship, home: str
) -> List[Tuple[str, str, Item]]:
    """Every tracked note as ``(tag_title, local_path, note)`` in relationship order.

    Notes whose tag or title has no valid local path are skipped with a warning.
    """
    targets = []
    for twn in relationship:
        for note in twn.notes:
            try:
                path = note_path(twn.tag.title, note.title, home, relationship.root)
            except InvalidPathError as e:
                logger.warning(
                    f"Skipping note '{note.title}' under '{twn.tag.title}': {e.message}"
                )
                continue
            targets.append((twn.tag.title, path, note))
    return targets


def untracked_paths(
    relationship: TrackedRelationship, home: str, paths: Sequence[str]
) -> List[str]:
    """Return the requested paths that no tracked note maps to."""
    tracked = [path for _, path, _ in tracked_targets(relationship, home)]
    return [
        p for p in map(normalize_path, paths)
        if not any(_matches(t, [p]) for t in tracked)
    ]


def diff_all(
    relationship: TrackedRelationship,
    home: str,
    paths: Optional[Sequence[str]] = None,
    max_workers: int = 1,
) -> List[ItemDiff]:
    """Compare every tracked note (or only those at ``paths``) with local files.

    A path that names a directory selects every tracked note beneath it.
    Output follows tag order, then note order within each tag.

    Raises:
        NoRemoteDotfilesError: If nothing is tracked.
    """
    if relationship.is_empty():
        raise NoRemoteDotfilesError()

    targets = tracked_targets(relationship, home)
    if paths:
        wanted = [normalize_path(p) for p in paths]
        targets = [t for t in targets if _matches(t[1], wanted)]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        diffs = list(
            executor.map(
                lambda t: compare_file_to_note(t[0], t[1], home, t[2]), targets
            )
        )
    logger.debug(f"Compared {len(diffs)} tracked files")
    return [d for d in diffs if d is not None]
