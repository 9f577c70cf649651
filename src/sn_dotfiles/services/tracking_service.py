"""Starting and stopping tracking of local dotfiles.

Adding a file creates a note under the tag mirroring its directory,
creating any missing tags on the way from the root. Removing a file
deletes its note and any tag left with nothing beneath it. Every change
of one invocation is submitted as a single batch.
"""

import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sn_dotfiles import report
from sn_dotfiles.config import config
from sn_dotfiles.exceptions import LocalReadError, PathNotFoundError
from sn_dotfiles.models.schema import (
    AddResult,
    Item,
    RemoveResult,
    TrackedRelationship,
    new_note,
    new_tag,
)
from sn_dotfiles.observability import timed_operation
from sn_dotfiles.paths import TagPath, note_location
from sn_dotfiles.services import preflight
from sn_dotfiles.services.diff_service import tracked_targets
from sn_dotfiles.storage.tag_repository import TagNoteRepository
from sn_dotfiles.utils import dedupe, normalize_path, strip_home

logger = logging.getLogger(__name__)


def _repository(repository: Optional[TagNoteRepository]) -> TagNoteRepository:
    return repository or TagNoteRepository(config.root_tag)


def check_paths_exist(paths: Sequence[str]) -> None:
    """Raise PathNotFoundError naming every path that does not exist."""
    missing = [p for p in paths if not os.path.lexists(normalize_path(p))]
    if missing:
        raise PathNotFoundError(missing)


def _tag_path(tag: Item) -> Optional[TagPath]:
    try:
        return TagPath.parse(tag.title)
    except ValueError:
        logger.warning(f"Ignoring tag with malformed title '{tag.title}'")
        return None


def find_matching_notes(
    path: str, home: str, relationship: TrackedRelationship
) -> Tuple[str, List[Item]]:
    """Find the notes tracking ``path``, or every note beneath it for a directory.

    Returns:
        The home-relative form of ``path`` and the matching notes.
    """
    path = normalize_path(path)
    prefix = path.rstrip("/") + "/"
    matches = [
        note for _, note_path, note in tracked_targets(relationship, home)
        if note_path == path or note_path.startswith(prefix)
    ]
    return strip_home(path, normalize_path(home)), matches


def find_empty_tags(
    relationship: TrackedRelationship, removed_note_uuids: Set[str]
) -> List[Item]:
    """Tags that hold nothing once the given notes are removed.

    Only tags that lost a note, and their ancestors, are considered. A
    tag is empty when neither it nor any tag beneath it keeps a note.
    """
    if not removed_note_uuids:
        return []

    live: List[TagPath] = []
    affected: Set[TagPath] = set()
    for twn in relationship:
        tag_path = _tag_path(twn.tag)
        if tag_path is None:
            continue
        remaining = [n for n in twn.notes if n.uuid not in removed_note_uuids]
        if remaining:
            live.append(tag_path)
        if len(remaining) < len(twn.notes):
            affected.add(tag_path)

    candidates = {a for tag_path in affected for a in tag_path.ancestors()}
    empty = []
    for tag in relationship.tags:
        tag_path = _tag_path(tag)
        if tag_path in candidates and not any(kept.is_under(tag_path) for kept in live):
            empty.append(tag)
    return empty


def remove(
    session,
    home: str,
    paths: Sequence[str],
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
) -> RemoveResult:
    """Stop tracking local paths by deleting their notes from the store.

    Raises:
        PathNotFoundError: If any path does not exist; nothing is changed.
        RemoteFetchError: If the store cannot be read.
        DuplicateNoteTitleError: If the relationship fails preflight.
        RemotePushError: If the deletion batch is rejected.
    """
    repository = _repository(repository)
    paths = dedupe(paths)
    check_paths_exist(paths)

    with timed_operation("remove", paths=len(paths)) as op:
        relationship = repository.fetch_tracked_relationship(session)
        preflight.validate(relationship)

        rows = []
        not_tracked = 0
        notes_to_remove: Dict[str, Item] = {}
        for path in paths:
            home_rel_path, matches = find_matching_notes(path, home, relationship)
            if not matches:
                rows.append((home_rel_path, "not tracked"))
                not_tracked += 1
                continue
            rows.append((report.count_row(home_rel_path, len(matches)), "removed"))
            for note in matches:
                notes_to_remove.setdefault(note.uuid, note)

        empty_tags = find_empty_tags(relationship, set(notes_to_remove))
        staged = [n.as_deleted() for n in notes_to_remove.values()]
        staged.extend(t.as_deleted() for t in empty_tags)
        if staged:
            repository.put_items(session, staged)
        op["notes"] = len(notes_to_remove)
        op["tags"] = len(empty_tags)

    report.emit(rows, quiet)
    return RemoveResult(len(notes_to_remove), len(empty_tags), not_tracked)


def _expand(paths: Iterable[str]) -> List[str]:
    """Replace each directory with the regular files beneath it, in sorted order."""
    files = []
    for path in paths:
        if not os.path.isdir(path):
            files.append(path)
            continue
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            files.extend(
                os.path.join(dirpath, name) for name in sorted(filenames)
                if os.path.isfile(os.path.join(dirpath, name))
            )
    return files


def _read_text(path: str) -> str:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise LocalReadError(path, original_error=e) from e
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"{path} is not valid UTF-8; undecodable bytes will be replaced")
        return data.decode("utf-8", errors="replace")


def _ensure_tag_chain(
    tag_title: str,
    relationship: TrackedRelationship,
    staged_tags: Dict[str, Item],
    created: Set[str],
) -> Item:
    """Stage any missing tags from the root down to ``tag_title``."""
    for ancestor in TagPath.parse(tag_title).ancestors():
        title = str(ancestor)
        if title in staged_tags or relationship.find_tag(title) is not None:
            continue
        staged_tags[title] = new_tag(title)
        created.add(title)
    return staged_tags.get(tag_title) or relationship.find_tag(tag_title)


def add(
    session,
    home: str,
    paths: Sequence[str],
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
) -> AddResult:
    """Start tracking local files; directories add every file beneath them.

    Raises:
        PathNotFoundError: If any path does not exist; nothing is changed.
        InvalidPathError: If a file cannot be mapped under the root tag.
        LocalReadError: If a file cannot be read.
        RemoteFetchError: If the store cannot be read.
        DuplicateNoteTitleError: If the relationship fails preflight.
        RemotePushError: If the batch is rejected.
    """
    repository = _repository(repository)
    home = normalize_path(home)
    paths = dedupe(paths)
    check_paths_exist(paths)

    files = dedupe(normalize_path(p) for p in _expand(normalize_path(p) for p in paths))
    locations = [(f, *note_location(f, home, repository.root)) for f in files]

    with timed_operation("add", paths=len(files)) as op:
        relationship = repository.fetch_tracked_relationship(session)
        preflight.validate(relationship)

        rows = []
        already_tracked = 0
        staged_tags: Dict[str, Item] = {}
        created: Set[str] = set()
        notes: List[Item] = []
        for path, tag_title, note_title in locations:
            home_rel_path = strip_home(path, home)
            if relationship.find_note(tag_title, note_title):
                rows.append((home_rel_path, "already tracked"))
                already_tracked += 1
                continue
            tag = _ensure_tag_chain(tag_title, relationship, staged_tags, created)
            note = new_note(note_title, _read_text(path))
            staged_tags[tag_title] = tag.with_reference(note)
            notes.append(note)
            rows.append((home_rel_path, "added"))

        staged = list(staged_tags.values()) + notes
        if staged:
            repository.put_items(session, staged)
        op["notes"] = len(notes)
        op["tags"] = len(created)

    report.emit(rows, quiet)
    return AddResult(len(notes), len(created), already_tracked)


def wipe(
    session,
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
) -> int:
    """Delete every tracked note and tag. Returns the number of items removed."""
    repository = _repository(repository)
    with timed_operation("wipe") as op:
        relationship = repository.fetch_tracked_relationship(session)
        staged = [n.as_deleted() for n in relationship.notes]
        staged.extend(t.as_deleted() for t in relationship.tags)
        if staged:
            repository.put_items(session, staged)
        op["items"] = len(staged)

    report.emit_message(f"{len(staged)} items removed", quiet)
    return len(staged)
