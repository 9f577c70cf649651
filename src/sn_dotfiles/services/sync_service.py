"""Reconciliation of local dotfiles with the note store.

A pass fetches the tracked relationship once, compares every tracked note
with its local file, pushes local changes as one batch and then writes
remote changes to disk.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from sn_dotfiles import report
from sn_dotfiles.config import config
from sn_dotfiles.exceptions import LocalWriteError, NoItemsToPushError, PullError
from sn_dotfiles.models.schema import (
    DiffState,
    ItemDiff,
    PutResult,
    StatusResult,
    SyncResult,
)
from sn_dotfiles.observability import timed_operation
from sn_dotfiles.services import preflight
from sn_dotfiles.services.diff_service import diff_all, untracked_paths
from sn_dotfiles.storage.tag_repository import TagNoteRepository
from sn_dotfiles.utils import normalize_path, strip_home

logger = logging.getLogger(__name__)

_PUSH_STATES = (DiffState.LOCAL_NEWER,)
_PULL_STATES = (DiffState.REMOTE_NEWER, DiffState.LOCAL_MISSING)


def _repository(repository: Optional[TagNoteRepository]) -> TagNoteRepository:
    return repository or TagNoteRepository(config.root_tag)


def partition(diffs: Sequence[ItemDiff]) -> Tuple[List[ItemDiff], List[ItemDiff]]:
    """Split diffs into ``(to_push, to_pull)``; identical diffs are dropped."""
    to_push = [d for d in diffs if d.state in _PUSH_STATES]
    to_pull = [d for d in diffs if d.state in _PULL_STATES]
    return to_push, to_pull


def push(
    session,
    diffs: Sequence[ItemDiff],
    repository: Optional[TagNoteRepository] = None,
) -> PutResult:
    """Replace remote note text with local content, as a single batch.

    Raises:
        NoItemsToPushError: If ``diffs`` is empty.
        RemotePushError: If the store rejects the batch.
    """
    if not diffs:
        raise NoItemsToPushError()
    staged = [d.remote.with_text(d.local_text) for d in diffs]
    return _repository(repository).put_items(session, staged)


def _write_local(diff: ItemDiff) -> None:
    try:
        os.makedirs(os.path.dirname(diff.path), exist_ok=True)
        with open(diff.path, "wb") as f:
            f.write(diff.remote.text.encode("utf-8"))
    except OSError as e:
        raise LocalWriteError(diff.path, original_error=e) from e


def pull(diffs: Sequence[ItemDiff], max_workers: int = 1) -> int:
    """Write remote note text to each local path, creating it if needed.

    Every write is attempted; failures do not undo earlier writes.

    Returns:
        Number of files written.

    Raises:
        PullError: Listing each path that could not be written.
    """
    failures: List[LocalWriteError] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_write_local, d) for d in diffs]
        for future in futures:
            try:
                future.result()
            except LocalWriteError as e:
                logger.warning(f"Pull failed: {e}")
                failures.append(e)

    written = len(diffs) - len(failures)
    if failures:
        raise PullError(failures, written_count=written)
    return written


def reconcile(
    session,
    diffs: Sequence[ItemDiff],
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
    max_workers: int = 1,
) -> SyncResult:
    """Push local changes, then pull remote ones.

    Raises:
        RemotePushError: If the push batch fails; nothing is pulled.
        PullError: If any local write fails; ``pushed_count`` is set.
    """
    to_push, to_pull = partition(diffs)
    if not to_push and not to_pull:
        report.emit_message("nothing to do", quiet)
        return SyncResult(0, 0)

    rows = []
    if to_push:
        push(session, to_push, repository)
        rows.extend((d.home_rel_path, "pushed") for d in to_push)

    try:
        pulled = pull(to_pull, max_workers) if to_pull else 0
    except PullError as e:
        e.pushed_count = len(to_push)
        failed = set(e.failed_paths)
        rows.extend((d.home_rel_path, "pulled") for d in to_pull if d.path not in failed)
        rows.extend((d.home_rel_path, "failed") for d in to_pull if d.path in failed)
        report.emit(rows, quiet)
        raise
    rows.extend((d.home_rel_path, "pulled") for d in to_pull)

    report.emit(rows, quiet)
    return SyncResult(len(to_push), pulled)


def sync(
    session,
    home: str,
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
    max_workers: Optional[int] = None,
) -> SyncResult:
    """Run one full reconciliation pass over every tracked dotfile.

    Raises:
        RemoteFetchError: If the store cannot be read.
        DuplicateNoteTitleError: If the relationship fails preflight.
        NoRemoteDotfilesError: If nothing is tracked.
    """
    repository = _repository(repository)
    workers = max_workers or config.max_workers
    with timed_operation("sync", home=home) as op:
        relationship = repository.fetch_tracked_relationship(session)
        preflight.validate(relationship)
        diffs = diff_all(relationship, home, max_workers=workers)
        result = reconcile(session, diffs, quiet, repository, workers)
        op["pushed"] = result.pushed
        op["pulled"] = result.pulled
    logger.info(f"Sync complete: {result.pushed} pushed, {result.pulled} pulled")
    return result


def status(
    session,
    home: str,
    paths: Optional[Sequence[str]] = None,
    quiet: bool = False,
    repository: Optional[TagNoteRepository] = None,
    max_workers: Optional[int] = None,
) -> StatusResult:
    """Report drift between tracked notes and local files without changing either."""
    repository = _repository(repository)
    workers = max_workers or config.max_workers
    with timed_operation("status", home=home):
        relationship = repository.fetch_tracked_relationship(session)
        preflight.validate(relationship)
        diffs = diff_all(relationship, home, paths, max_workers=workers)
        untracked = untracked_paths(relationship, home, paths) if paths else []

    rows = [(d.home_rel_path, d.state.value) for d in diffs]
    rows.extend((strip_home(p, normalize_path(home)), DiffState.UNTRACKED.value) for p in untracked)
    report.emit(rows, quiet)
    return StatusResult(diffs=diffs, untracked=untracked)
