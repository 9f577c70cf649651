"""Consistency checks run on the tracked relationship before any change."""
import logging

from sn_dotfiles.exceptions import DuplicateNoteTitleError
from sn_dotfiles.models.schema import TrackedRelationship

logger = logging.getLogger(__name__)


def validate(relationship: TrackedRelationship) -> None:
    """Check that no tag holds two notes with the same title.

    Raises:
        DuplicateNoteTitleError: Naming the first offending tag and title.
    """
    for twn in relationship:
        seen = set()
        for note in twn.notes:
            if note.title in seen:
                logger.error(f"Duplicate note '{note.title}' under '{twn.tag.title}'")
                raise DuplicateNoteTitleError(twn.tag.title, note.title)
            seen.add(note.title)
