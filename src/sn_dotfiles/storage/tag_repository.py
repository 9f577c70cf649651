"""Repository for the tracked tag/note relationship."""
import logging
from typing import Dict, List, Sequence

from sqlalchemy.exc import SQLAlchemyError

from sn_dotfiles.config import DEFAULT_ROOT_TAG
from sn_dotfiles.crypto import ItemCipher
from sn_dotfiles.exceptions import DecryptionError, RemoteFetchError, RemotePushError
from sn_dotfiles.models.schema import (
    ContentType,
    Item,
    PutResult,
    TagWithNotes,
    TrackedRelationship,
)

logger = logging.getLogger(__name__)


class TagNoteRepository:
    """Reads the tracked relationship from a session's store and writes
    staged items back.

    Only tags titled with the root tag, or starting with ``<root>.``, are
    tracked, along with the notes they reference.
    """

    def __init__(self, root: str = DEFAULT_ROOT_TAG):
        """Initialize the repository.

        Args:
            root: Title of the reserved root tag.
        """
        self.root = root

    def is_tracked_tag(self, tag: Item) -> bool:
        title = tag.title
        return title == self.root or title.startswith(f"{self.root}.")

    def fetch_items(self, session) -> List[Item]:
        """Fetch and decrypt every live item in the session's store.

        Raises:
            RemoteFetchError: On store or decryption failure.
        """
        try:
            encrypted = session.get_store().fetch_all()
        except (SQLAlchemyError, OSError) as e:
            raise RemoteFetchError("failed to retrieve items", original_error=e) from e

        cipher = ItemCipher.for_session(session)
        try:
            return [cipher.decrypt_item(item) for item in encrypted if not item.deleted]
        except DecryptionError as e:
            raise RemoteFetchError("failed to decrypt items", original_error=e) from e

    def fetch_tracked_relationship(self, session) -> TrackedRelationship:
        """Build the tracked relationship from the session's store.

        Tags are ordered by title and notes within a tag by title, so the
        relationship is the same for the same store contents.

        Raises:
            RemoteFetchError: On store or decryption failure.
        """
        items = self.fetch_items(session)
        notes: Dict[str, Item] = {
            item.uuid: item for item in items if item.content_type == ContentType.NOTE
        }
        tags = sorted(
            (
                item for item in items
                if item.content_type == ContentType.TAG and self.is_tracked_tag(item)
            ),
            key=lambda t: (t.title, t.uuid),
        )

        tags_with_notes: List[TagWithNotes] = []
        for tag in tags:
            members = [
                notes[ref.uuid]
                for ref in tag.content.references
                if ref.content_type == ContentType.NOTE and ref.uuid in notes
            ]
            members.sort(key=lambda n: (n.title, n.uuid))
            tags_with_notes.append(TagWithNotes(tag=tag, notes=tuple(members)))

        logger.debug(
            f"Tracked relationship: {len(tags_with_notes)} tags, "
            f"{sum(len(t.notes) for t in tags_with_notes)} notes"
        )
        return TrackedRelationship(self.root, tags_with_notes)

    def put_items(self, session, items: Sequence[Item]) -> PutResult:
        """Encrypt and submit staged items as one batch.

        Raises:
            RemotePushError: If the store rejects the batch.
        """
        cipher = ItemCipher.for_session(session)
        encrypted = [cipher.encrypt_item(item) for item in items]
        try:
            result = session.get_store().put_items(encrypted)
        except (SQLAlchemyError, OSError) as e:
            raise RemotePushError(
                "failed to submit items", item_count=len(encrypted), original_error=e
            ) from e
        logger.info(f"Submitted {result.count} items")
        return result
