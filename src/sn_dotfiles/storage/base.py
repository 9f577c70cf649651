"""Boundary to the remote item store."""
from abc import ABC, abstractmethod
from typing import List, Sequence

from sn_dotfiles.models.schema import EncryptedItem, PutResult


class ItemStore(ABC):
    """A store of encrypted, tagged items.

    Implementations must give every accepted item an ``updated_at`` later
    than any timestamp previously issued for it, and must apply a batch
    passed to ``put_items`` all-or-nothing.
    """

    @abstractmethod
    def fetch_all(self) -> List[EncryptedItem]:
        """Return every live (non-deleted) item."""

    @abstractmethod
    def put_items(self, items: Sequence[EncryptedItem]) -> PutResult:
        """Upsert a batch of items; deleted items become tombstones."""
