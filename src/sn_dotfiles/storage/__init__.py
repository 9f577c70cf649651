"""Storage layer for sn-dotfiles."""

from sn_dotfiles.storage.base import ItemStore
from sn_dotfiles.storage.item_store import SQLiteItemStore
from sn_dotfiles.storage.tag_repository import TagNoteRepository

__all__ = [
    "ItemStore",
    "SQLiteItemStore",
    "TagNoteRepository",
]
