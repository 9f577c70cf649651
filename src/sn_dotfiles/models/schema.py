"""Data models for sn-dotfiles."""

import datetime
import uuid
from dataclasses import dataclass, field
from datetime import timezone
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite hands back naive datetimes, which are always stored as UTC.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def generate_uuid() -> str:
    return str(uuid.uuid4())


class ContentType(str, Enum):
    """Kinds of item held by the note store."""

    NOTE = "Note"
    TAG = "Tag"


class ItemReference(BaseModel):
    """A reference from one item to another (tags reference their notes)."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    content_type: ContentType


class ItemContent(BaseModel):
    """Decrypted payload of an item."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    text: str = ""
    references: Tuple[ItemReference, ...] = ()

    def references_note(self, note_uuid: str) -> bool:
        return any(r.uuid == note_uuid for r in self.references)


class Item(BaseModel):
    """A decrypted item as seen by the sync engine.

    Items are frozen. Staging a change produces a new copy via
    ``model_copy`` so the fetched snapshot is never mutated.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(default_factory=generate_uuid)
    content_type: ContentType
    content: ItemContent = Field(default_factory=ItemContent)
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)
    deleted: bool = False

    @property
    def title(self) -> str:
        return self.content.title

    @property
    def text(self) -> str:
        return self.content.text

    def with_text(self, text: str) -> "Item":
        """Return a staged copy carrying new text."""
        return self.model_copy(update={"content": self.content.model_copy(update={"text": text})})

    def with_reference(self, other: "Item") -> "Item":
        """Return a staged copy that also references ``other``."""
        if self.content.references_note(other.uuid):
            return self
        refs = self.content.references + (
            ItemReference(uuid=other.uuid, content_type=other.content_type),
        )
        return self.model_copy(update={"content": self.content.model_copy(update={"references": refs})})

    def as_deleted(self) -> "Item":
        """Return a staged copy marked for deletion."""
        return self.model_copy(update={"deleted": True})


def new_tag(title: str) -> Item:
    """Create a new tag item with the given dotted title."""
    return Item(content_type=ContentType.TAG, content=ItemContent(title=title))


def new_note(title: str, text: str) -> Item:
    """Create a new note item."""
    return Item(content_type=ContentType.NOTE, content=ItemContent(title=title, text=text))


class EncryptedItem(BaseModel):
    """An item as exchanged with the store: payload encrypted, metadata clear."""

    uuid: str
    content_type: ContentType
    content: str = ""
    deleted: bool = False
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)


@dataclass(frozen=True)
class PutResult:
    """Result of a batched submission to the store."""

    saved_items: Tuple[EncryptedItem, ...] = ()

    @property
    def count(self) -> int:
        return len(self.saved_items)


@dataclass(frozen=True)
class TagWithNotes:
    """One tag and the notes that belong to it, in relationship order."""

    tag: Item
    notes: Tuple[Item, ...] = ()


class TrackedRelationship:
    """The tracked subtree of the store: tags under the root and their notes.

    Stored as a tag index with ordered note ids per tag plus a side index
    from note id to the tags holding it. Read-only once built.
    """

    def __init__(self, root: str, tags_with_notes: Sequence[TagWithNotes] = ()):
        self.root = root
        self._tags: Dict[str, Item] = {}
        self._notes: Dict[str, Item] = {}
        self._members: Dict[str, List[str]] = {}
        self._note_tags: Dict[str, List[str]] = {}
        for twn in tags_with_notes:
            self._tags[twn.tag.uuid] = twn.tag
            members = self._members.setdefault(twn.tag.uuid, [])
            for note in twn.notes:
                self._notes[note.uuid] = note
                members.append(note.uuid)
                self._note_tags.setdefault(note.uuid, []).append(twn.tag.uuid)

    def __len__(self) -> int:
        return len(self._tags)

    def __iter__(self) -> Iterator[TagWithNotes]:
        for tag_uuid, tag in self._tags.items():
            yield TagWithNotes(
                tag=tag,
                notes=tuple(self._notes[n] for n in self._members[tag_uuid]),
            )

    def is_empty(self) -> bool:
        return not self._tags

    @property
    def tags(self) -> List[Item]:
        return list(self._tags.values())

    @property
    def notes(self) -> List[Item]:
        return list(self._notes.values())

    def find_tag(self, title: str) -> Optional[Item]:
        for tag in self._tags.values():
            if tag.title == title:
                return tag
        return None

    def notes_for(self, tag_uuid: str) -> List[Item]:
        return [self._notes[n] for n in self._members.get(tag_uuid, [])]

    def tags_for(self, note_uuid: str) -> List[Item]:
        return [self._tags[t] for t in self._note_tags.get(note_uuid, [])]

    def find_note(self, tag_title: str, note_title: str) -> List[Item]:
        """Return every note titled ``note_title`` under tag ``tag_title``."""
        tag = self.find_tag(tag_title)
        if tag is None:
            return []
        return [n for n in self.notes_for(tag.uuid) if n.title == note_title]


class DiffState(str, Enum):
    """Outcome of comparing one local file to its remote note."""

    IDENTICAL = "identical"
    LOCAL_NEWER = "local newer"
    REMOTE_NEWER = "remote newer"
    LOCAL_MISSING = "local missing"
    UNTRACKED = "untracked"


@dataclass(frozen=True)
class ItemDiff:
    """Comparison of one tracked note with its local file.

    Created fresh for each pass and never persisted.
    """

    tag_title: str
    note_title: str
    path: str
    home_rel_path: str
    remote: Item
    state: DiffState
    local_content: Optional[bytes] = field(default=None, repr=False)

    @property
    def local_text(self) -> str:
        return (self.local_content or b"").decode("utf-8", errors="replace")


class SyncResult(NamedTuple):
    pushed: int
    pulled: int


class RemoveResult(NamedTuple):
    notes_removed: int
    tags_removed: int
    not_tracked: int


class AddResult(NamedTuple):
    notes_added: int
    tags_added: int
    already_tracked: int


@dataclass
class StatusResult:
    """Read-only view of drift between the store and local files."""

    diffs: List[ItemDiff] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
