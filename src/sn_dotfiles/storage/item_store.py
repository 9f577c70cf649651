"""SQLite-backed item store."""
import datetime
import logging
import threading
from datetime import timezone
from pathlib import Path
from typing import List, Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import make_url

from sn_dotfiles.models.db_models import DBItem, get_session_factory, init_db
from sn_dotfiles.models.schema import (
    ContentType,
    EncryptedItem,
    PutResult,
    ensure_timezone_aware,
    utc_now,
)
from sn_dotfiles.storage.base import ItemStore

logger = logging.getLogger(__name__)

_TICK = datetime.timedelta(microseconds=1)


def _naive_utc(value: datetime.datetime) -> datetime.datetime:
    return ensure_timezone_aware(value).astimezone(timezone.utc).replace(tzinfo=None)


def _ensure_parent_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


class SQLiteItemStore(ItemStore):
    """Item store kept in a SQLite database.

    Every batch is written in a single transaction. Accepted items get an
    ``updated_at`` strictly later than any timestamp already in the store,
    so timestamps are monotonic per item and across the store.
    """

    def __init__(self, url: str, engine=None):
        """Initialize the store.

        Args:
            url: SQLAlchemy database URL, e.g. ``sqlite:///items.db``.
            engine: Optional pre-built engine; the schema must exist.
        """
        self.url = url
        if engine is None:
            _ensure_parent_dir(url)
            engine = init_db(url)
        self.engine = engine
        self.session_factory = get_session_factory(engine)
        self._write_lock = threading.Lock()

    @staticmethod
    def _to_item(row: DBItem) -> EncryptedItem:
        return EncryptedItem(
            uuid=row.uuid,
            content_type=ContentType(row.content_type),
            content=row.content,
            deleted=row.deleted,
            created_at=ensure_timezone_aware(row.created_at),
            updated_at=ensure_timezone_aware(row.updated_at),
        )

    def fetch_all(self) -> List[EncryptedItem]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(DBItem)
                .where(DBItem.deleted.is_(False))
                .order_by(DBItem.created_at, DBItem.uuid)
            ).all()
            items = [self._to_item(row) for row in rows]
        logger.debug(f"Fetched {len(items)} items from {self.url}")
        return items

    def _next_timestamp(self, session) -> datetime.datetime:
        latest = session.scalar(select(func.max(DBItem.updated_at)))
        now = _naive_utc(utc_now())
        if latest is not None and now <= latest:
            now = latest + _TICK
        return now

    def put_items(self, items: Sequence[EncryptedItem]) -> PutResult:
        if not items:
            return PutResult()

        saved: List[EncryptedItem] = []
        with self._write_lock, self.session_factory() as session:
            with session.begin():
                timestamp = self._next_timestamp(session)
                for item in items:
                    row = session.get(DBItem, item.uuid)
                    if row is None:
                        row = DBItem(
                            uuid=item.uuid,
                            content_type=item.content_type.value,
                            created_at=_naive_utc(item.created_at),
                        )
                        session.add(row)
                    row.content = "" if item.deleted else item.content
                    row.deleted = item.deleted
                    row.updated_at = timestamp
                    session.flush()
                    saved.append(self._to_item(row))
                    timestamp += _TICK

        logger.info(f"Stored {len(saved)} items in {self.url}")
        return PutResult(saved_items=tuple(saved))
