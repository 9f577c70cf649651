"""SQLAlchemy database models for the SQLite item store."""
import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


def _utc_now_naive() -> datetime.datetime:
    """Current UTC time without tzinfo, as SQLite stores it."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


# Create base class for SQLAlchemy models
Base = declarative_base()


class DBItem(Base):
    """Database model for an encrypted item.

    Payloads are stored exactly as submitted; the store never sees
    plaintext. Deleted items keep their row with the payload dropped.
    """
    __tablename__ = "items"
    uuid = Column(String(36), primary_key=True, index=True)
    content_type = Column(String(20), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, default=_utc_now_naive, nullable=False)
    updated_at = Column(DateTime, default=_utc_now_naive, nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation of item."""
        return (
            f"<Item(uuid='{self.uuid}', type='{self.content_type}', "
            f"deleted={self.deleted})>"
        )


def init_db(url: str):
    """Create an engine for ``url`` and ensure the schema exists.

    File databases use WAL journaling and NORMAL synchronous mode so a
    crash mid-batch leaves the previous state intact. In-memory databases
    share a single connection so the schema outlives each session.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url, pool_pre_ping=True)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine):
    """Get a session factory for the database."""
    return sessionmaker(bind=engine)
