"""Common test fixtures for sn-dotfiles."""

import logging
from typing import Sequence

import pytest

from tests.fakes import FakeItemStore
from sn_dotfiles.config import config
from sn_dotfiles.models.schema import Item
from sn_dotfiles.observability import LOGGER_NAME
from sn_dotfiles.session import new_session
from sn_dotfiles.storage.item_store import SQLiteItemStore
from sn_dotfiles.storage.tag_repository import TagNoteRepository


@pytest.fixture(autouse=True)
def test_config(monkeypatch):
    """Pin config values that tests rely on (auto-restored)."""
    monkeypatch.setattr(config, "root_tag", "dotfiles")
    monkeypatch.setattr(config, "max_workers", 2)
    yield config


@pytest.fixture
def home(tmp_path) -> str:
    """A temporary home directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return str(home_dir)


@pytest.fixture
def fake_store():
    return FakeItemStore()


@pytest.fixture
def session(fake_store):
    """A session bound to an in-memory fake store."""
    s = new_session("memory://test")
    s.store = fake_store
    return s


@pytest.fixture
def sqlite_store(tmp_path):
    return SQLiteItemStore(f"sqlite:///{tmp_path / 'store' / 'items.db'}")


@pytest.fixture
def sqlite_session(sqlite_store):
    """A session bound to a real SQLite store."""
    s = new_session(sqlite_store.url)
    s.store = sqlite_store
    return s


@pytest.fixture
def repository():
    return TagNoteRepository("dotfiles")


@pytest.fixture
def seed(session, repository, fake_store):
    """Store items through the repository, then forget the seeding batch."""
    def _seed(items: Sequence[Item]):
        repository.put_items(session, items)
        fake_store.put_calls.clear()
    return _seed



@pytest.fixture(autouse=True)
def isolated_logging():
    """Give each test a package logger without handlers, restoring it after."""
    package_logger = logging.getLogger(LOGGER_NAME)
    saved_handlers = package_logger.handlers
    saved_level = package_logger.level
    package_logger.handlers = []
    yield package_logger
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers = saved_handlers
    package_logger.setLevel(saved_level)
