"""Tests for reading and writing the tracked relationship."""
import pytest

from sn_dotfiles.exceptions import RemoteFetchError, RemotePushError
from sn_dotfiles.models.schema import ContentType, new_note, new_tag
from sn_dotfiles.session import new_session
from tests.fakes import make_note, make_tag


class TestFetchTrackedRelationship:
    """Tests for TagNoteRepository.fetch_tracked_relationship."""

    def test_only_root_tags_are_tracked(self, session, repository, seed):
        bashrc = make_note("bashrc", "a")
        recipe = make_note("pie", "apples")
        seed([
            make_tag("dotfiles", bashrc), bashrc,
            make_tag("recipes", recipe), recipe,
            make_tag("dotfilesextra"),
        ])
        relationship = repository.fetch_tracked_relationship(session)
        assert [t.title for t in relationship.tags] == ["dotfiles"]
        assert [n.title for n in relationship.notes] == ["bashrc"]

    def test_tags_and_notes_are_ordered_by_title(self, session, repository, seed):
        zsh, bash = make_note("zshrc"), make_note("bashrc")
        init = make_note("init.vim")
        seed([
            make_tag("dotfiles.config.nvim", init),
            make_tag("dotfiles", zsh, bash),
            zsh, bash, init,
        ])
        relationship = repository.fetch_tracked_relationship(session)
        assert [twn.tag.title for twn in relationship] == ["dotfiles", "dotfiles.config.nvim"]
        assert [n.title for n in relationship.notes_for(relationship.tags[0].uuid)] == [
            "bashrc", "zshrc"
        ]

    def test_references_to_deleted_notes_are_ignored(self, session, repository, seed):
        gone = make_note("gone")
        seed([make_tag("dotfiles", gone), gone.as_deleted()])
        relationship = repository.fetch_tracked_relationship(session)
        assert relationship.find_note("dotfiles", "gone") == []

    def test_empty_store(self, session, repository):
        assert repository.fetch_tracked_relationship(session).is_empty()

    def test_fetch_failure(self, session, repository, fake_store):
        fake_store.fail_fetch = True
        with pytest.raises(RemoteFetchError) as excinfo:
            repository.fetch_tracked_relationship(session)
        assert excinfo.value.message == "failed to retrieve items"

    def test_wrong_keys_fail_fetch(self, session, repository, seed, fake_store):
        seed([new_tag("dotfiles")])
        stranger = new_session("memory://test")
        stranger.store = fake_store
        with pytest.raises(RemoteFetchError):
            repository.fetch_tracked_relationship(stranger)


class TestPutItems:
    """Tests for TagNoteRepository.put_items."""

    def test_items_are_encrypted(self, session, repository, fake_store):
        note = new_note("bashrc", "export SECRET=1")
        repository.put_items(session, [note])
        stored = fake_store.submitted[0]
        assert stored.uuid == note.uuid
        assert stored.content_type == ContentType.NOTE
        assert "SECRET" not in stored.content

    def test_one_call_per_batch(self, session, repository, fake_store):
        repository.put_items(session, [new_note("a", ""), new_note("b", ""), new_tag("dotfiles")])
        assert len(fake_store.put_calls) == 1
        assert len(fake_store.put_calls[0]) == 3

    def test_push_failure(self, session, repository, fake_store):
        fake_store.fail_put = True
        with pytest.raises(RemotePushError) as excinfo:
            repository.put_items(session, [new_note("a", "")])
        assert excinfo.value.item_count == 1

    def test_round_trip_through_sqlite(self, sqlite_session, repository):
        note = new_note("init.vim", "set number")
        repository.put_items(sqlite_session, [make_tag("dotfiles.config.nvim", note), note])
        relationship = repository.fetch_tracked_relationship(sqlite_session)
        assert relationship.find_note("dotfiles.config.nvim", "init.vim")[0].text == "set number"
