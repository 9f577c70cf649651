"""Tests for push, pull and full reconciliation passes."""
import os
from dataclasses import replace

import pytest

from sn_dotfiles.exceptions import (
    DuplicateNoteTitleError,
    NoItemsToPushError,
    NoRemoteDotfilesError,
    PullError,
    RemoteFetchError,
    RemotePushError,
)
from sn_dotfiles.models.schema import DiffState, ItemDiff
from sn_dotfiles.services import sync_service
from tests.fakes import make_note, make_tag, write_file


def _diff(home, name, state, remote_text="remote", local=None, tag="dotfiles"):
    note = make_note(name, remote_text)
    return ItemDiff(
        tag_title=tag,
        note_title=name,
        path=os.path.join(home, f".{name}"),
        home_rel_path=f".{name}",
        remote=note,
        state=state,
        local_content=local,
    )


def _read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestPartition:
    def test_identical_is_dropped(self, home):
        diffs = [
            _diff(home, "a", DiffState.IDENTICAL),
            _diff(home, "b", DiffState.LOCAL_NEWER, local=b"x"),
            _diff(home, "c", DiffState.REMOTE_NEWER),
            _diff(home, "d", DiffState.LOCAL_MISSING),
        ]
        to_push, to_pull = sync_service.partition(diffs)
        assert [d.note_title for d in to_push] == ["b"]
        assert [d.note_title for d in to_pull] == ["c", "d"]


class TestPush:
    """Tests for sync_service.push."""

    def test_empty_push_rejected(self, session, repository, fake_store):
        with pytest.raises(NoItemsToPushError) as excinfo:
            sync_service.push(session, [], repository)
        assert excinfo.value.message == "no items to push"
        assert fake_store.put_calls == []

    def test_push_replaces_text_in_one_batch(self, session, repository, fake_store, home):
        diffs = [
            _diff(home, "bashrc", DiffState.LOCAL_NEWER, local=b"new bash"),
            _diff(home, "vimrc", DiffState.LOCAL_NEWER, local=b"new vim"),
        ]
        result = sync_service.push(session, diffs, repository)
        assert result.count == 2
        assert len(fake_store.put_calls) == 1
        stored = repository.fetch_items(session)
        assert sorted(i.text for i in stored) == ["new bash", "new vim"]
        assert {i.uuid for i in stored} == {d.remote.uuid for d in diffs}

    def test_push_failure_propagates(self, session, repository, fake_store, home):
        fake_store.fail_put = True
        with pytest.raises(RemotePushError):
            sync_service.push(
                session, [_diff(home, "bashrc", DiffState.LOCAL_NEWER, local=b"x")], repository
            )


class TestPull:
    """Tests for sync_service.pull."""

    def test_pull_creates_parent_directories(self, home):
        diff = _diff(home, "init.vim", DiffState.LOCAL_MISSING, remote_text="set number")
        nested = os.path.join(home, ".config", "nvim", "init.vim")
        diff = replace(diff, path=nested)
        assert sync_service.pull([diff]) == 1
        assert _read(nested) == "set number"

    def test_pull_overwrites_stale_file(self, home):
        path = write_file(os.path.join(home, ".bashrc"), "stale")
        assert sync_service.pull([_diff(home, "bashrc", DiffState.REMOTE_NEWER, "fresh")]) == 1
        assert _read(path) == "fresh"

    def test_failed_writes_are_collected(self, home):
        # A regular file in place of the parent directory makes the write fail
        write_file(os.path.join(home, ".blocker"), "not a directory")
        bad = _diff(home, "blocker", DiffState.REMOTE_NEWER)
        bad = replace(bad, path=os.path.join(home, ".blocker", "child"))
        good = _diff(home, "vimrc", DiffState.LOCAL_MISSING, "vim")

        with pytest.raises(PullError) as excinfo:
            sync_service.pull([bad, good], max_workers=2)
        assert excinfo.value.failed_paths == [bad.path]
        assert excinfo.value.written_count == 1
        assert _read(good.path) == "vim"


class TestReconcile:
    """Tests for sync_service.reconcile."""

    def test_nothing_to_do(self, session, repository, fake_store, home, capsys):
        result = sync_service.reconcile(
            session, [_diff(home, "a", DiffState.IDENTICAL)], repository=repository
        )
        assert result == (0, 0)
        assert fake_store.put_calls == []
        assert capsys.readouterr().out == "nothing to do\n"

    def test_push_then_pull(self, session, repository, fake_store, home, capsys):
        diffs = [
            _diff(home, "bashrc", DiffState.LOCAL_NEWER, local=b"mine"),
            _diff(home, "vimrc", DiffState.REMOTE_NEWER, "theirs"),
        ]
        result = sync_service.reconcile(session, diffs, repository=repository)
        assert result.pushed == 1
        assert result.pulled == 1
        assert len(fake_store.put_calls) == 1
        assert _read(os.path.join(home, ".vimrc")) == "theirs"
        out = capsys.readouterr().out.splitlines()
        assert out == [".bashrc | pushed", ".vimrc  | pulled"]

    def test_push_failure_skips_pull(self, session, repository, fake_store, home):
        fake_store.fail_put = True
        diffs = [
            _diff(home, "bashrc", DiffState.LOCAL_NEWER, local=b"mine"),
            _diff(home, "vimrc", DiffState.LOCAL_MISSING, "theirs"),
        ]
        with pytest.raises(RemotePushError):
            sync_service.reconcile(session, diffs, repository=repository)
        assert not os.path.exists(os.path.join(home, ".vimrc"))

    def test_pull_failure_reports_pushed_count(self, session, repository, home, capsys):
        write_file(os.path.join(home, ".blocker"), "file")
        bad = _diff(home, "blocker", DiffState.REMOTE_NEWER)
        bad = replace(bad, path=os.path.join(home, ".blocker", "x"), home_rel_path=".blocker/x")
        diffs = [_diff(home, "bashrc", DiffState.LOCAL_NEWER, local=b"mine"), bad]
        with pytest.raises(PullError) as excinfo:
            sync_service.reconcile(session, diffs, repository=repository)
        assert excinfo.value.pushed_count == 1
        assert ".blocker/x | failed" in capsys.readouterr().out

    def test_quiet(self, session, repository, home, capsys):
        sync_service.reconcile(
            session, [_diff(home, "vimrc", DiffState.LOCAL_MISSING)], quiet=True,
            repository=repository,
        )
        assert capsys.readouterr().out == ""


class TestSync:
    """End-to-end passes against the fake store."""

    def test_full_pass(self, session, repository, fake_store, seed, home):
        bashrc = make_note("bashrc", "remote bash")
        vimrc = make_note("vimrc", "remote vim")
        init = make_note("init.vim", "same")
        seed([
            make_tag("dotfiles", bashrc, vimrc), bashrc, vimrc,
            make_tag("dotfiles.config.nvim", init), init,
        ])
        write_file(os.path.join(home, ".bashrc"), "local bash", age_seconds=-3600)
        write_file(os.path.join(home, ".config", "nvim", "init.vim"), "same")

        result = sync_service.sync(session, home, quiet=True, repository=repository)

        assert result == (1, 1)
        assert _read(os.path.join(home, ".vimrc")) == "remote vim"
        notes = {n.title: n for n in repository.fetch_tracked_relationship(session).notes}
        assert notes["bashrc"].text == "local bash"

    def test_second_pass_has_nothing_to_do(self, session, repository, seed, home, capsys):
        vimrc = make_note("vimrc", "vim")
        seed([make_tag("dotfiles", vimrc), vimrc])
        sync_service.sync(session, home, quiet=True, repository=repository)
        sync_service.sync(session, home, repository=repository)
        assert capsys.readouterr().out == "nothing to do\n"

    def test_note_escaping_home_is_skipped(self, session, repository, seed, home, tmp_path):
        bashrc = make_note("bashrc", "bash")
        evil = make_note("../../outside.txt", "evil")
        seed([
            make_tag("dotfiles", bashrc), bashrc,
            make_tag("dotfiles.config", evil), evil,
        ])

        result = sync_service.sync(session, home, quiet=True, repository=repository)

        assert result == (0, 1)
        assert _read(os.path.join(home, ".bashrc")) == "bash"
        assert not (tmp_path / "outside.txt").exists()
        assert not os.path.exists(os.path.join(home, ".config"))

    def test_nothing_tracked(self, session, repository, home):
        with pytest.raises(NoRemoteDotfilesError):
            sync_service.sync(session, home, repository=repository)

    def test_fetch_failure(self, session, repository, fake_store, home):
        fake_store.fail_fetch = True
        with pytest.raises(RemoteFetchError):
            sync_service.sync(session, home, repository=repository)

    def test_duplicates_block_changes(self, session, repository, fake_store, seed, home):
        a, b = make_note("bashrc", "one"), make_note("bashrc", "two")
        seed([make_tag("dotfiles", a, b), a, b])
        with pytest.raises(DuplicateNoteTitleError):
            sync_service.sync(session, home, repository=repository)
        assert fake_store.put_calls == []
        assert not os.path.exists(os.path.join(home, ".bashrc"))


class TestStatus:
    """Tests for sync_service.status."""

    def test_reports_without_changing(self, session, repository, fake_store, seed, home, capsys):
        vimrc = make_note("vimrc", "vim")
        seed([make_tag("dotfiles", vimrc), vimrc])
        write_file(os.path.join(home, ".zshrc"), "z")

        result = sync_service.status(
            session, home, [os.path.join(home, ".vimrc"), os.path.join(home, ".zshrc")],
            repository=repository,
        )

        assert [d.state for d in result.diffs] == [DiffState.LOCAL_MISSING]
        assert result.untracked == [os.path.join(home, ".zshrc")]
        assert fake_store.put_calls == []
        assert not os.path.exists(os.path.join(home, ".vimrc"))
        assert capsys.readouterr().out.splitlines() == [
            ".vimrc | local missing",
            ".zshrc | untracked",
        ]
