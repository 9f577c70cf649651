"""Tests for configuration loading and validation."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from sn_dotfiles.config import DEFAULT_ROOT_TAG, DotfilesConfig


class TestDotfilesConfig:
    """Tests for DotfilesConfig."""

    def test_defaults(self, monkeypatch):
        for var in ("SN_DOTFILES_ROOT_TAG", "SN_DOTFILES_MAX_WORKERS", "SN_DOTFILES_SESSION"):
            monkeypatch.delenv(var, raising=False)
        cfg = DotfilesConfig()
        assert cfg.root_tag == DEFAULT_ROOT_TAG
        assert cfg.max_workers == 4
        assert cfg.session is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SN_DOTFILES_HOME", str(tmp_path))
        monkeypatch.setenv("SN_DOTFILES_ROOT_TAG", "dots")
        monkeypatch.setenv("SN_DOTFILES_MAX_WORKERS", "8")
        cfg = DotfilesConfig()
        assert cfg.get_home() == str(tmp_path)
        assert cfg.root_tag == "dots"
        assert cfg.max_workers == 8

    def test_home_expands_user(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/me")
        assert DotfilesConfig(home=Path("~")).get_home() == "/home/me"

    @pytest.mark.parametrize("kwargs", [
        {"root_tag": ""},
        {"root_tag": "dot.files"},
        {"max_workers": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            DotfilesConfig(**kwargs)

    def test_log_dir_created(self, tmp_path):
        cfg = DotfilesConfig(log_dir=tmp_path / "a" / "logs")
        assert cfg.get_log_dir().is_dir()
