"""Configuration module for sn-dotfiles."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from sn_dotfiles import __version__

# Project-level .env first, then the user-level one next to the store.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

_USER_DIR = Path.home() / ".sn-dotfiles"
load_dotenv(_USER_DIR / ".env")


logger = logging.getLogger(__name__)

DEFAULT_ROOT_TAG = "dotfiles"


def _default_store_url() -> str:
    return os.getenv(
        "SN_DOTFILES_STORE_URL", f"sqlite:///{_USER_DIR / 'items.db'}"
    )


class DotfilesConfig(BaseModel):
    """Configuration for sn-dotfiles."""

    # Directory that tracked paths are relative to
    home: Path = Field(
        default_factory=lambda: Path(os.getenv("SN_DOTFILES_HOME", str(Path.home())))
    )
    # Title of the reserved tag every tracked tag lives under
    root_tag: str = Field(
        default_factory=lambda: os.getenv("SN_DOTFILES_ROOT_TAG", DEFAULT_ROOT_TAG)
    )
    # Session string: email;server;token;ak;mk
    session: Optional[str] = Field(
        default_factory=lambda: os.getenv("SN_DOTFILES_SESSION") or None
    )
    # Store used by `init-store` and by sessions that name no server
    store_url: str = Field(default_factory=_default_store_url)
    # Worker threads for per-file comparisons and local writes
    max_workers: int = Field(
        default_factory=lambda: int(os.getenv("SN_DOTFILES_MAX_WORKERS", "4"))
    )
    # Logging
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("SN_DOTFILES_LOG_DIR", str(_USER_DIR / "logs"))
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("SN_DOTFILES_LOG_LEVEL", "WARNING")
    )
    app_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate(self) -> "DotfilesConfig":
        """Reject settings the path mapping and worker pool cannot use."""
        if not self.root_tag:
            raise ValueError("root_tag must not be empty")
        if "." in self.root_tag:
            raise ValueError("root_tag must not contain '.'")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        return self

    def get_home(self) -> str:
        """Return the home directory as an absolute path string."""
        return os.path.abspath(os.path.expanduser(str(self.home)))

    def get_log_dir(self) -> Path:
        """Return the log directory, creating it if needed."""
        log_dir = Path(os.path.expanduser(str(self.log_dir)))
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir


# Create a global config instance
config = DotfilesConfig()
