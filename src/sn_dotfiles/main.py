#!/usr/bin/env python
"""Command line entry point for sn-dotfiles."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from sn_dotfiles import __version__
from sn_dotfiles.config import config
from sn_dotfiles.exceptions import ConfigurationError, DotfilesError
from sn_dotfiles.observability import configure_logging, metrics
from sn_dotfiles.services import sync_service, tracking_service
from sn_dotfiles.session import Session, new_session, open_store, parse_session_string
from sn_dotfiles.storage.tag_repository import TagNoteRepository

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="sn-dotfiles",
        description="Sync dotfiles with an encrypted, tagged note store",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--home",
        help="Directory tracked paths are relative to",
        type=str,
        default=os.environ.get("SN_DOTFILES_HOME")
    )
    parser.add_argument(
        "--session",
        help="Session string (email;server;token;ak;mk)",
        type=str,
        default=None
    )
    parser.add_argument(
        "--store-url",
        help="Store URL used by init-store",
        type=str,
        default=None
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress result output")
    parser.add_argument(
        "--log-level",
        help="Console logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("SN_DOTFILES_LOG_LEVEL", config.log_level)
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Push local changes and pull remote ones")
    p_status = sub.add_parser("status", help="Show drift without changing anything")
    p_status.add_argument("paths", nargs="*")
    p_add = sub.add_parser("add", help="Start tracking files")
    p_add.add_argument("paths", nargs="+")
    p_remove = sub.add_parser("remove", help="Stop tracking files")
    p_remove.add_argument("paths", nargs="+")
    sub.add_parser("wipe", help="Remove every tracked note and tag")
    sub.add_parser("init-store", help="Create the store and print a new session string")
    return parser.parse_args(argv)


def update_config(args) -> None:
    """Update the global config with command line arguments."""
    if args.home:
        config.home = Path(args.home)
    if args.session:
        config.session = args.session
    if args.store_url:
        config.store_url = args.store_url


def get_session() -> Session:
    """Build the session from configuration."""
    if not config.session:
        raise ConfigurationError(
            "no session configured; set SN_DOTFILES_SESSION or pass --session "
            "(run 'sn-dotfiles init-store' to create one)",
            config_key="session",
        )
    _, session = parse_session_string(config.session)
    return session


def run(args) -> int:
    """Dispatch a parsed command. Returns the process exit status."""
    if args.command == "init-store":
        session = new_session(config.store_url)
        open_store(session.server)
        print(session.to_string())
        return 0

    session = get_session()
    home = config.get_home()
    repository = TagNoteRepository(config.root_tag)

    if args.command == "sync":
        sync_service.sync(session, home, args.quiet, repository)
    elif args.command == "status":
        sync_service.status(session, home, args.paths, args.quiet, repository)
    elif args.command == "add":
        tracking_service.add(session, home, args.paths, args.quiet, repository)
    elif args.command == "remove":
        tracking_service.remove(session, home, args.paths, args.quiet, repository)
    elif args.command == "wipe":
        tracking_service.wipe(session, args.quiet, repository)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run sn-dotfiles."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    try:
        configure_logging(log_dir=config.get_log_dir(), level=log_level, console=True)
    except OSError as e:
        # Fall back to console logging if the log directory is unusable
        configure_logging(log_dir=None, level=log_level, console=True)
        logger.warning(f"Failed to configure file logging: {e}")

    try:
        return run(args)
    except DotfilesError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    finally:
        metrics.log_summary()


if __name__ == "__main__":
    sys.exit(main())
