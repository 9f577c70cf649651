"""Sessions: credentials and the store they are bound to.

A session string has five ';'-separated fields::

    email;server;token;ak;mk

``ak`` and ``mk`` are 64-character hex keys. ``server`` names the item
store; SQLAlchemy URLs (``sqlite:///...``) are served by SQLiteItemStore.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from Cryptodome.Random import get_random_bytes

from sn_dotfiles.exceptions import ConfigurationError, SessionError
from sn_dotfiles.storage.base import ItemStore

logger = logging.getLogger(__name__)

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass
class Session:
    """Credentials for one account on one store."""

    server: str
    mk: str = field(repr=False)
    ak: str = field(repr=False)
    token: str = field(default="", repr=False)
    email: str = ""
    store: Optional[ItemStore] = field(default=None, repr=False, compare=False)

    def get_store(self) -> ItemStore:
        """Return the bound store, opening one for ``server`` if needed."""
        if self.store is None:
            self.store = open_store(self.server)
        return self.store

    def to_string(self) -> str:
        return ";".join([self.email, self.server, self.token, self.ak, self.mk])


def open_store(server: str) -> ItemStore:
    """Open the item store named by a session's server field."""
    if server.startswith("sqlite:"):
        from sn_dotfiles.storage.item_store import SQLiteItemStore

        return SQLiteItemStore(server)
    raise ConfigurationError(f"unsupported store server '{server}'", config_key="server")


def is_unencrypted_session(value: str) -> bool:
    """Check whether ``value`` has the shape of a plain session string."""
    parts = value.split(";")
    if len(parts) != 5:
        return False
    email, server, token, ak, mk = parts
    return bool(email and server and token) and bool(_HEX_KEY.match(ak)) and bool(_HEX_KEY.match(mk))


def parse_session_string(value: str) -> Tuple[str, Session]:
    """Parse a session string.

    Returns:
        The email address and the session.

    Raises:
        SessionError: If the string is not a valid session.
    """
    if not value or not is_unencrypted_session(value.strip()):
        raise SessionError("session invalid")
    email, server, token, ak, mk = value.strip().split(";")
    return email, Session(server=server, mk=mk, ak=ak, token=token, email=email)


def new_session(server: str, email: str = "local@localhost") -> Session:
    """Create a session with freshly generated keys."""
    session = Session(
        server=server,
        mk=get_random_bytes(32).hex(),
        ak=get_random_bytes(32).hex(),
        token=get_random_bytes(16).hex(),
        email=email,
    )
    logger.info(f"Created new session for {email} on {server}")
    return session
