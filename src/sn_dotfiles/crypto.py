"""
Payload encryption for items exchanged with the note store.

Uses AES-256-CBC with HMAC-SHA256 authentication (encrypt-then-MAC).
The session's master key (mk) is the encryption key and its auth key (ak)
is the HMAC key. The MAC covers the format version, the item uuid, the IV
and the ciphertext, so a payload cannot be moved onto another item.

Format: "002:" + base64(IV || CIPHERTEXT || HMAC)
"""
import base64
import binascii
import hashlib
import hmac
import json
from typing import Tuple

from Cryptodome.Cipher import AES
from Cryptodome.Random import get_random_bytes
from Cryptodome.Util.Padding import pad, unpad
from pydantic import ValidationError

from sn_dotfiles.exceptions import DecryptionError, SessionError
from sn_dotfiles.models.schema import EncryptedItem, Item, ItemContent

VERSION = "002"
KEY_SIZE = 32  # AES-256
BLOCK_SIZE = 16
MAC_SIZE = 32  # SHA-256


def _decode_key(hex_key: str, name: str) -> bytes:
    try:
        key = bytes.fromhex(hex_key)
    except (TypeError, ValueError):
        raise SessionError(f"session {name} is not hex encoded")
    if len(key) != KEY_SIZE:
        raise SessionError(f"session {name} must be {KEY_SIZE} bytes")
    return key


class ItemCipher:
    """Encrypts and decrypts item content with a session's keys."""

    def __init__(self, mk: str, ak: str):
        self._enc_key = _decode_key(mk, "mk")
        self._mac_key = _decode_key(ak, "ak")

    @classmethod
    def for_session(cls, session) -> "ItemCipher":
        return cls(session.mk, session.ak)

    def _mac(self, item_uuid: str, iv: bytes, ciphertext: bytes) -> bytes:
        message = VERSION.encode() + item_uuid.encode("utf-8") + iv + ciphertext
        return hmac.new(self._mac_key, message, hashlib.sha256).digest()

    def encrypt_value(self, plaintext: str, item_uuid: str) -> str:
        iv = get_random_bytes(BLOCK_SIZE)
        cipher = AES.new(self._enc_key, AES.MODE_CBC, iv)
        ciphertext = cipher.encrypt(pad(plaintext.encode("utf-8"), BLOCK_SIZE))
        blob = iv + ciphertext + self._mac(item_uuid, iv, ciphertext)
        return f"{VERSION}:{base64.b64encode(blob).decode('ascii')}"

    def decrypt_value(self, payload: str, item_uuid: str) -> str:
        _, iv, ciphertext, mac = self._split(payload, item_uuid)
        if not hmac.compare_digest(mac, self._mac(item_uuid, iv, ciphertext)):
            raise DecryptionError("payload failed authentication", item_uuid=item_uuid)
        cipher = AES.new(self._enc_key, AES.MODE_CBC, iv)
        try:
            return unpad(cipher.decrypt(ciphertext), BLOCK_SIZE).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            raise DecryptionError("payload could not be decoded", item_uuid=item_uuid)

    @staticmethod
    def _split(payload: str, item_uuid: str) -> Tuple[str, bytes, bytes, bytes]:
        version, sep, body = payload.partition(":")
        if not sep or version != VERSION:
            raise DecryptionError("unsupported payload version", item_uuid=item_uuid)
        try:
            blob = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            raise DecryptionError("payload is not valid base64", item_uuid=item_uuid)
        if len(blob) < BLOCK_SIZE * 2 + MAC_SIZE:
            raise DecryptionError("payload too short", item_uuid=item_uuid)
        return version, blob[:BLOCK_SIZE], blob[BLOCK_SIZE:-MAC_SIZE], blob[-MAC_SIZE:]

    def encrypt_item(self, item: Item) -> EncryptedItem:
        """Encrypt an item's content for submission."""
        return EncryptedItem(
            uuid=item.uuid,
            content_type=item.content_type,
            content=self.encrypt_value(item.content.model_dump_json(), item.uuid),
            deleted=item.deleted,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def decrypt_item(self, encrypted: EncryptedItem) -> Item:
        """Decrypt a fetched item."""
        raw = self.decrypt_value(encrypted.content, encrypted.uuid)
        try:
            content = ItemContent.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            raise DecryptionError("payload is not valid item content", item_uuid=encrypted.uuid)
        return Item(
            uuid=encrypted.uuid,
            content_type=encrypted.content_type,
            content=content,
            created_at=encrypted.created_at,
            updated_at=encrypted.updated_at,
            deleted=encrypted.deleted,
        )
