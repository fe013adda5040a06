"""Kafka message keys of the form '<slot>_<sha256 hex of payload>'."""

from __future__ import annotations

import hashlib
import re
from typing import NamedTuple

U64_MAX = 2**64 - 1
_SLOT_RE = re.compile(r"\+?[0-9]+")
_HASH_RE = re.compile(r"[0-9a-fA-F]{64}")


class MessageKey(NamedTuple):
    """A parsed message key."""

    slot: int
    hash_hex: str
    hash: bytes


def make_message_key(slot: int, payload: bytes) -> str:
    """Build the key for a payload published for the given slot."""
    if isinstance(slot, bool) or not isinstance(slot, int) or not 0 <= slot <= U64_MAX:
        raise ValueError(f"invalid slot: {slot!r}")
    return f"{slot}_{hashlib.sha256(bytes(payload)).hexdigest()}"


def parse_message_key(key: str | bytes) -> MessageKey:
    """Split a key into slot and 32-byte hash; raise ValueError if it is malformed."""
    if isinstance(key, (bytes, bytearray)):
        try:
            key = bytes(key).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("message key is not valid UTF-8") from exc
    if not isinstance(key, str):
        raise ValueError(f"invalid message key: {key!r}")
    slot_text, sep, hash_hex = key.partition("_")
    if not sep:
        raise ValueError(f"message key has no separator: {key!r}")
    if not _SLOT_RE.fullmatch(slot_text):
        raise ValueError(f"invalid slot in message key: {key!r}")
    slot = int(slot_text)
    if slot > U64_MAX:
        raise ValueError(f"slot out of range in message key: {key!r}")
    digits = hash_hex[2:] if hash_hex[:2] in ("0x", "0X") else hash_hex
    if not _HASH_RE.fullmatch(digits):
        raise ValueError(f"invalid hash in message key: {key!r}")
    return MessageKey(slot, hash_hex, bytes.fromhex(digits))