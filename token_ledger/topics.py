"""
Event Topic Hashing

Computes the indexed topics attached to ledger events so external indexers
can look events up by name and by their indexed fields. Values are SCALE
encoded; encodings longer than a topic are replaced by their BLAKE2b-256
digest, shorter ones are zero-padded.
"""

import hashlib
from typing import List, Optional

from .account import AccountId, MAX_BALANCE


TOPIC_LENGTH = 32


def encode_compact(value: int) -> bytes:
    """SCALE compact encoding of a non-negative integer"""
    if value < 0:
        raise ValueError("compact encoding requires a non-negative integer")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    length = (value.bit_length() + 7) // 8
    if length > 67:
        raise ValueError("value too large for compact encoding")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def encode_bytes(value: bytes) -> bytes:
    """Variable-length byte string: compact length followed by the bytes"""
    return encode_compact(len(value)) + value


def encode_u128(value: int) -> bytes:
    if not 0 <= value <= MAX_BALANCE:
        raise ValueError("u128 out of range")
    return value.to_bytes(16, "little")


def encode_account(account: AccountId) -> bytes:
    """Account ids are fixed-size arrays and carry no length prefix"""
    return account.raw


def encode_optional_account(account: Optional[AccountId]) -> bytes:
    if account is None:
        return b"\x00"
    return b"\x01" + encode_account(account)


def encoded_into_hash(encoded: bytes) -> bytes:
    """Fit an encoding into a 32-byte topic"""
    if len(encoded) <= TOPIC_LENGTH:
        return encoded + b"\x00" * (TOPIC_LENGTH - len(encoded))
    return hashlib.blake2b(encoded, digest_size=TOPIC_LENGTH).digest()


def prefixed_topic(prefix: bytes, encoded_value: bytes) -> bytes:
    """Topic for an already-encoded value under a length-prefixed prefix"""
    return encoded_into_hash(encode_bytes(prefix) + encoded_value)


def event_name_topic(contract_name: str, event_name: str) -> bytes:
    return prefixed_topic(b"", f"{contract_name}::{event_name}".encode("utf-8"))


def field_topic(contract_name: str, event_name: str, field: str, encoded_value: bytes) -> bytes:
    prefix = f"{contract_name}::{event_name}::{field}".encode("utf-8")
    return prefixed_topic(prefix, encoded_value)


def event_topics(event, contract_name: str = "Erc20") -> List[bytes]:
    """
    All topics of an event: the event name first, then one topic per
    indexed field in declaration order
    """
    topics = [event_name_topic(contract_name, event.name)]
    for field, encoded in event.indexed_fields():
        topics.append(field_topic(contract_name, event.name, field, encoded))
    return topics
