"""Hashing and fixed-width encoding primitives.

Everything the settlement core hashes is either a sequence of 32-byte words
(the layout produced by Solidity's ``abi.encode`` for static types) or a
tightly packed concatenation of fixed-width fields.  The helpers below keep
those two layouts explicit so that callers never build byte strings by hand.
"""
from __future__ import annotations

from typing import Iterable, Union

from eth_utils import decode_hex, encode_hex, keccak

WORD_SIZE = 32
ADDRESS_SIZE = 20
ZERO_HASH = bytes(WORD_SIZE)
EMPTY_STRING_KECCAK = keccak(b"")
UINT256_MAX = (1 << 256) - 1

Word = Union[int, bytes]


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte keccak-256 digest of ``data``."""

    return keccak(data)


def uint_to_bytes(value: int, size: int = WORD_SIZE) -> bytes:
    """Big-endian, zero-padded encoding of an unsigned integer."""

    if value < 0:
        raise ValueError("unsigned integers must be non-negative")
    if value >> (size * 8):
        raise ValueError(f"value does not fit in {size} bytes")
    return value.to_bytes(size, byteorder="big")


def word(value: Word) -> bytes:
    """Encode ``value`` as a single 32-byte word.

    Integers are left-padded (uint256), byte strings of exactly 32 bytes are
    used verbatim, and 20-byte addresses are left-padded like ``uint160``.
    """

    if isinstance(value, bool):
        return uint_to_bytes(int(value))
    if isinstance(value, int):
        return uint_to_bytes(value)
    if len(value) == WORD_SIZE:
        return bytes(value)
    if len(value) == ADDRESS_SIZE:
        return bytes(WORD_SIZE - ADDRESS_SIZE) + bytes(value)
    raise ValueError(f"cannot encode {len(value)}-byte value as a word")


def encode_words(*values: Word) -> bytes:
    """Concatenate ``values`` as 32-byte words (``abi.encode`` layout)."""

    return b"".join(word(value) for value in values)


def hash_words(*values: Word) -> bytes:
    return keccak(encode_words(*values))


def concat(parts: Iterable[bytes]) -> bytes:
    return b"".join(parts)


def require_bytes32(value: bytes, field: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != WORD_SIZE:
        raise ValueError(f"{field} must be 32 bytes")
    return bytes(value)


def require_address(value: bytes, field: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_SIZE:
        raise ValueError(f"{field} must be a 20-byte address")
    return bytes(value)


def address_from_int(value: int) -> bytes:
    return uint_to_bytes(value, ADDRESS_SIZE)


def to_hex(value: bytes) -> str:
    return encode_hex(value)


def from_hex(value: str | bytes, field: str = "value") -> bytes:
    """Decode a ``0x``-prefixed hex string (bytes pass through unchanged)."""

    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a hex string, got {value!r}")
    try:
        return decode_hex(value.strip())
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid hex for {field}: {value!r}") from exc


def bytes32_from_hex(value: str | bytes, field: str = "value") -> bytes:
    return require_bytes32(from_hex(value, field), field)


__all__ = [
    "ADDRESS_SIZE",
    "EMPTY_STRING_KECCAK",
    "UINT256_MAX",
    "WORD_SIZE",
    "ZERO_HASH",
    "address_from_int",
    "bytes32_from_hex",
    "concat",
    "encode_words",
    "from_hex",
    "hash_words",
    "keccak256",
    "require_address",
    "require_bytes32",
    "to_hex",
    "uint_to_bytes",
    "word",
]
