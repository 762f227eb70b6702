"""Little-endian instruction data encoding for venue calls.

Venue programs take an 8-byte discriminator followed by their arguments
serialized field by field: fixed-width little-endian integers, one byte per
bool, a one-byte tag before an optional value and a u32 length before a
vector.
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Callable, Iterable
from typing import TypeVar

from flipper.safe_int import U64_MAX, U128_MAX

T = TypeVar("T")


def discriminator(name: str) -> bytes:
    """First 8 bytes of sha256("global:<name>"), the instruction selector."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def encode_u8(value: int) -> bytes:
    return struct.pack("<B", value)


def encode_u32(value: int) -> bytes:
    return struct.pack("<I", value)


def encode_u64(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 out of range: {value}")
    return struct.pack("<Q", value)


def encode_u128(value: int) -> bytes:
    if not 0 <= value <= U128_MAX:
        raise ValueError(f"u128 out of range: {value}")
    return value.to_bytes(16, "little")


def encode_bool(value: bool) -> bytes:
    return b"\x01" if value else b"\x00"


def encode_option(value: T | None, encode: Callable[[T], bytes]) -> bytes:
    if value is None:
        return b"\x00"
    return b"\x01" + encode(value)


def encode_vec(items: Iterable[T], encode: Callable[[T], bytes]) -> bytes:
    encoded = [encode(item) for item in items]
    return encode_u32(len(encoded)) + b"".join(encoded)


__all__ = [
    "discriminator",
    "encode_u8",
    "encode_u32",
    "encode_u64",
    "encode_u128",
    "encode_bool",
    "encode_option",
    "encode_vec",
]
