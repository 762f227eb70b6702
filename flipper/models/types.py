"""Shared type definitions for account and event models.

Addresses are 32-byte identifiers rendered as 0x-prefixed lowercase hex.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from flipper.safe_int import U64_MAX

ADDRESS_HEX_LENGTH = 64


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with a 0x prefix.

    Args:
        address: A 32-byte address (with or without 0x prefix)
        validate: If True, raises ValueError for malformed addresses

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not 64 hex characters
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a well-formed 32-byte address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x") or len(address) != ADDRESS_HEX_LENGTH + 2:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_bytes(address: str) -> bytes:
    """Raw 32 bytes of an address."""
    return bytes.fromhex(normalize_address(address, validate=True)[2:])


def _validate_address(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Address must be a string, got {type(value).__name__}")
    return normalize_address(value, validate=True)


def validate_u64(value: Any) -> int:
    """Validate that a value is an unsigned 64-bit integer.

    Accepts ints and decimal strings (JSON clients often send amounts as
    strings to avoid float precision loss).

    Raises:
        ValueError: If value is negative, non-integral or exceeds 2^64-1
    """
    if isinstance(value, bool):
        raise ValueError("U64 cannot be a boolean")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"U64 must be a decimal integer string: '{value}'") from err
    if not isinstance(value, int):
        raise ValueError(f"U64 must be string or int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"U64 cannot be negative: {value}")
    if value > U64_MAX:
        raise ValueError(f"U64 overflow: {value} > 2^64-1")
    return value


# 32-byte address, normalized to lowercase
Address = Annotated[str, BeforeValidator(_validate_address)]

# Unsigned 64-bit amount
U64 = Annotated[int, BeforeValidator(validate_u64), Field(description="Unsigned 64-bit integer")]
