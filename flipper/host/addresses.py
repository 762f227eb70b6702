"""Deterministic derived addresses.

A derived address is a keyed hash over a program id and a tuple of seeds.
Nobody holds a private key for it; the owning program "signs" for it by
presenting the same seeds during an invocation. Derivation is an addressing
convention only: authorization is always checked against explicit fields.
"""

from __future__ import annotations

import hashlib

from flipper.models.types import address_bytes

_DERIVED_ADDRESS_MARKER = b"ProgramDerivedAddress"


def derive_address(program_id: str, *seeds: bytes) -> str:
    """Compute the address owned by ``program_id`` for a seed tuple.

    Seeds are length-prefixed so that ("ab", "c") and ("a", "bc") never
    collide.

    Args:
        program_id: Address of the program that owns the derived address
        *seeds: Seed byte strings, each at most 255 bytes

    Returns:
        0x-prefixed lowercase hex address
    """
    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > 255:
            raise ValueError(f"Seed too long: {len(seed)} bytes")
        hasher.update(bytes([len(seed)]))
        hasher.update(seed)
    hasher.update(address_bytes(program_id))
    hasher.update(_DERIVED_ADDRESS_MARKER)
    return "0x" + hasher.hexdigest()


def address_for(label: str) -> str:
    """Stable address for a human-readable label (wallets, mints, pools in fixtures)."""
    return "0x" + hashlib.sha256(label.encode()).hexdigest()


__all__ = ["derive_address", "address_for"]
