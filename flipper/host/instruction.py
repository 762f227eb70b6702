"""Instruction and account-handle types passed between programs."""

from __future__ import annotations

from dataclasses import dataclass, field

from flipper.models.types import normalize_address


@dataclass(frozen=True)
class AccountMeta:
    """An account handle with its access flags for one invocation."""

    pubkey: str
    is_writable: bool = False
    is_signer: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "pubkey", normalize_address(self.pubkey, validate=True))

    @classmethod
    def writable(cls, pubkey: str, is_signer: bool = False) -> AccountMeta:
        return cls(pubkey, is_writable=True, is_signer=is_signer)

    @classmethod
    def readonly(cls, pubkey: str, is_signer: bool = False) -> AccountMeta:
        return cls(pubkey, is_writable=False, is_signer=is_signer)


@dataclass(frozen=True)
class Instruction:
    """A call into another program: target, ordered accounts and raw data."""

    program_id: str
    accounts: list[AccountMeta] = field(default_factory=list)
    data: bytes = b""


__all__ = ["AccountMeta", "Instruction"]
