"""Host ledger: accounts, derived addresses, token program and invocation."""

from flipper.host.addresses import address_for, derive_address
from flipper.host.budget import ComputeMeter
from flipper.host.instruction import AccountMeta, Instruction
from flipper.host.ledger import Account, Ledger, ProgramHandler
from flipper.host.token import Mint, TokenAccount, TokenProgram

__all__ = [
    "Account",
    "AccountMeta",
    "ComputeMeter",
    "Instruction",
    "Ledger",
    "Mint",
    "ProgramHandler",
    "TokenAccount",
    "TokenProgram",
    "address_for",
    "derive_address",
]
