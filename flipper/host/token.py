"""Token program supporting the legacy and the extensible account layouts.

Both layouts coexist on one ledger. A mint is bound to the program that
created it and every token account for that mint must use the same program.
The extensible layout may reserve extension space on its accounts; the
legacy layout has a fixed size.

Transfers are always mint-checked: source and destination must hold the same
mint, the caller must name that mint with its decimals, and the source owner
must have signed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field

from flipper.constants import (
    EXTENSIBLE_ACCOUNT_TYPE_SPACE,
    MINT_SPACE,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_ACCOUNT_SPACE,
    TOKEN_PROGRAM_ID,
    TOKEN_PROGRAMS,
)
from flipper.errors import InsufficientFunds, TokenError
from flipper.models.types import U64, Address, normalize_address
from flipper.safe_int import S

if TYPE_CHECKING:
    from flipper.host.ledger import Ledger

logger = structlog.get_logger()


class Mint(BaseModel):
    decimals: int = Field(ge=0, le=255)
    token_program: Address
    mint_authority: Address | None = None
    supply: U64 = 0


class TokenAccount(BaseModel):
    mint: Address
    owner: Address
    amount: U64 = 0
    extension_space: int = 0


def token_account_space(token_program: str, extension_space: int = 0) -> int:
    """Size of a token account under the given layout.

    Raises:
        TokenError: If extension space is requested on the legacy layout
    """
    if token_program == TOKEN_PROGRAM_ID:
        if extension_space:
            raise TokenError("Legacy token accounts cannot carry extensions")
        return TOKEN_ACCOUNT_SPACE
    return TOKEN_ACCOUNT_SPACE + EXTENSIBLE_ACCOUNT_TYPE_SPACE + extension_space


class TokenProgram:
    """Token operations against a ledger."""

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    def mint(self, address: str) -> Mint:
        account = self._ledger.get_account(address)
        if account.owner not in TOKEN_PROGRAMS or not isinstance(account.data, Mint):
            raise TokenError(f"{address} is not a mint")
        return account.data

    def account(self, address: str) -> TokenAccount:
        account = self._ledger.get_account(address)
        if account.owner not in TOKEN_PROGRAMS or not isinstance(account.data, TokenAccount):
            raise TokenError(f"{address} is not a token account")
        return account.data

    def is_token_account(self, address: str) -> bool:
        if not self._ledger.exists(address):
            return False
        account = self._ledger.get_account(address)
        return account.owner in TOKEN_PROGRAMS and isinstance(account.data, TokenAccount)

    def balance(self, address: str) -> int:
        return self.account(address).amount

    def program_of(self, address: str) -> str:
        """Owning token program of a mint or token account."""
        return self._ledger.get_account(address).owner

    def create_mint(
        self,
        address: str,
        decimals: int,
        payer: str,
        token_program: str = TOKEN_PROGRAM_ID,
        mint_authority: str | None = None,
    ) -> Mint:
        if token_program not in TOKEN_PROGRAMS:
            raise TokenError(f"Unknown token program {token_program}")
        mint = Mint(decimals=decimals, token_program=token_program, mint_authority=mint_authority)
        self._ledger.create_account(address, token_program, MINT_SPACE, mint, payer)
        return mint

    def create_account(
        self,
        address: str,
        mint: str,
        owner: str,
        payer: str,
        extension_space: int = 0,
    ) -> TokenAccount:
        """Allocate and initialize a token account for ``mint``.

        The account uses the mint's program; extension space is only valid
        for the extensible layout.
        """
        token_program = self.mint(mint).token_program
        space = token_account_space(token_program, extension_space)
        data = TokenAccount(
            mint=normalize_address(mint),
            owner=normalize_address(owner),
            extension_space=extension_space,
        )
        self._ledger.create_account(address, token_program, space, data, payer)
        return data

    def mint_to(self, mint: str, destination: str, amount: int) -> None:
        """Mint new tokens; the mint authority must have signed."""
        mint_data = self.mint(mint)
        if mint_data.mint_authority is None:
            raise TokenError(f"Mint {mint} has a fixed supply")
        self._ledger.require_signer(mint_data.mint_authority)
        target = self.account(destination)
        if target.mint != normalize_address(mint):
            raise TokenError("Destination account holds a different mint")
        mint_data.supply = (S(mint_data.supply) + amount).to_u64()
        target.amount = (S(target.amount) + amount).to_u64()

    def transfer_checked(
        self,
        source: str,
        destination: str,
        authority: str,
        amount: int,
        mint: str,
        decimals: int,
    ) -> None:
        """Move ``amount`` between two accounts of the same mint.

        Raises:
            TokenError: If mints, decimals, programs or the authority do not match
            MissingSignature: If the source owner did not sign
            InsufficientFunds: If the source balance is too small
        """
        ledger = self._ledger
        ledger.consume(ledger.config.transfer_cost)
        mint = normalize_address(mint)
        mint_data = self.mint(mint)
        src = self.account(source)
        dst = self.account(destination)

        if src.mint != mint or dst.mint != mint:
            raise TokenError(f"Account mint mismatch for transfer of {mint}")
        if mint_data.decimals != decimals:
            raise TokenError(f"Decimals mismatch: mint has {mint_data.decimals}, got {decimals}")
        program = mint_data.token_program
        if self.program_of(source) != program or self.program_of(destination) != program:
            raise TokenError("Token program mismatch between mint and accounts")
        if src.owner != normalize_address(authority):
            raise TokenError(f"{authority} does not own {source}")
        ledger.require_signer(authority)
        if src.amount < amount:
            raise InsufficientFunds(f"{source} holds {src.amount}, transfer needs {amount}")

        src.amount = (S(src.amount) - amount).to_u64()
        dst.amount = (S(dst.amount) + amount).to_u64()
        logger.debug("token_transfer", source=source, destination=destination, mint=mint, amount=amount)

    def transfer(self, source: str, destination: str, authority: str, amount: int) -> None:
        """Mint-checked transfer using the source account's own mint."""
        mint = self.account(source).mint
        self.transfer_checked(source, destination, authority, amount, mint, self.mint(mint).decimals)

    def close_account(self, address: str, destination: str, authority: str) -> int:
        """Close an empty token account, returning its deposit to ``destination``.

        Raises:
            TokenError: If the account still holds tokens or the authority is wrong
        """
        data = self.account(address)
        if data.amount != 0:
            raise TokenError(f"Cannot close {address} holding {data.amount}")
        if data.owner != normalize_address(authority):
            raise TokenError(f"{authority} does not own {address}")
        self._ledger.require_signer(authority)
        return self._ledger.close_account(address, destination)


__all__ = [
    "Mint",
    "TokenAccount",
    "TokenProgram",
    "token_account_space",
    "TOKEN_PROGRAM_ID",
    "TOKEN_2022_PROGRAM_ID",
]
