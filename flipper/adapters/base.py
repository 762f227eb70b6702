"""Base class and protocol for venue adapters.

Each adapter is a strategy for one venue type. It owns:
- An account schema: the fixed-order list of accounts its venue needs,
  with the writable flag each one must carry
- Instruction marshalling: discriminator, argument encoding and the
  venue's own account order for the nested call
- Pool checks: the hop's PoolInfo record must match the venue type, be
  enabled and pin the pool account actually passed

The router only hands an adapter the hop's window of accounts; it never
introspects the venue's accounts itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol

import structlog

from flipper.constants import VAULT_AUTHORITY_SEED
from flipper.errors import ErrorCode, InvalidAccountData, error
from flipper.events import SwapEvent
from flipper.models.accounts import PoolInfo, Swap, SwapKind
from flipper.safe_int import S, Underflow

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta, Instruction
    from flipper.host.ledger import Ledger

logger = structlog.get_logger()


@dataclass(frozen=True)
class AccountSpec:
    """One slot in an adapter's account schema."""

    name: str
    writable: bool = False


@dataclass(frozen=True)
class AccountSchema:
    """Expected accounts for one venue call.

    Attributes:
        fixed: Required accounts in order, PoolInfo first
        max_extra: Number of optional trailing accounts accepted
            (e.g. supplemental tick arrays)
        extra_writable: Whether trailing accounts must be writable
    """

    fixed: tuple[AccountSpec, ...]
    max_extra: int = 0
    extra_writable: bool = True

    @property
    def min_len(self) -> int:
        return len(self.fixed)

    @property
    def max_len(self) -> int:
        return len(self.fixed) + self.max_extra

    def index(self, name: str) -> int:
        for i, spec in enumerate(self.fixed):
            if spec.name == name:
                return i
        raise KeyError(name)

    def validate(self, accounts: list[AccountMeta]) -> None:
        """Check count and writable flags.

        Raises:
            ValidationError: NOT_ENOUGH_ACCOUNT_KEYS if too few accounts,
                INVALID_ACCOUNT if too many or a flag does not match
        """
        if len(accounts) < self.min_len:
            raise error(
                ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
                f"expected at least {self.min_len} accounts, got {len(accounts)}",
            )
        if len(accounts) > self.max_len:
            raise error(
                ErrorCode.INVALID_ACCOUNT,
                f"expected at most {self.max_len} accounts, got {len(accounts)}",
            )
        for spec, meta in zip(self.fixed, accounts, strict=False):
            if spec.writable and not meta.is_writable:
                raise error(ErrorCode.INVALID_ACCOUNT, f"{spec.name} must be writable")
        if self.extra_writable:
            for meta in accounts[self.min_len :]:
                if not meta.is_writable:
                    raise error(ErrorCode.INVALID_ACCOUNT, "trailing accounts must be writable")


@dataclass
class AdapterContext:
    """Everything an adapter sees for one hop.

    Attributes:
        ledger: Host ledger the hop runs against
        authority: VaultAuthority address; owns input and output accounts
        input_account: Token account the hop spends from
        output_account: Token account the hop's output lands in
        accounts: The venue's account window, PoolInfo first
        swap: Venue selector from the route hop
        program_id: Venue program resolved from the adapter registry
    """

    ledger: Ledger
    authority: str
    input_account: str
    output_account: str
    accounts: list[AccountMeta]
    swap: Swap
    program_id: str


@dataclass(frozen=True)
class SwapResult:
    """Realized output of one hop, measured on the output account."""

    input_amount: int
    output_amount: int


class DexAdapter(Protocol):
    """Protocol for venue adapters."""

    swap_kind: SwapKind
    schema: AccountSchema

    def validate_accounts(self, ctx: AdapterContext) -> None:
        """Check the hop's accounts against this venue's contract."""
        ...

    def execute_swap(self, ctx: AdapterContext, amount: int) -> SwapResult:
        """Invoke the venue for ``amount`` and return the realized output."""
        ...


class BaseAdapter:
    """Shared adapter behavior.

    Subclasses set ``swap_kind``, ``schema`` and ``pool_account`` (the schema
    name of the account PoolInfo pins) and implement ``build_instruction``.
    """

    swap_kind: ClassVar[SwapKind]
    schema: ClassVar[AccountSchema]
    pool_account: ClassVar[str]

    def account(self, ctx: AdapterContext, name: str) -> str:
        return ctx.accounts[self.schema.index(name)].pubkey

    def validate_accounts(self, ctx: AdapterContext) -> None:
        self.schema.validate(ctx.accounts)
        self._validate_pool(ctx)

    def _validate_pool(self, ctx: AdapterContext) -> None:
        pool_info_address = ctx.accounts[0].pubkey
        try:
            pool_info = ctx.ledger.read(pool_info_address, PoolInfo, owner=ctx.ledger.config.program_id)
        except InvalidAccountData as err:
            raise error(ErrorCode.INVALID_ACCOUNT, str(err)) from err
        if pool_info.swap_type != self.swap_kind:
            raise error(ErrorCode.INVALID_POOL_ADDRESS, "pool registered for another venue")
        if not pool_info.enabled:
            raise error(ErrorCode.POOL_DISABLED, pool_info.pool_address)
        if self.account(ctx, self.pool_account) != pool_info.pool_address:
            raise error(ErrorCode.INVALID_POOL_ADDRESS, "pool account does not match PoolInfo")

    def build_instruction(self, ctx: AdapterContext, amount: int) -> Instruction:
        raise NotImplementedError

    def execute_swap(self, ctx: AdapterContext, amount: int) -> SwapResult:
        """Invoke the venue signed by the vault authority.

        Output is the increase of the output account's balance, so a venue
        that under-delivers is caught by the router's final tolerance check.
        """
        token = ctx.ledger.token
        input_mint = token.account(ctx.input_account).mint
        output_mint = token.account(ctx.output_account).mint
        before = token.balance(ctx.output_account)

        instruction = self.build_instruction(ctx, amount)
        ctx.ledger.invoke(instruction, signer_seeds=[(VAULT_AUTHORITY_SEED,)])

        try:
            output_amount = (S(token.balance(ctx.output_account)) - before).value
        except Underflow as err:
            raise error(ErrorCode.INVALID_CALCULATION, "output account balance decreased") from err

        ctx.ledger.emit(
            SwapEvent(
                amm=ctx.program_id,
                input_mint=input_mint,
                input_amount=amount,
                output_mint=output_mint,
                output_amount=output_amount,
            )
        )
        logger.debug(
            "venue_swap_executed",
            venue=self.swap_kind.name.lower(),
            amount_in=amount,
            amount_out=output_amount,
        )
        return SwapResult(input_amount=amount, output_amount=output_amount)


__all__ = [
    "AccountSpec",
    "AccountSchema",
    "AdapterContext",
    "SwapResult",
    "DexAdapter",
    "BaseAdapter",
]
