"""Whirlpool concentrated-liquidity adapter (``swap_v2``)."""

from __future__ import annotations

from enum import IntEnum

from flipper.adapters.base import AccountSchema, AccountSpec, AdapterContext, BaseAdapter
from flipper.adapters.encoding import (
    encode_bool,
    encode_option,
    encode_u8,
    encode_u64,
    encode_u128,
    encode_vec,
)
from flipper.constants import TOKEN_PROGRAMS
from flipper.errors import ErrorCode, error
from flipper.host.instruction import AccountMeta, Instruction
from flipper.models.accounts import SwapKind

SWAP_V2_DISCRIMINATOR = bytes([43, 4, 237, 11, 26, 201, 30, 98])

MAX_SUPPLEMENTAL_TICK_ARRAYS = 20


class AccountsType(IntEnum):
    """Kinds of remaining-account slices understood by ``swap_v2``."""

    TRANSFER_HOOK_A = 0
    TRANSFER_HOOK_B = 1
    TRANSFER_HOOK_REWARD = 2
    TRANSFER_HOOK_INPUT = 3
    TRANSFER_HOOK_INTERMEDIATE = 4
    TRANSFER_HOOK_OUTPUT = 5
    SUPPLEMENTAL_TICK_ARRAYS = 6
    SUPPLEMENTAL_TICK_ARRAYS_ONE = 7
    SUPPLEMENTAL_TICK_ARRAYS_TWO = 8


def _encode_slice(slice_: tuple[AccountsType, int]) -> bytes:
    accounts_type, length = slice_
    return encode_u8(int(accounts_type)) + encode_u8(length)


def encode_swap_v2(
    amount: int,
    a_to_b: bool,
    supplemental_tick_arrays: int = 0,
    other_amount_threshold: int = 0,
    sqrt_price_limit: int = 0,
    amount_specified_is_input: bool = True,
) -> bytes:
    """Instruction data for ``swap_v2``.

    The remaining-accounts info is omitted (option tag 0) unless
    supplemental tick arrays are passed.
    """
    remaining = None
    if supplemental_tick_arrays:
        remaining = [(AccountsType.SUPPLEMENTAL_TICK_ARRAYS, supplemental_tick_arrays)]
    return (
        SWAP_V2_DISCRIMINATOR
        + encode_u64(amount)
        + encode_u64(other_amount_threshold)
        + encode_u128(sqrt_price_limit)
        + encode_bool(amount_specified_is_input)
        + encode_bool(a_to_b)
        + encode_option(remaining, lambda slices: encode_vec(slices, _encode_slice))
    )


class WhirlpoolAdapter(BaseAdapter):
    """Exact-input swaps through a Whirlpool.

    Direction is derived from which of the pool's mints the input account
    holds and must agree with the hop's ``a_to_b`` flag.
    """

    swap_kind = SwapKind.WHIRLPOOL
    pool_account = "whirlpool"
    schema = AccountSchema(
        fixed=(
            AccountSpec("pool_info"),
            AccountSpec("whirlpool", writable=True),
            AccountSpec("token_program_a"),
            AccountSpec("token_program_b"),
            AccountSpec("memo_program"),
            AccountSpec("mint_a"),
            AccountSpec("mint_b"),
            AccountSpec("vault_a", writable=True),
            AccountSpec("vault_b", writable=True),
            AccountSpec("tick_array_0", writable=True),
            AccountSpec("tick_array_1", writable=True),
            AccountSpec("tick_array_2", writable=True),
            AccountSpec("oracle", writable=True),
            AccountSpec("program"),
        ),
        max_extra=MAX_SUPPLEMENTAL_TICK_ARRAYS,
    )

    def direction(self, ctx: AdapterContext) -> bool:
        """Return a_to_b for the hop's input and output mints.

        Raises:
            ValidationError: INVALID_MINT if the accounts do not hold the
                pool's two mints in either direction
        """
        token = ctx.ledger.token
        input_mint = token.account(ctx.input_account).mint
        output_mint = token.account(ctx.output_account).mint
        mint_a = self.account(ctx, "mint_a")
        mint_b = self.account(ctx, "mint_b")
        if (input_mint, output_mint) == (mint_a, mint_b):
            return True
        if (input_mint, output_mint) == (mint_b, mint_a):
            return False
        raise error(ErrorCode.INVALID_MINT, "hop mints do not match the whirlpool")

    def validate_accounts(self, ctx: AdapterContext) -> None:
        super().validate_accounts(ctx)
        if self.account(ctx, "program") != ctx.program_id:
            raise error(ErrorCode.INVALID_CPI_INTERFACE, "program account is not the registered venue")
        for name in ("token_program_a", "token_program_b"):
            if self.account(ctx, name) not in TOKEN_PROGRAMS:
                raise error(ErrorCode.INVALID_CPI_INTERFACE, f"{name} is not a token program")
        if self.direction(ctx) != ctx.swap.a_to_b:
            raise error(ErrorCode.INVALID_MINT, "swap direction does not match input mint")

    def build_instruction(self, ctx: AdapterContext, amount: int) -> Instruction:
        acct = self.account
        a_to_b = self.direction(ctx)
        owner_a, owner_b = (
            (ctx.input_account, ctx.output_account) if a_to_b else (ctx.output_account, ctx.input_account)
        )
        supplemental = ctx.accounts[self.schema.min_len :]
        accounts = [
            AccountMeta.readonly(acct(ctx, "token_program_a")),
            AccountMeta.readonly(acct(ctx, "token_program_b")),
            AccountMeta.readonly(acct(ctx, "memo_program")),
            AccountMeta.readonly(ctx.authority, is_signer=True),
            AccountMeta.writable(acct(ctx, "whirlpool")),
            AccountMeta.readonly(acct(ctx, "mint_a")),
            AccountMeta.readonly(acct(ctx, "mint_b")),
            AccountMeta.writable(owner_a),
            AccountMeta.writable(acct(ctx, "vault_a")),
            AccountMeta.writable(owner_b),
            AccountMeta.writable(acct(ctx, "vault_b")),
            AccountMeta.writable(acct(ctx, "tick_array_0")),
            AccountMeta.writable(acct(ctx, "tick_array_1")),
            AccountMeta.writable(acct(ctx, "tick_array_2")),
            AccountMeta.writable(acct(ctx, "oracle")),
            *(AccountMeta.writable(meta.pubkey) for meta in supplemental),
        ]
        data = encode_swap_v2(amount, a_to_b, supplemental_tick_arrays=len(supplemental))
        return Instruction(ctx.program_id, accounts, data)


__all__ = ["WhirlpoolAdapter", "AccountsType", "SWAP_V2_DISCRIMINATOR", "encode_swap_v2"]
