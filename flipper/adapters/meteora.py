"""Meteora DLMM adapter (``swap2``)."""

from __future__ import annotations

from flipper.adapters.base import AccountSchema, AccountSpec, AdapterContext, BaseAdapter
from flipper.adapters.encoding import encode_u8, encode_u64, encode_vec
from flipper.constants import TOKEN_PROGRAMS
from flipper.errors import ErrorCode, error
from flipper.host.instruction import AccountMeta, Instruction
from flipper.models.accounts import SwapKind

SWAP2_DISCRIMINATOR = bytes([65, 75, 63, 76, 235, 91, 91, 136])

# Positions of the three bin arrays in the swap2 account list
BIN_ARRAY_POSITIONS = (13, 14, 15)


def encode_swap2(
    in_amount: int,
    out_amount_min: int = 0,
    host_fee: int = 0,
    bin_arrays: tuple[int, ...] = BIN_ARRAY_POSITIONS,
) -> bytes:
    """Instruction data for ``swap2``; remaining-accounts info lists bin array positions."""
    return (
        SWAP2_DISCRIMINATOR
        + encode_u64(in_amount)
        + encode_u64(out_amount_min)
        + encode_u64(host_fee)
        + encode_vec(bin_arrays, encode_u8)
    )


class MeteoraAdapter(BaseAdapter):
    """Swaps through a Meteora DLMM liquidity book pair."""

    swap_kind = SwapKind.METEORA
    pool_account = "lb_pair"
    schema = AccountSchema(
        fixed=(
            AccountSpec("pool_info"),
            AccountSpec("lb_pair", writable=True),
            AccountSpec("bin_array_bitmap_extension"),
            AccountSpec("reserve_in", writable=True),
            AccountSpec("reserve_out", writable=True),
            AccountSpec("token_x_program"),
            AccountSpec("token_y_program"),
            AccountSpec("oracle", writable=True),
            AccountSpec("host_fee_in", writable=True),
            AccountSpec("event_authority"),
            AccountSpec("program"),
            AccountSpec("bin_array_0", writable=True),
            AccountSpec("bin_array_1", writable=True),
            AccountSpec("bin_array_2", writable=True),
        )
    )

    def validate_accounts(self, ctx: AdapterContext) -> None:
        super().validate_accounts(ctx)
        if self.account(ctx, "program") != ctx.program_id:
            raise error(ErrorCode.INVALID_CPI_INTERFACE, "program account is not the registered venue")
        for name in ("token_x_program", "token_y_program"):
            if self.account(ctx, name) not in TOKEN_PROGRAMS:
                raise error(ErrorCode.INVALID_CPI_INTERFACE, f"{name} is not a token program")

    def build_instruction(self, ctx: AdapterContext, amount: int) -> Instruction:
        acct = self.account
        accounts = [
            AccountMeta.writable(acct(ctx, "lb_pair")),
            AccountMeta.readonly(acct(ctx, "bin_array_bitmap_extension")),
            AccountMeta.writable(acct(ctx, "reserve_in")),
            AccountMeta.writable(acct(ctx, "reserve_out")),
            AccountMeta.writable(ctx.input_account),
            AccountMeta.writable(ctx.output_account),
            AccountMeta.readonly(ctx.authority, is_signer=True),
            AccountMeta.readonly(acct(ctx, "token_x_program")),
            AccountMeta.readonly(acct(ctx, "token_y_program")),
            AccountMeta.writable(acct(ctx, "oracle")),
            AccountMeta.writable(acct(ctx, "host_fee_in")),
            AccountMeta.readonly(acct(ctx, "event_authority")),
            AccountMeta.readonly(acct(ctx, "program")),
            AccountMeta.writable(acct(ctx, "bin_array_0")),
            AccountMeta.writable(acct(ctx, "bin_array_1")),
            AccountMeta.writable(acct(ctx, "bin_array_2")),
        ]
        return Instruction(ctx.program_id, accounts, encode_swap2(amount))


__all__ = ["MeteoraAdapter", "SWAP2_DISCRIMINATOR", "encode_swap2"]
