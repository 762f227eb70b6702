"""Raydium CPMM adapter (``swap_base_input``)."""

from __future__ import annotations

from flipper.adapters.base import AccountSchema, AccountSpec, AdapterContext, BaseAdapter
from flipper.adapters.encoding import encode_u64
from flipper.constants import TOKEN_PROGRAMS
from flipper.errors import ErrorCode, error
from flipper.host.addresses import derive_address
from flipper.host.instruction import AccountMeta, Instruction
from flipper.models.accounts import SwapKind

SWAP_BASE_INPUT_DISCRIMINATOR = bytes([143, 190, 90, 218, 196, 30, 51, 222])

# Seed of the pool authority PDA under the CPMM program
AUTH_SEED = b"vault_and_lp_mint_auth_seed"


def encode_swap_base_input(amount_in: int, minimum_amount_out: int = 0) -> bytes:
    """Instruction data for ``swap_base_input(amount_in, minimum_amount_out)``."""
    return SWAP_BASE_INPUT_DISCRIMINATOR + encode_u64(amount_in) + encode_u64(minimum_amount_out)


class RaydiumAdapter(BaseAdapter):
    """Constant-product swaps through Raydium CPMM.

    The minimum output is left at zero; slippage is enforced once on the
    route's final output.
    """

    swap_kind = SwapKind.RAYDIUM
    pool_account = "pool_state"
    schema = AccountSchema(
        fixed=(
            AccountSpec("pool_info"),
            AccountSpec("authority"),
            AccountSpec("amm_config"),
            AccountSpec("pool_state", writable=True),
            AccountSpec("input_vault", writable=True),
            AccountSpec("output_vault", writable=True),
            AccountSpec("input_token_program"),
            AccountSpec("output_token_program"),
            AccountSpec("input_mint"),
            AccountSpec("output_mint"),
            AccountSpec("observation_state", writable=True),
        )
    )

    def validate_accounts(self, ctx: AdapterContext) -> None:
        super().validate_accounts(ctx)
        if self.account(ctx, "authority") != derive_address(ctx.program_id, AUTH_SEED):
            raise error(ErrorCode.INVALID_ACCOUNT, "authority is not the pool authority")
        for name in ("input_token_program", "output_token_program"):
            if self.account(ctx, name) not in TOKEN_PROGRAMS:
                raise error(ErrorCode.INVALID_CPI_INTERFACE, f"{name} is not a token program")
        token = ctx.ledger.token
        if self.account(ctx, "input_mint") != token.account(ctx.input_account).mint:
            raise error(ErrorCode.INVALID_MINT, "input mint does not match input account")
        if self.account(ctx, "output_mint") != token.account(ctx.output_account).mint:
            raise error(ErrorCode.INVALID_MINT, "output mint does not match output account")

    def build_instruction(self, ctx: AdapterContext, amount: int) -> Instruction:
        acct = self.account
        accounts = [
            AccountMeta.readonly(ctx.authority, is_signer=True),
            AccountMeta.readonly(acct(ctx, "authority")),
            AccountMeta.readonly(acct(ctx, "amm_config")),
            AccountMeta.writable(acct(ctx, "pool_state")),
            AccountMeta.writable(ctx.input_account),
            AccountMeta.writable(ctx.output_account),
            AccountMeta.writable(acct(ctx, "input_vault")),
            AccountMeta.writable(acct(ctx, "output_vault")),
            AccountMeta.readonly(acct(ctx, "input_token_program")),
            AccountMeta.readonly(acct(ctx, "output_token_program")),
            AccountMeta.readonly(acct(ctx, "input_mint")),
            AccountMeta.readonly(acct(ctx, "output_mint")),
            AccountMeta.writable(acct(ctx, "observation_state")),
        ]
        return Instruction(ctx.program_id, accounts, encode_swap_base_input(amount))


__all__ = ["RaydiumAdapter", "SWAP_BASE_INPUT_DISCRIMINATOR", "encode_swap_base_input"]
