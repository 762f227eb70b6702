"""Persisted program accounts.

These are the records the program stores on the ledger:

- VaultAuthority: singleton owner of every custody vault
- GlobalManager: singleton holding the role that may rotate the vault admin
- AdapterRegistry: singleton venue directory plus operator set
- PoolInfo: one trusted pool of one venue type
- LimitOrder: one trigger-priced order and its escrow

Vaults themselves are token accounts owned by the VaultAuthority and are
modelled by the host token program.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field

from flipper.constants import BPS_DENOMINATOR
from flipper.models.types import U64, Address, normalize_address
from flipper.safe_int import S

VAULT_AUTHORITY_VERSION = 2
ADAPTER_REGISTRY_VERSION = 2


class SwapKind(IntEnum):
    """Venue types, numbered by their wire discriminant."""

    SABER = 0
    SABER_ADD_DECIMALS_DEPOSIT = 1
    SABER_ADD_DECIMALS_WITHDRAW = 2
    TOKEN_SWAP = 3
    SENCHA = 4
    STEP = 5
    CROPPER = 6
    RAYDIUM = 7
    CREMA = 8
    LIFINITY = 9
    MERCURIAL = 10
    CYKURA = 11
    SERUM = 12
    MARINADE_DEPOSIT = 13
    MARINADE_UNSTAKE = 14
    ALDRIN = 15
    ALDRIN_V2 = 16
    WHIRLPOOL = 17
    INVARIANT = 18
    METEORA = 19
    GOOSE_FX = 20
    DELTA_FI = 21
    BALANSOL = 22
    MARCO_POLO = 23
    DRADEX = 24
    LIFINITY_V2 = 25
    RAYDIUM_CLMM = 26
    OPENBOOK = 27
    PHOENIX = 28
    SYMMETRY = 29


class Swap(BaseModel):
    """Venue selector carried by a route hop.

    ``a_to_b`` is only meaningful for directional venues (Whirlpool); it must
    agree with the hop's actual input mint.
    """

    model_config = {"frozen": True}

    kind: SwapKind
    a_to_b: bool = True

    def seed(self) -> bytes:
        """Seed bytes identifying the venue type in derived addresses."""
        return bytes([int(self.kind)])


class OrderStatus(IntEnum):
    """Limit order lifecycle states."""

    OPEN = 0
    FILLED = 1
    CANCELLED = 2
    INIT = 3


class TriggerType(IntEnum):
    """Direction in which the price must move before an order fills."""

    TAKE_PROFIT = 0
    STOP_LOSS = 1


class VaultAuthority(BaseModel):
    """Singleton owner of all custody vaults.

    The admin may create and close vaults; only the global manager may
    replace the admin.
    """

    admin: Address
    aggregator_program_id: Address | None = None
    schema_version: int = VAULT_AUTHORITY_VERSION


class GlobalManager(BaseModel):
    """Singleton higher-privileged role above the vault admin."""

    manager: Address


class AdapterInfo(BaseModel):
    """One venue type and the external program trusted to execute it."""

    name: str
    program_id: Address
    swap_type: SwapKind
    enabled: bool = True


class AdapterRegistry(BaseModel):
    """Venue directory plus the operators allowed to curate it."""

    authority: Address
    operators: list[Address] = Field(default_factory=list)
    adapters: list[AdapterInfo] = Field(default_factory=list)
    schema_version: int = ADAPTER_REGISTRY_VERSION

    def is_operator(self, address: str) -> bool:
        """The authority always counts as an operator."""
        address = normalize_address(address)
        return address == self.authority or address in self.operators

    def find_adapter(self, kind: SwapKind) -> AdapterInfo | None:
        for adapter in self.adapters:
            if adapter.swap_type == kind:
                return adapter
        return None


class PoolInfo(BaseModel):
    """A trusted pool pinned to one venue type."""

    swap_type: SwapKind
    pool_address: Address
    enabled: bool = True


class LimitOrder(BaseModel):
    """A trigger-priced order whose input sits in its own escrow vault.

    The baseline price is ``min_output_amount`` for ``input_amount``; the
    trigger is expressed in basis points relative to that baseline.
    """

    creator: Address
    nonce: U64
    input_mint: Address
    output_mint: Address | None = None
    input_vault: Address
    user_destination_account: Address | None = None
    input_amount: U64 = 0
    min_output_amount: U64 = 0
    trigger_price_bps: int = 0
    trigger_type: TriggerType = TriggerType.TAKE_PROFIT
    expiry: int = 0
    status: OrderStatus = OrderStatus.INIT
    slippage_bps: int = 0

    def price_ratio_bps(self, quoted_output: int) -> int:
        """Quoted output relative to the baseline, in basis points."""
        return S(quoted_output).mul_div(BPS_DENOMINATOR, self.min_output_amount).value

    def should_execute(self, quoted_output: int) -> bool:
        """Check whether a quote crosses this order's trigger.

        TakeProfit fires when the ratio rises to 10000 + trigger or above;
        StopLoss fires when it falls to 10000 - trigger or below.
        """
        if self.min_output_amount == 0:
            return False
        ratio = self.price_ratio_bps(quoted_output)
        if self.trigger_type == TriggerType.TAKE_PROFIT:
            if quoted_output == 0:
                return False
            return ratio >= BPS_DENOMINATOR + self.trigger_price_bps
        return ratio <= BPS_DENOMINATOR - self.trigger_price_bps


__all__ = [
    "SwapKind",
    "Swap",
    "OrderStatus",
    "TriggerType",
    "VaultAuthority",
    "GlobalManager",
    "AdapterInfo",
    "AdapterRegistry",
    "PoolInfo",
    "LimitOrder",
    "VAULT_AUTHORITY_VERSION",
    "ADAPTER_REGISTRY_VERSION",
]
