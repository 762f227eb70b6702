"""Runtime configuration for the program and its host ledger."""

from dataclasses import dataclass

from flipper.constants import (
    ACCOUNT_STORAGE_OVERHEAD,
    DEFAULT_COMPUTE_UNITS,
    FLIPPER_PROGRAM_ID,
    INVOKE_COMPUTE_COST,
    LAMPORTS_PER_BYTE,
    MAX_ADAPTERS,
    MAX_CPI_DEPTH,
    MAX_OPERATORS,
    TRANSFER_COMPUTE_COST,
)


@dataclass(frozen=True)
class FlipperConfig:
    """Centralized configuration for a program deployment.

    Tests swap in a smaller compute budget or a different program id
    without touching module constants.

    Attributes:
        program_id: Address the program is deployed at; all derived
            addresses are computed against it
        compute_units: Compute budget for one operation (default: 1,400,000)
        invoke_cost: Units consumed by every nested program invocation
        transfer_cost: Units consumed by every token transfer
        max_cpi_depth: Maximum invocation depth, the top-level call included
        storage_overhead: Bytes charged on top of an account's size for its
            storage deposit
        lamports_per_byte: Storage deposit rate
        max_operators: Operator capacity of the adapter registry
        max_adapters: Adapter capacity of the adapter registry
        default_aggregator_program_id: Aggregator written into vault
            authorities migrated from the first schema version
    """

    program_id: str = FLIPPER_PROGRAM_ID

    # Compute budget
    compute_units: int = DEFAULT_COMPUTE_UNITS
    invoke_cost: int = INVOKE_COMPUTE_COST
    transfer_cost: int = TRANSFER_COMPUTE_COST
    max_cpi_depth: int = MAX_CPI_DEPTH

    # Storage deposits
    storage_overhead: int = ACCOUNT_STORAGE_OVERHEAD
    lamports_per_byte: int = LAMPORTS_PER_BYTE

    # Registry capacity
    max_operators: int = MAX_OPERATORS
    max_adapters: int = MAX_ADAPTERS

    default_aggregator_program_id: str | None = None

    def storage_deposit(self, space: int) -> int:
        """Lamports an account of ``space`` bytes must hold."""
        return (self.storage_overhead + space) * self.lamports_per_byte


# Default configuration instance
DEFAULT_CONFIG = FlipperConfig()
