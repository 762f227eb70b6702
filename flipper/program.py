"""Program entry point: one method per instruction, each an atomic operation.

FlipperProgram binds a ledger, a configuration and a router. Every method
opens a ledger transaction signed by its caller, runs the instruction
handler and commits; any exception rolls the whole operation back and
propagates unchanged.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from flipper import state
from flipper.addresses import (
    derive_adapter_registry_address,
    derive_authority_address,
    derive_limit_order_address,
    derive_order_vault_address,
    derive_platform_fee_address,
    derive_pool_info_address,
    derive_vault_address,
)
from flipper.config import DEFAULT_CONFIG, FlipperConfig
from flipper.host.ledger import Ledger
from flipper.instructions import adapter_registry, limit_orders, route, shared_route, vault_manager
from flipper.routing.router import Router

if TYPE_CHECKING:
    from flipper.host.instruction import AccountMeta
    from flipper.instructions.limit_orders import OrderTerms
    from flipper.models.accounts import (
        AdapterInfo,
        AdapterRegistry,
        LimitOrder,
        PoolInfo,
        SwapKind,
        VaultAuthority,
    )
    from flipper.models.route import RouteHop
    from flipper.routing.types import RouteOutcome, RouteParams

logger = structlog.get_logger()

R = TypeVar("R")


class FlipperProgram:
    """The router program deployed on a ledger.

    Args:
        ledger: Host ledger. If None, a fresh ledger is created from ``config``.
        config: Deployment configuration (default: DEFAULT_CONFIG)
        router: Router used by every fund-moving instruction
    """

    def __init__(
        self,
        ledger: Ledger | None = None,
        config: FlipperConfig | None = None,
        router: Router | None = None,
    ) -> None:
        if ledger is None:
            ledger = Ledger(config or DEFAULT_CONFIG)
        self.ledger = ledger
        self.config = ledger.config
        self.router = router or Router()

    def _run(self, signers: Iterable[str], handler: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        with self.ledger.transaction(signers=signers):
            return handler(self.ledger, *args, **kwargs)

    # --- Global manager and vault authority ---

    def create_global_manager(self, payer: str, manager: str) -> str:
        return self._run([payer], vault_manager.create_global_manager, payer, manager)

    def change_global_manager(self, manager: str, new_manager: str) -> None:
        self._run([manager], vault_manager.change_global_manager, manager, new_manager)

    def create_vault_authority(self, payer: str, admin: str) -> str:
        return self._run([payer], vault_manager.create_vault_authority, payer, admin)

    def change_vault_authority_admin(self, manager: str, new_admin: str) -> None:
        self._run([manager], vault_manager.change_vault_authority_admin, manager, new_admin)

    def set_aggregator_program(self, admin: str, program_id: str) -> None:
        self._run([admin], vault_manager.set_aggregator_program, admin, program_id)

    def migrate_vault_authority(self, admin: str) -> int:
        return self._run([admin], vault_manager.migrate_vault_authority, admin)

    # --- Vaults ---

    def create_vault(self, caller: str, mint: str) -> str:
        return self._run([caller], vault_manager.create_vault, caller, mint)

    def create_vault_with_extensions(self, caller: str, mint: str, extension_space: int) -> str:
        return self._run([caller], vault_manager.create_vault_with_extensions, caller, mint, extension_space)

    def initialize_vaults(self, caller: str, source_mint: str, destination_mint: str) -> tuple[str, str]:
        return self._run([caller], vault_manager.initialize_vaults, caller, source_mint, destination_mint)

    def close_vault(self, admin: str, mint: str, destination: str) -> int:
        return self._run([admin], vault_manager.close_vault, admin, mint, destination)

    def create_platform_fee_vault(self, caller: str, mint: str) -> str:
        return self._run([caller], vault_manager.create_platform_fee_vault, caller, mint)

    def withdraw_platform_fees(self, manager: str, fee_account: str, destination: str, amount: int) -> None:
        self._run([manager], vault_manager.withdraw_platform_fees, manager, fee_account, destination, amount)

    def vault_exists(self, mint: str) -> bool:
        return vault_manager.vault_exists(self.ledger, mint)

    # --- Adapter registry and pools ---

    def initialize_adapter_registry(
        self, authority: str, adapters: list[AdapterInfo], operators: list[str]
    ) -> str:
        return self._run(
            [authority], adapter_registry.initialize_adapter_registry, authority, adapters, operators
        )

    def configure_adapter(self, operator: str, adapter: AdapterInfo) -> None:
        self._run([operator], adapter_registry.configure_adapter, operator, adapter)

    def disable_adapter(self, operator: str, swap_type: SwapKind) -> None:
        self._run([operator], adapter_registry.disable_adapter, operator, swap_type)

    def initialize_pool_info(self, operator: str, swap_type: SwapKind, pool_address: str) -> str:
        return self._run([operator], adapter_registry.initialize_pool_info, operator, swap_type, pool_address)

    def disable_pool(self, operator: str, swap_type: SwapKind, pool_address: str) -> None:
        self._run([operator], adapter_registry.disable_pool, operator, swap_type, pool_address)

    def add_operator(self, authority: str, operator: str) -> None:
        self._run([authority], adapter_registry.add_operator, authority, operator)

    def remove_operator(self, authority: str, operator: str) -> None:
        self._run([authority], adapter_registry.remove_operator, authority, operator)

    def change_authority(self, authority: str, new_authority: str) -> None:
        self._run([authority], adapter_registry.change_authority, authority, new_authority)

    def reset_adapter_registry(
        self, authority: str, adapters: list[AdapterInfo], operators: list[str]
    ) -> None:
        self._run([authority], adapter_registry.reset_adapter_registry, authority, adapters, operators)

    def migrate_adapter_registry(self, authority: str) -> int:
        return self._run([authority], adapter_registry.migrate_adapter_registry, authority)

    # --- Routes ---

    def route(
        self,
        user: str,
        user_source_account: str,
        user_destination_account: str,
        route_plan: list[RouteHop],
        accounts: list[AccountMeta],
        params: RouteParams,
        platform_fee_account: str | None = None,
    ) -> RouteOutcome:
        return self._run(
            [user],
            route.route,
            self.router,
            user,
            user_source_account,
            user_destination_account,
            route_plan,
            accounts,
            params,
            platform_fee_account,
        )

    def route_and_create_order(
        self,
        user: str,
        nonce: int,
        user_source_account: str,
        user_destination_account: str,
        destination_mint: str,
        route_plan: list[RouteHop],
        accounts: list[AccountMeta],
        params: RouteParams,
        terms: OrderTerms,
        platform_fee_account: str | None = None,
        extension_space: int = 0,
    ) -> tuple[str, RouteOutcome]:
        return self._run(
            [user],
            route.route_and_create_order,
            self.router,
            user,
            nonce,
            user_source_account,
            user_destination_account,
            destination_mint,
            route_plan,
            accounts,
            params,
            terms,
            platform_fee_account,
            extension_space,
        )

    def shared_route(
        self,
        user: str,
        user_source_account: str,
        user_destination_account: str,
        aggregator_program_id: str,
        accounts: list[AccountMeta],
        data: bytes,
        params: RouteParams,
        platform_fee_account: str | None = None,
    ) -> RouteOutcome:
        return self._run(
            [user],
            shared_route.shared_route,
            self.router,
            user,
            user_source_account,
            user_destination_account,
            aggregator_program_id,
            accounts,
            data,
            params,
            platform_fee_account,
        )

    def shared_route_and_create_order(
        self,
        user: str,
        nonce: int,
        user_source_account: str,
        user_destination_account: str,
        aggregator_program_id: str,
        accounts: list[AccountMeta],
        data: bytes,
        params: RouteParams,
        terms: OrderTerms,
        platform_fee_account: str | None = None,
    ) -> tuple[str, RouteOutcome]:
        return self._run(
            [user],
            shared_route.shared_route_and_create_order,
            self.router,
            user,
            nonce,
            user_source_account,
            user_destination_account,
            aggregator_program_id,
            accounts,
            data,
            params,
            terms,
            platform_fee_account,
        )

    # --- Limit orders ---

    def init_limit_order(self, creator: str, nonce: int, input_mint: str, extension_space: int = 0) -> str:
        return self._run([creator], limit_orders.init_limit_order, creator, nonce, input_mint, extension_space)

    def create_limit_order(
        self,
        creator: str,
        nonce: int,
        input_amount: int,
        terms: OrderTerms,
        output_mint: str,
        user_input_account: str,
        user_destination_account: str,
    ) -> str:
        return self._run(
            [creator],
            limit_orders.create_limit_order,
            creator,
            nonce,
            input_amount,
            terms,
            output_mint,
            user_input_account,
            user_destination_account,
        )

    def execute_limit_order(
        self,
        operator: str,
        order_address: str,
        route_plan: list[RouteHop],
        accounts: list[AccountMeta],
        quoted_out_amount: int,
        platform_fee_bps: int,
        user_destination_account: str,
        platform_fee_account: str | None = None,
    ) -> RouteOutcome:
        return self._run(
            [operator],
            limit_orders.execute_limit_order,
            self.router,
            operator,
            order_address,
            route_plan,
            accounts,
            quoted_out_amount,
            platform_fee_bps,
            user_destination_account,
            platform_fee_account,
        )

    def shared_execute_limit_order(
        self,
        operator: str,
        order_address: str,
        aggregator_program_id: str,
        accounts: list[AccountMeta],
        data: bytes,
        quoted_out_amount: int,
        platform_fee_bps: int,
        user_destination_account: str,
        platform_fee_account: str | None = None,
    ) -> RouteOutcome:
        return self._run(
            [operator],
            shared_route.shared_execute_limit_order,
            self.router,
            operator,
            order_address,
            aggregator_program_id,
            accounts,
            data,
            quoted_out_amount,
            platform_fee_bps,
            user_destination_account,
            platform_fee_account,
        )

    def cancel_limit_order(
        self, creator: str, order_address: str, creator_input_account: str | None = None
    ) -> int:
        return self._run(
            [creator], limit_orders.cancel_limit_order, creator, order_address, creator_input_account
        )

    def close_limit_order_by_operator(self, operator: str, order_address: str) -> None:
        self._run([operator], limit_orders.close_limit_order_by_operator, operator, order_address)

    def cancel_expired_limit_order_by_operator(
        self, operator: str, order_address: str, creator_input_account: str
    ) -> int:
        return self._run(
            [operator],
            limit_orders.cancel_expired_limit_order_by_operator,
            operator,
            order_address,
            creator_input_account,
        )

    # --- Addresses and reads ---

    def authority_address(self) -> str:
        return derive_authority_address(self.config.program_id)

    def vault_address(self, mint: str) -> str:
        return derive_vault_address(mint, self.config.program_id)

    def platform_fee_address(self, mint: str) -> str:
        return derive_platform_fee_address(mint, self.config.program_id)

    def registry_address(self) -> str:
        return derive_adapter_registry_address(self.config.program_id)

    def pool_info_address(self, swap_type: SwapKind, pool_address: str) -> str:
        return derive_pool_info_address(swap_type, pool_address, self.config.program_id)

    def limit_order_address(self, creator: str, nonce: int) -> str:
        return derive_limit_order_address(creator, nonce, self.config.program_id)

    def order_vault_address(self, order_address: str) -> str:
        return derive_order_vault_address(order_address, self.config.program_id)

    def vault_authority(self) -> VaultAuthority:
        return state.vault_authority(self.ledger)

    def adapter_registry(self) -> AdapterRegistry:
        return state.adapter_registry(self.ledger)

    def pool_info(self, swap_type: SwapKind, pool_address: str) -> PoolInfo:
        return state.pool_info(self.ledger, self.pool_info_address(swap_type, pool_address))

    def limit_order(self, order_address: str) -> LimitOrder:
        return state.limit_order(self.ledger, order_address)

    # --- Snapshots ---

    def dump(self) -> dict[str, Any]:
        return state.dump_state(self.ledger)

    @classmethod
    def load(cls, snapshot: dict[str, Any], config: FlipperConfig = DEFAULT_CONFIG) -> FlipperProgram:
        """Rebuild a program from ``dump()`` output, migrating old schema versions."""
        return cls(ledger=state.load_state(snapshot, config))


def _create_default_program() -> FlipperProgram:
    """Create the process-wide program instance.

    FLIPPER_AGGREGATOR_PROGRAM_ID, if set, becomes the aggregator recorded
    on newly created vault authorities.
    """
    aggregator = os.environ.get("FLIPPER_AGGREGATOR_PROGRAM_ID")
    if aggregator:
        logger.info("aggregator_configured", program_id=aggregator)
        return FlipperProgram(config=FlipperConfig(default_aggregator_program_id=aggregator))
    logger.info("aggregator_not_configured", reason="FLIPPER_AGGREGATOR_PROGRAM_ID not set")
    return FlipperProgram()


_default_program: FlipperProgram | None = None


def get_default_program() -> FlipperProgram:
    """Return the process-wide program, creating it on first use."""
    global _default_program
    if _default_program is None:
        _default_program = _create_default_program()
    return _default_program


__all__ = ["FlipperProgram", "get_default_program"]
