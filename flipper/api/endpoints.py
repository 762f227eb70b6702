"""Read-only API endpoints for operators and clients.

The API never moves funds. It exposes derived addresses, the registry,
pool records and order state, plus a trigger check an operator process can
poll with its own off-chain quote before submitting an execution.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from flipper.models.accounts import AdapterRegistry, LimitOrder, OrderStatus, PoolInfo, SwapKind
from flipper.models.types import U64, normalize_address
from flipper.program import FlipperProgram, get_default_program

logger = structlog.get_logger()

router = APIRouter()


def get_program() -> FlipperProgram:
    """Dependency provider for the program instance.

    Override this in tests to inject a program on a prepared ledger:
        app.dependency_overrides[get_program] = lambda: program

    Returns:
        The program instance to serve.
    """
    return get_default_program()


class AddressResponse(BaseModel):
    address: str


class ShouldExecuteRequest(BaseModel):
    quoted_out_amount: U64


class ShouldExecuteResponse(BaseModel):
    order: str
    should_execute: bool
    price_ratio_bps: int | None
    expired: bool


def _address(value: str) -> str:
    try:
        return normalize_address(value, validate=True)
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


def _swap_kind(value: str) -> SwapKind:
    """Accept a venue type by name (``raydium``) or numeric value (``7``)."""
    if value.isdigit():
        try:
            return SwapKind(int(value))
        except ValueError:
            pass
    else:
        try:
            return SwapKind[value.upper()]
        except KeyError:
            pass
    raise HTTPException(status_code=422, detail=f"Unknown swap type: {value}")


@router.get("/addresses/vault-authority")
async def vault_authority_address(program: FlipperProgram = Depends(get_program)) -> AddressResponse:
    return AddressResponse(address=program.authority_address())


@router.get("/addresses/vault/{mint}")
async def vault_address(mint: str, program: FlipperProgram = Depends(get_program)) -> AddressResponse:
    return AddressResponse(address=program.vault_address(_address(mint)))


@router.get("/addresses/platform-fee/{mint}")
async def platform_fee_address(mint: str, program: FlipperProgram = Depends(get_program)) -> AddressResponse:
    return AddressResponse(address=program.platform_fee_address(_address(mint)))


@router.get("/registry")
async def registry(program: FlipperProgram = Depends(get_program)) -> AdapterRegistry:
    return program.adapter_registry()


@router.get("/pools/{swap_type}/{pool}")
async def pool_info(swap_type: str, pool: str, program: FlipperProgram = Depends(get_program)) -> PoolInfo:
    return program.pool_info(_swap_kind(swap_type), _address(pool))


@router.get("/orders/{creator}/{nonce}")
async def limit_order(creator: str, nonce: int, program: FlipperProgram = Depends(get_program)) -> LimitOrder:
    return program.limit_order(program.limit_order_address(_address(creator), nonce))


@router.post("/orders/{creator}/{nonce}/should-execute")
async def should_execute(
    creator: str,
    nonce: int,
    request: ShouldExecuteRequest,
    program: FlipperProgram = Depends(get_program),
) -> ShouldExecuteResponse:
    """Evaluate an order's trigger against a caller-supplied quote.

    Only Open, unexpired orders can execute; for anything else the answer
    is False without evaluating the trigger.
    """
    address = program.limit_order_address(_address(creator), nonce)
    order = program.limit_order(address)
    expired = program.ledger.clock >= order.expiry
    if order.status != OrderStatus.OPEN or order.min_output_amount == 0:
        return ShouldExecuteResponse(order=address, should_execute=False, price_ratio_bps=None, expired=expired)

    ratio = order.price_ratio_bps(request.quoted_out_amount)
    decision = not expired and order.should_execute(request.quoted_out_amount)
    logger.info(
        "trigger_checked",
        order=address,
        quoted_out_amount=request.quoted_out_amount,
        price_ratio_bps=ratio,
        should_execute=decision,
    )
    return ShouldExecuteResponse(order=address, should_execute=decision, price_ratio_bps=ratio, expired=expired)


__all__ = ["router", "get_program"]
