"""Error types for the flipper program and its host.

Program errors carry a numeric ErrorCode and belong to one of five
categories. Callers usually catch the category:

    try:
        program.route(...)
    except ExecutionError as err:
        logger.warning("route_failed", code=err.code.name)

Host errors (missing accounts, signatures, budget) are raised by the ledger
and token program. Every error aborts the enclosing transaction; nothing is
retried or recovered locally.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Program error codes."""

    EMPTY_ROUTE = 6000
    SLIPPAGE_TOLERANCE_EXCEEDED = 6001
    INVALID_CALCULATION = 6002
    INVALID_SLIPPAGE = 6004
    NOT_ENOUGH_PERCENT = 6005
    INVALID_INPUT_INDEX = 6006
    INVALID_OUTPUT_INDEX = 6007
    NOT_ENOUGH_ACCOUNT_KEYS = 6008
    INVALID_AMOUNT = 6009
    INVALID_MINT = 6010
    INVALID_PLATFORM_FEE = 6011
    INVALID_PLATFORM_FEE_OWNER = 6012
    INVALID_PLATFORM_FEE_MINT = 6013
    INVALID_VAULT_ADDRESS = 6014
    INVALID_VAULT_OWNER = 6015
    SWAP_NOT_SUPPORTED = 6016
    ADAPTER_DISABLED = 6017
    ADAPTER_NOT_CONFIGURED = 6018
    INVALID_AUTHORITY = 6019
    INVALID_POOL_ADDRESS = 6020
    INVALID_CPI_INTERFACE = 6021
    POOL_DISABLED = 6022
    DUPLICATE_ADAPTER = 6023
    ADAPTER_LIMIT_REACHED = 6024
    OPERATOR_ALREADY_EXISTS = 6025
    OPERATOR_NOT_FOUND = 6026
    OPERATOR_LIMIT_REACHED = 6027
    INVALID_OPERATOR = 6028
    UNAUTHORIZED_ADMIN = 6029
    UNAUTHORIZED_GLOBAL_MANAGER = 6030
    INVALID_CREATOR = 6031
    VAULT_NOT_EMPTY = 6032
    ALREADY_INITIALIZED = 6033
    VAULT_AUTHORITY_NOT_INITIALIZED = 6034
    INVALID_ORDER_STATUS = 6035
    INVALID_TRIGGER_PRICE = 6036
    INVALID_EXPIRY = 6037
    ORDER_EXPIRED = 6038
    ORDER_NOT_EXPIRED = 6039
    TRIGGER_PRICE_NOT_MET = 6040
    INVALID_AGGREGATOR_PROGRAM = 6041
    AGGREGATOR_AUTHORITY_MISMATCH = 6042
    AGGREGATOR_SOURCE_MISMATCH = 6043
    AGGREGATOR_DESTINATION_MISMATCH = 6044
    INVALID_ACCOUNT = 6045
    INVALID_DESTINATION_ACCOUNT = 6046


class FlipperError(Exception):
    """Base class for program errors.

    Attributes:
        code: The ErrorCode identifying the failure
        detail: Optional human-readable context
    """

    def __init__(self, code: ErrorCode, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = code.name if detail is None else f"{code.name}: {detail}"
        super().__init__(message)


class AuthorizationError(FlipperError):
    """Caller is not the admin, authority, operator, manager or creator."""

    pass


class ConfigurationError(FlipperError):
    """Registry entry duplicated, missing or disabled."""

    pass


class ValidationError(FlipperError):
    """Argument or account out of range or mismatched."""

    pass


class ExecutionError(FlipperError):
    """Output below tolerance or trigger not currently met."""

    pass


class LifecycleError(FlipperError):
    """Wrong status for a transition, non-empty vault, repeated initialization."""

    pass


_CATEGORIES: dict[ErrorCode, type[FlipperError]] = {
    **dict.fromkeys(
        (
            ErrorCode.INVALID_AUTHORITY,
            ErrorCode.INVALID_OPERATOR,
            ErrorCode.UNAUTHORIZED_ADMIN,
            ErrorCode.UNAUTHORIZED_GLOBAL_MANAGER,
            ErrorCode.INVALID_CREATOR,
        ),
        AuthorizationError,
    ),
    **dict.fromkeys(
        (
            ErrorCode.SWAP_NOT_SUPPORTED,
            ErrorCode.ADAPTER_DISABLED,
            ErrorCode.ADAPTER_NOT_CONFIGURED,
            ErrorCode.POOL_DISABLED,
            ErrorCode.DUPLICATE_ADAPTER,
            ErrorCode.ADAPTER_LIMIT_REACHED,
            ErrorCode.OPERATOR_ALREADY_EXISTS,
            ErrorCode.OPERATOR_NOT_FOUND,
            ErrorCode.OPERATOR_LIMIT_REACHED,
        ),
        ConfigurationError,
    ),
    **dict.fromkeys(
        (
            ErrorCode.SLIPPAGE_TOLERANCE_EXCEEDED,
            ErrorCode.INVALID_CALCULATION,
            ErrorCode.TRIGGER_PRICE_NOT_MET,
        ),
        ExecutionError,
    ),
    **dict.fromkeys(
        (
            ErrorCode.VAULT_NOT_EMPTY,
            ErrorCode.ALREADY_INITIALIZED,
            ErrorCode.VAULT_AUTHORITY_NOT_INITIALIZED,
            ErrorCode.INVALID_ORDER_STATUS,
            ErrorCode.ORDER_EXPIRED,
            ErrorCode.ORDER_NOT_EXPIRED,
        ),
        LifecycleError,
    ),
}


def error(code: ErrorCode, detail: str | None = None) -> FlipperError:
    """Build the categorized exception for an error code.

    Codes without an explicit category are validation errors.
    """
    return _CATEGORIES.get(code, ValidationError)(code, detail)


class HostError(Exception):
    """Base class for errors raised by the host ledger."""

    pass


class AccountNotFound(HostError):
    """No account exists at the requested address."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Account not found: {address}")


class AccountAlreadyExists(HostError):
    """An account already exists at the address being allocated."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Account already in use: {address}")


class InvalidAccountData(HostError):
    """Account exists but holds data of an unexpected type or owner."""

    pass


class MissingSignature(HostError):
    """A required signer did not sign the current invocation."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Missing required signature: {address}")


class InsufficientFunds(HostError):
    """A lamport or token balance is too small for the requested debit."""

    pass


class TokenError(HostError):
    """Token program rejected the instruction (mint, decimals, owner)."""

    pass


class UnknownProgram(HostError):
    """Invocation targeted a program that is not deployed."""

    pass


class ComputeBudgetExceeded(HostError):
    """The operation exhausted its compute units."""

    pass


class CallDepthExceeded(HostError):
    """Nested invocation went deeper than the host allows."""

    pass


__all__ = [
    "ErrorCode",
    "FlipperError",
    "AuthorizationError",
    "ConfigurationError",
    "ValidationError",
    "ExecutionError",
    "LifecycleError",
    "error",
    "HostError",
    "AccountNotFound",
    "AccountAlreadyExists",
    "InvalidAccountData",
    "MissingSignature",
    "InsufficientFunds",
    "TokenError",
    "UnknownProgram",
    "ComputeBudgetExceeded",
    "CallDepthExceeded",
]
