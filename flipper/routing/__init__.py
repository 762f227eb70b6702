"""Route validation, hop execution and settlement."""

from flipper.routing.executor import RouteExecutor
from flipper.routing.fees import calculate_platform_fee, min_output_after_slippage
from flipper.routing.router import Router
from flipper.routing.types import RouteOutcome, RouteParams
from flipper.routing.validator import RoutePlanLayout, validate_route_params, validate_route_plan

__all__ = [
    "RouteExecutor",
    "Router",
    "RouteOutcome",
    "RouteParams",
    "RoutePlanLayout",
    "calculate_platform_fee",
    "min_output_after_slippage",
    "validate_route_params",
    "validate_route_plan",
]
