"""Instruction handlers.

Handlers take the ledger as their first argument and assume the caller
has opened a transaction; FlipperProgram does so for every operation.
"""

from flipper.instructions.limit_orders import OrderTerms

__all__ = ["OrderTerms"]
