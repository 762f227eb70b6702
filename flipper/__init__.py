"""Flipper - venue-agnostic swap router with escrowed limit orders."""

from flipper.program import FlipperProgram, get_default_program

__version__ = "0.1.0"
__all__ = ["FlipperProgram", "get_default_program", "__version__"]
