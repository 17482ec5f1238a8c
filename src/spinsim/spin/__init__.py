"""Spin state module."""

from .spin_state import SpinState, Z_PLUS, Z_MINUS, X_PLUS, X_MINUS

__all__ = [
    "SpinState",
    "Z_PLUS",
    "Z_MINUS",
    "X_PLUS",
    "X_MINUS",
]
