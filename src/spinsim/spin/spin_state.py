"""Spin state of a particle in the XZ plane."""
import math
from typing import Optional, Sequence, Union

import numpy as np

from ..utils.data_structures import SpinDirection

UNIT_TOLERANCE = 1e-6


class SpinState:
    """
    Simplified spin orientation as a unit vector (x, z).

    Preset states come from a SpinDirection. Custom states are arbitrary unit
    vectors, usually built from the complementary up/down probabilities
    selected on the preparation panel.
    """

    __slots__ = ("_x", "_z", "_direction")

    def __init__(self, x: float, z: float, direction: Optional[SpinDirection] = None):
        norm = math.hypot(x, z)
        if abs(norm - 1.0) > UNIT_TOLERANCE:
            raise ValueError(f"Spin vector must have unit length, got |({x}, {z})| = {norm}.")
        self._x = float(x)
        self._z = float(z)
        self._direction = direction

    @classmethod
    def from_direction(cls, direction: SpinDirection) -> "SpinState":
        """Create the preset state for a direction."""
        if not isinstance(direction, SpinDirection):
            raise TypeError("Direction must be an instance of SpinDirection Enum.")
        x, z = direction.to_vector()
        return cls(x, z, direction)

    @classmethod
    def from_vector(cls, vector: Union[Sequence[float], np.ndarray]) -> "SpinState":
        """Create a custom state from a unit vector (x, z)."""
        x, z = vector
        return cls(x, z)

    @classmethod
    def from_probabilities(cls, up_probability: float, down_probability: float) -> "SpinState":
        """
        Create a custom state whose Z measurement gives the requested probabilities.

        Args:
            up_probability: Probability of measuring +Z
            down_probability: Probability of measuring -Z

        Returns:
            State with z = p_up - p_down and a non-negative x component.
        """
        if not (0 <= up_probability <= 1) or not (0 <= down_probability <= 1):
            raise ValueError("Probabilities must be between 0 and 1.")
        if abs(up_probability + down_probability - 1.0) > UNIT_TOLERANCE:
            raise ValueError("Up and down probabilities must sum to 1.0")

        z = up_probability - down_probability
        x = math.sqrt(max(0.0, 1.0 - z * z))
        return cls(x, z)

    @property
    def x(self) -> float:
        return self._x

    @property
    def z(self) -> float:
        return self._z

    @property
    def direction(self) -> Optional[SpinDirection]:
        """The preset this state was built from, None for custom states."""
        return self._direction

    @property
    def is_custom(self) -> bool:
        return self._direction is None

    def to_vector(self) -> np.ndarray:
        """Unit vector (x, z) as a numpy array."""
        return np.array([self._x, self._z], dtype=float)

    def dot(self, axis: Union[Sequence[float], np.ndarray]) -> float:
        """Projection of this state on an axis."""
        return float(np.dot(self.to_vector(), np.asarray(axis, dtype=float)))

    def up_probability_along(self, axis: Union[Sequence[float], np.ndarray]) -> float:
        """Probability of an up outcome when measured along a unit axis."""
        return (self.dot(axis) + 1.0) / 2.0

    def __eq__(self, other):
        if not isinstance(other, SpinState):
            return NotImplemented
        return self._x == other._x and self._z == other._z and self._direction == other._direction

    def __hash__(self):
        return hash((self._x, self._z, self._direction))

    def __repr__(self):
        if self._direction is not None:
            return f"SpinState({self._direction})"
        return f"SpinState(x={self._x:.4f}, z={self._z:.4f})"


Z_PLUS = SpinState.from_direction(SpinDirection.Z_PLUS)
Z_MINUS = SpinState.from_direction(SpinDirection.Z_MINUS)
X_PLUS = SpinState.from_direction(SpinDirection.X_PLUS)
X_MINUS = SpinState.from_direction(SpinDirection.X_MINUS)
