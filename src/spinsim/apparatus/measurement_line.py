"""Measurement line that reports the spin of particles crossing it."""
import logging
from typing import Callable, List, Optional

import numpy as np

from ..spin.spin_state import SpinState, Z_PLUS


class MeasurementLine:
    """
    Vertical line at a fixed x position.

    Holds the spin state of the last single particle that crossed it, shown on
    a Bloch sphere by the view, and notifies listeners on every crossing.
    """

    def __init__(self, x_position: float, active: bool = True, name: str = "line"):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.x_position = float(x_position)
        self.name = name
        self._initially_active = active
        self.active = active
        self.spin_state: SpinState = Z_PLUS
        self.crossing_count = 0

        # Callbacks
        self._listeners: List[Callable[[SpinState], None]] = []

    def add_listener(self, callback: Callable[[SpinState], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[SpinState], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def is_particle_behind(self, position: np.ndarray) -> bool:
        return position[0] < self.x_position

    def record_crossing(self, spin: Optional[SpinState]) -> None:
        """Store the spin of a particle that just crossed and notify listeners."""
        if not self.active or spin is None:
            return
        self.spin_state = spin
        self.crossing_count += 1
        self.logger.debug(f"{self.name} crossed with {spin}")
        for callback in list(self._listeners):
            callback(spin)

    def reset(self) -> None:
        self.spin_state = Z_PLUS
        self.crossing_count = 0
        self.active = self._initially_active
