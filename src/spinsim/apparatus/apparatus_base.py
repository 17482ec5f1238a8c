"""Base class for measurement apparatuses."""
from abc import ABC, abstractmethod
from typing import Any, Dict

import numpy as np

from ..spin.spin_state import SpinState


class BaseMeasurementApparatus(ABC):
    """Interface of a two-outcome spin measurement stage."""

    @abstractmethod
    def axis_vector(self) -> np.ndarray:
        """Get the measurement axis as a unit vector (x, z)."""
        pass

    @abstractmethod
    def compute_up_probability(self, incoming: SpinState) -> float:
        """Get the probability that an incoming state is measured up."""
        pass

    @abstractmethod
    def outcome_spin(self, is_up: bool) -> SpinState:
        """Get the state a particle leaves with after a measurement."""
        pass

    @abstractmethod
    def record_outcome(self, is_up: bool) -> None:
        """Count one measurement outcome."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Clear counters."""
        pass

    def get_status(self) -> Dict[str, Any]:
        """Get status information. Override in subclasses for specific status."""
        return {
            "apparatus_type": self.__class__.__name__,
            "axis": tuple(self.axis_vector()),
        }
