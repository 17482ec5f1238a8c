"""Stern-Gerlach measurement apparatus."""
import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..spin.spin_state import SpinState, Z_PLUS, Z_MINUS, X_PLUS, X_MINUS
from ..utils.data_structures import ApparatusGeometry, BlockingMode
from ..utils.event_rate import EventRateEstimator
from .apparatus_base import BaseMeasurementApparatus

PROBABILITY_TOLERANCE = 1e-9

Z_AXIS = np.array([0.0, 1.0])
X_AXIS = np.array([1.0, 0.0])


class ProbabilityRangeError(ValueError):
    """A computed probability fell outside [0, 1]."""


class SternGerlachApparatus(BaseMeasurementApparatus):
    """
    Stern-Gerlach apparatus oriented along Z or X.

    The probability of an "up" outcome is the projection of the incoming spin
    on the apparatus axis, rescaled from [-1, 1] to [0, 1]. Outcomes are
    counted into a pair of windowed rate estimators for the histograms.
    Orientation and blocking mode can change during a session; position
    changes move the entrance and exit anchors with it.
    """

    def __init__(self,
                 position: Union[Sequence[float], np.ndarray],
                 is_z_oriented: bool = True,
                 geometry: Optional[ApparatusGeometry] = None,
                 bucket_duration: float = 0.5,
                 window_duration: float = 2.0,
                 name: str = "SG"):
        """
        Initialize the apparatus.

        Args:
            position: Center of the apparatus in model coordinates
            is_z_oriented: True for a Z apparatus, False for an X apparatus
            geometry: Size of the apparatus (default: ApparatusGeometry())
            bucket_duration: Bucket length of the rate estimators in seconds
            window_duration: Averaging window of the rate estimators in seconds
            name: Label used in logs and statistics
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.name = name
        self.geometry = geometry if geometry else ApparatusGeometry()

        self.is_z_oriented = is_z_oriented
        self.blocking_mode = BlockingMode.NONE
        self.enabled = True

        self.up_rate = EventRateEstimator(bucket_duration, window_duration)
        self.down_rate = EventRateEstimator(bucket_duration, window_duration)
        self.up_count = 0
        self.down_count = 0

        # Probability shown next to the apparatus for the expected incoming state
        self.up_probability = 0.5

        self.set_position(position)

        self.logger.info(f"{self.name} initialized at {tuple(self.position)}, "
                         f"{'Z' if is_z_oriented else 'X'} oriented")

    def set_position(self, position: Union[Sequence[float], np.ndarray]) -> None:
        """Move the apparatus and recompute its anchors."""
        self.position = np.array(position, dtype=float)
        self.entrance_position = self.position + self.geometry.entrance_offset
        self.top_exit_position = self.position + self.geometry.top_exit_offset
        self.bottom_exit_position = self.position + self.geometry.bottom_exit_offset

    @property
    def measurement_position(self) -> np.ndarray:
        """Point inside the apparatus where an incoming particle is measured."""
        return self.entrance_position + np.array([self.geometry.width, 0.0])

    def exit_position(self, is_up: bool) -> np.ndarray:
        return self.top_exit_position if is_up else self.bottom_exit_position

    def set_orientation(self, is_z_oriented: bool) -> None:
        if is_z_oriented != self.is_z_oriented:
            self.logger.info(f"{self.name} orientation set to {'Z' if is_z_oriented else 'X'}")
        self.is_z_oriented = is_z_oriented

    def set_blocking_mode(self, mode: BlockingMode) -> None:
        if not isinstance(mode, BlockingMode):
            raise TypeError("Mode must be an instance of BlockingMode Enum.")
        self.blocking_mode = mode
        self.logger.info(f"{self.name} blocking mode set to {mode.name}")

    def is_exit_blocked(self, is_up: bool) -> bool:
        return self.blocking_mode.blocks(is_up)

    def axis_vector(self) -> np.ndarray:
        return Z_AXIS.copy() if self.is_z_oriented else X_AXIS.copy()

    def compute_up_probability(self, incoming: SpinState) -> float:
        """
        Probability that the incoming state is measured up.

        Args:
            incoming: Spin state entering the apparatus

        Returns:
            (incoming . axis + 1) / 2
        """
        probability = incoming.up_probability_along(self.axis_vector())
        if not (-PROBABILITY_TOLERANCE <= probability <= 1.0 + PROBABILITY_TOLERANCE):
            self.logger.error(f"{self.name} computed probability {probability} for {incoming}")
            raise ProbabilityRangeError(f"Up probability {probability} is outside [0, 1].")
        # Only rounding noise is left at this point
        return min(1.0, max(0.0, probability))

    @property
    def down_probability(self) -> float:
        return 1.0 - self.up_probability

    def prepare(self, incoming: SpinState) -> float:
        """Compute and publish the up probability for an expected incoming state."""
        self.up_probability = self.compute_up_probability(incoming)
        self.logger.debug(f"{self.name} prepared for {incoming}: P(up)={self.up_probability:.3f}")
        return self.up_probability

    def outcome_spin(self, is_up: bool) -> SpinState:
        if self.is_z_oriented:
            return Z_PLUS if is_up else Z_MINUS
        return X_PLUS if is_up else X_MINUS

    def record_outcome(self, is_up: bool) -> None:
        if is_up:
            self.up_rate.record_event()
            self.up_count += 1
        else:
            self.down_rate.record_event()
            self.down_count += 1

    def step(self, dt: float) -> None:
        """Advance both rate estimators."""
        self.up_rate.step(dt)
        self.down_rate.step(dt)

    def reset(self) -> None:
        """Clear rate estimators and totals. Orientation, position and blocking persist."""
        self.up_rate.reset()
        self.down_rate.reset()
        self.up_count = 0
        self.down_count = 0
        self.logger.info(f"{self.name} counters reset")

    def get_statistics(self) -> Dict[str, Any]:
        """Get outcome counts and published rates."""
        total = self.up_count + self.down_count
        return {
            "name": self.name,
            "up_count": self.up_count,
            "down_count": self.down_count,
            "up_fraction": self.up_count / total if total > 0 else 0.0,
            "up_rate_hz": self.up_rate.rate,
            "down_rate_hz": self.down_rate.rate,
        }

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status.update({
            "name": self.name,
            "position": tuple(self.position),
            "is_z_oriented": self.is_z_oriented,
            "blocking_mode": self.blocking_mode.name,
            "enabled": self.enabled,
            "up_probability": self.up_probability,
        })
        return status
