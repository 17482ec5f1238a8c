"""Pooled particle carrying a spin history."""
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..spin.spin_state import SpinState

NUMBER_OF_STAGES = 3

# Precision below which a remaining path length counts as zero
PATH_EPSILON = 1e-12

# Bound on transitions resolved within one advance() call
MAX_TRANSITIONS_PER_STEP = 8


class ParticleEntity:
    """
    Particle with a spin value for each stage of the experiment.

    Particles are allocated once, when the pool is built, and are reused via
    activate()/deactivate(). The particle moves at constant speed along an
    ordered list of waypoints; reaching the last waypoint hands control to a
    transition resolver supplied by the owner, which may assign a new path.
    """

    def __init__(self, slot: int, speed: float = 1.0, offset: Optional[np.ndarray] = None):
        """
        Args:
            slot: Stable index of the particle inside its pool
            speed: Travel speed in model units per second
            offset: Fixed display offset giving the beam some width
        """
        self.slot = slot
        self.speed = speed
        self.offset = offset if offset is not None else np.zeros(2)

        self.active = False
        self.lifetime = 0.0
        self.stage = 0
        self.position = np.zeros(2)
        self.path: List[np.ndarray] = []
        self._segment_index = 0

        self.spin_at_stage: List[Optional[SpinState]] = [None] * NUMBER_OF_STAGES
        self.measured_up: List[Optional[bool]] = [None] * NUMBER_OF_STAGES
        self.stage_completed: List[bool] = [False] * NUMBER_OF_STAGES

        # Index of the apparatus that produced the most recent measurement
        self.last_apparatus_index: Optional[int] = None

    @property
    def display_position(self) -> np.ndarray:
        return self.position + self.offset

    @property
    def end_position(self) -> Optional[np.ndarray]:
        return self.path[-1] if self.path else None

    @property
    def last_measured_up(self) -> Optional[bool]:
        """Outcome of the most recent measurement, None before the first one."""
        if self.stage == 0:
            return None
        return self.measured_up[self.stage]

    @property
    def latest_spin(self) -> Optional[SpinState]:
        return self.spin_at_stage[self.stage]

    def activate(self, initial_spin: SpinState, path: Sequence[np.ndarray]) -> None:
        """Clear all per-run fields and start on the given path."""
        self.lifetime = 0.0
        self.stage = 0
        self.spin_at_stage = [initial_spin, None, None]
        self.measured_up = [None] * NUMBER_OF_STAGES
        self.stage_completed = [False] * NUMBER_OF_STAGES
        self.last_apparatus_index = None
        self.set_path(path)
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def set_path(self, waypoints: Sequence[np.ndarray]) -> None:
        """Place the particle on the first waypoint of a new path."""
        if len(waypoints) == 0:
            raise ValueError("A path needs at least one waypoint.")
        self.path = [np.array(point, dtype=float) for point in waypoints]
        self.position = self.path[0].copy()
        self._segment_index = 0

    def remaining_distance(self) -> float:
        """Distance left along the current path."""
        if not self.path:
            return 0.0
        distance = 0.0
        point = self.position
        for waypoint in self.path[self._segment_index + 1:]:
            distance += float(np.linalg.norm(waypoint - point))
            point = waypoint
        return distance

    def _move(self, distance: float) -> float:
        """Move up to 'distance' along the path, returning the distance left over."""
        while distance > 0 and self._segment_index < len(self.path) - 1:
            target = self.path[self._segment_index + 1]
            delta = target - self.position
            segment_length = float(np.linalg.norm(delta))
            if segment_length <= distance:
                self.position = target.copy()
                self._segment_index += 1
                distance -= segment_length
            else:
                self.position = self.position + delta * (distance / segment_length)
                distance = 0.0
        return distance

    def advance(self, dt: float, resolve_transition: Callable[["ParticleEntity"], bool]) -> None:
        """
        Move the particle for dt seconds.

        When the end of the path is reached, resolve_transition is called. If it
        assigns a new path (returns True) the unused time carries over to it,
        so motion is never snapped to the frame boundary.
        """
        if not self.active:
            return
        self.lifetime += dt
        distance = dt * self.speed

        for _ in range(MAX_TRANSITIONS_PER_STEP):
            distance = self._move(distance)
            if self._segment_index < len(self.path) - 1 and distance <= PATH_EPSILON:
                return
            if not resolve_transition(self) or not self.active:
                return
        raise RuntimeError(f"Particle {self.slot} resolved too many transitions in one step.")

    def __repr__(self):
        return (f"ParticleEntity(slot={self.slot}, active={self.active}, stage={self.stage}, "
                f"position=({self.position[0]:.3f}, {self.position[1]:.3f}))")
