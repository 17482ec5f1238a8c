"""Data structures for the simulation."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class SpinDirection(Enum):
    """Spin directions in the XZ plane.

    X_MINUS is not a preparation preset. It only appears as the outcome of a
    "down" measurement on an X-oriented apparatus.
    """
    Z_PLUS = "+Z"
    Z_MINUS = "-Z"
    X_PLUS = "+X"
    X_MINUS = "-X"

    def __str__(self):
        return self.value

    def to_vector(self) -> np.ndarray:
        """Unit vector (x, z) for this direction."""
        vector_map = {
            SpinDirection.Z_PLUS: (0.0, 1.0),
            SpinDirection.Z_MINUS: (0.0, -1.0),
            SpinDirection.X_PLUS: (1.0, 0.0),
            SpinDirection.X_MINUS: (-1.0, 0.0),
        }
        return np.array(vector_map[self], dtype=float)

    @property
    def is_preparable(self) -> bool:
        """Whether the source can prepare particles in this direction."""
        return self is not SpinDirection.X_MINUS

    @classmethod
    def preparable(cls) -> List["SpinDirection"]:
        return [direction for direction in cls if direction.is_preparable]


class BlockingMode(Enum):
    """Which exit of an apparatus, if any, is walled off."""
    NONE = "noBlocker"
    BLOCK_UP_EXIT = "blockingUp"
    BLOCK_DOWN_EXIT = "blockingDown"

    def blocks(self, is_up: bool) -> bool:
        """Whether a particle leaving through the given exit is removed."""
        if self is BlockingMode.BLOCK_UP_EXIT:
            return is_up
        if self is BlockingMode.BLOCK_DOWN_EXIT:
            return not is_up
        return False


class SourceMode(Enum):
    """Particle source modes."""
    SINGLE = "singleParticle"
    CONTINUOUS = "continuous"


class PoolKind(Enum):
    """The two particle populations driven by the orchestrator."""
    SINGLE = "single"
    BEAM = "beam"


@dataclass(frozen=True)
class ApparatusGeometry:
    """Size of a Stern-Gerlach apparatus and of its particle holes, in model units."""
    width: float = 150 / 200
    height: float = 100 / 200
    hole_width: float = 5 / 200
    hole_height: float = 20 / 200

    @property
    def entrance_offset(self) -> np.ndarray:
        return np.array([-self.width / 2 - self.hole_width / 2, 0.0])

    @property
    def top_exit_offset(self) -> np.ndarray:
        return np.array([self.width / 2 + self.hole_width / 2, self.height / 4])

    @property
    def bottom_exit_offset(self) -> np.ndarray:
        return np.array([self.width / 2 + self.hole_width / 2, -self.height / 4])


@dataclass(frozen=True)
class MeasurementEvent:
    """Notification that a particle was measured by an apparatus."""
    pool: PoolKind
    slot: int
    stage: int
    apparatus_index: int
    is_up: bool
    up_probability: float
    outcome: SpinDirection


class SimulationInfo(BaseModel):
    """Configuration for the spin simulation."""
    single_pool_size: int = Field(50, ge=1, le=1000)
    beam_pool_size: int = Field(5000, ge=1, le=100000)
    max_emission_rate_hz: float = Field(250.0, ge=0, le=10000)
    particle_speed: float = Field(1.0, gt=0, le=100)
    terminal_distance: float = Field(10.0, gt=0)
    max_particle_lifetime_s: Optional[float] = Field(20.0, gt=0)
    particle_ray_width: float = Field(0.02, ge=0, le=1)
    rate_bucket_duration_s: float = Field(0.5, gt=0)
    rate_window_duration_s: float = Field(2.0, gt=0)
    source_exit_position: Tuple[float, float] = (0.0, 0.0)
    apparatus_positions: List[Tuple[float, float]] = Field(
        default=[(1.5, 0.0), (3.2, 0.5), (3.2, -0.5)]
    )
    measurement_line_positions: List[float] = Field(default=[0.6, 2.3, 4.2])
    seed: Optional[int] = None

    @field_validator('apparatus_positions')
    def validate_apparatus_positions(cls, v):
        if len(v) != 3:
            raise ValueError("Exactly three apparatus positions are required.")
        return v

    @field_validator('measurement_line_positions')
    def validate_measurement_lines(cls, v):
        if len(v) != 3:
            raise ValueError("Exactly three measurement line positions are required.")
        return v

    @model_validator(mode='after')
    def validate_rate_window(self):
        if self.rate_window_duration_s < self.rate_bucket_duration_s:
            raise ValueError("Rate window duration must be at least the bucket duration.")
        return self
