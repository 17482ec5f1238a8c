"""Fixed-capacity particle arena with stable slot indices."""
import heapq
import logging
from typing import Iterator, List, Optional

import numpy as np

from ..utils.data_structures import PoolKind
from .particle import ParticleEntity


class PoolExhaustedError(RuntimeError):
    """No free particle slot is left in a pool."""


class ParticlePool:
    """
    Preallocated particles addressed by slot index.

    Slots never move, so views can key sprites off the slot number. Activation
    always takes the lowest free slot, and iteration over active particles is
    in ascending slot order.
    """

    def __init__(self, kind: PoolKind, capacity: int, speed: float = 1.0,
                 ray_width: float = 0.0, offset_seed: Optional[int] = None):
        """
        Initialize the pool.

        Args:
            kind: Which population this pool holds
            capacity: Number of preallocated particles
            speed: Particle speed in model units per second
            ray_width: Half-width of the random display offset of each slot
            offset_seed: Seed for the display offsets
        """
        if capacity < 1:
            raise ValueError("Pool capacity must be at least 1.")
        self.kind = kind
        self.capacity = capacity
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        # Display offsets use their own generator so that measurement draws are unaffected
        offset_rng = np.random.default_rng(offset_seed)
        offsets = ray_width * (offset_rng.random((capacity, 2)) * 2 - 1)

        self.particles: List[ParticleEntity] = [
            ParticleEntity(slot, speed=speed, offset=offsets[slot]) for slot in range(capacity)
        ]
        self._free_slots: List[int] = list(range(capacity))
        heapq.heapify(self._free_slots)
        self._active_slots = set()

        self.logger.info(f"{kind.value} particle pool initialized with {capacity} slots")

    def __len__(self):
        return self.capacity

    def __getitem__(self, slot: int) -> ParticleEntity:
        return self.particles[slot]

    @property
    def active_count(self) -> int:
        return len(self._active_slots)

    @property
    def free_count(self) -> int:
        return len(self._free_slots)

    def acquire(self) -> ParticleEntity:
        """Take the lowest free slot. The caller activates the particle."""
        if not self._free_slots:
            self.logger.error(f"{self.kind.value} particle pool exhausted ({self.capacity} slots)")
            raise PoolExhaustedError(
                f"No inactive {self.kind.value} particles available, increase the pool size."
            )
        slot = heapq.heappop(self._free_slots)
        self._active_slots.add(slot)
        return self.particles[slot]

    def release(self, particle: ParticleEntity) -> None:
        """Deactivate a particle and return its slot. Releasing twice is a no-op."""
        particle.deactivate()
        if particle.slot in self._active_slots:
            self._active_slots.remove(particle.slot)
            heapq.heappush(self._free_slots, particle.slot)

    def active_particles(self) -> List[ParticleEntity]:
        """Snapshot of the active particles in slot order."""
        return [self.particles[slot] for slot in sorted(self._active_slots)]

    def __iter__(self) -> Iterator[ParticleEntity]:
        return iter(self.active_particles())

    def clear(self) -> None:
        """Return every particle to the pool."""
        for particle in self.active_particles():
            self.release(particle)
