"""Uniform random sources for measurement draws."""
import logging
from typing import Iterable, List, Optional, Protocol

import numpy as np


class UniformRandomSource(Protocol):
    """Anything that yields uniform draws in [0, 1)."""

    def next_double(self) -> float:
        ...


class UniformRandomSimulator:
    """
    Uniform random source backed by numpy.

    Uses a PRNG with optional seeding for reproducible results.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initializes the random source with an optional seed.
        """
        self._seed = seed
        self._draws_generated = 0
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        if self._seed is not None:
            self._rng = np.random.default_rng(self._seed)
            self.logger.info(f"Random source initialized with seed {self._seed}.")
        else:
            self._rng = np.random.default_rng()
            self.logger.info("Random source initialized with random seed.")

    def set_seed(self, seed: int):
        """Set the seed for the random number generator."""
        if not isinstance(seed, int):
            raise ValueError("Seed must be an integer.")
        self._seed = seed
        self._rng = np.random.default_rng(self._seed)
        self.logger.info(f"Random source seed set to {self._seed}.")

    def get_seed(self) -> Optional[int]:
        """Get the current seed of the random source."""
        return self._seed

    def get_rng(self) -> np.random.Generator:
        """Get the underlying random number generator."""
        return self._rng

    def next_double(self) -> float:
        """Returns a uniform draw in [0, 1)."""
        draw = float(self._rng.random())
        self._draws_generated += 1
        return draw

    def get_draws_generated(self) -> int:
        """Returns the total number of draws generated."""
        return self._draws_generated

    def reset(self):
        """Resets the random source state."""
        self._draws_generated = 0
        if self._seed is not None:
            self._rng = np.random.default_rng(self._seed)
            self.logger.info(f"Random source reinitialized with seed {self._seed}.")
        else:
            self._rng = np.random.default_rng()
            self.logger.info("Random source reinitialized with random seed.")


class ScriptedRandomSource:
    """Replays a fixed sequence of draws, for deterministic tests and demos."""

    def __init__(self, draws: Iterable[float], cycle: bool = True):
        self._draws: List[float] = [float(draw) for draw in draws]
        if not self._draws:
            raise ValueError("At least one draw is required.")
        for draw in self._draws:
            if not (0.0 <= draw < 1.0):
                raise ValueError(f"Draw {draw} is outside [0, 1).")
        self._cycle = cycle
        self._index = 0

    def next_double(self) -> float:
        if self._index >= len(self._draws):
            if not self._cycle:
                raise IndexError("Scripted random source ran out of draws.")
            self._index = 0
        draw = self._draws[self._index]
        self._index += 1
        return draw

    def get_draws_generated(self) -> int:
        return self._index

    def reset(self):
        self._index = 0
