"""Continuous beam emission scheduling."""
from math import floor


class EmissionRateController:
    """Turns a target rate into whole particles per simulation step."""

    def __init__(self, rate: float = 0.0):
        """
        Initialize the controller.

        Args:
            rate: Target emission rate (particles per second)
        """
        if rate < 0:
            raise ValueError("Emission rate cannot be negative.")
        self.rate = rate
        self.accumulator = 0.0  # Fractional particles carried between steps
        self.total_emitted = 0

    def set_rate(self, rate: float):
        if rate < 0:
            raise ValueError("Emission rate cannot be negative.")
        self.rate = rate

    def particles_for_step(self, dt: float) -> int:
        """
        Number of whole particles to emit during one step.

        The fractional remainder is carried over so the long-run average stays at 'rate'.

        Args:
            dt: Step length in seconds

        Returns:
            Particles to emit this step
        """
        if dt < 0:
            raise ValueError("Time step cannot be negative.")
        exact = self.rate * dt
        whole = floor(exact)
        self.accumulator += exact - whole
        if self.accumulator >= 1:
            whole += 1
            self.accumulator -= 1
        self.total_emitted += whole
        return whole

    def reset(self):
        self.accumulator = 0.0
        self.total_emitted = 0
