"""
Spin Model - top-level model of the Stern-Gerlach experiment screen.

Holds the user-facing selections (experiment, prepared spin, source mode,
beam amount) and keeps the orchestrator and the displayed apparatus
probabilities in sync with them.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from .apparatus.measurement_line import MeasurementLine
from .apparatus.stern_gerlach import SternGerlachApparatus
from .experiment.experiment_configuration import ExperimentConfiguration, SpinExperiment
from .particles.orchestrator import ParticleOrchestrator
from .source.random_source import UniformRandomSimulator, UniformRandomSource
from .spin.spin_state import SpinState, Z_PLUS
from .utils.data_structures import (
    BlockingMode, MeasurementEvent, PoolKind, SimulationInfo, SourceMode, SpinDirection
)
from .utils.statistics import expected_branch_fractions


class SpinModel:
    """Facade over the orchestrator for presentation code."""

    def __init__(self, config: Optional[SimulationInfo] = None,
                 random_source: Optional[UniformRandomSource] = None):
        """
        Initialize the model.

        Args:
            config: Simulation parameters (default: SimulationInfo())
            random_source: Measurement draw source (default: seeded from config.seed)
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config if config else SimulationInfo()
        self.random_source = random_source if random_source else UniformRandomSimulator(self.config.seed)

        self.measurement_lines: List[MeasurementLine] = [
            MeasurementLine(x_position, name=f"line{index}")
            for index, x_position in enumerate(self.config.measurement_line_positions)
        ]

        self.experiment = SpinExperiment.EXPERIMENT_1
        self.custom_configuration = SpinExperiment.CUSTOM.configuration
        self.spin_direction: Optional[SpinDirection] = SpinDirection.Z_PLUS
        self.prepared_spin: SpinState = Z_PLUS
        self.particle_amount = 1.0

        # Final exit label per particle, e.g. "up" or "down-up"
        self.final_outcomes: Counter = Counter()
        self._first_outcomes: Dict[Tuple[PoolKind, int], bool] = {}

        self.orchestrator = ParticleOrchestrator(
            self.config,
            self.experiment.configuration,
            self.random_source,
            initial_spin=self.prepared_spin,
            measurement_lines=self.measurement_lines
        )
        self.orchestrator.add_measurement_listener(self._on_measurement)
        self.orchestrator.set_emission_rate(self.particle_amount * self.config.max_emission_rate_hz)
        self.update_probabilities()

        self.logger.info(f"Spin model initialized with {self.experiment}")

    @property
    def apparatuses(self) -> List[SternGerlachApparatus]:
        return self.orchestrator.apparatuses

    @property
    def configuration(self) -> ExperimentConfiguration:
        """Configuration of the selected experiment."""
        if self.experiment.is_custom:
            return self.custom_configuration
        return self.experiment.configuration

    @property
    def source_mode(self) -> SourceMode:
        return self.orchestrator.source_mode

    def set_experiment(self, experiment: SpinExperiment) -> None:
        if not isinstance(experiment, SpinExperiment):
            raise TypeError("Experiment must be an instance of SpinExperiment Enum.")
        self.experiment = experiment
        self.orchestrator.set_configuration(self.configuration)
        self.update_probabilities()
        self.logger.info(f"Experiment set to {experiment}")

    def set_custom_orientation(self, index: int, is_z_oriented: bool) -> None:
        """Re-orient one apparatus of the custom experiment."""
        self.custom_configuration = self.custom_configuration.with_orientation(index, is_z_oriented)
        if self.experiment.is_custom:
            self.orchestrator.set_configuration(self.custom_configuration)
            self.update_probabilities()

    def set_spin_direction(self, direction: SpinDirection) -> None:
        """Prepare particles in one of the preset directions."""
        if not isinstance(direction, SpinDirection):
            raise TypeError("Direction must be an instance of SpinDirection Enum.")
        if not direction.is_preparable:
            self.logger.error(f"{direction} cannot be prepared by the source")
            raise ValueError(f"{direction} is not a preparation preset.")
        self.spin_direction = direction
        self._set_prepared_spin(SpinState.from_direction(direction))

    def set_custom_spin(self, up_probability: float, down_probability: float) -> None:
        """Prepare particles in a custom state with the given Z probabilities."""
        self.spin_direction = None
        self._set_prepared_spin(SpinState.from_probabilities(up_probability, down_probability))

    def _set_prepared_spin(self, spin: SpinState) -> None:
        self.prepared_spin = spin
        self.orchestrator.set_initial_spin(spin)
        self.update_probabilities()

    def set_source_mode(self, mode: SourceMode) -> None:
        self.orchestrator.set_source_mode(mode)

    def set_particle_amount(self, amount: float) -> None:
        """Set the beam intensity as a fraction of the maximum emission rate."""
        if not (0.0 <= amount <= 1.0):
            raise ValueError("Particle amount must be between 0 and 1.")
        self.particle_amount = amount
        self.orchestrator.set_emission_rate(amount * self.config.max_emission_rate_hz)

    def shoot_single_particle(self) -> bool:
        return self.orchestrator.shoot_single_particle()

    def set_blocking_mode(self, apparatus_index: int, mode: BlockingMode) -> None:
        self.orchestrator.set_blocking_mode(apparatus_index, mode)

    def update_probabilities(self) -> None:
        """
        Recompute the probabilities displayed next to each apparatus.

        The first apparatus sees the prepared spin. The upper and lower
        apparatuses see the state leaving the first one through the up and
        down exits.
        """
        first = self.apparatuses[0]
        first.prepare(self.prepared_spin)
        if not self.configuration.uses_single_apparatus:
            self.apparatuses[1].prepare(first.outcome_spin(True))
            self.apparatuses[2].prepare(first.outcome_spin(False))

        # Tallies are only comparable with the current expectation
        self.clear_outcomes()

    def expected_fractions(self) -> Dict[str, float]:
        """Analytic fraction of particles leaving through each final exit."""
        return expected_branch_fractions(self.apparatuses, self.prepared_spin,
                                         self.configuration.uses_single_apparatus)

    def simulated_fractions(self) -> Dict[str, float]:
        """Fraction of fully measured particles per final exit, keyed like expected_fractions()."""
        total = sum(self.final_outcomes.values())
        return {label: (self.final_outcomes[label] / total if total else 0.0)
                for label in self.expected_fractions()}

    def _on_measurement(self, event: MeasurementEvent) -> None:
        label = "up" if event.is_up else "down"
        key = (event.pool, event.slot)
        if event.stage == 0 and not self.configuration.uses_single_apparatus:
            self._first_outcomes[key] = event.is_up
            return
        if event.stage > 0:
            first_up = self._first_outcomes.pop(key, None)
            if first_up is None:
                # First measurement happened before the tallies were cleared
                return
            label = f"{'up' if first_up else 'down'}-{label}"
        self.final_outcomes[label] += 1

    def clear_outcomes(self) -> None:
        self.final_outcomes.clear()
        self._first_outcomes.clear()

    def step(self, dt: float) -> None:
        self.orchestrator.step(dt)

    def reset(self) -> None:
        """Clear particles and counters, keeping the user's selections."""
        self.orchestrator.reset()
        self.clear_outcomes()
        self.logger.info("Spin model reset")

    def get_status(self) -> Dict[str, Any]:
        return {
            "experiment": str(self.experiment),
            "configuration": str(self.configuration),
            "prepared_spin": repr(self.prepared_spin),
            "source_mode": self.source_mode.name,
            "particle_amount": self.particle_amount,
            "apparatuses": [apparatus.get_status() for apparatus in self.apparatuses],
            "measurement_lines": [
                {"name": line.name, "x": line.x_position, "spin": repr(line.spin_state),
                 "crossings": line.crossing_count}
                for line in self.measurement_lines
            ],
            "statistics": self.orchestrator.get_statistics(),
        }
