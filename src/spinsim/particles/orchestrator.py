"""
Particle Orchestrator - drives particles through a Stern-Gerlach experiment.

Owns the measurement apparatuses, the single-shot and beam particle pools and
the continuous emission controller, and resolves every stage transition:
blocking, measurement and retirement.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from ..apparatus.measurement_line import MeasurementLine
from ..apparatus.stern_gerlach import SternGerlachApparatus
from ..experiment.experiment_configuration import ExperimentConfiguration
from ..source.emission import EmissionRateController
from ..source.random_source import UniformRandomSource
from ..spin.spin_state import SpinState, Z_PLUS
from ..utils.data_structures import (
    BlockingMode, MeasurementEvent, PoolKind, SimulationInfo, SourceMode
)
from ..utils.logging_setup import DEBUG_L3
from .particle import NUMBER_OF_STAGES, PATH_EPSILON, ParticleEntity
from .particle_pool import ParticlePool

NUMBER_OF_APPARATUSES = 3

# Tolerance when matching a path end to a measurement point
POSITION_TOLERANCE = 1e-9


class ParticleOrchestrator:
    """
    Steps every active particle and resolves its stage transitions.

    Apparatus 0 is the first stage. Apparatus 1 receives the particles that
    left apparatus 0 through the up exit and apparatus 2 those that left
    through the down exit. With a single-apparatus configuration, particles
    leave the experiment after the first measurement.
    """

    def __init__(self,
                 config: SimulationInfo,
                 experiment: ExperimentConfiguration,
                 random_source: UniformRandomSource,
                 initial_spin: SpinState = Z_PLUS,
                 measurement_lines: Optional[Sequence[MeasurementLine]] = None):
        """
        Initialize the orchestrator.

        Args:
            config: Simulation parameters
            experiment: Initial apparatus configuration
            random_source: Source of the uniform draws used for measurements
            initial_spin: Spin of newly emitted particles
            measurement_lines: Lines that report crossings of single particles
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config
        self.random_source = random_source
        self.initial_spin = initial_spin
        self.source_mode = SourceMode.SINGLE
        self.source_exit_position = np.array(config.source_exit_position, dtype=float)
        self.measurement_lines: List[MeasurementLine] = list(measurement_lines) if measurement_lines else []

        self.apparatuses: List[SternGerlachApparatus] = [
            SternGerlachApparatus(
                position,
                is_z_oriented=True,
                bucket_duration=config.rate_bucket_duration_s,
                window_duration=config.rate_window_duration_s,
                name=f"SG{index}"
            )
            for index, position in enumerate(config.apparatus_positions)
        ]

        beam_seed = None if config.seed is None else config.seed + 1
        self.single_pool = ParticlePool(PoolKind.SINGLE, config.single_pool_size,
                                        speed=config.particle_speed,
                                        ray_width=0.0,
                                        offset_seed=config.seed)
        self.beam_pool = ParticlePool(PoolKind.BEAM, config.beam_pool_size,
                                      speed=config.particle_speed,
                                      ray_width=config.particle_ray_width,
                                      offset_seed=beam_seed)
        self.pools = {PoolKind.SINGLE: self.single_pool, PoolKind.BEAM: self.beam_pool}

        self.emission = EmissionRateController()

        self._pending_shots = 0
        self._listeners: List[Callable[[MeasurementEvent], None]] = []

        # Runtime counters
        self.elapsed_time = 0.0
        self.steps_taken = 0
        self.particles_emitted = {kind: 0 for kind in PoolKind}
        self.particles_exited = 0
        self.particles_blocked = 0
        self.particles_expired = 0
        self.measurements = 0

        self.experiment = experiment
        self._apply_configuration(experiment)

        self.logger.info(f"Particle orchestrator initialized with experiment {experiment}")

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def shoot_single_particle(self) -> bool:
        """
        Request one single-shot particle, activated on the next step.

        Returns:
            True if the request was queued, False in continuous mode.
        """
        if self.source_mode is not SourceMode.SINGLE:
            self.logger.warning("Single particle requested in continuous mode, request ignored")
            return False
        self._pending_shots += 1
        self.logger.debug(f"Single particle queued ({self._pending_shots} pending)")
        return True

    def set_blocking_mode(self, apparatus_index: int, mode: BlockingMode) -> None:
        if not (0 <= apparatus_index < NUMBER_OF_APPARATUSES):
            self.logger.error(f"Invalid apparatus index {apparatus_index}")
            raise ValueError(f"Apparatus index must be between 0 and {NUMBER_OF_APPARATUSES - 1}.")
        self.apparatuses[apparatus_index].set_blocking_mode(mode)

    def set_configuration(self, experiment: ExperimentConfiguration) -> None:
        """Replace the experiment and re-route particles already in flight."""
        if not isinstance(experiment, ExperimentConfiguration):
            raise TypeError("Experiment must be an ExperimentConfiguration instance.")
        self.experiment = experiment
        self._apply_configuration(experiment)

        rerouted = 0
        for pool in self.pools.values():
            for particle in pool.active_particles():
                self._recompute_path(particle)
                rerouted += 1
        self.logger.info(f"Experiment set to {experiment}, {rerouted} particles re-routed")

    def set_source_mode(self, mode: SourceMode) -> None:
        if not isinstance(mode, SourceMode):
            raise TypeError("Mode must be an instance of SourceMode Enum.")
        if mode is self.source_mode:
            return
        self.source_mode = mode
        self._pending_shots = 0
        self.emission.reset()
        self.logger.info(f"Source mode set to {mode.name}")

    def set_emission_rate(self, rate_hz: float) -> None:
        """Set the average beam emission rate in particles per second."""
        self.emission.set_rate(rate_hz)
        self.logger.debug(f"Emission rate set to {rate_hz:.2f} Hz")

    def set_initial_spin(self, spin: SpinState) -> None:
        """Spin given to particles emitted from now on."""
        if not isinstance(spin, SpinState):
            raise TypeError("Initial spin must be a SpinState instance.")
        self.initial_spin = spin
        self.logger.info(f"Initial spin set to {spin}")

    def add_measurement_listener(self, callback: Callable[[MeasurementEvent], None]) -> None:
        self._listeners.append(callback)

    def remove_measurement_listener(self, callback: Callable[[MeasurementEvent], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def reset(self) -> None:
        """Retire all particles and clear counters. Configuration and blocking persist."""
        for pool in self.pools.values():
            pool.clear()
        for apparatus in self.apparatuses:
            apparatus.reset()
        for line in self.measurement_lines:
            line.reset()
        self.emission.reset()
        self._pending_shots = 0

        self.elapsed_time = 0.0
        self.steps_taken = 0
        self.particles_emitted = {kind: 0 for kind in PoolKind}
        self.particles_exited = 0
        self.particles_blocked = 0
        self.particles_expired = 0
        self.measurements = 0
        self.logger.info("Particle orchestrator reset")

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self, dt: float) -> None:
        """
        Advance the simulation by dt seconds.

        Pending single shots are activated first, then the beam emission runs,
        then every active particle moves (single pool then beam pool, each in
        slot order) and finally the apparatus rate estimators advance.
        """
        if dt < 0:
            self.logger.error(f"Negative time step {dt}")
            raise ValueError("Time step cannot be negative.")

        while self._pending_shots > 0:
            self._pending_shots -= 1
            self._emit(self.single_pool)

        if self.source_mode is SourceMode.CONTINUOUS:
            for _ in range(self.emission.particles_for_step(dt)):
                self._emit(self.beam_pool)

        for particle in self.single_pool.active_particles():
            previous_position = particle.position.copy()
            self._advance_particle(self.single_pool, particle, dt)
            self._check_line_crossings(previous_position, particle)

        for particle in self.beam_pool.active_particles():
            self._advance_particle(self.beam_pool, particle, dt)

        for apparatus in self.apparatuses:
            apparatus.step(dt)

        self.elapsed_time += dt
        self.steps_taken += 1

    def _emit(self, pool: ParticlePool) -> ParticleEntity:
        particle = pool.acquire()
        first = self.apparatuses[0]
        particle.activate(self.initial_spin, [self.source_exit_position, first.entrance_position])
        self.particles_emitted[pool.kind] += 1
        self.logger.log(DEBUG_L3, f"{pool.kind.value} particle {particle.slot} emitted")
        return particle

    def _advance_particle(self, pool: ParticlePool, particle: ParticleEntity, dt: float) -> None:
        particle.advance(dt, lambda p: self._resolve_transition(pool, p))
        if not particle.active:
            pool.release(particle)
            return

        max_lifetime = self.config.max_particle_lifetime_s
        if max_lifetime is not None and particle.lifetime > max_lifetime:
            self.particles_expired += 1
            self.logger.log(DEBUG_L3, f"{pool.kind.value} particle {particle.slot} expired")
            pool.release(particle)

    def _check_line_crossings(self, previous_position: np.ndarray, particle: ParticleEntity) -> None:
        for line in self.measurement_lines:
            if line.is_particle_behind(previous_position) and not line.is_particle_behind(particle.position):
                line.record_crossing(particle.latest_spin)

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def _resolve_transition(self, pool: ParticlePool, particle: ParticleEntity) -> bool:
        """
        Called when a particle reaches the end of its path.

        Returns:
            True if the particle was given a new path to continue on.
        """
        if self._is_blocked(particle):
            self._retire_blocked(pool, particle)
            return False

        stage = particle.stage
        if stage < self.experiment.measurement_stages and not particle.stage_completed[stage]:
            index = self._apparatus_index_for_stage(particle)
            apparatus = self.apparatuses[index]
            end_position = particle.end_position
            if np.allclose(end_position, apparatus.entrance_position, atol=POSITION_TOLERANCE):
                particle.set_path([apparatus.entrance_position, apparatus.measurement_position])
                return True
            if np.allclose(end_position, apparatus.measurement_position, atol=POSITION_TOLERANCE):
                self._measure(pool, particle, index)
                # No apparatus follows, so a blocked exit stops the particle right away
                if particle.stage >= self.experiment.measurement_stages and self._is_blocked(particle):
                    self._retire_blocked(pool, particle)
                    return False
                return True

        # Terminal leg finished, or the next apparatus was bypassed by a reconfiguration
        if stage < NUMBER_OF_STAGES:
            particle.stage_completed[stage] = True
        self.particles_exited += 1
        self.logger.log(DEBUG_L3, f"{pool.kind.value} particle {particle.slot} left the experiment")
        particle.deactivate()
        return False

    def _is_blocked(self, particle: ParticleEntity) -> bool:
        """Whether the apparatus that measured the particle last has its exit walled off."""
        if particle.last_apparatus_index is None:
            return False
        last_apparatus = self.apparatuses[particle.last_apparatus_index]
        return last_apparatus.is_exit_blocked(particle.last_measured_up)

    def _retire_blocked(self, pool: ParticlePool, particle: ParticleEntity) -> None:
        self.particles_blocked += 1
        self.logger.log(DEBUG_L3, f"{pool.kind.value} particle {particle.slot} blocked by "
                                  f"{self.apparatuses[particle.last_apparatus_index].name}")
        particle.deactivate()

    def _measure(self, pool: ParticlePool, particle: ParticleEntity, index: int) -> None:
        stage = particle.stage
        apparatus = self.apparatuses[index]

        up_probability = apparatus.compute_up_probability(particle.spin_at_stage[stage])
        draw = self.random_source.next_double()
        is_up = draw < up_probability
        apparatus.record_outcome(is_up)
        outcome = apparatus.outcome_spin(is_up)

        particle.stage_completed[stage] = True
        particle.stage = stage + 1
        particle.measured_up[stage + 1] = is_up
        particle.spin_at_stage[stage + 1] = outcome
        particle.last_apparatus_index = index
        particle.set_path([apparatus.exit_position(is_up), self._path_for_stage(particle)[0]])
        self.measurements += 1

        self.logger.log(DEBUG_L3, f"{pool.kind.value} particle {particle.slot} measured by {apparatus.name}: "
                                  f"P(up)={up_probability:.3f}, draw={draw:.3f}, up={is_up}")

        event = MeasurementEvent(
            pool=pool.kind,
            slot=particle.slot,
            stage=stage,
            apparatus_index=index,
            is_up=is_up,
            up_probability=up_probability,
            outcome=outcome.direction
        )
        for callback in list(self._listeners):
            callback(event)

    def _apparatus_index_for_stage(self, particle: ParticleEntity) -> int:
        if particle.stage == 0:
            return 0
        return 1 if particle.measured_up[1] else 2

    def _path_for_stage(self, particle: ParticleEntity) -> List[np.ndarray]:
        """Remaining waypoints of the particle's current stage, up to its next measurement or exit."""
        if particle.stage < self.experiment.measurement_stages:
            apparatus = self.apparatuses[self._apparatus_index_for_stage(particle)]
            return [apparatus.entrance_position, apparatus.measurement_position]

        last_apparatus = self.apparatuses[particle.last_apparatus_index]
        exit_position = last_apparatus.exit_position(particle.last_measured_up)
        return [exit_position + np.array([self.config.terminal_distance, 0.0])]

    def _recompute_path(self, particle: ParticleEntity) -> None:
        """Rebuild the path of an in-flight particle against its current stage."""
        position = particle.position.copy()
        ahead = [point for point in self._path_for_stage(particle) if point[0] > position[0] + PATH_EPSILON]
        if not ahead:
            # The next apparatus is already behind the particle
            ahead = [position + np.array([self.config.terminal_distance, 0.0])]
        particle.set_path([position] + ahead)

    def _apply_configuration(self, experiment: ExperimentConfiguration) -> None:
        for index, apparatus in enumerate(self.apparatuses):
            if index < len(experiment):
                apparatus.set_orientation(experiment.is_z_oriented(index))
                apparatus.enabled = True
            else:
                apparatus.enabled = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def active_particles(self, kind: Optional[PoolKind] = None) -> List[ParticleEntity]:
        """Active particles, single pool first, each pool in slot order."""
        if kind is not None:
            return self.pools[kind].active_particles()
        return self.single_pool.active_particles() + self.beam_pool.active_particles()

    def get_particle_positions(self, kind: Optional[PoolKind] = None) -> np.ndarray:
        """Display positions of the active particles as an (n, 2) array."""
        particles = self.active_particles(kind)
        if not particles:
            return np.empty((0, 2))
        return np.array([particle.display_position for particle in particles])

    @property
    def pending_shots(self) -> int:
        return self._pending_shots

    def get_statistics(self) -> Dict[str, Any]:
        """Get orchestrator and apparatus statistics."""
        return {
            "elapsed_time_s": self.elapsed_time,
            "steps_taken": self.steps_taken,
            "source_mode": self.source_mode.name,
            "experiment": str(self.experiment),
            "emission_rate_hz": self.emission.rate,
            "single_particles_emitted": self.particles_emitted[PoolKind.SINGLE],
            "beam_particles_emitted": self.particles_emitted[PoolKind.BEAM],
            "active_single_particles": self.single_pool.active_count,
            "active_beam_particles": self.beam_pool.active_count,
            "measurements": self.measurements,
            "particles_exited": self.particles_exited,
            "particles_blocked": self.particles_blocked,
            "particles_expired": self.particles_expired,
            "apparatuses": [apparatus.get_statistics() for apparatus in self.apparatuses],
        }
