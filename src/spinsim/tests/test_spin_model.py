import pytest

from spinsim import SpinModel
from spinsim.experiment.experiment_configuration import SpinExperiment
from spinsim.source.random_source import ScriptedRandomSource, UniformRandomSimulator
from spinsim.utils.data_structures import BlockingMode, SimulationInfo, SourceMode, SpinDirection


@pytest.fixture
def model():
    return SpinModel(SimulationInfo(seed=3), random_source=ScriptedRandomSource([0.0]))


def up_probabilities(model):
    return [apparatus.up_probability for apparatus in model.apparatuses]


def test_default_experiment(model):
    assert model.experiment is SpinExperiment.EXPERIMENT_1
    assert model.configuration.uses_single_apparatus
    assert model.apparatuses[0].up_probability == 1.0
    assert model.source_mode is SourceMode.SINGLE


@pytest.mark.parametrize("experiment, expected", [
    (SpinExperiment.EXPERIMENT_3, [1.0, 0.5, 0.5]),
    (SpinExperiment.EXPERIMENT_4, [1.0, 1.0, 0.0]),
    (SpinExperiment.EXPERIMENT_5, [0.5, 0.5, 0.5]),
    (SpinExperiment.EXPERIMENT_6, [0.5, 1.0, 0.0]),
])
def test_displayed_probabilities(model, experiment, expected):
    model.set_experiment(experiment)
    assert up_probabilities(model) == pytest.approx(expected)
    assert all(apparatus.enabled for apparatus in model.apparatuses)


def test_single_experiment_disables_branches(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_3)
    model.set_experiment(SpinExperiment.EXPERIMENT_2)
    assert not model.apparatuses[0].is_z_oriented
    assert not model.apparatuses[1].enabled
    assert not model.apparatuses[2].enabled


def test_custom_spin(model):
    model.set_custom_spin(0.75, 0.25)
    assert model.spin_direction is None
    assert model.apparatuses[0].up_probability == pytest.approx(0.75)
    assert model.orchestrator.initial_spin is model.prepared_spin


def test_spin_direction(model):
    model.set_spin_direction(SpinDirection.Z_MINUS)
    assert model.apparatuses[0].up_probability == 0.0
    with pytest.raises(ValueError):
        model.set_spin_direction(SpinDirection.X_MINUS)
    with pytest.raises(TypeError):
        model.set_spin_direction("+X")


def test_custom_orientations_only_apply_to_custom_experiment(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_2)
    model.set_custom_orientation(0, True)
    assert not model.apparatuses[0].is_z_oriented

    model.set_experiment(SpinExperiment.CUSTOM)
    assert [apparatus.is_z_oriented for apparatus in model.apparatuses] == [True, True, True]

    model.set_custom_orientation(2, False)
    assert not model.apparatuses[2].is_z_oriented
    assert model.apparatuses[2].up_probability == pytest.approx(0.5)


def test_particle_amount(model):
    model.set_particle_amount(0.5)
    assert model.orchestrator.emission.rate == pytest.approx(0.5 * model.config.max_emission_rate_hz)
    with pytest.raises(ValueError):
        model.set_particle_amount(1.5)


def test_single_shot_reaches_measurement_lines(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_3)
    assert model.shoot_single_particle()
    for _ in range(60):
        model.step(0.05)
    assert model.measurement_lines[0].crossing_count == 1
    assert model.apparatuses[0].up_count == 1


def test_continuous_beam_and_blocking(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_4)
    model.set_blocking_mode(0, BlockingMode.BLOCK_UP_EXIT)
    model.set_source_mode(SourceMode.CONTINUOUS)
    model.set_particle_amount(0.2)
    for _ in range(100):
        model.step(0.05)
    statistics = model.orchestrator.get_statistics()
    assert statistics["particles_blocked"] > 0
    assert model.apparatuses[1].up_count == 0


def test_expected_fractions(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_5)
    fractions = model.expected_fractions()
    assert set(fractions) == {"up-up", "up-down", "down-up", "down-down"}
    assert sum(fractions.values()) == pytest.approx(1.0)


@pytest.mark.parametrize("experiment", [SpinExperiment.EXPERIMENT_3, SpinExperiment.EXPERIMENT_5])
def test_beam_matches_expected_fractions(experiment):
    model = SpinModel(SimulationInfo(seed=11), random_source=UniformRandomSimulator(seed=17))
    model.set_experiment(experiment)
    model.set_source_mode(SourceMode.CONTINUOUS)
    model.set_particle_amount(0.4)
    for _ in range(40):
        model.step(0.05)
    model.set_particle_amount(0.0)
    for _ in range(320):
        model.step(0.05)

    statistics = model.orchestrator.get_statistics()
    assert statistics["active_beam_particles"] == 0
    assert statistics["particles_exited"] == statistics["beam_particles_emitted"]
    assert sum(model.final_outcomes.values()) == statistics["beam_particles_emitted"]

    expected = model.expected_fractions()
    simulated = model.simulated_fractions()
    assert set(simulated) == set(expected)
    for label, fraction in expected.items():
        assert simulated[label] == pytest.approx(fraction, abs=0.1)


def test_single_apparatus_outcomes(model):
    model.set_spin_direction(SpinDirection.Z_MINUS)
    model.shoot_single_particle()
    for _ in range(40):
        model.step(0.05)
    assert model.final_outcomes == {"down": 1}
    assert model.simulated_fractions() == {"up": 0.0, "down": 1.0}


def test_outcomes_cleared_on_reset_and_experiment_change(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_3)
    model.shoot_single_particle()
    for _ in range(80):
        model.step(0.05)
    assert model.final_outcomes == {"up-up": 1}

    model.reset()
    assert not model.final_outcomes

    model.shoot_single_particle()
    for _ in range(80):
        model.step(0.05)
    assert sum(model.final_outcomes.values()) == 1
    model.set_experiment(SpinExperiment.EXPERIMENT_4)
    assert not model.final_outcomes


def test_reset_keeps_selections(model):
    model.set_experiment(SpinExperiment.EXPERIMENT_6)
    model.shoot_single_particle()
    model.step(0.05)
    model.reset()
    assert model.experiment is SpinExperiment.EXPERIMENT_6
    assert model.orchestrator.active_particles() == []


def test_status(model):
    status = model.get_status()
    assert status["experiment"] == "Experiment 1 [SGz]"
    assert len(status["apparatuses"]) == 3
    assert len(status["measurement_lines"]) == 3
    assert status["statistics"]["steps_taken"] == 0
