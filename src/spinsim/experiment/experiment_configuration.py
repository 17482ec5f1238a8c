"""Stern-Gerlach experiment configurations."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence, Tuple

VALID_LENGTHS = (1, 3)


@dataclass(frozen=True)
class ApparatusSetting:
    """Orientation of one apparatus in an experiment."""
    is_z_oriented: bool

    def __str__(self):
        return "SGz" if self.is_z_oriented else "SGx"


@dataclass(frozen=True)
class ExperimentConfiguration:
    """
    Ordered apparatus orientations of an experiment.

    One setting runs a single apparatus. Three settings run a first apparatus
    whose up exit feeds the second setting and whose down exit feeds the third.
    """
    settings: Tuple[ApparatusSetting, ...]

    def __post_init__(self):
        if len(self.settings) not in VALID_LENGTHS:
            raise ValueError(
                f"An experiment needs 1 or 3 apparatus settings, got {len(self.settings)}."
            )

    @classmethod
    def from_orientations(cls, orientations: Sequence[bool]) -> "ExperimentConfiguration":
        """Build a configuration from a list of is_z_oriented flags."""
        return cls(tuple(ApparatusSetting(bool(is_z)) for is_z in orientations))

    @property
    def uses_single_apparatus(self) -> bool:
        return len(self.settings) == 1

    @property
    def measurement_stages(self) -> int:
        """Measurements a particle goes through: the first apparatus, then one of the two branches."""
        return 1 if self.uses_single_apparatus else 2

    def __len__(self):
        return len(self.settings)

    def is_z_oriented(self, index: int) -> bool:
        return self.settings[index].is_z_oriented

    def with_orientation(self, index: int, is_z_oriented: bool) -> "ExperimentConfiguration":
        """Copy of this configuration with one apparatus re-oriented."""
        if not (0 <= index < len(self.settings)):
            raise ValueError(f"Apparatus index {index} out of range.")
        settings = list(self.settings)
        settings[index] = replace(settings[index], is_z_oriented=is_z_oriented)
        return ExperimentConfiguration(tuple(settings))

    def __str__(self):
        return "[" + ", ".join(str(setting) for setting in self.settings) + "]"


class SpinExperiment(Enum):
    """Preset experiments offered by the teaching tool."""
    EXPERIMENT_1 = ("Experiment 1 [SGz]", (True,))
    EXPERIMENT_2 = ("Experiment 2 [SGx]", (False,))
    EXPERIMENT_3 = ("Experiment 3 [SGz, SGx]", (True, False, False))
    EXPERIMENT_4 = ("Experiment 4 [SGz, SGz]", (True, True, True))
    EXPERIMENT_5 = ("Experiment 5 [SGx, SGz]", (False, True, True))
    EXPERIMENT_6 = ("Experiment 6 [SGx, SGx]", (False, False, False))
    CUSTOM = ("Custom", (False, True, True))

    def __init__(self, experiment_name: str, orientations: Tuple[bool, ...]):
        self.experiment_name = experiment_name
        self.orientations = orientations

    def __str__(self):
        return self.experiment_name

    @property
    def configuration(self) -> ExperimentConfiguration:
        return ExperimentConfiguration.from_orientations(self.orientations)

    @property
    def is_custom(self) -> bool:
        return self is SpinExperiment.CUSTOM
