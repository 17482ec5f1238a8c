"""Experiment configuration module."""

from .experiment_configuration import (
    ApparatusSetting,
    ExperimentConfiguration,
    SpinExperiment
)

__all__ = [
    "ApparatusSetting",
    "ExperimentConfiguration",
    "SpinExperiment",
]
