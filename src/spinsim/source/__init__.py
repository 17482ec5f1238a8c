"""Particle source module: random draws and emission scheduling."""

from .random_source import UniformRandomSource, UniformRandomSimulator, ScriptedRandomSource
from .emission import EmissionRateController

__all__ = [
    "UniformRandomSource",
    "UniformRandomSimulator",
    "ScriptedRandomSource",
    "EmissionRateController",
]
