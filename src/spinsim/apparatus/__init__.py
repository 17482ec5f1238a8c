"""Measurement apparatus module."""

from .apparatus_base import BaseMeasurementApparatus
from .stern_gerlach import SternGerlachApparatus, ProbabilityRangeError
from .measurement_line import MeasurementLine

__all__ = [
    "BaseMeasurementApparatus",
    "SternGerlachApparatus",
    "ProbabilityRangeError",
    "MeasurementLine",
]
