"""
spinsim - Stern-Gerlach spin measurement simulation.

Particles carrying a classical spin vector travel through one or three
Stern-Gerlach apparatuses and are measured probabilistically at each stage.
"""

from .spin_model import SpinModel

__all__ = ["SpinModel"]
