"""Particles module: pooled particles and the orchestrator that drives them."""

from .particle import ParticleEntity
from .particle_pool import ParticlePool, PoolExhaustedError
from .orchestrator import ParticleOrchestrator

__all__ = [
    "ParticleEntity",
    "ParticlePool",
    "PoolExhaustedError",
    "ParticleOrchestrator",
]
