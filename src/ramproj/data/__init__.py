"""Simulation metadata and in-memory cell/particle tables."""

from ramproj.data.info import SimulationInfo
from ramproj.data.tables import AmrCellData, HydroData, GravityData, ParticleData

__all__ = [
    'SimulationInfo',
    'AmrCellData',
    'HydroData',
    'GravityData',
    'ParticleData',
]
