"""`ramproj` - AMR-aware projection of RAMSES simulation tables onto pixel maps.

Subpackages:
- data: Simulation metadata and in-memory cell/particle tables
- projection: Variable resolution, range filtering, deposition, result maps
- pipeline: Per-variable processor and multi-variable orchestrator
- schemas: Pydantic configuration models
- contracts: Fail-fast stage invariants
"""

__version__ = "0.1.0"

from ramproj.api import projection
from ramproj.data import SimulationInfo, HydroData, GravityData, ParticleData
from ramproj.projection.variables import getvar, resolve_variable
from ramproj.projection.result import ProjectionMaps

__all__ = [
    "projection",
    "getvar",
    "resolve_variable",
    "ProjectionMaps",
    "SimulationInfo",
    "HydroData",
    "GravityData",
    "ParticleData",
]
