"""Projection building blocks: variables, geometry, deposition, results."""

from ramproj.projection.variables import (
    VariableKind,
    VariableSpec,
    lookup_variable,
    expand_variables,
    resolve_variable,
    getvar,
)
from ramproj.projection.spatial import PixelGrid, build_pixel_grid, normalize_ranges
from ramproj.projection.deposition import deposit_cells, deposit_particles, finalize_map
from ramproj.projection.request import ProjectionRequest
from ramproj.projection.result import ProjectionMaps

__all__ = [
    'VariableKind',
    'VariableSpec',
    'lookup_variable',
    'expand_variables',
    'resolve_variable',
    'getvar',
    'PixelGrid',
    'build_pixel_grid',
    'normalize_ranges',
    'deposit_cells',
    'deposit_particles',
    'finalize_map',
    'ProjectionRequest',
    'ProjectionMaps',
]
