"""Per-variable projection stage.

``VariableProcessor`` turns one variable into one 2-D map: resolve per-row
values, build deposition terms for the aggregation mode, deposit onto the
shared grid and normalise. Map-level quantities (surface density, velocity
dispersion) are assembled here from component maps, and the azimuth map is
built from the grid alone.
"""

import logging
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from ramproj.errors import InvalidOptionError
from ramproj.projection.deposition import (
    deposit_cells,
    deposit_particles,
    deposition_terms,
    finalize_map,
)
from ramproj.projection.spatial import cell_footprints, particle_positions
from ramproj.projection.variables import VariableKind, lookup_variable, resolve_variable
from ramproj.units import STANDARD_UNIT

if TYPE_CHECKING:
    from ramproj.schemas import ProjectionOptions

__all__ = ['ProjectionContext', 'VariableProcessor', 'VariableResult']

logger = logging.getLogger(__name__)


class ProjectionContext:
    """Per-call state shared read-only by every variable worker.

    Parameters
    ----------
    data : AmrCellData or ParticleData
        Source table.
    grid : PixelGrid
        Target grid.
    rows : np.ndarray
        Selected row positions.
    center : np.ndarray, optional
        Reference point in code length units for derived positions.
    ref_time : float, optional
        Reference time for particle ages.
    weighting : (str, str), optional
        Weighting variable and unit for mean maps.
    """

    def __init__(self, data, grid, rows: np.ndarray, center=None, ref_time=None,
                 weighting=None):
        self.data = data
        self.grid = grid
        self.rows = rows
        self.center = center
        self.ref_time = ref_time
        self.weighting = weighting
        self.is_particles = data.kind == "particles"

        if self.is_particles:
            self.pos_u, self.pos_v = particle_positions(data, rows, grid.direction)
            self.volume = None
            level = data.data["level"].to_numpy()[rows] if "level" in data.data.columns else None
        else:
            level, self.lo_u, self.lo_v = cell_footprints(data, rows, grid.direction)
            self.volume = (data.info.boxlen / np.exp2(level)) ** 3
        self.level = level

        self.weights = None
        if weighting is not None:
            self.weights = self.values(*weighting)

    @property
    def lmax_projected(self) -> Optional[int]:
        if self.level is None or self.level.size == 0:
            return None
        return int(self.level.max())

    def values(self, name: str, unit: str = STANDARD_UNIT) -> np.ndarray:
        return resolve_variable(self.data, name, unit, rows=self.rows,
                                center=self.center, ref_time=self.ref_time)


class VariableResult:
    """Map of one variable plus the mode and weighting actually applied."""

    __slots__ = ("name", "map", "mode", "weighting")

    def __init__(self, name: str, map_: np.ndarray, mode: str, weighting: Optional[str]):
        self.name = name
        self.map = map_
        self.mode = mode
        self.weighting = weighting


class VariableProcessor:
    """Projects single variables onto the grid of a ``ProjectionContext``.

    Example usage (typically called by the orchestrator)::

        processor = VariableProcessor(options)
        result = processor.process(context, "rho", "g_cm3", "mean")
        result.map.shape  # == context.grid.shape
    """

    def __init__(self, options: "ProjectionOptions"):
        self.chunk_pixels = options.parallel.chunk_pixels

    def process(self, context: ProjectionContext, name: str, unit: str, mode: str,
                executor: Optional[Executor] = None,
                progress: Optional[Callable] = None) -> VariableResult:
        """Project one variable.

        Parameters
        ----------
        context : ProjectionContext
            Shared selection and grid.
        name, unit : str
            Variable and unit; both already validated.
        mode : {'sum', 'mean'}
            Requested aggregation mode. Surface density is always summed and
            velocity dispersions are always built from mean maps. The azimuth
            map ``phi`` is recorded with mode 'none'.
        executor : Executor, optional
            Pool that fills pixel-row blocks of this variable concurrently.
        progress : callable, optional
            ``progress(name, step, total)`` after each deposited level.
        """
        spec = lookup_variable(context.data, name)
        step_cb = None
        if progress is not None:
            def step_cb(step, total):
                progress(name, step, total)

        if spec.kind is VariableKind.COMPOSITE:
            if spec.name == "phi":
                return self._angle_map(context, unit)
            if spec.name == "sd":
                return self._surface_density(context, unit, executor, step_cb)
            return self._dispersion(context, spec, unit, executor, step_cb)

        values = context.values(spec.name, unit)
        weights = context.weights if mode == "mean" else None
        a, b = deposition_terms(values, mode, extensive=spec.extensive,
                                volume=context.volume, weights=weights)
        numerator, denominator = self._deposit(context, a, b, executor, step_cb)

        weighting = context.weighting[0] if weights is not None else None
        return VariableResult(spec.name, finalize_map(context.grid, numerator, denominator, mode),
                              mode, weighting)

    def _deposit(self, context, a, b, executor, progress):
        if context.is_particles:
            numerator, denominator = deposit_particles(context.grid, context.pos_u,
                                                       context.pos_v, a, b)
            if progress is not None:
                progress(1, 1)
            return numerator, denominator
        return deposit_cells(context.grid, context.level, context.lo_u, context.lo_v, a, b,
                             chunk_pixels=self.chunk_pixels, executor=executor,
                             progress=progress)

    def _surface_density(self, context, unit, executor, progress) -> VariableResult:
        """Mass per pixel area."""
        mass = context.values("mass")
        numerator, _ = self._deposit(context, mass, None, executor, progress)
        factor = context.data.info.scales.factor(unit)
        sd = finalize_map(context.grid, numerator, None, "sum") / context.grid.pixel_area
        return VariableResult("sd", sd * factor, "sum", None)

    def _angle_map(self, context, unit) -> VariableResult:
        """Azimuth of each pixel centre around the center, in ``[0, 2 pi)``.

        Nothing is deposited; the map depends on the grid only.
        """
        if unit != STANDARD_UNIT:
            raise InvalidOptionError(
                f"phi is an angle in radians; request it with unit {STANDARD_UNIT!r}, got {unit!r}"
            )
        grid = context.grid
        center = context.center
        if center is None:
            center = np.full(3, 0.5 * grid.boxlen)
        iu, iv = ("xyz".index(axis) for axis in grid.plane_axes)
        u, v = grid.pixel_centers()
        angle = np.arctan2(v[None, :] - center[iv], u[:, None] - center[iu])
        return VariableResult("phi", np.mod(angle, 2.0 * np.pi), "none", None)

    def _dispersion(self, context, spec, unit, executor, progress) -> VariableResult:
        """``sqrt(<v^2> - <v>^2)`` from two mean maps in code units."""
        first, second = spec.components
        maps = []
        for component in (first, second):
            values = context.values(component)
            a, b = deposition_terms(values, "mean", volume=context.volume,
                                    weights=context.weights)
            numerator, denominator = self._deposit(context, a, b, executor, progress)
            maps.append(finalize_map(context.grid, numerator, denominator, "mean"))

        mean_v, mean_v2 = maps
        with np.errstate(invalid="ignore"):
            sigma = np.sqrt(np.maximum(mean_v2 - mean_v ** 2, 0.0))
        # np.maximum keeps NaN, so empty pixels stay NaN
        factor = context.data.info.scales.factor(unit)
        weighting = context.weighting[0] if context.weights is not None else None
        return VariableResult(spec.name, sigma * factor, "mean", weighting)
