"""Multi-variable projection orchestration.

Computes the pixel grid and row selection once per call, then projects every
requested variable onto it with a flat worker-thread pool.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from ramproj.contracts import assert_pixel_grid, assert_projected
from ramproj.pipeline.processor import ProjectionContext, VariableProcessor
from ramproj.projection.request import ProjectionRequest
from ramproj.projection.result import ProjectionMaps
from ramproj.projection.spatial import (
    apply_slab,
    build_pixel_grid,
    normalize_center,
    normalize_ranges,
    select_cells,
    select_particles,
)
from ramproj.schemas import ProjectionOptions

__all__ = ['ProjectionOrchestrator']

logger = logging.getLogger(__name__)


class ProjectionOrchestrator:
    """Runs a validated ``ProjectionRequest`` and collects the maps.

    **Stages:**

    1. **Geometry**: normalise ranges (center, range unit, slab), build the
       pixel grid shared by all variables.

    2. **Selection**: mask, level ceiling and spatial filter give the row
       positions that take part; footprints are computed once.

    3. **Deposition**: one ``VariableProcessor.process()`` per variable.

    4. **Assembly**: contracts on the maps, then an immutable
       ``ProjectionMaps``.

    **Parallelism:**

    Variables run concurrently on a ``ThreadPoolExecutor`` when at least
    ``parallel.min_variables_parallel`` variables are requested over at
    least ``parallel.min_cells_parallel`` selected rows. Otherwise variables
    run one after another and the image of each is filled in blocks of pixel
    rows concurrently. Each worker writes only its own output: a whole map
    or a disjoint slice of one.

    The first worker exception cancels pending work and propagates unchanged.

    Example usage::

        orchestrator = ProjectionOrchestrator(options)
        maps = orchestrator.run(hydro, request)
    """

    def __init__(self, options: ProjectionOptions):
        self.options = options
        self.max_workers = options.parallel.max_workers
        self.min_variables_parallel = options.parallel.min_variables_parallel
        self.min_cells_parallel = options.parallel.min_cells_parallel
        self.verbose = options.reporting.verbose
        self.show_progress = options.reporting.show_progress
        self.processor = VariableProcessor(options)

    def _report(self, msg, *args):
        if self.verbose:
            logger.info(msg, *args)
        else:
            logger.debug(msg, *args)

    @staticmethod
    def _log_progress(variable: str, step: int, total: int) -> None:
        logger.info("%s: level %d/%d deposited", variable, step, total)

    def run(self, data, request: ProjectionRequest,
            progress: Optional[Callable] = None) -> ProjectionMaps:
        """Project every variable of ``request``.

        Parameters
        ----------
        data : AmrCellData or ParticleData
            Table the request was built for.
        request : ProjectionRequest
            Validated arguments.
        progress : callable, optional
            ``progress(variable, step, total)``; a logging callback is used
            when ``reporting.show_progress`` is set and none is given.

        Returns
        -------
        ProjectionMaps
        """
        start = time.time()
        info = data.info
        if progress is None and self.show_progress:
            progress = self._log_progress

        # --- geometry ---
        ranges = normalize_ranges(info, request.xrange, request.yrange, request.zrange,
                                  request.center, request.range_unit)
        ranges = apply_slab(info, ranges, request.direction, request.lmax,
                            position=request.position, thickness=request.thickness,
                            center=request.center, range_unit=request.range_unit)
        grid = build_pixel_grid(info, ranges, request.direction, request.lmax,
                                res=request.res, pxsize=request.pxsize)
        assert_pixel_grid(grid)

        center = normalize_center(info, request.center, request.range_unit)
        center_code = None if center is None else center * info.boxlen

        # --- selection ---
        if data.kind == "particles":
            rows = select_particles(data, grid, request.lmax, request.mask)
        else:
            rows = select_cells(data, grid, request.lmax, request.mask)

        context = ProjectionContext(data, grid, rows, center=center_code,
                                    ref_time=request.ref_time, weighting=request.weighting)

        self._report("Projecting %s of %s data along %s: %d of %d rows onto %dx%d pixels",
                     list(request.variables), data.kind, request.direction, rows.size,
                     len(data), grid.nx, grid.ny)

        # --- deposition ---
        jobs = list(zip(request.variables, request.units, request.modes))
        parallel_variables = (
            self.max_workers > 1
            and len(jobs) >= self.min_variables_parallel
            and rows.size >= self.min_cells_parallel
        )
        parallel_blocks = (
            not parallel_variables
            and self.max_workers > 1
            and data.kind != "particles"
            and rows.size >= self.min_cells_parallel
        )

        if parallel_variables:
            results = self._run_variables_parallel(context, jobs, progress)
        elif parallel_blocks:
            with ThreadPoolExecutor(max_workers=self.max_workers,
                                    thread_name_prefix="ramproj-block") as pool:
                results = [self.processor.process(context, name, unit, mode,
                                                  executor=pool, progress=progress)
                           for name, unit, mode in jobs]
        else:
            results = [self.processor.process(context, name, unit, mode, progress=progress)
                       for name, unit, mode in jobs]

        # --- assembly ---
        maps = {r.name: r.map for r in results}
        modes = {r.name: r.mode for r in results}
        assert_projected(maps, modes, grid.shape)

        result = self._assemble(data, request, grid, center, context, results)
        self._report("Projection finished in %.2f s (%s)", time.time() - start,
                     "variables in parallel" if parallel_variables
                     else "pixel blocks in parallel" if parallel_blocks else "sequential")
        return result

    def _run_variables_parallel(self, context, jobs, progress) -> list:
        workers = min(self.max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers,
                                thread_name_prefix="ramproj-var") as pool:
            futures = [pool.submit(self.processor.process, context, name, unit, mode,
                                   progress=progress)
                       for name, unit, mode in jobs]
            try:
                return [f.result() for f in futures]
            except Exception:
                for f in futures:
                    f.cancel()
                raise

    def _assemble(self, data, request, grid, center, context, results) -> ProjectionMaps:
        info = data.info
        if center is None:
            center = np.full(3, 0.5)

        u, v = grid.plane_axes
        iu, iv = "xyz".index(u), "xyz".index(v)
        extent = grid.extent
        cextent = (
            extent[0] - center[iu] * info.boxlen,
            extent[1] - center[iu] * info.boxlen,
            extent[2] - center[iv] * info.boxlen,
            extent[3] - center[iv] * info.boxlen,
        )
        units = dict(zip(request.variables, request.units))

        return ProjectionMaps(
            maps={r.name: r.map for r in results},
            units={r.name: units[r.name] for r in results},
            modes={r.name: r.mode for r in results},
            weightings={r.name: r.weighting for r in results},
            direction=grid.direction,
            plane_axes=grid.plane_axes,
            extent=extent,
            cextent=cextent,
            pixsize=grid.pixsize,
            resolution=grid.shape,
            ranges=grid.ranges,
            center=tuple(float(c) for c in center),
            boxlen=info.boxlen,
            lmin=info.lmin,
            lmax=info.lmax,
            lmax_projected=context.lmax_projected,
            ratio=(extent[3] - extent[2]) / (extent[1] - extent[0]),
            kind=data.kind,
        )
