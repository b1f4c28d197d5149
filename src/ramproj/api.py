"""Public projection entry point."""

import logging
from typing import Callable, Optional

from ramproj.data.tables import AmrCellData, ParticleData
from ramproj.pipeline.orchestrator import ProjectionOrchestrator
from ramproj.projection.request import ProjectionRequest
from ramproj.projection.result import ProjectionMaps
from ramproj.schemas import ParamConfig, ProjectionOptions, UserConfig, default_options, resolve_config

__all__ = ['projection']

logger = logging.getLogger(__name__)


def _as_options(options) -> ProjectionOptions:
    if options is None:
        return default_options()
    if isinstance(options, ProjectionOptions):
        return options
    if isinstance(options, (UserConfig, dict)):
        return resolve_config(ParamConfig(), options)
    raise TypeError(f"options must be ProjectionOptions, UserConfig or dict, got {type(options).__name__}")


def projection(data, variables, units=None, *, direction=None, plane=None, res=None,
               pxsize=None, xrange=None, yrange=None, zrange=None, center=None,
               range_unit=None, lmax=None, mode=None, weighting=None, mask=None,
               thickness=None, position=None, ref_time=None, options=None,
               progress: Optional[Callable] = None) -> ProjectionMaps:
    """Project cell or particle quantities onto a 2-D pixel map.

    Parameters
    ----------
    data : HydroData, GravityData or ParticleData
        Table to project.
    variables : str or list of str
        Variable names; aliases such as ``"velocity"`` expand in place.
    units : str or list of str, optional
        Unit per variable; a single string applies to all, a short list is
        padded with ``"standard"`` (code units).
    direction : {'x', 'y', 'z'}, optional
        Projection axis. Defaults to ``options.projection.direction``.
    plane : {'xy', 'xz', 'yz'}, optional
        Alternative spelling of the projection axis by its image plane.
    res : int or (int, int), optional
        Pixel count; defaults to one pixel per cell of level ``lmax``.
    pxsize : float, (float, str) or (int, int), optional
        Pixel size in code length units or ``(value, unit)``; overrides
        ``res``. Two integers ``[A, B]`` give an ``(A, B)`` map.
    xrange, yrange, zrange : (float, float), optional
        Region in ``range_unit``, relative to ``center`` when given.
    center : sequence or str, optional
        Reference point in ``range_unit``; ``"bc"`` for the box centre.
    range_unit : str, optional
        ``"standard"`` (box fractions) or a length unit such as ``"kpc"``.
    lmax : int, optional
        Level ceiling; cells above it are excluded.
    mode : {'sum', 'mean'} or list, optional
        Aggregation per variable; ``"standard"`` is accepted for mean.
    weighting : str or (str, str), optional
        Weighting variable (and unit) replacing the volume normaliser of
        mean maps.
    mask : array of bool, optional
        One entry per table row; False rows are ignored.
    thickness, position : float, optional
        Slab along the projection axis, in ``range_unit``.
    ref_time : float, optional
        Reference time for particle ages (code units).
    options : ProjectionOptions, UserConfig or dict, optional
        Engine configuration; expert defaults when None.
    progress : callable, optional
        ``progress(variable, step, total)`` during deposition.

    Returns
    -------
    ProjectionMaps

    Raises
    ------
    ProjectionInputError
        Any invalid argument (unknown variable or unit, bad resolution,
        inverted range, wrong mask length, bad option or level).

    Examples
    --------
    >>> maps = projection(hydro, ["rho", "velocity"], ["g_cm3", "km_s"],
    ...                   mode="mean", res=256, direction="y")  # doctest: +SKIP
    >>> maps["rho"].shape
    (256, 256)
    """
    if not isinstance(data, (AmrCellData, ParticleData)):
        raise TypeError(f"data must be a cell or particle table, got {type(data).__name__}")

    options = _as_options(options)
    request = ProjectionRequest.build(
        data, variables, units, options=options, direction=direction, plane=plane,
        res=res, pxsize=pxsize, xrange=xrange, yrange=yrange, zrange=zrange,
        center=center, range_unit=range_unit, lmax=lmax, mode=mode, weighting=weighting,
        mask=mask, thickness=thickness, position=position, ref_time=ref_time,
    )
    return ProjectionOrchestrator(options).run(data, request, progress=progress)
