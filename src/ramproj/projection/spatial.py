"""Spatial ranges, pixel-grid geometry and row selection.

All geometry is computed in box fractions ``[0, 1]``; code-unit lengths are
box fractions times ``boxlen``. Ranges, centers, slab positions and pixel
sizes can be given in any length unit of the scale table (``range_unit``).

Ranges are never clipped to the box: a range outside the box selects no rows
but still yields a grid of the requested size.
"""

import logging
import numbers
from typing import Optional

import numpy as np

from ramproj.errors import (
    InvalidLevelError,
    InvalidOptionError,
    InvalidRangeError,
    InvalidResolutionError,
    MaskLengthError,
)
from ramproj.units import STANDARD_UNIT

__all__ = [
    'DIRECTIONS',
    'PLANES',
    'PixelGrid',
    'resolve_direction',
    'normalize_center',
    'normalize_ranges',
    'apply_slab',
    'resolve_lmax',
    'build_pixel_grid',
    'check_mask',
    'select_cells',
    'select_particles',
    'cell_footprints',
    'particle_positions',
]

logger = logging.getLogger(__name__)

# projection axis -> (first image axis, second image axis)
DIRECTIONS = {
    "z": ("x", "y"),
    "y": ("x", "z"),
    "x": ("y", "z"),
}
PLANES = {"".join(axes): direction for direction, axes in DIRECTIONS.items()}

BOX_CENTER_TOKENS = ("bc", "boxcenter", ":bc", ":boxcenter")

_AXIS_INDEX = {"x": 0, "y": 1, "z": 2}


def resolve_direction(direction: Optional[str] = None, plane: Optional[str] = None,
                      default: str = "z") -> str:
    """Projection axis from ``direction`` and/or its ``plane`` spelling.

    Examples
    --------
    >>> resolve_direction(plane="xz")
    'y'
    >>> resolve_direction("x", "yz")
    'x'

    Raises
    ------
    InvalidOptionError
        Unknown direction or plane, or the two disagree.
    """
    from_direction = None
    if direction is not None:
        from_direction = str(direction).lower().strip()
        if from_direction not in DIRECTIONS:
            raise InvalidOptionError(
                f"direction must be one of {sorted(DIRECTIONS)}, got {direction!r}"
            )

    from_plane = None
    if plane is not None:
        key = str(plane).lower().strip()
        if key not in PLANES:
            raise InvalidOptionError(f"plane must be one of {sorted(PLANES)}, got {plane!r}")
        from_plane = PLANES[key]

    if from_direction and from_plane and from_direction != from_plane:
        raise InvalidOptionError(
            f"direction={direction!r} and plane={plane!r} select different projection axes"
        )
    return from_direction or from_plane or default


def _range_conversion(info, range_unit: str) -> float:
    """Length in ``range_unit`` per box fraction."""
    if range_unit == STANDARD_UNIT:
        return 1.0
    return info.boxlen * info.scales.factor(range_unit)


def _finite(value, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidRangeError(f"{what} must be a real number, got {value!r}")
    value = float(value)
    if not np.isfinite(value):
        raise InvalidRangeError(f"{what} must be finite, got {value!r}")
    return value


def _is_box_center(token) -> bool:
    return isinstance(token, str) and token.lower().strip() in BOX_CENTER_TOKENS


def normalize_center(info, center, range_unit: str = STANDARD_UNIT) -> Optional[np.ndarray]:
    """Center as box fractions, or None when no center is given.

    ``center`` is three values in ``range_unit``; any entry (or the whole
    center) may be ``"bc"``/``"boxcenter"`` for the middle of the box.
    """
    if center is None:
        return None

    if _is_box_center(center):
        return np.full(3, 0.5)

    if isinstance(center, str) or len(center) != 3:
        raise InvalidRangeError(f"center needs three coordinates, got {center!r}")

    conv = _range_conversion(info, range_unit)
    out = np.empty(3)
    for i, value in enumerate(center):
        if _is_box_center(value):
            out[i] = 0.5
        else:
            out[i] = _finite(value, f"center[{i}]") / conv
    return out


def normalize_ranges(info, xrange=None, yrange=None, zrange=None, center=None,
                     range_unit: str = STANDARD_UNIT) -> tuple:
    """Convert user ranges to box fractions.

    Parameters
    ----------
    info : SimulationInfo
        Provides ``boxlen`` and the scale table.
    xrange, yrange, zrange : pair, optional
        ``(lo, hi)`` in ``range_unit``, relative to ``center`` when a center
        is given. A missing range or bound means the full box.
    center : sequence or str, optional
        See ``normalize_center()``.
    range_unit : str
        ``"standard"`` for box fractions, or a length unit (``"kpc"``...).

    Returns
    -------
    tuple
        ``(xmin, xmax, ymin, ymax, zmin, zmax)`` in box fractions.

    Raises
    ------
    InvalidRangeError
        If a range is inverted, degenerate or not finite.
    UnknownUnitError
        If ``range_unit`` is not in the scale table.
    """
    conv = _range_conversion(info, range_unit)
    offsets = normalize_center(info, center, range_unit)
    if offsets is None:
        offsets = np.zeros(3)

    bounds = []
    for axis, rng in zip("xyz", (xrange, yrange, zrange)):
        if rng is None:
            rng = (None, None)
        if isinstance(rng, str) or len(rng) != 2:
            raise InvalidRangeError(f"{axis}range must be a (min, max) pair, got {rng!r}")

        lo_raw, hi_raw = rng
        if lo_raw is not None and hi_raw is not None:
            if _finite(lo_raw, f"{axis}range[0]") >= _finite(hi_raw, f"{axis}range[1]"):
                raise InvalidRangeError(
                    f"{axis}range must satisfy min < max, got {list(rng)}"
                )

        i = _AXIS_INDEX[axis]
        lo = 0.0 if lo_raw is None else _finite(lo_raw, f"{axis}range[0]") / conv + offsets[i]
        hi = 1.0 if hi_raw is None else _finite(hi_raw, f"{axis}range[1]") / conv + offsets[i]
        if lo >= hi:
            raise InvalidRangeError(
                f"{axis}range is empty after conversion: [{lo}, {hi}] in box fractions"
            )
        bounds.extend((lo, hi))

    return tuple(bounds)


def apply_slab(info, ranges: tuple, direction: str, lmax: int, position=None,
               thickness=None, center=None, range_unit: str = STANDARD_UNIT) -> tuple:
    """Replace the depth range by a slab of given position and thickness.

    ``position`` is measured along the projection axis in ``range_unit``
    (relative to the center when one is given). ``thickness`` defaults to
    one cell of level ``lmax``. Without ``position`` the slab is centred on
    the current depth range. Returns ``ranges`` unchanged when neither
    keyword is set.
    """
    if position is None and thickness is None:
        return ranges

    conv = _range_conversion(info, range_unit)
    i = _AXIS_INDEX[direction]
    lo, hi = ranges[2 * i], ranges[2 * i + 1]

    if thickness is None:
        width = 1.0 / 2 ** lmax
    else:
        width = _finite(thickness, "thickness") / conv
        if width <= 0:
            raise InvalidRangeError(f"thickness must be positive, got {thickness!r}")

    if position is None:
        mid = 0.5 * (lo + hi)
    else:
        offsets = normalize_center(info, center, range_unit)
        mid = _finite(position, "position") / conv + (0.0 if offsets is None else offsets[i])

    out = list(ranges)
    out[2 * i] = mid - 0.5 * width
    out[2 * i + 1] = mid + 0.5 * width
    return tuple(out)


def resolve_lmax(data, lmax=None) -> int:
    """Level ceiling: ``lmax`` if given, else the finest level present.

    Raises
    ------
    InvalidLevelError
        If ``lmax`` is not an integer ``>= 1`` and ``>= info.lmin``.
    """
    info = data.info
    if lmax is None:
        present = data.max_level_present
        return info.lmax if present is None else present

    if isinstance(lmax, bool) or not isinstance(lmax, numbers.Integral):
        raise InvalidLevelError(f"lmax must be an integer, got {lmax!r}")
    lmax = int(lmax)
    if lmax < 1:
        raise InvalidLevelError(f"lmax must be >= 1, got {lmax}")
    if lmax < info.lmin:
        raise InvalidLevelError(f"lmax ({lmax}) must be >= lmin ({info.lmin})")
    return lmax


class PixelGrid:
    """Uniform pixel grid shared by every map of one projection call.

    Parameters
    ----------
    direction : str
        Projection axis; the image axes are ``DIRECTIONS[direction]``.
    ranges : tuple
        ``(xmin, xmax, ymin, ymax, zmin, zmax)`` in box fractions.
    nx, ny : int
        Pixels along the first and second image axis.
    boxlen : float
        Box size in code length units.
    """

    def __init__(self, direction: str, ranges: tuple, nx: int, ny: int, boxlen: float):
        self.direction = direction
        self.ranges = tuple(float(r) for r in ranges)
        self.nx = int(nx)
        self.ny = int(ny)
        self.boxlen = float(boxlen)

    def __repr__(self) -> str:
        return (f"PixelGrid(direction={self.direction!r}, shape={self.shape}, "
                f"bounds={self.bounds})")

    @property
    def plane_axes(self) -> tuple:
        return DIRECTIONS[self.direction]

    def _axis_range(self, axis: str) -> tuple:
        i = _AXIS_INDEX[axis]
        return self.ranges[2 * i], self.ranges[2 * i + 1]

    @property
    def bounds(self) -> tuple:
        """``(umin, umax, vmin, vmax)`` of the image plane in box fractions."""
        u, v = self.plane_axes
        return self._axis_range(u) + self._axis_range(v)

    @property
    def depth(self) -> tuple:
        return self._axis_range(self.direction)

    @property
    def shape(self) -> tuple:
        return (self.nx, self.ny)

    @property
    def pixel_size(self) -> tuple:
        """Pixel size per image axis in box fractions."""
        umin, umax, vmin, vmax = self.bounds
        return ((umax - umin) / self.nx, (vmax - vmin) / self.ny)

    @property
    def pixel_area(self) -> float:
        """Pixel area in code length units squared."""
        du, dv = self.pixel_size
        return du * dv * self.boxlen ** 2

    @property
    def extent(self) -> tuple:
        """Image plane bounds in code length units."""
        return tuple(b * self.boxlen for b in self.bounds)

    @property
    def pixsize(self) -> tuple:
        """Pixel size per image axis in code length units."""
        return tuple(p * self.boxlen for p in self.pixel_size)

    def pixel_centers(self) -> tuple:
        """Pixel-centre coordinates of both image axes in code length units."""
        umin, _, vmin, _ = self.bounds
        du, dv = self.pixel_size
        u = (umin + (np.arange(self.nx) + 0.5) * du) * self.boxlen
        v = (vmin + (np.arange(self.ny) + 0.5) * dv) * self.boxlen
        return u, v

    def edges(self) -> tuple:
        """Pixel edges of both image axes in box fractions."""
        umin, umax, vmin, vmax = self.bounds
        return np.linspace(umin, umax, self.nx + 1), np.linspace(vmin, vmax, self.ny + 1)


def _pixel_count(value, what: str) -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidResolutionError(f"{what} must be a positive integer, got {value!r}")
    if isinstance(value, numbers.Integral):
        count = int(value)
    elif isinstance(value, numbers.Real) and float(value).is_integer():
        count = int(value)
    else:
        raise InvalidResolutionError(f"{what} must be a positive integer, got {value!r}")
    if count < 1:
        raise InvalidResolutionError(f"{what} must be a positive integer, got {value!r}")
    return count


def _is_count_pair(value) -> bool:
    """``[A, B]`` of integers: pixel counts rather than ``(value, unit)``."""
    return (isinstance(value, (tuple, list)) and len(value) == 2
            and all(isinstance(v, numbers.Integral) and not isinstance(v, bool) for v in value))


def _pixel_length(info, pxsize) -> float:
    """Pixel size in box fractions from ``value`` or ``(value, unit)``."""
    if isinstance(pxsize, (tuple, list)):
        if len(pxsize) != 2 or not isinstance(pxsize[1], str):
            raise InvalidResolutionError(
                f"pxsize must be value, (value, unit) or (nx, ny) pixel counts, got {pxsize!r}"
            )
        value, unit = pxsize
    else:
        value, unit = pxsize, STANDARD_UNIT

    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not np.isfinite(value):
        raise InvalidResolutionError(f"pxsize must be a positive number, got {value!r}")
    if value <= 0:
        raise InvalidResolutionError(f"pxsize must be positive, got {value!r}")

    # value is a length in `unit`; code length = value / factor
    return float(value) / info.scales.factor(unit) / info.boxlen


def build_pixel_grid(info, ranges: tuple, direction: str, lmax: int,
                     res=None, pxsize=None) -> PixelGrid:
    """Compute the pixel grid of a projection.

    Parameters
    ----------
    info : SimulationInfo
        Provides ``boxlen`` and the scale table.
    ranges : tuple
        Normalized ranges from ``normalize_ranges()``.
    direction : str
        Projection axis.
    lmax : int
        Level ceiling; the default resolution matches its cell size.
    res : int or (int, int), optional
        Pixel count for a square map, or per image axis.
    pxsize : float, (float, str) or (int, int), optional
        Pixel size in code length units, or ``(value, unit)``. Takes
        precedence over ``res``. A pair of integers is read as pixel
        counts ``(nx, ny)``, like ``res``.

    Returns
    -------
    PixelGrid

    Raises
    ------
    InvalidResolutionError
        If a pixel count is not a positive integer or a pixel size is not
        positive.
    """
    u, v = DIRECTIONS[direction]
    iu, iv = _AXIS_INDEX[u], _AXIS_INDEX[v]
    width_u = ranges[2 * iu + 1] - ranges[2 * iu]
    width_v = ranges[2 * iv + 1] - ranges[2 * iv]

    if _is_count_pair(pxsize):
        res, pxsize = tuple(pxsize), None

    if pxsize is not None:
        length = _pixel_length(info, pxsize)
        nx = max(1, int(round(width_u / length)))
        ny = max(1, int(round(width_v / length)))
    elif res is not None:
        if isinstance(res, (tuple, list)):
            if len(res) != 2:
                raise InvalidResolutionError(f"res must be N or (nx, ny), got {res!r}")
            nx, ny = _pixel_count(res[0], "res[0]"), _pixel_count(res[1], "res[1]")
        else:
            nx = ny = _pixel_count(res, "res")
    else:
        finest = 2 ** lmax
        nx = max(1, int(round(width_u * finest)))
        ny = max(1, int(round(width_v * finest)))

    return PixelGrid(direction, ranges, nx, ny, info.boxlen)


def check_mask(mask, nrows: int) -> Optional[np.ndarray]:
    """Validate a row mask.

    Raises
    ------
    MaskLengthError
        If the mask does not have exactly ``nrows`` entries.
    InvalidOptionError
        If the mask is not boolean.
    """
    if mask is None:
        return None
    mask = np.asarray(mask)
    if mask.ndim != 1 or mask.shape[0] != nrows:
        raise MaskLengthError(
            f"mask has {mask.size} entries but the table has {nrows} rows"
        )
    if mask.dtype != np.bool_:
        raise InvalidOptionError(f"mask must be boolean, got dtype {mask.dtype}")
    return mask


def cell_footprints(data, rows: np.ndarray, direction: str) -> tuple:
    """Levels and footprint lower edges (box fractions) of selected cells.

    Returns
    -------
    tuple
        ``(level, lo_u, lo_v)`` arrays aligned with ``rows``.
    """
    frame = data.data
    u, v = DIRECTIONS[direction]
    level = frame["level"].to_numpy()[rows]
    size = 1.0 / np.exp2(level)
    lo_u = frame["c" + u].to_numpy()[rows] * size
    lo_v = frame["c" + v].to_numpy()[rows] * size
    return level, lo_u, lo_v


def particle_positions(data, rows: np.ndarray, direction: str) -> tuple:
    """Image-plane positions (box fractions) of selected particles."""
    frame = data.data
    u, v = DIRECTIONS[direction]
    boxlen = data.info.boxlen
    return (frame[u].to_numpy(dtype=np.float64)[rows] / boxlen,
            frame[v].to_numpy(dtype=np.float64)[rows] / boxlen)


def select_cells(data, grid: PixelGrid, lmax: int, mask=None) -> np.ndarray:
    """Row positions of cells that take part in the projection.

    A cell is kept when it passes the mask, its level is at most ``lmax``,
    its footprint overlaps the image plane, and along the projection axis
    either its centre lies in ``[dmin, dmax)`` or it contains the middle of
    the depth range (thin slabs inside coarse cells).
    """
    frame = data.data
    keep = np.ones(len(frame), dtype=bool) if mask is None else mask.copy()

    level = frame["level"].to_numpy()
    keep &= level <= lmax
    size = 1.0 / np.exp2(level)

    umin, umax, vmin, vmax = grid.bounds
    u, v = grid.plane_axes
    lo_u = frame["c" + u].to_numpy() * size
    lo_v = frame["c" + v].to_numpy() * size
    keep &= (lo_u + size > umin) & (lo_u < umax)
    keep &= (lo_v + size > vmin) & (lo_v < vmax)

    dmin, dmax = grid.depth
    lo_d = frame["c" + grid.direction].to_numpy() * size
    centre = lo_d + 0.5 * size
    mid = 0.5 * (dmin + dmax)
    keep &= ((centre >= dmin) & (centre < dmax)) | ((lo_d <= mid) & (mid < lo_d + size))

    rows = np.flatnonzero(keep)
    logger.debug("Selected %d of %d cells (lmax=%d)", rows.size, len(frame), lmax)
    return rows


def select_particles(data, grid: PixelGrid, lmax: Optional[int], mask=None) -> np.ndarray:
    """Row positions of particles inside the projection volume.

    Bounds are half-open, ``lo <= pos < hi``, so adjacent slabs never share a
    particle. An upper bound at the box edge is closed so particles sitting
    exactly on it are still projected.
    """
    frame = data.data
    boxlen = data.info.boxlen
    keep = np.ones(len(frame), dtype=bool) if mask is None else mask.copy()

    if lmax is not None and "level" in frame.columns:
        keep &= frame["level"].to_numpy() <= lmax

    for axis in "xyz":
        i = _AXIS_INDEX[axis]
        pos = frame[axis].to_numpy(dtype=np.float64) / boxlen
        lo, hi = grid.ranges[2 * i], grid.ranges[2 * i + 1]
        upper = pos <= hi if hi >= 1.0 else pos < hi
        keep &= (pos >= lo) & upper

    rows = np.flatnonzero(keep)
    logger.debug("Selected %d of %d particles", rows.size, len(frame))
    return rows
