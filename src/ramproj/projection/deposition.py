"""AMR-to-pixel deposition.

Cells are grouped by refinement level first, then each level is deposited
with an exact area-overlap kernel: along each image axis the footprint
``[lo, lo + size)`` of a cell is intersected with the pixels it touches, and
every touched pixel receives the fraction ``overlap_area / size**2`` of the
cell's contribution. Coarse cells spread over many pixels; cells smaller
than a pixel touch at most two pixels per axis and accumulate with their
neighbours. Both cases use the same kernel.

The overlap factorises per axis. For one level, cells are first summed into
a sparse histogram ``H`` over their distinct footprint edges (cells stacked
along the line of sight share an entry), then mapped onto the image as

    map = Wu @ H @ Wv.T

where ``Wu`` and ``Wv`` are banded sparse matrices of overlap fractions per
axis. The cost is linear in cells plus pixels, independent of how many
pixels one coarse cell covers.

Two buffers are accumulated per map:

- numerator: ``sum(a_i * f_ip)``
- denominator: ``sum(b_i * f_ip)`` (mean mode only)

``deposition_terms()`` turns values, mode and weights into ``a`` and ``b``.
The image is filled in blocks of pixel rows; every block writes its own
slice of the output buffers, so no partial full-size buffers are kept and
the result does not depend on the worker count.
"""

import logging
from concurrent.futures import Executor
from typing import Callable, Optional

import numpy as np
from scipy import sparse
from scipy.stats import binned_statistic_2d

from ramproj.contracts import require

__all__ = [
    'bucket_by_level',
    'deposition_terms',
    'deposit_cells',
    'deposit_particles',
    'finalize_map',
]

logger = logging.getLogger(__name__)


def bucket_by_level(levels: np.ndarray) -> list:
    """Stable partition of positions by level, coarse to fine.

    Parameters
    ----------
    levels : np.ndarray
        Level of every selected cell.

    Returns
    -------
    list of (int, np.ndarray)
        ``(level, positions)`` with positions into ``levels``, increasing
        within each bucket.

    Examples
    --------
    >>> bucket_by_level(np.array([3, 2, 3, 2]))
    [(2, array([1, 3])), (3, array([0, 2]))]
    """
    if levels.size == 0:
        return []
    order = np.argsort(levels, kind="stable")
    sorted_levels = levels[order]
    unique, starts = np.unique(sorted_levels, return_index=True)
    stops = np.append(starts[1:], sorted_levels.size)
    return [(int(lvl), order[a:b]) for lvl, a, b in zip(unique, starts, stops)]


def deposition_terms(values: np.ndarray, mode: str, extensive: bool = False,
                     volume: Optional[np.ndarray] = None,
                     weights: Optional[np.ndarray] = None) -> tuple:
    """Per-row numerator and denominator contributions.

    Parameters
    ----------
    values : np.ndarray
        Variable values in the requested unit.
    mode : {'sum', 'mean'}
        Aggregation mode.
    extensive : bool
        Values already integrated over the cell (mass, energy).
    volume : np.ndarray, optional
        Cell volume in code units; None for particles.
    weights : np.ndarray, optional
        Weighting variable for mean mode; replaces the volume normaliser.

    Returns
    -------
    tuple
        ``(a, b)``; ``b`` is None in sum mode.

    Notes
    -----
    - sum, extensive: ``a = value``; the map total equals the sum of values.
    - sum, intensive: ``a = value * volume``; the map total is the volume
      integral of the quantity.
    - mean: ``a = value * w``, ``b = w`` with ``w`` the weighting variable,
      else the cell volume, else 1 (particles).
    """
    if mode == "sum":
        if extensive or volume is None:
            return values, None
        return values * volume, None

    if mode != "mean":
        raise ValueError(f"Unknown aggregation mode: {mode}")

    if weights is not None:
        w = weights
    elif volume is not None:
        w = volume
    else:
        w = np.ones_like(values)
    return values * w, w


def _overlap_matrix(edges: np.ndarray, size: float, origin: float, step: float,
                    npix: int) -> sparse.csr_matrix:
    """Sparse ``(npix, len(edges))`` matrix of overlap fractions along one axis.

    Entry ``(i, k)`` is the length of ``[edges[k], edges[k] + size)`` inside
    pixel ``i`` divided by ``size``. Pixels outside the image are dropped.
    """
    first = np.maximum(np.floor((edges - origin) / step).astype(np.int64), 0)
    last = np.minimum(np.ceil((edges + size - origin) / step).astype(np.int64), npix) - 1
    span = int(max((last - first).max() + 1, 0)) if edges.size else 0

    idx = first[:, None] + np.arange(span)[None, :]
    pix_lo = origin + idx * step
    lower = edges[:, None]
    overlap = np.minimum(lower + size, pix_lo + step) - np.maximum(lower, pix_lo)
    valid = (idx <= last[:, None]) & (overlap > 0)

    cols = np.broadcast_to(np.arange(edges.size)[:, None], idx.shape)
    return sparse.csr_matrix((overlap[valid] / size, (idx[valid], cols[valid])),
                             shape=(npix, edges.size))


def _level_histograms(lo_u: np.ndarray, lo_v: np.ndarray, terms: list) -> tuple:
    """Sum per-cell terms over cells sharing a footprint in the image plane."""
    edges_u, col_u = np.unique(lo_u, return_inverse=True)
    edges_v, col_v = np.unique(lo_v, return_inverse=True)
    shape = (edges_u.size, edges_v.size)
    # duplicates are summed by the conversion
    hists = [sparse.coo_matrix((w, (col_u.ravel(), col_v.ravel())), shape=shape).tocsr()
             for w in terms]
    return edges_u, edges_v, hists


def _row_blocks(nx: int, ny: int, chunk_pixels: int) -> list:
    rows = max(1, chunk_pixels // max(ny, 1))
    return [(r0, min(r0 + rows, nx)) for r0 in range(0, nx, rows)]


def _fill_block(r0: int, r1: int, wu, hists: list, wv_t, buffers: list) -> None:
    """Add one block of pixel rows to its slice of every buffer."""
    wu_block = wu[r0:r1]
    for hist, buf in zip(hists, buffers):
        buf[r0:r1] += (wu_block @ hist @ wv_t).toarray()


def deposit_cells(grid, level: np.ndarray, lo_u: np.ndarray, lo_v: np.ndarray,
                  a: np.ndarray, b: Optional[np.ndarray] = None, *,
                  chunk_pixels: int = 250_000, executor: Optional[Executor] = None,
                  progress: Optional[Callable] = None) -> tuple:
    """Deposit AMR cells onto ``grid``.

    Parameters
    ----------
    grid : PixelGrid
        Target grid.
    level, lo_u, lo_v : np.ndarray
        Level and footprint lower edges (box fractions) per cell, from
        ``cell_footprints()``.
    a, b : np.ndarray
        Numerator and denominator contributions from ``deposition_terms()``.
    chunk_pixels : int
        Approximate number of output pixels filled per block.
    executor : Executor, optional
        Fills blocks concurrently; blocks run inline when None.
    progress : callable, optional
        Called as ``progress(step, total)`` after each level.

    Returns
    -------
    tuple
        Flat ``(numerator, denominator)`` buffers of length ``nx * ny``;
        ``denominator`` is None when ``b`` is None.
    """
    require(level.shape == lo_u.shape == lo_v.shape == a.shape,
            "Deposition contract violated: per-cell arrays differ in length")

    nx, ny = grid.shape
    umin, _, vmin, _ = grid.bounds
    du, dv = grid.pixel_size
    numerator = np.zeros(nx * ny)
    denominator = None if b is None else np.zeros(nx * ny)
    buffers = [numerator.reshape(nx, ny)]
    if denominator is not None:
        buffers.append(denominator.reshape(nx, ny))

    blocks = _row_blocks(nx, ny, chunk_pixels)
    buckets = bucket_by_level(level)
    for step, (lvl, positions) in enumerate(buckets, start=1):
        size = 1.0 / 2 ** lvl
        terms = [a[positions]] if b is None else [a[positions], b[positions]]
        edges_u, edges_v, hists = _level_histograms(lo_u[positions], lo_v[positions], terms)
        wu = _overlap_matrix(edges_u, size, umin, du, nx)
        wv_t = _overlap_matrix(edges_v, size, vmin, dv, ny).T.tocsr()

        if executor is None:
            for r0, r1 in blocks:
                _fill_block(r0, r1, wu, hists, wv_t, buffers)
        else:
            futures = [executor.submit(_fill_block, r0, r1, wu, hists, wv_t, buffers)
                       for r0, r1 in blocks]
            try:
                for future in futures:
                    future.result()
            except Exception:
                for future in futures:
                    future.cancel()
                raise

        logger.debug("Deposited level %d: %d cells over %dx%d footprint edges in %d block(s)",
                     lvl, positions.size, edges_u.size, edges_v.size, len(blocks))
        if progress is not None:
            progress(step, len(buckets))

    return numerator, denominator


def deposit_particles(grid, pos_u: np.ndarray, pos_v: np.ndarray, a: np.ndarray,
                      b: Optional[np.ndarray] = None) -> tuple:
    """Deposit point particles into the pixels that contain them.

    Positions are box fractions; the last pixel of each axis includes its
    upper edge. Returns flat ``(numerator, denominator)`` buffers like
    ``deposit_cells()``.
    """
    nx, ny = grid.shape
    if pos_u.size == 0:
        return np.zeros(nx * ny), None if b is None else np.zeros(nx * ny)

    values = [a] if b is None else [a, b]
    stats = binned_statistic_2d(pos_u, pos_v, values, statistic="sum", bins=grid.edges())
    binned = np.asarray(stats.statistic, dtype=np.float64).reshape(len(values), nx * ny)

    numerator = binned[0].copy()
    denominator = None if b is None else binned[1].copy()
    return numerator, denominator


def finalize_map(grid, numerator: np.ndarray, denominator: Optional[np.ndarray],
                 mode: str) -> np.ndarray:
    """Turn accumulation buffers into a 2-D map.

    Sum maps are the numerator (0 where nothing was deposited). Mean maps are
    numerator / denominator with NaN where the denominator is 0.
    """
    shape = grid.shape
    if mode == "sum":
        return numerator.reshape(shape)

    if mode != "mean":
        raise ValueError(f"Unknown aggregation mode: {mode}")

    with np.errstate(invalid="ignore", divide="ignore"):
        out = np.where(denominator > 0, numerator / denominator, np.nan)
    return out.reshape(shape)
