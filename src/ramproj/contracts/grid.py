"""Pixel grid contract.

Every variable of a call is deposited onto the same grid, so the grid is
checked once after geometry is computed.
"""

import numpy as np

from ramproj.contracts.base import require


def assert_pixel_grid(grid) -> None:
    """Enforce the pixel grid contract.

    Parameters
    ----------
    grid : PixelGrid
        Grid from ``build_pixel_grid()``.

    Raises
    ------
    ContractViolation
        If the pixel counts are not positive, the extent is inverted or not
        finite, or the pixel size does not reproduce the pixel count.
    """
    require(grid.nx >= 1 and grid.ny >= 1,
            f"Grid contract violated: resolution ({grid.nx}, {grid.ny}) must be positive")

    xmin, xmax, ymin, ymax = grid.bounds
    require(bool(np.isfinite([xmin, xmax, ymin, ymax]).all()),
            f"Grid contract violated: non-finite extent {grid.bounds}")
    require(xmax > xmin and ymax > ymin,
            f"Grid contract violated: inverted extent {grid.bounds}")

    dx, dy = grid.pixel_size
    require(
        int(round((xmax - xmin) / dx)) == grid.nx and int(round((ymax - ymin) / dy)) == grid.ny,
        "Grid contract violated: pixel size inconsistent with resolution"
    )
