"""Projected map contract.

Enforces the guarantee that every requested variable produced a 2-D map on
the shared pixel grid before the result container is built.
"""

import numpy as np

from ramproj.contracts.base import require


def assert_projected(maps: dict, modes: dict, shape: tuple) -> None:
    """Enforce projection stage contract.

    Parameters
    ----------
    maps : dict
        Variable name -> 2-D array.
    modes : dict
        Variable name -> aggregation mode actually used.
    shape : tuple
        Expected ``(nx, ny)``.

    Raises
    ------
    ContractViolation
        If a map has no recorded mode, has the wrong shape or is not float64.
    """
    for name, arr in maps.items():
        require(name in modes, f"Projection contract violated: no mode recorded for '{name}'")
        require(
            arr.shape == tuple(shape),
            f"Projection contract violated: '{name}' has shape {arr.shape}, expected {tuple(shape)}"
        )
        require(
            arr.dtype == np.float64,
            f"Projection contract violated: '{name}' has dtype {arr.dtype}, expected float64"
        )
