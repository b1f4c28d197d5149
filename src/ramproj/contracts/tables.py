"""Input table contracts.

Cell tables are produced by an external reader. These checks run once when a
table is wrapped in a data object, so that every later stage can index by
level and grid position without re-validating.
"""

import numpy as np
import pandas as pd

from ramproj.contracts.base import require

CELL_INDEX_COLUMNS = ("level", "cx", "cy", "cz")
PARTICLE_POSITION_COLUMNS = ("x", "y", "z")


def assert_cell_table(df: pd.DataFrame, lmin: int, lmax: int) -> None:
    """Enforce the AMR cell table contract.

    Parameters
    ----------
    df : pd.DataFrame
        One row per leaf cell.
    lmin, lmax : int
        Refinement level bounds of the simulation.

    Raises
    ------
    ContractViolation
        If structural columns are missing or not integer, a level lies
        outside ``[lmin, lmax]``, or a grid index lies outside
        ``[0, 2**level)``.
    """
    require(isinstance(df, pd.DataFrame), "Cell table contract violated: expected a pandas DataFrame")

    for col in CELL_INDEX_COLUMNS:
        require(col in df.columns, f"Cell table contract violated: missing '{col}' column")
        require(
            np.issubdtype(df[col].dtype, np.integer),
            f"Cell table contract violated: '{col}' has dtype {df[col].dtype}, expected integer"
        )

    if len(df) == 0:
        return

    level = df["level"].to_numpy()
    require(
        level.min() >= lmin and level.max() <= lmax,
        f"Cell table contract violated: levels span [{level.min()}, {level.max()}], "
        f"simulation allows [{lmin}, {lmax}]"
    )

    ncells = np.left_shift(np.int64(1), level.astype(np.int64))
    for col in CELL_INDEX_COLUMNS[1:]:
        idx = df[col].to_numpy()
        require(
            bool(np.all((idx >= 0) & (idx < ncells))),
            f"Cell table contract violated: '{col}' outside [0, 2**level)"
        )


def assert_particle_table(df: pd.DataFrame) -> None:
    """Enforce the particle table contract.

    Raises
    ------
    ContractViolation
        If a position column is missing or not floating point.
    """
    require(isinstance(df, pd.DataFrame), "Particle table contract violated: expected a pandas DataFrame")

    for col in PARTICLE_POSITION_COLUMNS:
        require(col in df.columns, f"Particle table contract violated: missing '{col}' column")
        require(
            np.issubdtype(df[col].dtype, np.floating),
            f"Particle table contract violated: '{col}' has dtype {df[col].dtype}, expected float"
        )
