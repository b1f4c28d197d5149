"""In-memory RAMSES tables.

An external reader produces one ``pandas.DataFrame`` per data kind. These
classes pair the frame with its ``SimulationInfo`` and check the table
contract once, so that projection stages can trust the structural columns.

Cell tables carry ``level`` and the 0-based integer grid indices
``cx, cy, cz`` in ``[0, 2**level)``; the cell spans ``[c, c + 1) / 2**level``
of the box along each axis. Particle tables carry ``x, y, z`` in code length
units (``[0, boxlen]``).

The engine never mutates these frames.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from ramproj.contracts import assert_cell_table, assert_particle_table
from ramproj.contracts.tables import CELL_INDEX_COLUMNS, PARTICLE_POSITION_COLUMNS
from ramproj.data.info import SimulationInfo

__all__ = ['AmrCellData', 'HydroData', 'GravityData', 'ParticleData']

logger = logging.getLogger(__name__)


class AmrCellData:
    """Leaf cells of an AMR output with one column per field.

    Parameters
    ----------
    data : pd.DataFrame
        Columns ``level, cx, cy, cz`` (integer) plus field columns.
    info : SimulationInfo
        Metadata of the output the cells belong to.

    Raises
    ------
    ContractViolation
        If the table breaks the cell table contract.
    """

    kind = "amr"
    structural_columns = CELL_INDEX_COLUMNS

    def __init__(self, data: pd.DataFrame, info: SimulationInfo):
        assert_cell_table(data, info.lmin, info.lmax)
        self.data = data
        self.info = info

    @classmethod
    def from_arrays(cls, info: SimulationInfo, level, cx, cy, cz, **fields):
        """Build the table from index arrays and named field arrays.

        Examples
        --------
        >>> hydro = HydroData.from_arrays(info, level=[1, 1], cx=[0, 1], cy=[0, 0],
        ...                               cz=[0, 0], rho=[1.0, 2.0])  # doctest: +SKIP
        """
        frame = {
            "level": np.asarray(level, dtype=np.int64),
            "cx": np.asarray(cx, dtype=np.int64),
            "cy": np.asarray(cy, dtype=np.int64),
            "cz": np.asarray(cz, dtype=np.int64),
        }
        for name, values in fields.items():
            frame[name] = np.asarray(values, dtype=np.float64)
        return cls(pd.DataFrame(frame), info)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(rows={len(self)}, "
                f"fields={self.field_names}, boxlen={self.info.boxlen})")

    @property
    def field_names(self) -> list:
        """Non-structural columns."""
        return [c for c in self.data.columns if c not in self.structural_columns]

    @property
    def levels_present(self) -> np.ndarray:
        """Sorted distinct refinement levels in the table."""
        return np.unique(self.data["level"].to_numpy())

    @property
    def max_level_present(self) -> Optional[int]:
        if len(self.data) == 0:
            return None
        return int(self.data["level"].max())


class HydroData(AmrCellData):
    """Hydro cells: ``rho``, ``vx``, ``vy``, ``vz``, ``p`` and passive scalars."""

    kind = "hydro"


class GravityData(AmrCellData):
    """Gravity cells: ``epot``, ``ax``, ``ay``, ``az``."""

    kind = "gravity"


class ParticleData:
    """Particles with free positions in code length units.

    Parameters
    ----------
    data : pd.DataFrame
        Columns ``x, y, z`` (float) plus fields such as ``mass``, ``vx``,
        ``birth``. An optional integer ``level`` column is honoured by the
        level ceiling of a projection.
    info : SimulationInfo
        Metadata of the output.
    """

    kind = "particles"
    structural_columns = PARTICLE_POSITION_COLUMNS + ("level",)

    def __init__(self, data: pd.DataFrame, info: SimulationInfo):
        assert_particle_table(data)
        self.data = data
        self.info = info

    @classmethod
    def from_arrays(cls, info: SimulationInfo, x, y, z, **fields):
        frame = {
            "x": np.asarray(x, dtype=np.float64),
            "y": np.asarray(y, dtype=np.float64),
            "z": np.asarray(z, dtype=np.float64),
        }
        for name, values in fields.items():
            values = np.asarray(values)
            frame[name] = values if name == "level" else values.astype(np.float64)
        return cls(pd.DataFrame(frame), info)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"ParticleData(rows={len(self)}, fields={self.field_names})"

    @property
    def field_names(self) -> list:
        return [c for c in self.data.columns if c not in self.structural_columns]

    @property
    def max_level_present(self) -> Optional[int]:
        if "level" not in self.data.columns or len(self.data) == 0:
            return None
        return int(self.data["level"].max())
