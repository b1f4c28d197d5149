"""Result container for one projection call."""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np
import xarray as xr
from pydantic import BaseModel, ConfigDict, field_validator

__all__ = ['ProjectionMaps']

logger = logging.getLogger(__name__)


class ProjectionMaps(BaseModel):
    """Immutable set of projected maps sharing one pixel grid.

    Every map is a read-only ``float64`` array of shape ``resolution``. Its
    first axis runs along ``plane_axes[0]`` and its second along
    ``plane_axes[1]``.

    Attributes
    ----------
    maps : Mapping[str, np.ndarray]
        Variable name -> 2-D map.
    units : Mapping[str, str]
        Unit symbol each map is expressed in.
    modes : Mapping[str, str]
        Aggregation mode actually used ('sum' or 'mean'; 'none' for
        the azimuth map, which is not deposited).
    weightings : Mapping[str, Optional[str]]
        Weighting variable used for mean maps, None for the volume (or count)
        normaliser.
    direction : str
        Projection axis.
    plane_axes : tuple of str
        Image axes.
    extent : tuple of float
        ``(umin, umax, vmin, vmax)`` in code length units.
    cextent : tuple of float
        ``extent`` relative to ``center``.
    pixsize : tuple of float
        Pixel size per image axis in code length units.
    resolution : tuple of int
        ``(nx, ny)``.
    ranges : tuple of float
        ``(xmin, xmax, ymin, ymax, zmin, zmax)`` in box fractions.
    center : tuple of float
        Reference point in box fractions (box centre when none was given).
    boxlen : float
        Box size in code length units.
    lmin, lmax : int
        Level bounds of the simulation.
    lmax_projected : int or None
        Finest level that contributed to the maps; None for empty selections
        and particle data without levels.
    ratio : float
        Aspect ratio ``(vmax - vmin) / (umax - umin)`` of the image plane.
    kind : str
        Data kind ('hydro', 'gravity', 'particles').
    """

    maps: Mapping[str, Any]
    units: Mapping[str, str]
    modes: Mapping[str, str]
    weightings: Mapping[str, Optional[str]]
    direction: str
    plane_axes: tuple[str, str]
    extent: tuple[float, float, float, float]
    cextent: tuple[float, float, float, float]
    pixsize: tuple[float, float]
    resolution: tuple[int, int]
    ranges: tuple[float, float, float, float, float, float]
    center: tuple[float, float, float]
    boxlen: float
    lmin: int
    lmax: int
    lmax_projected: Optional[int] = None
    ratio: float
    kind: str

    model_config = ConfigDict(frozen=True, extra='forbid', arbitrary_types_allowed=True)

    @field_validator("maps", mode="after")
    @classmethod
    def freeze_maps(cls, v):
        frozen = {}
        for name, arr in v.items():
            arr = np.array(arr, dtype=np.float64)
            arr.setflags(write=False)
            frozen[name] = arr
        return MappingProxyType(frozen)

    @field_validator("units", "modes", "weightings", mode="after")
    @classmethod
    def freeze_mapping(cls, v):
        return MappingProxyType(dict(v))

    def __getitem__(self, name: str) -> np.ndarray:
        return self.maps[name]

    def __contains__(self, name) -> bool:
        return name in self.maps

    @property
    def variables(self) -> list:
        return list(self.maps)

    def pixel_centers(self) -> tuple:
        """Pixel-centre coordinates of both image axes in code length units."""
        umin, umax, vmin, vmax = self.extent
        du, dv = self.pixsize
        nx, ny = self.resolution
        return (umin + (np.arange(nx) + 0.5) * du, vmin + (np.arange(ny) + 0.5) * dv)

    def to_dataset(self) -> xr.Dataset:
        """Export the maps as an ``xarray.Dataset``.

        Dimensions are the image axes with pixel-centre coordinates in code
        length units; per-variable ``units``, ``mode`` and ``weighting`` are
        stored as variable attributes.
        """
        u, v = self.plane_axes
        cu, cv = self.pixel_centers()

        data_vars = {}
        for name, arr in self.maps.items():
            attrs = {"units": self.units[name], "mode": self.modes[name]}
            if self.weightings.get(name) is not None:
                attrs["weighting"] = self.weightings[name]
            data_vars[name] = ((u, v), np.array(arr), attrs)

        return xr.Dataset(
            data_vars,
            coords={u: cu, v: cv},
            attrs={
                "direction": self.direction,
                "boxlen": self.boxlen,
                "lmin": self.lmin,
                "lmax": self.lmax,
                "lmax_projected": -1 if self.lmax_projected is None else self.lmax_projected,
                "ranges": list(self.ranges),
                "center": list(self.center),
                "extent": list(self.extent),
                "kind": self.kind,
            },
        )
