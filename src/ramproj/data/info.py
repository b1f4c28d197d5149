"""Simulation metadata needed by the projection engine."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from ramproj.units import ScaleTable


class SimulationInfo(BaseModel):
    """Scale and refinement metadata of one RAMSES output.

    Only the fields the engine needs are kept: the box size and level bounds
    for geometry, the cgs scale of code units for unit conversion, ``gamma``
    for the sound speed, and the output time as the default reference time
    for particle ages.

    Examples
    --------
    >>> info = SimulationInfo(boxlen=48.0, lmin=6, lmax=14,
    ...                       unit_l=3.085677581e21, unit_d=6.77e-23, unit_t=3.7e16)
    >>> info.scales.factor("kpc")  # doctest: +SKIP
    1.0
    """

    boxlen: float = Field(1.0, gt=0)
    lmin: int = Field(1, ge=0)
    lmax: int = Field(..., ge=0)
    unit_l: float = Field(1.0, gt=0)
    unit_d: float = Field(1.0, gt=0)
    unit_t: float = Field(1.0, gt=0)
    gamma: float = Field(5.0 / 3.0, gt=1.0)
    time: float = 0.0

    model_config = ConfigDict(extra='forbid', frozen=True)

    _scales: ScaleTable = PrivateAttr()

    @model_validator(mode="after")
    def check_level_bounds(self):
        if self.lmax < self.lmin:
            raise ValueError(f"lmax ({self.lmax}) must be >= lmin ({self.lmin})")
        return self

    @property
    def unit_m(self) -> float:
        """cgs value of the code mass unit."""
        return self.unit_d * self.unit_l ** 3

    def model_post_init(self, __context: Any) -> None:
        # frozen, so the table is built once
        self._scales = ScaleTable.from_info(self)

    @property
    def scales(self) -> ScaleTable:
        return self._scales
