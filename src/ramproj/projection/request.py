"""Validated description of one projection call.

``ProjectionRequest.build()`` checks every argument against the data before
any work starts, so a bad variable, unit, mode, mask or level aborts the
call without partial results. Geometry keywords (ranges, resolution) are
kept as given and validated when the pixel grid is built, which also
happens before deposition.
"""

import logging
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict

from ramproj.errors import InvalidOptionError, UnknownVariableError
from ramproj.projection.spatial import check_mask, resolve_direction, resolve_lmax
from ramproj.projection.variables import VariableKind, lookup_variable
from ramproj.units import STANDARD_UNIT

__all__ = ['ProjectionRequest', 'MODES']

logger = logging.getLogger(__name__)

MODES = ("sum", "mean")


def _per_variable(value, n: int, default, what: str) -> list:
    """Broadcast a scalar or pad a short list with ``default``."""
    if value is None:
        return [default] * n
    if isinstance(value, str):
        return [value] * n
    value = list(value)
    if len(value) > n:
        raise InvalidOptionError(f"{len(value)} {what} given for {n} variable(s)")
    return value + [default] * (n - len(value))


def _normalize_mode(mode) -> str:
    if not isinstance(mode, str):
        raise InvalidOptionError(f"mode must be one of {MODES}, got {mode!r}")
    key = mode.lower().strip()
    if key == "standard":
        key = "mean"
    if key not in MODES:
        raise InvalidOptionError(f"mode must be one of {MODES}, got {mode!r}")
    return key


class ProjectionRequest(BaseModel):
    """Immutable, validated projection arguments.

    ``variables`` is the alias-expanded, de-duplicated list; ``units`` and
    ``modes`` are aligned with it.
    """

    variables: tuple[str, ...]
    units: tuple[str, ...]
    modes: tuple[str, ...]
    direction: str
    res: Optional[Any] = None
    pxsize: Optional[Any] = None
    xrange: Optional[Any] = None
    yrange: Optional[Any] = None
    zrange: Optional[Any] = None
    center: Optional[Any] = None
    range_unit: str = STANDARD_UNIT
    lmax: int
    weighting: Optional[tuple[str, str]] = None
    mask: Optional[np.ndarray] = None
    thickness: Optional[Any] = None
    position: Optional[Any] = None
    ref_time: Optional[float] = None

    model_config = ConfigDict(frozen=True, extra='forbid', arbitrary_types_allowed=True)

    @classmethod
    def build(cls, data, variables, units=None, *, options, direction=None, plane=None,
              res=None, pxsize=None, xrange=None, yrange=None, zrange=None, center=None,
              range_unit=None, lmax=None, mode=None, weighting=None, mask=None,
              thickness=None, position=None, ref_time=None) -> "ProjectionRequest":
        """Validate projection arguments against ``data``.

        Raises
        ------
        UnknownVariableError
            Unknown variable or weighting variable.
        UnknownUnitError
            Unknown unit, range unit or weighting unit.
        InvalidOptionError
            Bad direction/plane/mode, or more units/modes than variables.
        MaskLengthError
            Mask length differs from the table length.
        InvalidLevelError
            Bad level ceiling.
        """
        if isinstance(variables, str):
            variables = [variables]
        variables = list(variables)
        if not variables:
            raise InvalidOptionError("at least one variable is required")

        scales = data.info.scales
        n = len(variables)
        unit_list = _per_variable(units, n, STANDARD_UNIT, "units")
        mode_list = _per_variable(mode, n, options.projection.mode, "modes")

        names, unit_out, mode_out = [], [], []
        for name, unit, var_mode in zip(variables, unit_list, mode_list):
            spec = lookup_variable(data, name)
            scales.factor(unit)
            var_mode = _normalize_mode(var_mode)
            members = spec.components if spec.kind is VariableKind.ALIAS else (spec.name,)
            for member in members:
                if member in names:
                    continue
                names.append(member)
                unit_out.append(unit)
                mode_out.append(var_mode)

        range_unit = options.projection.range_unit if range_unit is None else range_unit
        scales.factor(range_unit)

        weight_pair = None
        if weighting is not None:
            if isinstance(weighting, str):
                weight_pair = (weighting, STANDARD_UNIT)
            else:
                weight_pair = tuple(weighting)
                if len(weight_pair) != 2:
                    raise InvalidOptionError(f"weighting must be name or (name, unit), got {weighting!r}")
            wspec = lookup_variable(data, weight_pair[0])
            if wspec.kind not in (VariableKind.RAW, VariableKind.DERIVED):
                raise UnknownVariableError(
                    f"weighting needs a per-row variable, got {wspec.kind.value} {wspec.name!r}"
                )
            weight_pair = (wspec.name, weight_pair[1])
            scales.factor(weight_pair[1])

        return cls(
            variables=tuple(names),
            units=tuple(unit_out),
            modes=tuple(mode_out),
            direction=resolve_direction(direction, plane, default=options.projection.direction),
            res=res,
            pxsize=pxsize,
            xrange=xrange,
            yrange=yrange,
            zrange=zrange,
            center=center,
            range_unit=range_unit,
            lmax=resolve_lmax(data, lmax),
            weighting=weight_pair,
            mask=check_mask(mask, len(data)),
            thickness=thickness,
            position=position,
            ref_time=ref_time,
        )
