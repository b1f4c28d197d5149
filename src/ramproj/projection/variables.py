"""Variable resolution: name + unit -> per-row values.

A variable name maps to one of four kinds:

- RAW: a column of the table, returned as is
- DERIVED: computed from other columns (``mass``, ``cs``, ``T``, ...)
- ALIAS: a bundle of variables (``velocity`` -> ``vx, vy, vz, v``)
- COMPOSITE: a map-level quantity built by the engine from other maps
  (``sd``, ``sigma_x``, ...) or from the pixel grid alone (``phi``); it has
  no per-row value

Registries are built once at import, one per data kind. Values are computed
in code units and multiplied by the unit factor of the scale table.
"""

import logging
from enum import Enum
from typing import Callable, NamedTuple, Optional

import numpy as np

from ramproj.errors import UnknownVariableError
from ramproj.units import G, STANDARD_UNIT

__all__ = [
    'VariableKind',
    'VariableSpec',
    'lookup_variable',
    'expand_variables',
    'resolve_variable',
    'getvar',
    'known_variables',
]

logger = logging.getLogger(__name__)


class VariableKind(Enum):
    RAW = "raw"
    DERIVED = "derived"
    ALIAS = "alias"
    COMPOSITE = "composite"


class VariableSpec(NamedTuple):
    """Registry entry for one variable name.

    ``requires`` lists the table columns that must exist. ``extensive``
    marks quantities that are already integrated over the cell (mass,
    energy); they are deposited by footprint fraction in sum mode instead
    of by overlap volume. ``components`` holds the expansion of an ALIAS or
    the input variables of a COMPOSITE.
    """
    name: str
    kind: VariableKind
    requires: tuple = ()
    compute: Optional[Callable] = None
    extensive: bool = False
    components: tuple = ()


class VariableContext:
    """Row-subset view of a table used by derived-variable functions.

    Parameters
    ----------
    data : AmrCellData or ParticleData
        Source table.
    rows : np.ndarray, optional
        Integer row positions to evaluate; all rows when None.
    center : sequence of float, optional
        Reference point in code length units for positions and radii.
    ref_time : float, optional
        Reference time in code units for particle ages.
    """

    def __init__(self, data, rows=None, center=None, ref_time=None):
        self.frame = data.data
        self.info = data.info
        self.rows = rows
        self.center = np.zeros(3) if center is None else np.asarray(center, dtype=np.float64)
        self.ref_time = data.info.time if ref_time is None else float(ref_time)

    def column(self, name: str) -> np.ndarray:
        values = self.frame[name].to_numpy(dtype=np.float64)
        return values if self.rows is None else values[self.rows]

    def level(self) -> np.ndarray:
        values = self.frame["level"].to_numpy()
        return values if self.rows is None else values[self.rows]

    def cellsize(self) -> np.ndarray:
        return self.info.boxlen / np.exp2(self.level())

    def position(self, axis: str) -> np.ndarray:
        """Position along ``axis`` in code units, relative to the center."""
        i = "xyz".index(axis)
        if "c" + axis in self.frame.columns:
            idx = self.frame["c" + axis].to_numpy()
            if self.rows is not None:
                idx = idx[self.rows]
            pos = (idx + 0.5) * self.cellsize()
        else:
            pos = self.column(axis)
        return pos - self.center[i]


# =============================================================================
# Derived quantities (code units)
# =============================================================================

def _speed2(ctx):
    return ctx.column("vx") ** 2 + ctx.column("vy") ** 2 + ctx.column("vz") ** 2


def _cell_volume(ctx):
    return ctx.cellsize() ** 3


def _cell_mass(ctx):
    return ctx.column("rho") * _cell_volume(ctx)


def _sound_speed(ctx):
    return np.sqrt(ctx.info.gamma * ctx.column("p") / ctx.column("rho"))


def _freefall_time(ctx):
    # G in code units: [G] = L^3 M^-1 T^-2 = 1 / (unit_d * unit_t^2) in cgs
    g_code = G * ctx.info.unit_d * ctx.info.unit_t ** 2
    return np.sqrt(3.0 * np.pi / (32.0 * g_code * ctx.column("rho")))


def _r_cylinder(ctx):
    return np.hypot(ctx.position("x"), ctx.position("y"))


def _r_sphere(ctx):
    return np.sqrt(ctx.position("x") ** 2 + ctx.position("y") ** 2 + ctx.position("z") ** 2)


def _vr_cylinder(ctx):
    x, y = ctx.position("x"), ctx.position("y")
    with np.errstate(invalid="ignore", divide="ignore"):
        vr = (x * ctx.column("vx") + y * ctx.column("vy")) / np.hypot(x, y)
    # zero on the axis, where the direction is undefined
    return np.nan_to_num(vr, nan=0.0, posinf=0.0, neginf=0.0)


def _vphi_cylinder(ctx):
    x, y = ctx.position("x"), ctx.position("y")
    with np.errstate(invalid="ignore", divide="ignore"):
        vphi = (x * ctx.column("vy") - y * ctx.column("vx")) / np.hypot(x, y)
    return np.nan_to_num(vphi, nan=0.0, posinf=0.0, neginf=0.0)


def _mass(ctx):
    if "mass" in ctx.frame.columns:
        return ctx.column("mass")
    return _cell_mass(ctx)


def _specific_angular_momentum(ctx):
    """``r x v`` relative to the center, one array per component."""
    x, y, z = ctx.position("x"), ctx.position("y"), ctx.position("z")
    vx, vy, vz = ctx.column("vx"), ctx.column("vy"), ctx.column("vz")
    return y * vz - z * vy, z * vx - x * vz, x * vy - y * vx


def _angular_momentum(component):
    def compute(ctx):
        h = _specific_angular_momentum(ctx)
        if component is None:
            return _mass(ctx) * np.sqrt(h[0] ** 2 + h[1] ** 2 + h[2] ** 2)
        return _mass(ctx) * h["xyz".index(component)]
    return compute


def _mach(component):
    def compute(ctx):
        v = np.sqrt(_speed2(ctx)) if component is None else ctx.column("v" + component)
        return v / _sound_speed(ctx)
    return compute


def _jeans_length(ctx):
    return _sound_speed(ctx) * _freefall_time(ctx)


def _jeans_mass(ctx):
    return 4.0 / 3.0 * np.pi * (0.5 * _jeans_length(ctx)) ** 3 * ctx.column("rho")


_VELOCITY = ("vx", "vy", "vz")


def _position_specs():
    return [
        VariableSpec("x", VariableKind.DERIVED, (), lambda ctx: ctx.position("x")),
        VariableSpec("y", VariableKind.DERIVED, (), lambda ctx: ctx.position("y")),
        VariableSpec("z", VariableKind.DERIVED, (), lambda ctx: ctx.position("z")),
        VariableSpec("r_cylinder", VariableKind.DERIVED, (), _r_cylinder),
        VariableSpec("r_sphere", VariableKind.DERIVED, (), _r_sphere),
        VariableSpec("phi", VariableKind.COMPOSITE),
    ]


def _velocity_specs():
    return [
        VariableSpec("v", VariableKind.DERIVED, _VELOCITY, lambda ctx: np.sqrt(_speed2(ctx))),
        VariableSpec("v2", VariableKind.DERIVED, _VELOCITY, _speed2),
        VariableSpec("vx2", VariableKind.DERIVED, ("vx",), lambda ctx: ctx.column("vx") ** 2),
        VariableSpec("vy2", VariableKind.DERIVED, ("vy",), lambda ctx: ctx.column("vy") ** 2),
        VariableSpec("vz2", VariableKind.DERIVED, ("vz",), lambda ctx: ctx.column("vz") ** 2),
        VariableSpec("velocity", VariableKind.ALIAS, _VELOCITY, components=("vx", "vy", "vz", "v")),
        VariableSpec("sigma_x", VariableKind.COMPOSITE, ("vx",), components=("vx", "vx2")),
        VariableSpec("sigma_y", VariableKind.COMPOSITE, ("vy",), components=("vy", "vy2")),
        VariableSpec("sigma_z", VariableKind.COMPOSITE, ("vz",), components=("vz", "vz2")),
        VariableSpec("sigma", VariableKind.COMPOSITE, _VELOCITY, components=("v", "v2")),
        VariableSpec("vr_cylinder", VariableKind.DERIVED, _VELOCITY[:2], _vr_cylinder),
        VariableSpec("vphi_cylinder", VariableKind.DERIVED, _VELOCITY[:2], _vphi_cylinder),
        VariableSpec("vr_cylinder2", VariableKind.DERIVED, _VELOCITY[:2],
                     lambda ctx: _vr_cylinder(ctx) ** 2),
        VariableSpec("vphi_cylinder2", VariableKind.DERIVED, _VELOCITY[:2],
                     lambda ctx: _vphi_cylinder(ctx) ** 2),
        VariableSpec("sigma_r_cylinder", VariableKind.COMPOSITE, _VELOCITY[:2],
                     components=("vr_cylinder", "vr_cylinder2")),
        VariableSpec("sigma_phi_cylinder", VariableKind.COMPOSITE, _VELOCITY[:2],
                     components=("vphi_cylinder", "vphi_cylinder2")),
    ]


def _angular_momentum_specs(mass_column):
    requires = (mass_column,) + _VELOCITY
    return [
        VariableSpec("l" + axis, VariableKind.DERIVED, requires, _angular_momentum(axis),
                     extensive=True)
        for axis in "xyz"
    ] + [
        VariableSpec("l", VariableKind.DERIVED, requires, _angular_momentum(None), extensive=True),
    ]


def _hydro_specs():
    return _position_specs() + _velocity_specs() + _angular_momentum_specs("rho") + [
        VariableSpec("cellsize", VariableKind.DERIVED, (), lambda ctx: ctx.cellsize()),
        VariableSpec("volume", VariableKind.DERIVED, (), _cell_volume),
        VariableSpec("mass", VariableKind.DERIVED, ("rho",), _cell_mass, extensive=True),
        VariableSpec("cs", VariableKind.DERIVED, ("rho", "p"), _sound_speed),
        VariableSpec("T", VariableKind.DERIVED, ("rho", "p"),
                     lambda ctx: ctx.column("p") / ctx.column("rho")),
        VariableSpec("ekin", VariableKind.DERIVED, ("rho",) + _VELOCITY,
                     lambda ctx: 0.5 * _cell_mass(ctx) * _speed2(ctx), extensive=True),
        VariableSpec("freefall_time", VariableKind.DERIVED, ("rho",), _freefall_time),
        VariableSpec("etherm", VariableKind.DERIVED, ("p",),
                     lambda ctx: ctx.column("p") * _cell_volume(ctx), extensive=True),
        VariableSpec("mach", VariableKind.DERIVED, ("rho", "p") + _VELOCITY, _mach(None)),
        VariableSpec("machx", VariableKind.DERIVED, ("rho", "p", "vx"), _mach("x")),
        VariableSpec("machy", VariableKind.DERIVED, ("rho", "p", "vy"), _mach("y")),
        VariableSpec("machz", VariableKind.DERIVED, ("rho", "p", "vz"), _mach("z")),
        VariableSpec("jeanslength", VariableKind.DERIVED, ("rho", "p"), _jeans_length),
        VariableSpec("jeansnumber", VariableKind.DERIVED, ("rho", "p"),
                     lambda ctx: _jeans_length(ctx) / ctx.cellsize()),
        VariableSpec("jeansmass", VariableKind.DERIVED, ("rho", "p"), _jeans_mass),
        VariableSpec("sd", VariableKind.COMPOSITE, ("rho",), extensive=True, components=("mass",)),
    ]


def _gravity_specs():
    return _position_specs() + [
        VariableSpec("cellsize", VariableKind.DERIVED, (), lambda ctx: ctx.cellsize()),
        VariableSpec("volume", VariableKind.DERIVED, (), _cell_volume),
        VariableSpec("a", VariableKind.DERIVED, ("ax", "ay", "az"),
                     lambda ctx: np.sqrt(ctx.column("ax") ** 2 + ctx.column("ay") ** 2
                                         + ctx.column("az") ** 2)),
    ]


def _particle_specs():
    return _position_specs() + _velocity_specs() + _angular_momentum_specs("mass") + [
        VariableSpec("mass", VariableKind.RAW, ("mass",), extensive=True),
        VariableSpec("ekin", VariableKind.DERIVED, ("mass",) + _VELOCITY,
                     lambda ctx: 0.5 * ctx.column("mass") * _speed2(ctx), extensive=True),
        VariableSpec("age", VariableKind.DERIVED, ("birth",),
                     lambda ctx: ctx.ref_time - ctx.column("birth")),
        VariableSpec("sd", VariableKind.COMPOSITE, ("mass",), extensive=True, components=("mass",)),
    ]


_REGISTRIES = {
    "hydro": {spec.name: spec for spec in _hydro_specs()},
    "gravity": {spec.name: spec for spec in _gravity_specs()},
    "particles": {spec.name: spec for spec in _particle_specs()},
}

_SYNONYMS = {
    "density": "rho",
    "ρ": "rho",
    "Temp": "T",
    "Temperature": "T",
    "σx": "sigma_x",
    "σy": "sigma_y",
    "σz": "sigma_z",
    "σ": "sigma",
    "vϕ_cylinder": "vphi_cylinder",
    "vϕ_cylinder2": "vphi_cylinder2",
    "σr_cylinder": "sigma_r_cylinder",
    "σϕ_cylinder": "sigma_phi_cylinder",
    "ϕ": "phi",
}


def _registry(data) -> dict:
    try:
        return _REGISTRIES[data.kind]
    except KeyError:
        raise UnknownVariableError(f"No variable registry for data kind {data.kind!r}") from None


def known_variables(data) -> list:
    """Names resolvable on ``data``: table columns plus registry entries."""
    return sorted(set(data.data.columns) | set(_registry(data)))


def lookup_variable(data, name: str) -> VariableSpec:
    """Find the registry entry for ``name`` on ``data``.

    Parameters
    ----------
    data : AmrCellData or ParticleData
        Table the variable will be evaluated on.
    name : str
        Variable name or synonym.

    Returns
    -------
    VariableSpec

    Raises
    ------
    UnknownVariableError
        If ``name`` is not known, or a derived quantity's source columns are
        missing from the table.
    """
    if not isinstance(name, str):
        raise UnknownVariableError(f"Variable names must be strings, got {name!r}")

    name = _SYNONYMS.get(name, name)
    registry = _registry(data)
    columns = data.data.columns

    spec = registry.get(name)
    if spec is None:
        if name in columns:
            return VariableSpec(name, VariableKind.RAW, (name,))
        raise UnknownVariableError(
            f"Unknown variable {name!r} for {data.kind} data; "
            f"known: {', '.join(known_variables(data))}"
        )

    missing = [col for col in spec.requires if col not in columns]
    if missing:
        raise UnknownVariableError(
            f"Variable {name!r} needs column(s) {missing} which the {data.kind} table lacks"
        )
    return spec


def expand_variables(data, names) -> list:
    """Expand aliases and drop duplicates, keeping first-seen order.

    Examples
    --------
    >>> expand_variables(hydro, ["rho", "velocity", "vx"])  # doctest: +SKIP
    ['rho', 'vx', 'vy', 'vz', 'v']
    """
    if isinstance(names, str):
        names = [names]

    expanded = []
    for name in names:
        spec = lookup_variable(data, name)
        if spec.kind is VariableKind.ALIAS:
            expanded.extend(spec.components)
        else:
            expanded.append(spec.name)

    seen = set()
    return [n for n in expanded if not (n in seen or seen.add(n))]


def resolve_variable(data, name: str, unit: str = STANDARD_UNIT, *,
                     rows=None, center=None, ref_time=None) -> np.ndarray:
    """Compute per-row values of a variable in the requested unit.

    Parameters
    ----------
    data : AmrCellData or ParticleData
        Source table.
    name : str
        RAW column or DERIVED quantity.
    unit : str, optional
        Unit symbol from the scale table; ``"standard"`` keeps code units.
    rows : np.ndarray, optional
        Integer row positions to evaluate.
    center : sequence of float, optional
        Reference point (code length units) for positions and radii.
    ref_time : float, optional
        Reference time (code units) for particle ages; defaults to the
        output time.

    Returns
    -------
    np.ndarray
        1-D float64 array, one value per evaluated row.

    Raises
    ------
    UnknownVariableError
        Unknown name, missing source columns, or a name that has no per-row
        value (aliases and map-level quantities).
    UnknownUnitError
        If ``unit`` is not in the scale table.
    """
    spec = lookup_variable(data, name)
    factor = data.info.scales.factor(unit)

    ctx = VariableContext(data, rows=rows, center=center, ref_time=ref_time)
    if spec.kind is VariableKind.RAW:
        values = np.array(ctx.column(spec.name), dtype=np.float64)
    elif spec.kind is VariableKind.DERIVED:
        values = spec.compute(ctx)
    else:
        raise UnknownVariableError(
            f"{spec.name!r} is a {spec.kind.value} quantity without per-row values; "
            "request it through projection()"
        )

    if factor != 1.0:
        values = values * factor
    return np.asarray(values, dtype=np.float64)


getvar = resolve_variable
