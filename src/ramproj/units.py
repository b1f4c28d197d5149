"""Unit scale table.

RAMSES stores every field in code units. The scale of code length, density
and time in cgs (``unit_l``, ``unit_d``, ``unit_t``) fixes the factor that
turns a code-unit value into any physical unit. ``ScaleTable`` holds those
factors keyed by unit symbol, e.g. ``kpc``, ``Msol_pc3``, ``km_s``, ``K``.

A value ``q`` in code units is ``q * table.factor("kpc")`` in kpc.
"""

import logging

from astropy import constants as const
from astropy import units as u

from ramproj.errors import UnknownUnitError

__all__ = ['ScaleTable', 'STANDARD_UNIT', 'X_FRAC']

logger = logging.getLogger(__name__)

STANDARD_UNIT = "standard"

# Hydrogen mass fraction and mean molecular weight used by RAMSES cooling.
X_FRAC = 0.76
MU = 1.0 / X_FRAC

# cgs constants
PC = const.pc.cgs.value
AU = const.au.cgs.value
LY = (1.0 * u.lyr).to(u.cm).value
MSOL = const.M_sun.cgs.value
MEARTH = const.M_earth.cgs.value
MJUPITER = const.M_jup.cgs.value
MH = const.u.cgs.value
KB = const.k_B.cgs.value
YR = (1.0 * u.yr).to(u.s).value
G = const.G.cgs.value


class ScaleTable:
    """Conversion factors from code units to named physical units.

    Parameters
    ----------
    unit_l, unit_d, unit_t : float
        cgs value of one code unit of length, density and time.

    Notes
    -----
    ``unit_m = unit_d * unit_l**3`` is the code mass unit. Several symbols
    are spelling variants of one quantity (``Msol``/``Msun``, ``T``/``K``,
    ``Ba``/``g_cm_s2``, ``p_kB``/``K_cm3``).

    Examples
    --------
    >>> table = ScaleTable(unit_l=3.086e21, unit_d=1e-24, unit_t=3.156e13)
    >>> round(table.factor("kpc"), 3)
    1.0
    >>> table.factor("standard")
    1.0
    """

    def __init__(self, unit_l: float, unit_d: float, unit_t: float):
        self.unit_l = float(unit_l)
        self.unit_d = float(unit_d)
        self.unit_t = float(unit_t)
        self.unit_m = self.unit_d * self.unit_l ** 3
        self._factors = self._build()

    @classmethod
    def from_info(cls, info) -> "ScaleTable":
        """Build the table from a ``SimulationInfo``."""
        return cls(unit_l=info.unit_l, unit_d=info.unit_d, unit_t=info.unit_t)

    def _build(self) -> dict:
        ul, ud, ut, um = self.unit_l, self.unit_d, self.unit_t, self.unit_m
        uv = ul / ut

        f = {STANDARD_UNIT: 1.0}

        # length
        f["Mpc"] = ul / PC / 1e6
        f["kpc"] = ul / PC / 1e3
        f["pc"] = ul / PC
        f["mpc"] = ul / PC * 1e3
        f["ly"] = ul / LY
        f["Au"] = ul / AU
        f["km"] = ul / 1e5
        f["m"] = ul / 1e2
        f["cm"] = ul
        f["mm"] = ul * 10.0
        f["um"] = ul * 1e4

        # volume
        for name in ("Mpc", "kpc", "pc", "mpc", "ly", "Au", "km", "m", "cm", "mm", "um"):
            f[name + "3"] = f[name] ** 3

        # density
        f["Msol_pc3"] = ud * PC ** 3 / MSOL
        f["Msun_pc3"] = f["Msol_pc3"]
        f["g_cm3"] = ud
        f["nH"] = X_FRAC / MH * ud

        # surface density
        f["Msol_pc2"] = ud * ul * PC ** 2 / MSOL
        f["Msun_pc2"] = f["Msol_pc2"]
        f["g_cm2"] = ud * ul

        # time
        f["Gyr"] = ut / YR / 1e9
        f["Myr"] = ut / YR / 1e6
        f["yr"] = ut / YR
        f["s"] = ut
        f["ms"] = ut * 1e3

        # mass
        f["Msol"] = um / MSOL
        f["Msun"] = f["Msol"]
        f["Mearth"] = um / MEARTH
        f["Mjupiter"] = um / MJUPITER
        f["g"] = um

        # velocity
        f["km_s"] = uv / 1e5
        f["m_s"] = uv / 1e2
        f["cm_s"] = uv

        # energy
        f["erg"] = um * uv ** 2

        # temperature (p/rho in code units -> K)
        f["T_mu"] = MH / KB * uv ** 2
        f["K_mu"] = f["T_mu"]
        f["T"] = f["T_mu"] * MU
        f["K"] = f["T"]

        # pressure
        f["Ba"] = um / ul / ut ** 2
        f["g_cm_s2"] = f["Ba"]
        f["p_kB"] = f["Ba"] / KB
        f["K_cm3"] = f["p_kB"]

        return f

    @property
    def symbols(self) -> list:
        """Known unit symbols, sorted."""
        return sorted(self._factors)

    def __contains__(self, symbol) -> bool:
        return symbol in self._factors

    def factor(self, symbol: str) -> float:
        """Multiplicative factor from code units to ``symbol``.

        Raises
        ------
        UnknownUnitError
            If ``symbol`` is not in the table.
        """
        try:
            return self._factors[symbol]
        except (KeyError, TypeError):
            raise UnknownUnitError(
                f"Unknown unit {symbol!r}; expected one of: {', '.join(self.symbols)}"
            ) from None
