"""Synthetic RAMSES-like tables for tests."""

import numpy as np

from ramproj.data import GravityData, HydroData, ParticleData, SimulationInfo

# one code length unit is ~1 kpc
KPC_CM = 3.085677581e21


def make_info(**overrides):
    """SimulationInfo with a unit box and kpc/Myr-like code units."""
    params = dict(
        boxlen=1.0,
        lmin=3,
        lmax=6,
        unit_l=KPC_CM,
        unit_d=1.0e-24,
        unit_t=3.15576e13,
        time=1.0,
    )
    params.update(overrides)
    return SimulationInfo(**params)


def level_grid(level, keep=None):
    """All cells of one level, optionally filtered by ``keep(cx, cy, cz, n)``."""
    n = 2 ** level
    cx, cy, cz = np.meshgrid(np.arange(n), np.arange(n), np.arange(n), indexing="ij")
    cx, cy, cz = cx.ravel(), cy.ravel(), cz.ravel()
    if keep is not None:
        sel = keep(cx, cy, cz, n)
        cx, cy, cz = cx[sel], cy[sel], cz[sel]
    return np.full(cx.size, level), cx, cy, cz


def in_center_column(cx, cy, cz, n):
    """Cells whose x-y footprint lies in the central quarter [0.25, 0.75)^2."""
    lo, hi = n // 4, 3 * n // 4
    return (cx >= lo) & (cx < hi) & (cy >= lo) & (cy < hi)


def make_two_level_hydro(info=None, seed=0):
    """Level-3 box with the central x-y quarter column refined to level 4.

    ``rho`` is 1.0 on level 3 and 2.0 on level 4, so the volume integral of
    ``rho`` over the unit box is 1.0 * box + 1.0 * centre = 1.25.
    Velocities and pressure are seeded random values.
    """
    info = make_info() if info is None else info
    coarse = level_grid(3, keep=lambda cx, cy, cz, n: ~in_center_column(cx, cy, cz, n))
    fine = level_grid(4, keep=in_center_column)
    level, cx, cy, cz = (np.concatenate(pair) for pair in zip(coarse, fine))

    rng = np.random.default_rng(seed)
    n = level.size
    return HydroData.from_arrays(
        info, level, cx, cy, cz,
        rho=np.where(level == 3, 1.0, 2.0),
        vx=rng.normal(size=n),
        vy=rng.normal(size=n),
        vz=rng.normal(size=n),
        p=rng.uniform(0.5, 1.5, size=n),
    )


def make_gradient_hydro(level=3, info=None):
    """Single-level box with rho = 1 + x + 2y + 4z at cell centres."""
    info = make_info() if info is None else info
    lvl, cx, cy, cz = level_grid(level)
    n = 2 ** level
    x, y, z = ((c + 0.5) / n for c in (cx, cy, cz))
    return HydroData.from_arrays(
        info, lvl, cx, cy, cz,
        rho=1.0 + x + 2.0 * y + 4.0 * z,
        vx=np.full(lvl.size, 3.0),
        vy=x.copy(),
        vz=np.zeros(lvl.size),
        p=np.ones(lvl.size),
    )


def make_gravity(level=3, info=None):
    info = make_info() if info is None else info
    lvl, cx, cy, cz = level_grid(level)
    return GravityData.from_arrays(
        info, lvl, cx, cy, cz,
        epot=-np.ones(lvl.size),
        ax=np.full(lvl.size, 3.0),
        ay=np.full(lvl.size, 4.0),
        az=np.zeros(lvl.size),
    )


def make_particles(n=500, seed=1, info=None):
    """Particles uniformly spread over the box."""
    info = make_info() if info is None else info
    rng = np.random.default_rng(seed)
    pos = rng.uniform(0.0, info.boxlen, size=(3, n))
    return ParticleData.from_arrays(
        info, pos[0], pos[1], pos[2],
        mass=rng.uniform(0.5, 1.5, size=n),
        vx=rng.normal(size=n),
        vy=rng.normal(size=n),
        vz=rng.normal(size=n),
        birth=rng.uniform(0.0, 0.5, size=n),
    )


def make_hand_particles(info=None):
    """Three particles at known positions, masses 1, 2 and 4."""
    info = make_info() if info is None else info
    return ParticleData.from_arrays(
        info,
        x=[0.1, 0.1, 0.9],
        y=[0.1, 0.1, 0.9],
        z=[0.5, 0.2, 0.5],
        mass=[1.0, 2.0, 4.0],
        vx=[1.0, 3.0, -2.0],
        vy=[0.0, 0.0, 0.0],
        vz=[0.0, 0.0, 0.0],
        birth=[0.25, 0.5, 0.75],
    )


def make_disk_particles(info=None):
    """Four particles around the box centre in the z = 0.5 plane.

    Relative to the centre they sit at +x, +y, -y and on the axis. The first
    two rotate counter-clockwise at speed 2, the third moves outward at speed
    1 and the last one moves along +x.
    """
    info = make_info() if info is None else info
    return ParticleData.from_arrays(
        info,
        x=[0.75, 0.5, 0.5, 0.5],
        y=[0.5, 0.75, 0.25, 0.5],
        z=[0.5, 0.5, 0.5, 0.5],
        mass=[2.0, 1.0, 1.0, 1.0],
        vx=[0.0, -2.0, 0.0, 1.0],
        vy=[2.0, 0.0, -1.0, 0.0],
        vz=[0.0, 0.0, 0.0, 0.0],
    )
