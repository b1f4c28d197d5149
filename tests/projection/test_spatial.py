"""Tests for range normalisation, grid geometry and row selection."""

import numpy as np
import pytest

from ramproj.data import ParticleData
from ramproj.errors import (
    InvalidLevelError,
    InvalidOptionError,
    InvalidRangeError,
    InvalidResolutionError,
    MaskLengthError,
    ProjectionInputError,
    UnknownUnitError,
)
from ramproj.projection.spatial import (
    PixelGrid,
    apply_slab,
    build_pixel_grid,
    cell_footprints,
    check_mask,
    normalize_center,
    normalize_ranges,
    resolve_direction,
    resolve_lmax,
    select_cells,
    select_particles,
)

from helpers.fake_tables import make_info

pytestmark = pytest.mark.unit

FULL = (0.0, 1.0, 0.0, 1.0, 0.0, 1.0)


class TestResolveDirection:

    @pytest.mark.parametrize("plane, expected", [("xy", "z"), ("xz", "y"), ("yz", "x")])
    def test_plane_spellings(self, plane, expected):
        assert resolve_direction(plane=plane) == expected

    def test_default_when_nothing_given(self):
        assert resolve_direction() == "z"
        assert resolve_direction(default="x") == "x"

    def test_case_insensitive(self):
        assert resolve_direction("Y") == "y"

    def test_consistent_pair_accepted(self):
        assert resolve_direction("x", "yz") == "x"

    def test_conflicting_pair_rejected(self):
        with pytest.raises(InvalidOptionError, match="different"):
            resolve_direction("x", "xy")

    def test_unknown_direction(self):
        with pytest.raises(InvalidOptionError, match="direction"):
            resolve_direction("r")


class TestNormalizeRanges:

    def test_missing_ranges_are_full_box(self, info):
        assert normalize_ranges(info) == FULL

    def test_standard_ranges_are_box_fractions(self, info):
        ranges = normalize_ranges(info, xrange=(0.2, 0.4), zrange=(None, 0.5))
        assert ranges == pytest.approx((0.2, 0.4, 0.0, 1.0, 0.0, 0.5))

    def test_ranges_relative_to_center(self, info):
        ranges = normalize_ranges(info, xrange=(-0.1, 0.1), center=(0.25, 0.5, 0.5))
        assert ranges[:2] == pytest.approx((0.15, 0.35))

    def test_physical_unit_and_box_center(self):
        info = make_info(boxlen=10.0)  # 10 code units of ~1 kpc
        ranges = normalize_ranges(info, xrange=(-1.0, 1.0), yrange=(-2.0, 2.0),
                                  center="bc", range_unit="kpc")
        assert ranges[:4] == pytest.approx((0.4, 0.6, 0.3, 0.7), rel=1e-6)
        assert ranges[4:] == (0.0, 1.0)

    def test_mixed_center_sentinel(self, info):
        center = normalize_center(info, [0.25, "bc", ":boxcenter"])
        assert center == pytest.approx([0.25, 0.5, 0.5])

    def test_no_center(self, info):
        assert normalize_center(info, None) is None

    def test_ranges_not_clipped_to_box(self, info):
        ranges = normalize_ranges(info, xrange=(1.5, 2.5))
        assert ranges[:2] == (1.5, 2.5)

    @pytest.mark.parametrize("rng", [(0.8, 0.2), (0.3, 0.3)])
    def test_inverted_or_empty(self, info, rng):
        with pytest.raises(InvalidRangeError, match="xrange"):
            normalize_ranges(info, xrange=rng)

    def test_empty_after_default_bound(self, info):
        with pytest.raises(InvalidRangeError, match="yrange"):
            normalize_ranges(info, yrange=(1.5, None))

    def test_non_finite(self, info):
        with pytest.raises(InvalidRangeError, match="finite"):
            normalize_ranges(info, zrange=(0.0, np.inf))

    def test_malformed_range(self, info):
        with pytest.raises(InvalidRangeError, match="pair"):
            normalize_ranges(info, xrange=(0.1, 0.2, 0.3))

    def test_bad_center(self, info):
        with pytest.raises(InvalidRangeError, match="center"):
            normalize_center(info, (0.5, 0.5))

    def test_unknown_range_unit(self, info):
        with pytest.raises(UnknownUnitError):
            normalize_ranges(info, xrange=(0, 1), range_unit="parsecs")


class TestSlab:

    def test_position_and_thickness(self, info):
        ranges = apply_slab(info, FULL, "z", 4, position=0.5, thickness=0.25)
        assert ranges[4:] == pytest.approx((0.375, 0.625))
        assert ranges[:4] == FULL[:4]

    def test_default_thickness_is_one_finest_cell(self, info):
        ranges = apply_slab(info, FULL, "x", 4, position=0.25)
        assert ranges[:2] == pytest.approx((0.25 - 1 / 32, 0.25 + 1 / 32))

    def test_thickness_alone_centres_on_depth_range(self, info):
        ranges = apply_slab(info, (0, 1, 0.2, 0.6, 0, 1), "y", 4, thickness=0.1)
        assert ranges[2:4] == pytest.approx((0.35, 0.45))

    def test_position_relative_to_center(self, info):
        ranges = apply_slab(info, FULL, "z", 4, position=0.1, thickness=0.1,
                            center=(0.5, 0.5, 0.5))
        assert ranges[4:] == pytest.approx((0.55, 0.65))

    def test_untouched_without_keywords(self, info):
        assert apply_slab(info, FULL, "z", 4) == FULL

    def test_non_positive_thickness(self, info):
        with pytest.raises(InvalidRangeError, match="thickness"):
            apply_slab(info, FULL, "z", 4, position=0.5, thickness=0.0)


class TestResolveLmax:

    def test_defaults_to_finest_present(self, two_level_hydro):
        assert resolve_lmax(two_level_hydro) == 4

    def test_particles_without_levels_use_info(self, particles):
        assert resolve_lmax(particles) == particles.info.lmax

    def test_explicit(self, two_level_hydro):
        assert resolve_lmax(two_level_hydro, 5) == 5

    @pytest.mark.parametrize("lmax", [0, -1, 2, True, "4"])
    def test_invalid(self, two_level_hydro, lmax):
        with pytest.raises(InvalidLevelError):
            resolve_lmax(two_level_hydro, lmax)


class TestBuildPixelGrid:

    def test_default_resolution(self, info):
        grid = build_pixel_grid(info, FULL, "z", 5)
        assert grid.shape == (32, 32)

    def test_default_resolution_follows_extent(self, info):
        grid = build_pixel_grid(info, (0, 0.5, 0, 0.25, 0, 1), "z", 4)
        assert grid.shape == (8, 4)

    def test_square_res(self, info):
        grid = build_pixel_grid(info, (0, 0.5, 0, 1, 0, 1), "z", 4, res=10)
        assert grid.shape == (10, 10)
        assert grid.pixel_size == pytest.approx((0.05, 0.1))

    def test_pair_res_and_float_integral(self, info):
        grid = build_pixel_grid(info, FULL, "y", 4, res=(6.0, 3))
        assert grid.shape == (6, 3)
        assert grid.plane_axes == ("x", "z")

    def test_pxsize_overrides_res(self, info):
        grid = build_pixel_grid(info, FULL, "z", 4, res=100, pxsize=0.1)
        assert grid.shape == (10, 10)

    def test_pxsize_with_unit(self):
        info = make_info(boxlen=10.0)
        grid = build_pixel_grid(info, FULL, "z", 4, pxsize=(1.0, "kpc"))
        assert grid.shape == (10, 10)

    def test_pxsize_integer_pair_is_pixel_counts(self, info):
        grid = build_pixel_grid(info, FULL, "z", 4, res=100, pxsize=[12, 5])
        assert grid.shape == (12, 5)
        assert grid.pixel_size == pytest.approx((1 / 12, 1 / 5))

    def test_pxsize_integer_value_with_unit_is_a_length(self):
        info = make_info(boxlen=10.0)
        grid = build_pixel_grid(info, FULL, "z", 4, pxsize=(2, "kpc"))
        assert grid.shape == (5, 5)

    @pytest.mark.parametrize("res", [0, -3, 2.5, True, (4,), (4, 0), "8"])
    def test_invalid_res(self, info, res):
        with pytest.raises(InvalidResolutionError):
            build_pixel_grid(info, FULL, "z", 4, res=res)

    @pytest.mark.parametrize("pxsize", [0.0, -1.0, (0.1, "kpc", 1), np.nan, (0.5, 0.5),
                                        [12, 0], (True, 4)])
    def test_invalid_pxsize(self, info, pxsize):
        with pytest.raises(InvalidResolutionError):
            build_pixel_grid(info, FULL, "z", 4, pxsize=pxsize)

    def test_physical_geometry(self):
        info = make_info(boxlen=48.0)
        grid = build_pixel_grid(info, (0.25, 0.75, 0, 1, 0, 1), "z", 4, res=12)
        assert grid.extent == pytest.approx((12.0, 36.0, 0.0, 48.0))
        assert grid.pixsize == pytest.approx((2.0, 4.0))
        assert grid.pixel_area == pytest.approx(8.0)
        u, v = grid.pixel_centers()
        assert u[0] == pytest.approx(13.0)
        assert v[-1] == pytest.approx(46.0)

    def test_bounds_follow_direction(self):
        grid = PixelGrid("x", (0.0, 0.1, 0.2, 0.3, 0.4, 0.5), 2, 2, 1.0)
        assert grid.bounds == (0.2, 0.3, 0.4, 0.5)
        assert grid.depth == (0.0, 0.1)


class TestCheckMask:

    def test_none_passes(self):
        assert check_mask(None, 5) is None

    def test_valid_mask(self):
        mask = check_mask([True, False, True], 3)
        assert mask.dtype == bool

    def test_wrong_length(self):
        with pytest.raises(MaskLengthError, match="3 entries"):
            check_mask(np.ones(3, dtype=bool), 4)

    @pytest.mark.parametrize("mask", [np.ones(4), np.arange(4), ["yes"] * 4])
    def test_not_boolean(self, mask):
        with pytest.raises(InvalidOptionError, match="boolean"):
            check_mask(mask, 4)

    def test_not_boolean_is_not_a_length_error(self):
        with pytest.raises(ProjectionInputError) as excinfo:
            check_mask(np.ones(4), 4)
        assert not isinstance(excinfo.value, MaskLengthError)


class TestSelection:

    def test_full_box_selects_everything(self, two_level_hydro, info):
        grid = build_pixel_grid(info, FULL, "z", 4)
        assert select_cells(two_level_hydro, grid, 4).size == len(two_level_hydro)

    def test_level_ceiling(self, two_level_hydro, info):
        grid = build_pixel_grid(info, FULL, "z", 3)
        rows = select_cells(two_level_hydro, grid, 3)
        assert rows.size == 384
        assert (two_level_hydro.data["level"].to_numpy()[rows] == 3).all()

    def test_mask_applied(self, two_level_hydro, info):
        grid = build_pixel_grid(info, FULL, "z", 4)
        mask = np.zeros(len(two_level_hydro), dtype=bool)
        mask[:10] = True
        assert np.array_equal(select_cells(two_level_hydro, grid, 4, mask), np.arange(10))

    def test_depth_selection_uses_centres(self, two_level_hydro, info):
        grid = build_pixel_grid(info, (0, 1, 0, 1, 0, 0.5), "z", 4)
        rows = select_cells(two_level_hydro, grid, 4)
        assert rows.size == len(two_level_hydro) // 2

    def test_plane_selection_uses_footprints(self, two_level_hydro, info):
        # a sliver inside the first coarse column still selects the whole column
        grid = build_pixel_grid(info, (0.01, 0.02, 0.01, 0.02, 0, 1), "z", 4, res=1)
        rows = select_cells(two_level_hydro, grid, 4)
        assert rows.size == 8

    def test_thin_slab_inside_coarse_cells(self, two_level_hydro, info):
        ranges = apply_slab(info, FULL, "z", 4, position=0.5, thickness=0.01)
        grid = build_pixel_grid(info, ranges, "z", 4)
        rows = select_cells(two_level_hydro, grid, 4)
        # one layer per column: 48 coarse + 64 fine columns
        assert rows.size == 112

    def test_footprints(self, two_level_hydro):
        rows = np.array([0, len(two_level_hydro) - 1])
        level, lo_u, lo_v = cell_footprints(two_level_hydro, rows, "x")
        frame = two_level_hydro.data
        assert level.tolist() == frame["level"].to_numpy()[rows].tolist()
        assert lo_u == pytest.approx(frame["cy"].to_numpy()[rows] / 2.0 ** level)
        assert lo_v == pytest.approx(frame["cz"].to_numpy()[rows] / 2.0 ** level)

    def test_particles_half_open_bounds(self, hand_particles, info):
        grid = build_pixel_grid(info, (0.1, 0.9, 0.1, 0.9, 0.0, 1.0), "z", 4, res=2)
        assert select_particles(hand_particles, grid, None).tolist() == [0, 1]

    def test_particles_on_box_edge_are_kept(self, info):
        particles = ParticleData.from_arrays(info, x=[1.0, 0.0], y=[1.0, 0.5], z=[1.0, 0.5],
                                             mass=[1.0, 1.0])
        grid = build_pixel_grid(info, FULL, "z", 4, res=2)
        assert select_particles(particles, grid, None).tolist() == [0, 1]

    def test_adjacent_slabs_share_no_particle(self, hand_particles, info):
        below = build_pixel_grid(info, (0, 1, 0, 1, 0.4, 0.5), "z", 4, res=2)
        above = build_pixel_grid(info, (0, 1, 0, 1, 0.5, 0.6), "z", 4, res=2)
        assert select_particles(hand_particles, below, None).tolist() == []
        assert select_particles(hand_particles, above, None).tolist() == [0, 2]

    def test_particles_depth_range(self, hand_particles, info):
        grid = build_pixel_grid(info, (0, 1, 0, 1, 0.4, 0.6), "z", 4, res=2)
        assert select_particles(hand_particles, grid, None).tolist() == [0, 2]
