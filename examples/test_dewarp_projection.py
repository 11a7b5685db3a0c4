"""Tests for region selection, pixel grids, coordinate maps and the dewarp entry points."""

import math

import numpy as np
import pytest

from fisheyedewarp import (
  CacheManager,
  DewarpParams,
  FisheyeDewarp,
  InvalidFOVError,
  InvalidPFOVError,
  ProjectionType,
  UnrecognizedProjectionError,
  apply_dewarp_maps,
  build_pixel_grid,
  crop_square_region,
  dewarp,
  generate_dewarp_maps,
  select_square_region,
)

ALL_TYPES = list(ProjectionType)


@pytest.mark.parametrize("width, height, expected", [
  (640, 480, (80, 0, 560, 480)),
  (480, 640, (0, 80, 480, 560)),
  (5, 4, (0, 0, 4, 4)),
  (7, 4, (1, 0, 5, 4)),
  (4, 7, (0, 1, 4, 5)),
  (6, 6, (0, 0, 6, 6)),
  (1, 1, (0, 0, 1, 1)),
])
def test_select_square_region(width, height, expected):
  x0, y0, xf, yf = select_square_region(width, height)
  assert (x0, y0, xf, yf) == expected
  assert xf - x0 == yf - y0 == min(width, height)
  assert 0 <= x0 and xf <= width and 0 <= y0 and yf <= height


@pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-1, 5)])
def test_select_square_region_rejects_empty_image(width, height):
  with pytest.raises(ValueError):
    select_square_region(width, height)


def test_crop_square_region():
  img = np.arange(6 * 10).reshape(6, 10)
  region = crop_square_region(img)
  assert region.shape == (6, 6)
  assert region[0, 0] == img[0, 2]


def test_build_pixel_grid():
  i, j = build_pixel_grid(3, 2)
  np.testing.assert_array_equal(i, [[0, 1, 2], [0, 1, 2]])
  np.testing.assert_array_equal(j, [[0, 0, 0], [1, 1, 1]])

  i, j = build_pixel_grid(3, 5, row_start=2, row_end=4)
  np.testing.assert_array_equal(i, [[0, 1, 2], [0, 1, 2]])
  np.testing.assert_array_equal(j, [[2, 2, 2], [3, 3, 3]])


@pytest.mark.parametrize("use_vectorized", [True, False])
def test_worked_example_4x4_linear(use_vectorized):
  xs, ys = generate_dewarp_maps(4, 4, 180.0, 120.0, ProjectionType.LINEAR, use_vectorized)

  # Corner pixel (0, 0) computed by hand from the mapping formulas
  assert xs[0, 0] == pytest.approx(0.335313099311, abs=1e-6)
  assert ys[0, 0] == pytest.approx(0.335313099311, abs=1e-6)
  # Pixel at column 1, row 0
  assert xs[0, 1] == pytest.approx(1.061972030856, abs=1e-6)
  assert ys[0, 1] == pytest.approx(0.185916092567, abs=1e-6)


def test_worked_example_formula_chain():
  dim = math.sqrt(32)
  ofocinv = 1.0 / (dim / (2.0 * math.tan(60.0 * math.pi / 180.0)))
  rd = math.hypot(-1.5, -1.5)
  rr = (dim * 180.0 / (180.0 * math.pi)) * math.atan(ofocinv * rd)
  expected = rr / rd * -1.5 + 1.5

  xs, ys = generate_dewarp_maps(4, 4, 180.0, 120.0, "Linear")
  assert xs[0, 0] == pytest.approx(expected, abs=1e-6)
  assert ys[3, 3] == pytest.approx(3.0 - expected, abs=1e-6)


def test_maps_layout():
  xs, ys = generate_dewarp_maps(12, 10, 180.0, 120.0)
  assert xs.shape == ys.shape == (10, 12)
  assert xs.dtype == ys.dtype == np.float32
  assert xs.flags['C_CONTIGUOUS'] and ys.flags['C_CONTIGUOUS']


@pytest.mark.parametrize("projection_type", ALL_TYPES)
@pytest.mark.parametrize("fov, pfov", [
  (180.0, 120.0), (180.0, 179.9), (0.1, 0.1), (1.0, 170.0), (90.0, 60.0), (180.0, 0.5)
])
def test_maps_are_finite(projection_type, fov, pfov):
  xs, ys = generate_dewarp_maps(9, 9, fov, pfov, projection_type)
  assert np.all(np.isfinite(xs))
  assert np.all(np.isfinite(ys))


@pytest.mark.parametrize("projection_type", ALL_TYPES)
@pytest.mark.parametrize("use_vectorized", [True, False])
@pytest.mark.parametrize("fov, pfov", [(180.0, 120.0), (60.0, 30.0), (150.0, 170.0)])
def test_center_pixel_maps_to_origin(projection_type, use_vectorized, fov, pfov):
  xs, ys = generate_dewarp_maps(5, 5, fov, pfov, projection_type, use_vectorized)
  assert xs[2, 2] == 0.0
  assert ys[2, 2] == 0.0
  # Neighbours of the center are not sentinels
  assert xs[2, 3] > 2.0
  assert ys[3, 2] > 2.0


@pytest.mark.parametrize("projection_type", ALL_TYPES)
def test_maps_are_symmetric(projection_type):
  size = 8
  center = (size - 1) / 2.0
  xs, ys = generate_dewarp_maps(size, size, 170.0, 100.0, projection_type)

  # Transposing the grid swaps the roles of x and y
  np.testing.assert_allclose(xs, ys.T, atol=1e-5)
  # Mirroring around the vertical axis mirrors the x offsets
  np.testing.assert_allclose(xs - center, -(xs[:, ::-1] - center), atol=1e-5)

  # Pixels at equal distance along orthogonal axes get equal radii
  rr_right = math.hypot(xs[3, 7] - center, ys[3, 7] - center)
  rr_down = math.hypot(xs[7, 3] - center, ys[7, 3] - center)
  assert rr_right == pytest.approx(rr_down, abs=1e-5)


@pytest.mark.parametrize("projection_type", ALL_TYPES)
@pytest.mark.parametrize("fov, pfov", [(180.0, 120.0), (30.0, 170.0), (120.0, 10.0)])
def test_radius_is_monotonic_along_row(projection_type, fov, pfov):
  size = 33
  center = (size - 1) / 2.0
  xs, ys = generate_dewarp_maps(size, size, fov, pfov, projection_type)

  row = size // 2
  cols = np.arange(size // 2 + 1, size)
  rr = np.hypot(xs[row, cols] - center, ys[row, cols] - center)
  assert np.all(np.diff(rr) >= -1e-4)


def test_projection_types_give_different_maps():
  maps = {p: generate_dewarp_maps(16, 16, 180.0, 120.0, p) for p in ALL_TYPES}
  for a in ALL_TYPES:
    for b in ALL_TYPES:
      if a is not b:
        assert not np.allclose(maps[a][0], maps[b][0])


@pytest.mark.parametrize("projection_type", ALL_TYPES)
def test_vectorized_matches_reference(projection_type):
  xs_v, ys_v = generate_dewarp_maps(12, 9, 175.0, 110.0, projection_type, use_vectorized=True)
  xs_r, ys_r = generate_dewarp_maps(12, 9, 175.0, 110.0, projection_type, use_vectorized=False)
  np.testing.assert_allclose(xs_v, xs_r, atol=1e-4)
  np.testing.assert_allclose(ys_v, ys_r, atol=1e-4)


def test_parallel_chunks_match_reference():
  # Large enough to take the multi-threaded path
  xs_v, ys_v = generate_dewarp_maps(131, 140, 180.0, 120.0, ProjectionType.STEREOGRAPHIC)
  xs_r, ys_r = generate_dewarp_maps(131, 140, 180.0, 120.0, ProjectionType.STEREOGRAPHIC,
                                    use_vectorized=False)
  np.testing.assert_allclose(xs_v, xs_r, atol=1e-3)
  np.testing.assert_allclose(ys_v, ys_r, atol=1e-3)


@pytest.mark.parametrize("fov, pfov, error", [
  (0, 120, InvalidFOVError),
  (181, 120, InvalidFOVError),
  (180, 0, InvalidPFOVError),
  (180, 180, InvalidPFOVError),
])
def test_out_of_range_fov_rejected(fov, pfov, error):
  with pytest.raises(error):
    generate_dewarp_maps(4, 4, fov, pfov)
  with pytest.raises(error):
    dewarp(np.zeros((4, 4, 3), dtype=np.uint8), fov, pfov)


def test_dewarp_rejects_unknown_projection_type():
  with pytest.raises(UnrecognizedProjectionError):
    dewarp(np.zeros((4, 4, 3), dtype=np.uint8), 180, 120, "Panini")


def test_dewarp_validates_before_touching_image():
  with pytest.raises(InvalidFOVError):
    dewarp(None, 0, 120)
  with pytest.raises(ValueError):
    dewarp(None, 180, 120)


def test_dewarp_output_shape_and_content():
  img = np.full((60, 80, 3), 200, dtype=np.uint8)
  result = dewarp(img, 180.0, 120.0, ProjectionType.EQUAL_AREA)

  assert result.shape == (60, 60, 3)
  assert result.dtype == np.uint8
  # Pixels near the center sample from inside the region
  np.testing.assert_array_equal(result[30, 30], [200, 200, 200])


def test_apply_dewarp_maps_fills_outside_with_zero():
  img = np.full((4, 4), 100, dtype=np.uint8)
  xs = np.array([[1.0, -50.0]], dtype=np.float32)
  ys = np.array([[1.0, 1.0]], dtype=np.float32)
  result = apply_dewarp_maps(img, xs, ys)
  assert result.shape == (1, 2)
  assert result[0, 0] == 100
  assert result[0, 1] == 0


def test_apply_dewarp_maps_rejects_none():
  xs = np.zeros((2, 2), dtype=np.float32)
  with pytest.raises(ValueError):
    apply_dewarp_maps(None, xs, xs)


def test_fisheye_dewarp_matches_function():
  rng = np.random.default_rng(0)
  img = rng.integers(0, 255, size=(40, 50, 3), dtype=np.uint8)
  params = DewarpParams(170.0, 100.0, ProjectionType.ORTHOGRAPHIC)

  expected = dewarp(img, 170.0, 100.0, ProjectionType.ORTHOGRAPHIC)
  np.testing.assert_array_equal(FisheyeDewarp(params).dewarp(img), expected)


def test_fisheye_dewarp_caches_maps():
  cache = CacheManager()
  dewarper = FisheyeDewarp(DewarpParams(180.0, 120.0, "Linear"), cache_manager=cache)

  xs1, ys1 = dewarper.get_dewarp_maps(20, 20)
  xs2, ys2 = dewarper.get_dewarp_maps(20, 20)
  np.testing.assert_array_equal(xs1, xs2)
  np.testing.assert_array_equal(ys1, ys2)

  info = dewarper.get_cache_info()
  assert info['total_cached_maps'] == 1
  assert info['total_hits'] == 1
  assert cache.get_cache_keys() == ["linear_20x20_fov180.000_pfov120.000"]

  assert dewarper.remove_cached_maps(20, 20)
  assert not dewarper.remove_cached_maps(20, 20)

  dewarper.get_dewarp_maps(10, 10)
  dewarper.clear_cache()
  assert len(cache) == 0


def test_fisheye_dewarp_shared_cache_keeps_types_apart():
  cache = CacheManager()
  for projection_type in ALL_TYPES:
    FisheyeDewarp(DewarpParams(180.0, 120.0, projection_type), cache_manager=cache).get_dewarp_maps(8, 8)

  assert len(cache) == 4
  assert cache.get_info()['maps_by_projection'] == {p.value: 1 for p in ALL_TYPES}


def test_fisheye_dewarp_validates_params():
  with pytest.raises(InvalidPFOVError):
    FisheyeDewarp(DewarpParams(180.0, 180.0))
