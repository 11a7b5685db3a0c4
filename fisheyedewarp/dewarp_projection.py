"""
MIT License

Copyright (c) 2025 Pan Yu

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

Author: Pan Yu
"""

import math
import multiprocessing
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np

from .cache_manager import CacheManager, cache_key_prefix
from .dewarp_params import DewarpParams, ProjectionType, parse_projection_type, validate_fov
from .projection_models import focal_scale, forward_radius, output_focal_inverse

MAX_THREADS = 8
MIN_CHUNK_ROWS = 32
SMALL_IMAGE_SIZE = 128


def apply_dewarp_maps(img: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
  """
  Resample a fisheye region with pre-generated coordinate maps.

  Parameters:
  - img: square fisheye region as numpy array
  - xs: array of x coordinates in the region for each output pixel
  - ys: array of y coordinates in the region for each output pixel

  Returns:
  - dewarped_img: rectilinear image, pixels mapped outside the region are black
  """
  if img is None:
    raise ValueError("Input image is None")

  output_height, output_width = xs.shape
  print(f"Applying dewarp maps using OpenCV remap to create {output_width}x{output_height} image")

  start_time = time.time()
  result = cv2.remap(img, xs, ys, cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=0)
  remap_time = time.time() - start_time
  print(f"\033[33mOpenCV remap processing time: {remap_time:.4f} seconds\033[0m")

  return result


def select_square_region(width: int, height: int) -> Tuple[int, int, int, int]:
  """
  Largest centered square of a width x height image.

  Returns:
  - (x0, y0, xf, yf): half-open bounds [x0, xf) x [y0, yf), side min(width, height)
  """
  if width <= 0 or height <= 0:
    raise ValueError(f"Invalid image dimensions: {width}x{height}")

  dim = min(width, height)
  x0 = width // 2 - dim // 2
  y0 = height // 2 - dim // 2
  return x0, y0, x0 + dim, y0 + dim


def crop_square_region(img: np.ndarray) -> np.ndarray:
  """Crop the centered square region used as the fisheye frame."""
  if img is None:
    raise ValueError("Input image is None")
  height, width = img.shape[:2]
  x0, y0, xf, yf = select_square_region(width, height)
  return img[y0:yf, x0:xf]


def build_pixel_grid(width: int, height: int, row_start: int = 0,
                     row_end: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
  """
  Integer destination pixel grid for rows [row_start, row_end).

  Returns:
  - i, j: arrays shaped (rows, width) with i[row, col] = col and j[row, col] = row
  """
  if row_end is None:
    row_end = height
  return np.meshgrid(np.arange(width), np.arange(row_start, row_end))


def _map_row_chunk(row_start: int, row_end: int, width: int, height: int,
                   ofocinv: float, ifoc: float,
                   projection_type: ProjectionType) -> Tuple[np.ndarray, np.ndarray]:
  """
  Compute source coordinates for a band of output rows.

  All per-pixel quantities live only for the rows of this chunk, so a full
  image never needs more than the two output maps.

  Returns:
  - (xs_chunk, ys_chunk) float32 arrays shaped (row_end - row_start, width)
  """
  xcenter = (width - 1) / 2.0
  ycenter = (height - 1) / 2.0

  i, j = build_pixel_grid(width, height, row_start, row_end)
  xd = i - xcenter
  yd = j - ycenter
  rd = np.hypot(xd, yd)
  phiang = np.arctan(ofocinv * rd)
  rr = forward_radius(projection_type, phiang, ifoc)

  # rd is zero only at the exact center pixel, which maps to (0, 0)
  center = rd == 0
  scale = np.divide(rr, rd, out=np.zeros_like(rd), where=~center)
  xs_chunk = np.where(center, 0.0, scale * xd + xcenter)
  ys_chunk = np.where(center, 0.0, scale * yd + ycenter)

  return xs_chunk.astype(np.float32), ys_chunk.astype(np.float32)


def _generate_dewarp_maps_reference(width: int, height: int, fov: float, pfov: float,
                                    projection_type: ProjectionType) -> Tuple[np.ndarray, np.ndarray]:
  """
  Reference implementation: compute the maps pixel by pixel with nested loops.

  Slow, but mirrors the per-pixel formulas one to one. Kept for verification.
  """
  start_time = time.time()

  dim = math.sqrt(width ** 2 + height ** 2)
  ofocinv = output_focal_inverse(dim, pfov)
  ifoc = focal_scale(projection_type, dim, fov)
  xcenter = (width - 1) / 2.0
  ycenter = (height - 1) / 2.0

  xs = np.zeros((height, width), dtype=np.float32)
  ys = np.zeros((height, width), dtype=np.float32)

  for row in range(height):
    for col in range(width):
      xd = col - xcenter
      yd = row - ycenter
      rd = math.hypot(xd, yd)
      if rd == 0:
        continue
      phiang = math.atan(ofocinv * rd)
      rr = forward_radius(projection_type, phiang, ifoc)
      scale = rr / rd
      xs[row, col] = scale * xd + xcenter
      ys[row, col] = scale * yd + ycenter

  map_generation_time = time.time() - start_time
  print(f"\033[33mReference map generation processing time: {map_generation_time:.4f} seconds\033[0m")

  return xs, ys


def _generate_dewarp_maps_vectorized(width: int, height: int, fov: float, pfov: float,
                                     projection_type: ProjectionType) -> Tuple[np.ndarray, np.ndarray]:
  """
  Parallel vectorized implementation: process bands of rows on a thread pool.

  Rows are independent, so each worker writes its own slice of the output
  maps and the only synchronization is collecting the futures.
  """
  start_time = time.time()

  dim = math.sqrt(width ** 2 + height ** 2)
  ofocinv = output_focal_inverse(dim, pfov)
  ifoc = focal_scale(projection_type, dim, fov)

  num_cores = min(multiprocessing.cpu_count(), MAX_THREADS)
  chunk_size = max(MIN_CHUNK_ROWS, height // (num_cores * 2))

  xs = np.empty((height, width), dtype=np.float32)
  ys = np.empty((height, width), dtype=np.float32)

  if height < SMALL_IMAGE_SIZE or width < SMALL_IMAGE_SIZE:
    print("Using single-threaded processing for small image")
    xs[:], ys[:] = _map_row_chunk(0, height, width, height, ofocinv, ifoc, projection_type)
  else:
    print(f"Using {num_cores} threads with chunk size {chunk_size} rows")
    with ThreadPoolExecutor(max_workers=num_cores) as executor:
      futures = []
      row_ranges = []

      for row_start in range(0, height, chunk_size):
        row_end = min(row_start + chunk_size, height)
        row_ranges.append((row_start, row_end))
        futures.append(executor.submit(
          _map_row_chunk, row_start, row_end, width, height, ofocinv, ifoc, projection_type
        ))

      for future, (row_start, row_end) in zip(futures, row_ranges):
        xs[row_start:row_end], ys[row_start:row_end] = future.result()

  map_generation_time = time.time() - start_time
  print(f"\033[33mParallel vectorized map generation processing time: {map_generation_time:.4f} seconds\033[0m")

  return xs, ys


def generate_dewarp_maps(width: int, height: int, fov: float, pfov: float,
                         projection_type=ProjectionType.LINEAR,
                         use_vectorized: bool = True) -> Tuple[np.ndarray, np.ndarray]:
  """
  Generate source coordinate maps for a width x height fisheye region.

  Parameters:
  - width, height: dimensions of the (square) fisheye region
  - fov: input fisheye field of view in degrees, 0 < fov <= 180
  - pfov: output perspective field of view in degrees, 0 < pfov < 180
  - projection_type: ProjectionType member or its name
  - use_vectorized: if True, use the parallel vectorized path; if False, the reference loops

  Returns:
  - xs, ys: C-contiguous float32 arrays shaped (height, width) in region pixel units
  """
  validate_fov(fov, pfov)
  projection_type = parse_projection_type(projection_type)
  if width <= 0 or height <= 0:
    raise ValueError(f"Invalid region dimensions: {width}x{height}")

  print(f"Generating {projection_type.value} dewarp maps: {width}x{height}, "
        f"fov={fov}°, pfov={pfov}°")

  if use_vectorized:
    return _generate_dewarp_maps_vectorized(width, height, fov, pfov, projection_type)
  return _generate_dewarp_maps_reference(width, height, fov, pfov, projection_type)


class FisheyeDewarp:
  """
  Fisheye to rectilinear dewarper with map caching.

  Maps depend only on the region size and the dewarp parameters, so processing
  many frames of the same size reuses one pair of maps.
  """

  def __init__(self, params: DewarpParams, use_vectorized: bool = True,
               cache_manager: Optional[CacheManager] = None):
    """
    Parameters:
    - params: DewarpParams object, validated here
    - use_vectorized: if True, use fast vectorized map generation; if False, use reference implementation
    - cache_manager: optional shared cache manager. If None, creates a new one.
    """
    params.validate()
    self.params = params
    self.use_vectorized = use_vectorized
    self.cache_manager = cache_manager if cache_manager is not None else CacheManager()

  def _generate_cache_key(self, width: int, height: int) -> str:
    prefix = cache_key_prefix(self.params.projection_type)
    return f"{prefix}{width}x{height}_fov{self.params.fov:.3f}_pfov{self.params.pfov:.3f}"

  def get_dewarp_maps(self, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Get coordinate maps for a region size, generating and caching them if needed.
    """
    cache_key = self._generate_cache_key(width, height)

    cached_maps = self.cache_manager.get(cache_key)
    if cached_maps is not None:
      print(f"Using cached dewarp maps: {cache_key}")
      return cached_maps

    xs, ys = generate_dewarp_maps(width, height, self.params.fov, self.params.pfov,
                                  self.params.projection_type, self.use_vectorized)
    if self.cache_manager.put(cache_key, xs, ys):
      print(f"Cached dewarp maps: {cache_key}")

    return xs, ys

  def dewarp(self, input_img: np.ndarray) -> np.ndarray:
    """
    Dewarp a fisheye image.

    The centered square of the input is treated as the fisheye frame; the
    output has the same size as that square.
    """
    region = crop_square_region(input_img)
    region_height, region_width = region.shape[:2]

    xs, ys = self.get_dewarp_maps(region_width, region_height)
    return apply_dewarp_maps(region, xs, ys)

  def clear_cache(self):
    """Clear all cached dewarp maps."""
    self.cache_manager.clear()
    print("Dewarp map cache cleared")

  def get_cache_info(self) -> Dict[str, Any]:
    return self.cache_manager.get_info()

  def remove_cached_maps(self, width: int, height: int) -> bool:
    """Remove the maps for one region size from the cache."""
    cache_key = self._generate_cache_key(width, height)
    if self.cache_manager.remove(cache_key):
      print(f"Removed cached dewarp maps: {cache_key}")
      return True
    print(f"Dewarp maps not in cache: {cache_key}")
    return False


def dewarp(img: np.ndarray, fov: float, pfov: float,
           projection_type=ProjectionType.LINEAR, use_vectorized: bool = True) -> np.ndarray:
  """
  Transform a fisheye image into a perspective image.

  Parameters:
  - img: fisheye image as numpy array
  - fov: input fisheye field of view in degrees, 0 < fov <= 180 (180 is a full hemisphere)
  - pfov: output perspective field of view in degrees, 0 < pfov < 180
  - projection_type: ProjectionType member or its name
  - use_vectorized: if True, use the parallel vectorized map generation

  Returns:
  - dewarped image, square with side min(image width, image height)

  Raises:
  InvalidFOVError, InvalidPFOVError, UnrecognizedProjectionError
  """
  validate_fov(fov, pfov)
  projection_type = parse_projection_type(projection_type)
  if img is None:
    raise ValueError("Input image is None")

  region = crop_square_region(img)
  region_height, region_width = region.shape[:2]
  xs, ys = generate_dewarp_maps(region_width, region_height, fov, pfov,
                                projection_type, use_vectorized)
  return apply_dewarp_maps(region, xs, ys)
