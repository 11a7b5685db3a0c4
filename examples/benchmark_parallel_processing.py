"""
Benchmark script for dewarp map generation.

Compares the reference (per-pixel loop) and parallel vectorized map generation
for several region sizes, then measures cache hits.
"""

import os
import sys
import time

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fisheyedewarp import DewarpParams, FisheyeDewarp, ProjectionType, generate_dewarp_maps


def benchmark_dewarp_performance():
  """Benchmark map generation for each projection type and region size."""

  print("=" * 60)
  print("FISHEYE DEWARP PARALLEL PROCESSING BENCHMARK")
  print("=" * 60)

  test_sizes = [
    (512, "Small"),
    (1024, "Medium"),
    (2048, "Large"),
    (4096, "Very Large")
  ]

  dewarpers = {
    projection_type: FisheyeDewarp(DewarpParams(180.0, 120.0, projection_type))
    for projection_type in ProjectionType
  }

  for projection_type, dewarper in dewarpers.items():
    print("\n" + "=" * 60)
    print(f"{projection_type.value.upper()} BENCHMARKS")
    print("=" * 60)

    for size, size_name in test_sizes:
      print(f"\n{size_name} region size: {size}x{size}")
      print("-" * 40)

      start_time = time.time()
      xs, ys = dewarper.get_dewarp_maps(size, size)
      total_time = time.time() - start_time

      total_pixels = size * size
      pixels_per_second = total_pixels / total_time if total_time > 0 else 0

      print(f"✓ Total processing time: {total_time:.4f} seconds")
      print(f"✓ Pixels processed: {total_pixels:,}")
      print(f"✓ Performance: {pixels_per_second:,.0f} pixels/second")
      print(f"✓ Memory usage: {(xs.nbytes + ys.nbytes) / 1024 / 1024:.1f} MB")

  print("\n" + "=" * 60)
  print("REFERENCE IMPLEMENTATION")
  print("=" * 60)

  start_time = time.time()
  generate_dewarp_maps(256, 256, 180.0, 120.0, ProjectionType.LINEAR, use_vectorized=False)
  reference_time = time.time() - start_time
  start_time = time.time()
  generate_dewarp_maps(256, 256, 180.0, 120.0, ProjectionType.LINEAR, use_vectorized=True)
  vectorized_time = time.time() - start_time
  print(f"✓ Reference 256x256: {reference_time:.4f} seconds")
  print(f"✓ Vectorized 256x256: {vectorized_time:.4f} seconds")
  if vectorized_time > 0:
    print(f"✓ Speedup: {reference_time / vectorized_time:.1f}x")

  print("\n" + "=" * 60)
  print("CACHE PERFORMANCE")
  print("=" * 60)

  linear = dewarpers[ProjectionType.LINEAR]
  cache_info = linear.get_cache_info()
  print(f"  ✓ Cached map pairs: {cache_info['total_cached_maps']}")
  print(f"  ✓ Memory usage: {cache_info['memory_usage_mb']:.1f} MB")

  start_time = time.time()
  linear.get_dewarp_maps(1024, 1024)
  cache_hit_time = time.time() - start_time
  print(f"✓ Cache hit time: {cache_hit_time:.6f} seconds")


if __name__ == "__main__":
  benchmark_dewarp_performance()
