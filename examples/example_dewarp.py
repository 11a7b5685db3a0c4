"""
Example: dewarp one fisheye image with every projection type and several
perspective fields of view, reusing cached maps across calls.
"""

import os
import sys

import cv2
import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dewarp_cli import DEFAULT_IMAGE, build_output_path
from fisheyedewarp import CacheManager, DewarpParams, FisheyeDewarp, ProjectionType, parse_dewarp_params


def dewarp_all_projection_types(image_path=DEFAULT_IMAGE, config_path="config/dewarp_params.yaml"):
  """Dewarp with the configured fields of view under each projection type."""
  base_params = parse_dewarp_params(config_path)
  print(f"Loaded dewarp parameters: {base_params}")

  fisheye_img = cv2.imread(image_path)
  if fisheye_img is None:
    raise ValueError(f"Could not load {image_path}")

  cache_manager = CacheManager()
  for projection_type in ProjectionType:
    params = DewarpParams(base_params.fov, base_params.pfov, projection_type)
    dewarper = FisheyeDewarp(params, cache_manager=cache_manager)
    dewarped = dewarper.dewarp(fisheye_img)

    output_path = build_output_path(image_path, projection_type, params.fov, params.pfov)
    cv2.imwrite(output_path, dewarped)
    print(f"Saved: {output_path}")

    # Same parameters again should come straight from the cache
    if np.array_equal(dewarped, dewarper.dewarp(fisheye_img)):
      print("✓ Cache working correctly - identical results from cached maps")
    else:
      print("✗ Cache issue - results differ")

  cache_manager.print_status()
  return cache_manager


def demonstrate_pfov_comparison(image_path=DEFAULT_IMAGE):
  """Dewarp with a range of perspective fields of view."""
  print("\n" + "=" * 60)
  print("PERSPECTIVE FIELD OF VIEW COMPARISON")
  print("=" * 60)

  fisheye_img = cv2.imread(image_path)
  if fisheye_img is None:
    raise ValueError(f"Could not load {image_path}")

  for pfov in [30, 60, 90, 120, 150, 170]:
    params = DewarpParams(fov=180.0, pfov=pfov, projection_type=ProjectionType.LINEAR)
    dewarped = FisheyeDewarp(params).dewarp(fisheye_img)
    output_path = build_output_path(image_path, params.projection_type, params.fov, params.pfov)
    cv2.imwrite(output_path, dewarped)
    print(f"  Saved: {output_path}")


if __name__ == "__main__":
  image = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_IMAGE
  dewarp_all_projection_types(image)
  demonstrate_pfov_comparison(image)
