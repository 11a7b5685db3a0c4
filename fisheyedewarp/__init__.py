"""
Fisheye Dewarp Core Modules

This package contains the core algorithms for fisheye image dewarping:
- Dewarp parameter handling and validation
- Fisheye lens projection models
- Coordinate map generation and remapping
- LRU caching of coordinate maps
"""

from .dewarp_params import (
  DewarpError,
  DewarpParams,
  InvalidFOVError,
  InvalidPFOVError,
  ProjectionType,
  UnrecognizedProjectionError,
  parse_dewarp_params,
  parse_dewarp_params_dict,
  parse_projection_type,
  validate_fov,
)
from .projection_models import focal_scale, forward_radius, output_focal_inverse
from .dewarp_projection import (
  FisheyeDewarp,
  apply_dewarp_maps,
  build_pixel_grid,
  crop_square_region,
  dewarp,
  generate_dewarp_maps,
  select_square_region,
)
from .cache_manager import CacheManager

__all__ = [
  'DewarpError',
  'DewarpParams',
  'InvalidFOVError',
  'InvalidPFOVError',
  'ProjectionType',
  'UnrecognizedProjectionError',
  'parse_dewarp_params',
  'parse_dewarp_params_dict',
  'parse_projection_type',
  'validate_fov',
  'focal_scale',
  'forward_radius',
  'output_focal_inverse',
  'FisheyeDewarp',
  'apply_dewarp_maps',
  'build_pixel_grid',
  'crop_square_region',
  'dewarp',
  'generate_dewarp_maps',
  'select_square_region',
  'CacheManager'
]
