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

import numpy as np

from .dewarp_params import ProjectionType


def focal_scale(projection_type: ProjectionType, dim: float, fov: float) -> float:
  """
  Compute the fisheye scale constant (ifoc) for a projection model.

  The constant is chosen so that the input field of view maps onto the
  region diagonal under the selected lens model.

  Parameters:
  - projection_type: ProjectionType member
  - dim: diagonal of the square region in pixels
  - fov: input fisheye field of view in degrees

  Returns:
  - ifoc: effective focal length in pixels
  """
  if projection_type is ProjectionType.LINEAR:
    return dim * 180.0 / (fov * np.pi)
  elif projection_type is ProjectionType.EQUAL_AREA:
    return dim / (2.0 * np.sin(fov * np.pi / 720.0))
  elif projection_type is ProjectionType.ORTHOGRAPHIC:
    return dim / (2.0 * np.sin(fov * np.pi / 360.0))
  elif projection_type is ProjectionType.STEREOGRAPHIC:
    return dim / (2.0 * np.tan(fov * np.pi / 720.0))
  raise ValueError(f"Unsupported projection type: {projection_type!r}")


def forward_radius(projection_type: ProjectionType, phiang, ifoc: float):
  """
  Map incidence angles to fisheye image radii (rr = ifoc * f(phiang)).

  Parameters:
  - projection_type: ProjectionType member
  - phiang: incidence angle(s) in radians, scalar or numpy array
  - ifoc: scale constant from focal_scale()

  Returns:
  - rr: radius in pixels, same shape as phiang
  """
  if projection_type is ProjectionType.LINEAR:
    return ifoc * phiang
  elif projection_type is ProjectionType.EQUAL_AREA:
    return ifoc * np.sin(phiang / 2.0)
  elif projection_type is ProjectionType.ORTHOGRAPHIC:
    return ifoc * np.sin(phiang)
  elif projection_type is ProjectionType.STEREOGRAPHIC:
    return ifoc * np.tan(phiang / 2.0)
  raise ValueError(f"Unsupported projection type: {projection_type!r}")


def output_focal_inverse(dim: float, pfov: float) -> float:
  """
  Inverse focal length of the rectilinear output camera.

  The destination is always an ordinary perspective image, so this uses the
  gnomonic relationship regardless of the fisheye projection model.
  """
  ofoc = dim / (2.0 * np.tan(pfov * np.pi / 360.0))
  return 1.0 / ofoc
