"""
Fisheye dewarp command-line tool.

Reads a fisheye image, dewarps it into a perspective image and writes the
result next to the input as {basename}_{ptype}_{fov}_{pfov}{ext}.

Examples:
  python dewarp_cli.py -img images/fisheye.jpg
  python dewarp_cli.py -img images/fisheye.jpg -fov 180 -pfov 90 -ptype Stereographic
  python dewarp_cli.py -img images/fisheye.jpg -config config/dewarp_params.yaml
"""

import argparse
import os
import sys
import time
from typing import List, Optional

import cv2

from fisheyedewarp import (
  DewarpParams,
  FisheyeDewarp,
  ProjectionType,
  parse_dewarp_params,
  parse_projection_type,
)

DEFAULT_IMAGE = os.path.join("images", "fisheye.jpg")


def build_output_path(image_path: str, projection_type, fov: float, pfov: float) -> str:
  """
  Output file name for a dewarped image: {dir}/{basename}_{ptype}_{fov}_{pfov}{ext}.

  Field of view values are rounded to whole degrees.
  """
  ptype = parse_projection_type(projection_type).value
  directory = os.path.dirname(image_path) or "."
  base_name, ext = os.path.splitext(os.path.basename(image_path))
  return os.path.join(directory, f"{base_name}_{ptype}_{fov:.0f}_{pfov:.0f}{ext}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
  """Parse command line arguments."""
  parser = argparse.ArgumentParser(
    description="Dewarp a fisheye image into a rectilinear perspective image",
    formatter_class=argparse.RawDescriptionHelpFormatter,
    epilog="""
Projection types:
  Linear         equidistant fisheye, r = f * theta
  EqualArea      equisolid fisheye, r = 2f * sin(theta / 2)
  Orthographic   r = f * sin(theta)
  Stereographic  r = 2f * tan(theta / 2)
    """
  )

  parser.add_argument("-fov", type=float, default=None,
                      help="Input fisheye field of view in degrees, 0 < fov <= 180 (default: 180)")
  parser.add_argument("-pfov", type=float, default=None,
                      help="Output perspective field of view in degrees, 0 < pfov < 180 (default: 120)")
  parser.add_argument("-img", default=DEFAULT_IMAGE,
                      help=f"Path to the input fisheye image file (default: {DEFAULT_IMAGE})")
  parser.add_argument("-ptype", default=None,
                      help="Type of projection to apply. Options: "
                           + ", ".join(f"'{p.value}'" for p in ProjectionType)
                           + " (default: Linear)")
  parser.add_argument("-config", default=None,
                      help="YAML file with fov, pfov and projection_type; flags override it")
  parser.add_argument("-output", default=None,
                      help="Output image path (default: derived from the input name)")

  return parser.parse_args(argv)


def resolve_params(args: argparse.Namespace) -> DewarpParams:
  """Combine config file values and command line flags into validated parameters."""
  params = parse_dewarp_params(args.config) if args.config else DewarpParams()

  params = DewarpParams(
    fov=args.fov if args.fov is not None else params.fov,
    pfov=args.pfov if args.pfov is not None else params.pfov,
    projection_type=args.ptype if args.ptype is not None else params.projection_type
  )
  params.validate()
  return params


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point."""
  args = parse_arguments(argv)

  try:
    params = resolve_params(args)
  except (ValueError, FileNotFoundError) as e:
    print(f"Error: {e}", file=sys.stderr)
    return 2

  img = cv2.imread(args.img, cv2.IMREAD_COLOR)
  if img is None:
    print(f"Error: failed to read image: {args.img}", file=sys.stderr)
    return 1

  print(f"Loaded image: {img.shape}")
  print(f"Dewarp parameters: {params}")

  start_time = time.time()
  dewarped = FisheyeDewarp(params).dewarp(img)
  print(f"\033[33mTotal dewarp time: {time.time() - start_time:.4f} seconds\033[0m")

  output_path = args.output or build_output_path(args.img, params.projection_type,
                                                 params.fov, params.pfov)
  if not cv2.imwrite(output_path, dewarped):
    print(f"Error: failed to write image: {output_path}", file=sys.stderr)
    return 1

  print(f"Dewarped image saved to: {output_path}")
  return 0


if __name__ == "__main__":
  sys.exit(main())
