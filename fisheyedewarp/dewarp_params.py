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

from enum import Enum

import yaml


DEFAULT_FOV = 180.0
DEFAULT_PFOV = 120.0


class ProjectionType(Enum):
  """Idealized fisheye lens models relating incidence angle to image radius."""
  LINEAR = "Linear"
  EQUAL_AREA = "EqualArea"
  ORTHOGRAPHIC = "Orthographic"
  STEREOGRAPHIC = "Stereographic"

  def __str__(self):
    return self.value


class DewarpError(ValueError):
  """Base class for dewarp parameter errors."""


class InvalidFOVError(DewarpError):
  """Input fisheye field of view outside 0 < fov <= 180."""

  def __init__(self, value):
    self.value = value
    super().__init__(f"invalid FOV: {value}, must be in the range 0 < fov <= 180")


class InvalidPFOVError(DewarpError):
  """Output perspective field of view outside 0 < pfov < 180."""

  def __init__(self, value):
    self.value = value
    super().__init__(f"invalid PFOV: {value}, must be in the range 0 < pfov < 180")


class UnrecognizedProjectionError(DewarpError):
  """Projection type name that is not one of the supported models."""

  def __init__(self, value):
    self.value = value
    options = ", ".join(f"'{p.value}'" for p in ProjectionType)
    super().__init__(f"unrecognized projection type: {value!r}, options: {options}")


def validate_fov(fov, pfov):
  """
  Check input and output field of view values.

  Parameters:
  - fov: input fisheye field of view in degrees, 0 < fov <= 180
  - pfov: output perspective field of view in degrees, 0 < pfov < 180

  Raises:
  InvalidFOVError or InvalidPFOVError carrying the offending value.
  """
  # Written as negated ranges so NaN is rejected too
  if not (0 < fov <= 180):
    raise InvalidFOVError(fov)
  if not (0 < pfov < 180):
    raise InvalidPFOVError(pfov)


def parse_projection_type(value):
  """
  Resolve a projection type from a ProjectionType member or its name.

  Accepts the exact value ('EqualArea') or the member name ('EQUAL_AREA').

  Raises:
  UnrecognizedProjectionError for anything else.
  """
  if isinstance(value, ProjectionType):
    return value
  if isinstance(value, str):
    try:
      return ProjectionType(value)
    except ValueError:
      pass
    if value in ProjectionType.__members__:
      return ProjectionType[value]
  raise UnrecognizedProjectionError(value)


class DewarpParams:
  """
  Parameters of one dewarp operation.

  Holds the input fisheye field of view, the output perspective field of view
  and the lens projection model. The projection type is resolved on
  construction, so unknown names fail before any image work.
  """

  def __init__(self, fov=DEFAULT_FOV, pfov=DEFAULT_PFOV, projection_type=ProjectionType.LINEAR):
    """
    Initialize dewarp parameters.

    Parameters:
    - fov: input fisheye field of view in degrees (180 is a full hemisphere)
    - pfov: output perspective field of view in degrees
    - projection_type: ProjectionType member or its name
    """
    self.fov = float(fov)
    self.pfov = float(pfov)
    self.projection_type = parse_projection_type(projection_type)

  def to_dict(self):
    """Convert parameters to dictionary format."""
    return {
      'fov': self.fov,
      'pfov': self.pfov,
      'projection_type': self.projection_type.value
    }

  def validate(self):
    """
    Validate field of view ranges.

    Raises:
    InvalidFOVError or InvalidPFOVError if a value is out of range.
    """
    validate_fov(self.fov, self.pfov)

  def __eq__(self, other):
    if not isinstance(other, DewarpParams):
      return NotImplemented
    return self.to_dict() == other.to_dict()

  def __str__(self):
    return (f"DewarpParams(fov={self.fov:.1f}, pfov={self.pfov:.1f}, "
            f"projection_type={self.projection_type.value})")

  def __repr__(self):
    return self.__str__()


def parse_dewarp_params(filename):
  """
  Parse dewarp parameters from a YAML file and return a DewarpParams object.

  Expected keys are fov, pfov and projection_type. Missing keys fall back to
  the defaults (180, 120, Linear).

  Parameters:
  - filename: path to YAML parameters file

  Returns:
  Validated DewarpParams object.

  Raises:
  ValueError if the file format or a value is invalid.
  FileNotFoundError if the file doesn't exist.
  """
  try:
    with open(filename, 'r') as f:
      data = yaml.safe_load(f)
  except FileNotFoundError:
    raise FileNotFoundError(f"Dewarp parameters file not found: {filename}")
  except yaml.YAMLError as e:
    raise ValueError(f"Invalid YAML format in file '{filename}': {e}")

  if data is None:
    data = {}
  if not isinstance(data, dict):
    raise ValueError(f"Dewarp parameters file '{filename}' must contain a mapping")

  try:
    params = DewarpParams(
      fov=data.get('fov', DEFAULT_FOV),
      pfov=data.get('pfov', DEFAULT_PFOV),
      projection_type=data.get('projection_type', ProjectionType.LINEAR.value)
    )
  except (TypeError, ValueError) as e:
    raise ValueError(f"Invalid parameter format in YAML file '{filename}': {e}")

  params.validate()
  return params


def parse_dewarp_params_dict(filename):
  """Parse dewarp parameters from file and return dictionary format."""
  return parse_dewarp_params(filename).to_dict()
