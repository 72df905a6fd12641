# Copyright 2025 The dynamic_sgs Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Library for the configuration of the dynamic sub-grid scale closure.

The parameters can be set either from command line flags through
`SgsParameters.from_flags`, or directly with `SgsParameters.create`.
"""

import dataclasses
import enum
from typing import Optional, Sequence, Tuple

from absl import flags
from absl import logging
import numpy as np
from dynamic_sgs.numerics import filters
from dynamic_sgs.utility import types
import tensorflow as tf

# The lower and upper bounds of the dynamic model coefficient. Negative values
# (backscatter) are removed for numerical stability.
CD_MIN = 0.0
CD_MAX = 0.15

# The ratio between the test filter width and the grid filter width.
TEST_FILTER_RATIO = 2
TEST_FILTER_RATIO_SQUARE = TEST_FILTER_RATIO**2

# The number of ghost cell layers on each face of the grid.
HALO_WIDTH = 1

_NX = flags.DEFINE_integer(
    'nx', 16, 'The number of interior cells in dimension 0.',
    allow_override=True)
_NY = flags.DEFINE_integer(
    'ny', 16, 'The number of interior cells in dimension 1.',
    allow_override=True)
_NZ = flags.DEFINE_integer(
    'nz', 16, 'The number of interior cells in dimension 2.',
    allow_override=True)
_DX = flags.DEFINE_float(
    'dx', 1.0, 'The grid spacing in dimension 0.', allow_override=True)
_DY = flags.DEFINE_float(
    'dy', 1.0, 'The grid spacing in dimension 1.', allow_override=True)
_DZ = flags.DEFINE_float(
    'dz', 1.0, 'The grid spacing in dimension 2.', allow_override=True)
_DELTA_SQUARE = flags.DEFINE_float(
    'delta_square', None,
    'The square of the grid filter width. If not set, it is computed from the '
    'grid spacings with `delta_formula`.')
_DELTA_FORMULA = flags.DEFINE_enum(
    'delta_formula', 'diagonal', ['diagonal', 'geometric_mean'],
    'The formula for the square of the grid filter width: `diagonal` for '
    'dx^2 + dy^2 + dz^2, `geometric_mean` for (dx dy dz)^(2/3).')
_EPSILON = flags.DEFINE_float(
    'sgs_epsilon', 1e-12,
    'A small number added to M_ij M_ij to avoid division by zero.')
_FILTER_KERNEL = flags.DEFINE_enum(
    'filter_kernel', 'box', ['box', 'gaussian'],
    'The 1D kernel of the test filter.')


class DeltaFormula(enum.Enum):
  """Formulas of the square of the grid filter width."""
  DIAGONAL = 'diagonal'
  GEOMETRIC_MEAN = 'geometric_mean'


_FILTER_KERNELS = {
    'box': filters.BOX_KERNEL,
    'gaussian': filters.GAUSSIAN_KERNEL,
}


def delta_square_from_grid_spacings(
    grid_spacings: Sequence[float],
    delta_formula: DeltaFormula,
) -> float:
  """Computes the square of the grid filter width.

  Args:
    grid_spacings: The grid spacing in dimensions 0, 1, and 2.
    delta_formula: Which formulation to use for delta.

  Returns:
    The square of the grid filter width.

  Raises:
    ValueError: If `delta_formula` is not one of `DeltaFormula`.
  """
  dx, dy, dz = grid_spacings
  match delta_formula:
    case DeltaFormula.DIAGONAL:
      return float(dx**2 + dy**2 + dz**2)
    case DeltaFormula.GEOMETRIC_MEAN:
      return float((dx * dy * dz) ** (2.0 / 3.0))
    case _:
      raise ValueError(f'Unhandled delta formula {delta_formula}.')


@dataclasses.dataclass(frozen=True)
class SgsParameters:
  """Parameters of the dynamic Smagorinsky closure."""

  # The number of interior cells (nx, ny, nz), excluding ghost cells.
  grid_size: Tuple[int, int, int]

  # The uniform grid spacings (dx, dy, dz).
  grid_spacings: Tuple[float, float, float]

  # The square of the grid filter width.
  delta_square: float

  # A small number that guards the division by M_ij M_ij.
  epsilon: float = 1e-12

  # The 1D kernel of the test filter.
  filter_kernel: Tuple[float, float, float] = filters.BOX_KERNEL

  dtype: tf.DType = types.TF_DTYPE

  def __post_init__(self):
    if len(self.grid_size) != 3 or any(n < 1 for n in self.grid_size):
      raise ValueError(
          'Grid size has to have 3 positive numbers. {} is given.'.format(
              self.grid_size))
    if len(self.grid_spacings) != 3 or any(
        h <= 0.0 for h in self.grid_spacings):
      raise ValueError(
          'Grid spacings have to be 3 positive numbers. {} is given.'.format(
              self.grid_spacings))
    if self.delta_square < 0.0:
      raise ValueError(
          'The square of the filter width has to be non-negative. {} is '
          'given.'.format(self.delta_square))
    if self.epsilon < 0.0:
      raise ValueError(
          'Epsilon has to be non-negative. {} is given.'.format(self.epsilon))
    if len(self.filter_kernel) != 3:
      raise ValueError(
          'The filter kernel has to have 3 weights. {} is given.'.format(
              self.filter_kernel))

    if not np.isclose(np.sum(self.filter_kernel), 1.0):
      logging.warning(
          'The weights of the filter kernel %r do not sum to 1. A constant '
          'field will not be preserved by the test filter.',
          self.filter_kernel)

  @classmethod
  def create(
      cls,
      grid_size: Sequence[int],
      grid_spacings: Sequence[float],
      delta_square: Optional[float] = None,
      delta_formula: DeltaFormula = DeltaFormula.DIAGONAL,
      epsilon: float = 1e-12,
      filter_kernel: Sequence[float] = filters.BOX_KERNEL,
      dtype: tf.DType = types.TF_DTYPE,
  ) -> 'SgsParameters':
    """Creates the parameters from explicit arguments.

    Args:
      grid_size: The number of interior cells in each dimension.
      grid_spacings: The grid spacing in each dimension.
      delta_square: The square of the grid filter width. If `None`, it is
        computed from `grid_spacings` with `delta_formula`.
      delta_formula: The formula for `delta_square` when it is not given.
      epsilon: A small number that guards the division by M_ij M_ij.
      filter_kernel: The 1D kernel of the test filter.
      dtype: The data type of the fields.

    Returns:
      An instance of `SgsParameters`.
    """
    grid_spacings = tuple(float(h) for h in grid_spacings)
    if delta_square is None:
      delta_square = delta_square_from_grid_spacings(
          grid_spacings, delta_formula)

    params = cls(
        grid_size=tuple(int(n) for n in grid_size),
        grid_spacings=grid_spacings,
        delta_square=float(delta_square),
        epsilon=float(epsilon),
        filter_kernel=tuple(float(h) for h in filter_kernel),
        dtype=dtype,
    )
    logging.info('Dynamic SGS parameters: %r', params)
    return params

  @classmethod
  def from_flags(cls) -> 'SgsParameters':
    """Creates the parameters from command line flags."""
    return cls.create(
        grid_size=(_NX.value, _NY.value, _NZ.value),
        grid_spacings=(_DX.value, _DY.value, _DZ.value),
        delta_square=_DELTA_SQUARE.value,
        delta_formula=DeltaFormula(_DELTA_FORMULA.value),
        epsilon=_EPSILON.value,
        filter_kernel=_FILTER_KERNELS[_FILTER_KERNEL.value],
    )

  @property
  def halo_width(self) -> int:
    return HALO_WIDTH

  @property
  def nx(self) -> int:
    return self.grid_size[0]

  @property
  def ny(self) -> int:
    return self.grid_size[1]

  @property
  def nz(self) -> int:
    return self.grid_size[2]

  @property
  def dx(self) -> float:
    return self.grid_spacings[0]

  @property
  def dy(self) -> float:
    return self.grid_spacings[1]

  @property
  def dz(self) -> float:
    return self.grid_spacings[2]

  @property
  def field_shape(self) -> Tuple[int, int, int]:
    """The tensor shape [nz, nx, ny] of a field with its ghost cells."""
    return (self.nz + 2 * HALO_WIDTH, self.nx + 2 * HALO_WIDTH,
            self.ny + 2 * HALO_WIDTH)
