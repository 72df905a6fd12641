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


"""Vector calculus operations with second-order central differences."""

from typing import Sequence, TypeAlias

from dynamic_sgs.utility import common_ops
from dynamic_sgs.utility import types
import tensorflow as tf

FlowFieldVal: TypeAlias = types.FlowFieldVal
FloatSequence: TypeAlias = types.FloatSequence
TensorField: TypeAlias = types.TensorField


def deriv_centered(f: FlowFieldVal, dim: int, h: float) -> FlowFieldVal:
  """Computes the central difference (f_{i+1} - f_{i-1}) / 2h along `dim`.

  Args:
    f: The 3D field to be differentiated.
    dim: The dimension of the derivative.
    h: The grid spacing in `dim`.

  Returns:
    The first derivative of `f` along `dim`. The two end planes normal to `dim`
    lack a neighbor and are set to 0.
  """
  df = (common_ops.slice_in_dim(f, dim, 2, 0) -
        common_ops.slice_in_dim(f, dim, 0, -2)) / (2.0 * h)
  paddings = [[0, 0], [0, 0], [0, 0]]
  paddings[dim] = [1, 1]
  return common_ops.pad(df, paddings)


def grad(
    field_vars: Sequence[FlowFieldVal],
    grid_spacings: FloatSequence,
) -> TensorField:
  """Computes the gradient for all variables in `field_vars`.

  Args:
    field_vars: A list of 3D fields.
    grid_spacings: The grid spacing in dimensions 0, 1, and 2.

  Returns:
    The gradients of all variables in `field_vars`. The first index of the
    returned structure indicates the variable, and the second index is the
    direction of the gradient.
  """
  return [
      [deriv_centered(f, dim, grid_spacings[dim]) for dim in (0, 1, 2)]
      for f in field_vars
  ]


def curl(
    velocity: Sequence[FlowFieldVal],
    grid_spacings: FloatSequence,
) -> types.VectorField:
  """Computes the curl of a 3-component vector field.

  Args:
    velocity: The 3 components of the vector field.
    grid_spacings: The grid spacing in dimensions 0, 1, and 2.

  Returns:
    The 3 components of the curl.

  Raises:
    ValueError: If `velocity` does not have exactly 3 components.
  """
  if len(velocity) != 3:
    raise ValueError(
        'The vector has to have exactly 3 components to compute the curl. {} '
        'is given.'.format(len(velocity)))

  def d(i, j):
    """Computes du_i / dx_j."""
    return deriv_centered(velocity[i], j, grid_spacings[j])

  return (d(2, 1) - d(1, 2), d(0, 2) - d(2, 0), d(1, 0) - d(0, 1))
