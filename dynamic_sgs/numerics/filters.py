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


r"""A library for filter operators.

The filters here are separable: a 3D filter is the tensor product of a 3-point
1D kernel applied successively along each dimension. For the 1D kernel
(h_0, h_1, h_2), one pass along dimension x reads
  g_i = h_0 f_{i-1} + h_1 f_i + h_2 f_{i+1}.
With the box kernel (1/3, 1/3, 1/3) the filter width is twice the grid spacing,
which makes it the test filter of the dynamic sub-grid scale procedure.
"""

from typing import TypeAlias

from dynamic_sgs.utility import common_ops
from dynamic_sgs.utility import types
import tensorflow as tf

FlowFieldVal: TypeAlias = types.FlowFieldVal
FilterKernel: TypeAlias = types.FilterKernel

BOX_KERNEL = (1.0 / 3.0, 1.0 / 3.0, 1.0 / 3.0)
GAUSSIAN_KERNEL = (0.25, 0.5, 0.25)
IDENTITY_KERNEL = (0.0, 1.0, 0.0)

# The two in-plane dimensions are filtered first, followed by the remaining one.
_FILTER_DIMS = (0, 1, 2)


def filter_1d(
    f: FlowFieldVal,
    kernel: FilterKernel,
    dim: int,
) -> FlowFieldVal:
  """Applies the 1D `kernel` to `f` along dimension `dim`.

  Args:
    f: The 3D field to be filtered.
    kernel: The 3 weights of the 1D stencil, ordered from the lower to the
      upper neighbor.
    dim: The dimension along which the kernel is applied.

  Returns:
    The filtered field. The two end planes normal to `dim` do not have both
    neighbors, and hold the values of `f`.
  """
  h_0, h_1, h_2 = kernel
  lower = common_ops.slice_in_dim(f, dim, 0, -2)
  center = common_ops.slice_in_dim(f, dim, 1, -1)
  upper = common_ops.slice_in_dim(f, dim, 2, 0)
  inner = h_0 * lower + h_1 * center + h_2 * upper

  return tf.concat(
      [
          common_ops.slice_in_dim(f, dim, 0, 1),
          inner,
          common_ops.slice_in_dim(f, dim, -1, 0),
      ],
      axis=common_ops.tensor_axis(dim),
  )


def separable_filter(
    f: FlowFieldVal,
    kernel: FilterKernel,
) -> FlowFieldVal:
  """Filters `f` with the tensor product of the 1D `kernel`.

  Three 1D passes are performed, each one only holding its input and output
  fields. Every pass covers the full extent of the other two dimensions, so
  that the stencil of the next pass is fully defined.

  No check is performed on `kernel`: weights that do not sum to one, or
  asymmetric weights, simply change the smoothing.

  Args:
    f: The 3D field to be filtered. Values in halos must be valid.
    kernel: The 3 weights of the 1D stencil.

  Returns:
    A new filtered field, with values in the outermost layer being unfiltered.
  """
  g = f
  for dim in _FILTER_DIMS:
    g = filter_1d(g, kernel, dim)

  return common_ops.replace_interior(f, g)


def test_filter(
    f: FlowFieldVal,
    kernel: FilterKernel = BOX_KERNEL,
) -> FlowFieldVal:
  """Filters `f` at the test filter level.

  Args:
    f: The 3D field to be filtered. Values in halos must be valid.
    kernel: The 1D kernel of the test filter.

  Returns:
    The test-filtered `f`.
  """
  return separable_filter(f, kernel)
