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


"""Library for common operations on 3D fields with ghost cells.

A field is a single 3D `tf.Tensor` with shape [nz, nx, ny]. The physical
dimensions 0, 1, and 2 (x, y, z) are therefore stored along tensor axes 1, 2,
and 0, respectively.
"""

from typing import Sequence, Tuple, TypeAlias

from dynamic_sgs.utility import types
import tensorflow as tf

FlowFieldVal: TypeAlias = types.FlowFieldVal

# The tensor axis that stores physical dimension 0, 1, and 2.
_TENSOR_AXIS = (1, 2, 0)


def tensor_axis(dim: int) -> int:
  """Returns the tensor axis along which physical dimension `dim` is stored."""
  if dim not in (0, 1, 2):
    raise ValueError(
        'Dimension has to be one of 0, 1, and 2. {} is given.'.format(dim))
  return _TENSOR_AXIS[dim]


def get_shape(f: FlowFieldVal) -> Tuple[int, int, int]:
  """Gets the (nx, ny, nz) shape of a field, ghost cells included."""
  nz, nx, ny = f.shape.as_list()
  return nx, ny, nz


def validate_shape(
    f: FlowFieldVal,
    expected: Sequence[int],
    name: str,
) -> None:
  """Checks that `f` is a 3D field of shape `expected` ([nz, nx, ny]).

  Args:
    f: The field to be checked.
    expected: The expected tensor shape.
    name: The name of the field, used in the error message.

  Raises:
    ValueError: If the rank or the shape of `f` differs from `expected`.
  """
  shape = tuple(f.shape.as_list())
  if shape != tuple(expected):
    raise ValueError(
        'Field `{}` has shape {}, but {} is expected.'.format(
            name, shape, tuple(expected)))


def average(a: FlowFieldVal, b: FlowFieldVal) -> FlowFieldVal:
  return 0.5 * (a + b)


def slice_in_dim(
    f: FlowFieldVal,
    dim: int,
    start: int,
    end: int,
) -> FlowFieldVal:
  """Slices `f` along physical dimension `dim` as `f[..., start:end, ...]`.

  Negative indices follow the Python convention, except that `end = 0` means
  the slice runs to the last element.
  """
  begin = [0, 0, 0]
  size = [-1, -1, -1]
  axis = tensor_axis(dim)
  n = f.shape.as_list()[axis]
  start = n + start if start < 0 else start
  stop = n + end if end <= 0 else end
  begin[axis] = start
  size[axis] = stop - start
  return tf.slice(f, begin, size)


def strip_halos(f: FlowFieldVal, halos: Sequence[int]) -> FlowFieldVal:
  """Removes the halos from the input field.

  Args:
    f: A 3D field with shape [nz, nx, ny], halos included.
    halos: The width of the (symmetric) halos for each dimension in the form of
      [halo_x, halo_y, halo_z].

  Returns:
    The inner part of the field with the halo region removed.
  """
  nz, nx, ny = f.shape.as_list()
  return f[halos[2]:nz - halos[2], halos[0]:nx - halos[0],
           halos[1]:ny - halos[1]]


def pad(
    f: FlowFieldVal,
    paddings: Sequence[Sequence[int]],
    value: float = 0.0,
) -> FlowFieldVal:
  """Pads the input field with a given value.

  Args:
    f: A 3D field with shape [nz, nx, ny].
    paddings: The padding lengths for each dimension in the format: [[pad_x_low,
      pad_x_hi], [pad_y_low, pad_y_hi], [pad_z_low, pad_z_hi]].
    value: The constant value to be used for padding.

  Returns:
    The padded field.
  """
  rotated_paddings = [paddings[2], paddings[0], paddings[1]]
  return tf.pad(f, rotated_paddings, constant_values=value)


def interior_mask(shape: Sequence[int], halo_width: int = 1) -> tf.Tensor:
  """Creates a boolean mask that is `True` away from the outermost halos.

  Args:
    shape: The tensor shape [nz, nx, ny] of the field, halos included.
    halo_width: The number of halo layers on each face.

  Returns:
    A boolean tensor of shape `shape`.
  """
  inner_shape = [n - 2 * halo_width for n in shape]
  return tf.pad(
      tf.constant(True, shape=inner_shape),
      paddings=[[halo_width, halo_width]] * 3,
      mode='CONSTANT',
      constant_values=False)


def replace_interior(
    f: FlowFieldVal,
    g: FlowFieldVal,
    halo_width: int = 1,
) -> FlowFieldVal:
  """Takes values of `g` in the interior and values of `f` in the halos."""
  mask = interior_mask(f.shape.as_list(), halo_width)
  return tf.where(mask, g, f)


def check_finite(f: FlowFieldVal, name: str) -> FlowFieldVal:
  """Checks that `f` contains neither NaN nor Inf.

  Args:
    f: The field to be checked.
    name: The name of the field, reported in the error message.

  Returns:
    `f` itself if all values are finite.

  Raises:
    tf.errors.InvalidArgumentError: If `f` has a non-finite value.
  """
  return tf.debugging.check_numerics(
      f, 'Field `{}` has non-finite values'.format(name))
