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


"""Library for writing primitive flow variables to a Tecplot ASCII file.

One line is written for every interior cell, with the index in dimension 0
varying fastest. The columns are the cell center coordinates, density, the
velocity components, pressure, temperature, and the vorticity magnitude.
"""

import collections
import os
from typing import Mapping, Text

from absl import logging
import numpy as np
from dynamic_sgs.base import parameters as parameters_lib
from dynamic_sgs.numerics import calculus
from dynamic_sgs.physics import constants
from dynamic_sgs.physics.turbulence import dynamic_smagorinsky
from dynamic_sgs.utility import common_ops
from dynamic_sgs.utility import types
import tensorflow as tf

FlowFieldVal = types.FlowFieldVal

VARIABLES = ('x', 'y', 'z', 'rho', 'u', 'v', 'w', 'p', 'T', 'Vort. mag.')


def tecplot_filename(step: int, prefix: Text = '') -> Text:
  """Gets the name of the output file at `step`."""
  return f'{prefix}{step}.plt'


def _cell_centers(
    params: parameters_lib.SgsParameters,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
  """Generates the cell center coordinates of the interior as [nz, nx, ny]."""
  x, y, z = [
      (np.arange(n) + 0.5) * h
      for n, h in zip(params.grid_size, params.grid_spacings)
  ]
  zz, xx, yy = np.meshgrid(z, x, y, indexing='ij')
  return xx, yy, zz


def primitive_diagnostics(
    params: parameters_lib.SgsParameters,
    rho: FlowFieldVal,
    rho_u: FlowFieldVal,
    rho_v: FlowFieldVal,
    rho_w: FlowFieldVal,
    rho_e: FlowFieldVal,
) -> Mapping[Text, np.ndarray]:
  """Computes the diagnostic variables in the interior cells.

  The pressure and the temperature follow from the ideal gas law:
    p = (γ - 1) (ρE - ½ρ|u|²),  T = p / (R ρ).
  The vorticity magnitude is the magnitude of the rotation rate tensor
  Ωᵢⱼ = ½(∂uⱼ/∂xᵢ - ∂uᵢ/∂xⱼ), i.e. half the magnitude of the curl.

  Args:
    params: The configuration of the grid.
    rho: The density, with valid ghost cells.
    rho_u: The momentum in dimension 0, with valid ghost cells.
    rho_v: The momentum in dimension 1, with valid ghost cells.
    rho_w: The momentum in dimension 2, with valid ghost cells.
    rho_e: The total energy per unit volume, with valid ghost cells.

  Returns:
    An ordered mapping from the names in `VARIABLES` to arrays of shape
    [nz, nx, ny].
  """
  velocity = dynamic_smagorinsky.primitive_velocity(rho, rho_u, rho_v, rho_w)
  u, v, w = velocity
  p = (constants.GAMMA - 1.0) * (
      rho_e - 0.5 * rho * (u**2 + v**2 + w**2))
  t = p / (constants.R_D * rho)
  omega = calculus.curl(velocity, params.grid_spacings)
  vort_mag = 0.5 * tf.math.sqrt(omega[0]**2 + omega[1]**2 + omega[2]**2)

  halos = [params.halo_width] * 3
  inner = lambda f: common_ops.strip_halos(f, halos).numpy()
  xx, yy, zz = _cell_centers(params)

  return collections.OrderedDict(
      zip(VARIABLES, (xx, yy, zz, inner(rho), inner(u), inner(v), inner(w),
                      inner(p), inner(t), inner(vort_mag))))


def write_tecplot(
    path: Text,
    params: parameters_lib.SgsParameters,
    rho: FlowFieldVal,
    rho_u: FlowFieldVal,
    rho_v: FlowFieldVal,
    rho_w: FlowFieldVal,
    rho_e: FlowFieldVal,
    title: Text = '3-D compressible case',
) -> Text:
  """Writes the diagnostic variables to `path` in Tecplot point format.

  Args:
    path: The full path of the output file.
    params: The configuration of the grid.
    rho: The density, with valid ghost cells.
    rho_u: The momentum in dimension 0, with valid ghost cells.
    rho_v: The momentum in dimension 1, with valid ghost cells.
    rho_w: The momentum in dimension 2, with valid ghost cells.
    rho_e: The total energy per unit volume, with valid ghost cells.
    title: The title of the data set.

  Returns:
    The path of the file written.
  """
  data = primitive_diagnostics(params, rho, rho_u, rho_v, rho_w, rho_e)
  # Columns ordered so that x varies fastest, then y, then z.
  columns = np.stack(
      [np.transpose(value, (0, 2, 1)).ravel() for value in data.values()],
      axis=1)

  lines = [f'title     = " {title} "']
  lines.append(f'variables = " {VARIABLES[0]} "')
  lines.extend(f'"{name}"' for name in VARIABLES[1:])
  lines.append('zone t=" "')
  lines.append(
      f'i={params.nx}, j={params.ny}, k={params.nz}, f=point')
  lines.extend(' '.join('%g' % value for value in row) for row in columns)

  dir_name = os.path.dirname(path)
  if dir_name and not tf.io.gfile.exists(dir_name):
    tf.io.gfile.makedirs(dir_name)

  with tf.io.gfile.GFile(path, 'w') as f:
    f.write('\n'.join(lines) + '\n')
  logging.info('Wrote %d cells to %s.', columns.shape[0], path)
  return path
