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


r"""Demo for computing the dynamic Smagorinsky eddy viscosity of analytic flows.

The conservative fields are initialized analytically in all cells, ghost cells
included, which plays the role of the boundary conditions of a flow solver.

Example command line:

  python3 main.py --flow=taylor_green --nx=32 --ny=32 --nz=32 \
    --dx=0.196 --dy=0.196 --dz=0.196 --u_mag=1.0 --rho_ref=1.0 \
    --output_dir=/tmp/sgs --output_fn_template=/tmp/sgs/{var}.png
"""

from typing import Mapping, Text

from absl import app
from absl import flags
from absl import logging
import matplotlib.pyplot as plt
import numpy as np
from dynamic_sgs.base import parameters
from dynamic_sgs.physics import constants
from dynamic_sgs.physics.turbulence import dynamic_smagorinsky
from dynamic_sgs.utility import common_ops
from dynamic_sgs.utility import diagnostic_output
import tensorflow as tf

_FLOW = flags.DEFINE_enum(
    'flow', 'taylor_green', ['shear', 'taylor_green'],
    'The analytic flow field to evaluate the closure on.')
_U_MAG = flags.DEFINE_float(
    'u_mag', 1.0,
    'The magnitude of the velocity of the Taylor-Green vortex.',
    allow_override=True)
_SHEAR_RATE = flags.DEFINE_float(
    'shear_rate', 1.0, 'The velocity gradient du/dy of the shear flow.')
_RHO_REF = flags.DEFINE_float(
    'rho_ref', 1.0, 'The reference density.', allow_override=True)
_P_REF = flags.DEFINE_float(
    'p_ref', 1.0e5, 'The reference pressure.', allow_override=True)
_STEP = flags.DEFINE_integer(
    'step', 0, 'The step number used to name the diagnostic file.')
_OUTPUT_DIR = flags.DEFINE_string(
    'output_dir', None,
    'The directory for the Tecplot diagnostic file. Nothing is written if '
    'not set.')
_OUTPUT_FN_TEMPLATE = flags.DEFINE_string(
    'output_fn_template', None,
    'Output image filename template - should contain {var} as a substring. '
    'No image is saved if not set.')


def _mesh(params: parameters.SgsParameters):
  """Generates cell center coordinates, ghost cells included, as [nz, nx, ny].

  The first interior cell has its center at half a grid spacing from the
  origin.
  """
  x, y, z = [
      (np.arange(n + 2 * params.halo_width) - params.halo_width + 0.5) * h
      for n, h in zip(params.grid_size, params.grid_spacings)
  ]
  zz, xx, yy = np.meshgrid(z, x, y, indexing='ij')
  return xx, yy, zz


def _conservative_fields(
    params: parameters.SgsParameters,
    rho: np.ndarray,
    u: np.ndarray,
    v: np.ndarray,
    w: np.ndarray,
    p: np.ndarray,
) -> Mapping[Text, tf.Tensor]:
  """Converts primitive variables to the conservative fields."""
  rho_e = p / (constants.GAMMA - 1.0) + 0.5 * rho * (u**2 + v**2 + w**2)
  fields = {
      'rho': rho,
      'rho_u': rho * u,
      'rho_v': rho * v,
      'rho_w': rho * w,
      'rho_e': rho_e,
  }
  return {
      key: tf.convert_to_tensor(value, dtype=params.dtype)
      for key, value in fields.items()
  }


def shear_flow(
    params: parameters.SgsParameters,
    shear_rate: float,
    rho0: float,
    p0: float,
) -> Mapping[Text, tf.Tensor]:
  """Initializes a uniform shear flow u = γ y, v = w = 0.

  Args:
    params: The configuration of the grid.
    shear_rate: The velocity gradient γ = du/dy.
    rho0: The density.
    p0: The pressure.

  Returns:
    A dictionary of the conservative fields `rho`, `rho_u`, `rho_v`, `rho_w`,
    and `rho_e`.
  """
  _, yy, _ = _mesh(params)
  rho = rho0 * np.ones_like(yy)
  zeros = np.zeros_like(yy)
  return _conservative_fields(params, rho, shear_rate * yy, zeros, zeros,
                              p0 * np.ones_like(yy))


def taylor_green_vortex(
    params: parameters.SgsParameters,
    v0: float,
    rho0: float,
    p0: float,
) -> Mapping[Text, tf.Tensor]:
  """Initializes the Taylor-Green vortex in a [0, 2π]³ periodic box.

  Reference:
  J. R. DeBonis, Solutions of the Taylor-Green vortex problem using
  high-resolution explicit finite difference methods, 51st AIAA Aerospace
  Sciences Meeting including the New Horizons Forum and Aerospace Exposition,
  2013.

  Args:
    params: The configuration of the grid.
    v0: The magnitude of the velocity component in dim 0.
    rho0: The reference density.
    p0: The reference pressure.

  Returns:
    A dictionary of the conservative fields `rho`, `rho_u`, `rho_v`, `rho_w`,
    and `rho_e`.
  """
  xx, yy, zz = _mesh(params)
  lx, ly, lz = [
      n * h for n, h in zip(params.grid_size, params.grid_spacings)
  ]
  kx, ky, kz = 2.0 * np.pi / lx, 2.0 * np.pi / ly, 2.0 * np.pi / lz
  u = v0 * np.sin(kx * xx) * np.cos(ky * yy) * np.cos(kz * zz)
  v = -v0 * np.cos(kx * xx) * np.sin(ky * yy) * np.cos(kz * zz)
  w = np.zeros_like(xx)
  p = p0 + rho0 * v0**2 / 16.0 * (np.cos(2.0 * kz * zz) + 2.0) * (
      np.cos(2.0 * kx * xx) + np.cos(2.0 * ky * yy))
  return _conservative_fields(params, rho0 * np.ones_like(xx), u, v, w, p)


def contour_plot(result, lx, ly, output):
  """Saves contour-plot of the middle slice of 3d data in result in output."""
  nz, nx, ny = result.shape

  x = np.linspace(0.0, lx, nx)
  y = np.linspace(0.0, ly, ny)

  fig, ax = plt.subplots(figsize=(8, 6))
  c = ax.contourf(x, y, result[nz // 2, ...].transpose(), cmap='jet', levels=21)
  fig.colorbar(c)
  ax.axis('equal')

  with tf.io.gfile.GFile(output, 'wb') as f:
    fig.savefig(f)
  plt.close(fig)


def run(
    params: parameters.SgsParameters,
    states: Mapping[Text, tf.Tensor],
) -> Mapping[Text, tf.Tensor]:
  """Evaluates the closure on `states`.

  Args:
    params: The configuration of the closure.
    states: The conservative fields `rho`, `rho_u`, `rho_v`, and `rho_w`.

  Returns:
    A dictionary with the eddy viscosity `mu_sgs` and the model coefficient
    `c_d`.

  Raises:
    tf.errors.InvalidArgumentError: If the eddy viscosity is not finite.
  """
  model = dynamic_smagorinsky.DynamicSmagorinskyModel(params)
  fields = (states['rho'], states['rho_u'], states['rho_v'], states['rho_w'])

  mu_sgs = tf.Variable(tf.zeros(params.field_shape, dtype=params.dtype))
  model.turbulent_viscosity(*fields, mu_sgs=mu_sgs)
  common_ops.check_finite(mu_sgs, 'mu_sgs')
  c_d = model.coefficient(*fields)

  halos = [params.halo_width] * 3
  for name, value in (('mu_sgs', mu_sgs), ('c_d', c_d)):
    inner = common_ops.strip_halos(tf.convert_to_tensor(value), halos)
    logging.info('%s: min = %g, mean = %g, max = %g.', name,
                 float(tf.math.reduce_min(inner)),
                 float(tf.math.reduce_mean(inner)),
                 float(tf.math.reduce_max(inner)))

  return {'mu_sgs': tf.convert_to_tensor(mu_sgs), 'c_d': c_d}


def main(args):
  del args

  params = parameters.SgsParameters.from_flags()
  if _FLOW.value == 'shear':
    states = shear_flow(params, _SHEAR_RATE.value, _RHO_REF.value,
                        _P_REF.value)
  else:
    states = taylor_green_vortex(params, _U_MAG.value, _RHO_REF.value,
                                 _P_REF.value)

  result = run(params, states)

  if _OUTPUT_DIR.value:
    diagnostic_output.write_tecplot(
        f'{_OUTPUT_DIR.value}/'
        f'{diagnostic_output.tecplot_filename(_STEP.value)}',
        params, states['rho'], states['rho_u'], states['rho_v'],
        states['rho_w'], states['rho_e'])

  if _OUTPUT_FN_TEMPLATE.value:
    halos = [params.halo_width] * 3
    lx, ly = params.nx * params.dx, params.ny * params.dy
    for var, value in result.items():
      contour_plot(
          common_ops.strip_halos(value, halos).numpy(), lx, ly,
          _OUTPUT_FN_TEMPLATE.value.format(var=var))


if __name__ == '__main__':
  app.run(main)
