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


r"""The dynamic Smagorinsky sub-grid scale model for compressible flows.

The model coefficient is determined locally with the dynamic procedure of
Germano, using the least-squares simplification of Lilly:
  Cd = -1/2 Lᵢⱼ Mᵢⱼ / (Mᵢⱼ Mᵢⱼ + ε),
where the Leonard stress Lᵢⱼ is resolved between the grid and the test filter
widths, and
  Mᵢⱼ = Δ² (4 |Ŝ| Ŝᵢⱼ - (|S| Sᵢⱼ)^)
compares the model at the two filter widths (the test filter being twice the
grid filter width). Cd is clipped to [0, 0.15], and the eddy viscosity is
  μ_sgs = ρ Cd Δ² |S|.

References:
[1] Germano, M., Piomelli, U., Moin, P. and Cabot, W.H., 1991. A dynamic
    subgrid-scale eddy viscosity model. Physics of Fluids A: Fluid Dynamics,
    3(7), pp.1760-1765.
[2] Lilly, D.K., 1992. A proposed modification of the Germano subgrid-scale
    closure method. Physics of Fluids A: Fluid Dynamics, 4(3), pp.633-635.

All fields carry one layer of ghost cells, which must be valid on input. The
model is evaluated in the interior cells only.
"""

import functools
import itertools
from typing import Callable, NamedTuple, Optional, Sequence, TypeAlias, Union

from absl import logging
from dynamic_sgs.base import parameters as parameters_lib
from dynamic_sgs.numerics import calculus
from dynamic_sgs.numerics import filters
from dynamic_sgs.utility import common_ops
from dynamic_sgs.utility import types
import tensorflow as tf

FlowFieldVal: TypeAlias = types.FlowFieldVal
FloatSequence: TypeAlias = types.FloatSequence
TensorField: TypeAlias = types.TensorField
FilterFn: TypeAlias = Callable[[FlowFieldVal], FlowFieldVal]


class GermanoTerms(NamedTuple):
  """Intermediate fields of the dynamic procedure."""
  # The deviatoric Leonard stress tensor.
  l_ij: TensorField
  # The model tensor.
  m_ij: TensorField
  # The magnitude of the strain rate at the grid filter level.
  strain_rate_magnitude: FlowFieldVal
  # The clipped model coefficient.
  coefficient: FlowFieldVal


def primitive_velocity(
    rho: FlowFieldVal,
    rho_u: FlowFieldVal,
    rho_v: FlowFieldVal,
    rho_w: FlowFieldVal,
) -> types.VectorField:
  """Converts the momentum to velocity.

  Note that the density is not checked: a non-positive `rho` produces
  non-finite velocity that propagates to every derived quantity.

  Args:
    rho: The density.
    rho_u: The momentum in dimension 0.
    rho_v: The momentum in dimension 1.
    rho_w: The momentum in dimension 2.

  Returns:
    The 3 velocity components.
  """
  rho_inv = 1.0 / rho
  return (rho_u * rho_inv, rho_v * rho_inv, rho_w * rho_inv)


def velocity_product(
    velocity: Sequence[FlowFieldVal], i: int, j: int) -> FlowFieldVal:
  """Computes uᵢuⱼ."""
  return velocity[i] * velocity[j]


def einsum_ij(a: TensorField, b: TensorField) -> FlowFieldVal:
  """Performs the double contraction aᵢⱼ bᵢⱼ over all nine components.

  Args:
    a: A 3 x 3 structure of 3D fields with a[i][j] being the component ij.
    b: A 3 x 3 structure of 3D fields with b[i][j] being the component ij.

  Returns:
    The Einstein sum of `a` and `b`.

  Raises:
    ValueError if the first and second dimension of `a` and `b` mismatch.
  """
  n1 = len(a)
  n2 = len(a[0])
  if n1 != len(b) or n2 != len(b[0]):
    raise ValueError(
        'Dimension mismatch: a is {} x {}, b is {} x {}'.format(
            n1, n2, len(b), len(b[0])))

  res = tf.zeros_like(a[0][0])
  for i, j in itertools.product(range(n1), range(n2)):
    res += a[i][j] * b[i][j]
  return res


def strain_rate_component(
    velocity: Sequence[FlowFieldVal],
    i: int,
    j: int,
    grid_spacings: FloatSequence,
) -> FlowFieldVal:
  """Computes Sᵢⱼ = 0.5 (∂uᵢ/∂xⱼ + ∂uⱼ/∂xᵢ)."""
  du_i_dx_j = calculus.deriv_centered(velocity[i], j, grid_spacings[j])
  if i == j:
    return du_i_dx_j
  du_j_dx_i = calculus.deriv_centered(velocity[j], i, grid_spacings[i])
  return common_ops.average(du_i_dx_j, du_j_dx_i)


def strain_rate_tensor(
    velocity: Sequence[FlowFieldVal],
    grid_spacings: FloatSequence,
) -> TensorField:
  """Computes all nine components of the strain rate tensor.

  Note that the divergence is not removed from the diagonal components.

  Args:
    velocity: The 3 velocity components.
    grid_spacings: The grid spacing in dimensions 0, 1, and 2.

  Returns:
    The strain rate tensor, which is valid in the interior cells.
  """
  return [
      [strain_rate_component(velocity, i, j, grid_spacings) for j in range(3)]
      for i in range(3)
  ]


def strain_rate_magnitude(strain_rate: TensorField) -> FlowFieldVal:
  """Computes |S| = √(2 Sᵢⱼ Sᵢⱼ)."""
  return tf.math.sqrt(2.0 * einsum_ij(strain_rate, strain_rate))


def leonard_stress(
    velocity: Sequence[FlowFieldVal],
    velocity_filtered: Sequence[FlowFieldVal],
    filter_fn: FilterFn,
) -> TensorField:
  """Computes the Leonard stress Lᵢⱼ = (uᵢuⱼ)^ - ûᵢûⱼ.

  The product uᵢuⱼ only lives until it is filtered.

  Args:
    velocity: The 3 velocity components.
    velocity_filtered: The 3 test-filtered velocity components.
    filter_fn: The test filter.

  Returns:
    The Leonard stress tensor.
  """

  def resolved_stress(i, j):
    """Computes the component ij of the Leonard stress."""
    return (filter_fn(velocity_product(velocity, i, j)) -
            velocity_product(velocity_filtered, i, j))

  return [[resolved_stress(i, j) for j in range(3)] for i in range(3)]


def remove_trace(l_ij: TensorField) -> TensorField:
  """Returns the deviatoric part Lᵢⱼ - 1/3 Lₖₖ δᵢⱼ of `l_ij`."""
  trace_third = (l_ij[0][0] + l_ij[1][1] + l_ij[2][2]) / 3.0
  return [[l_ij[i][j] - trace_third if i == j else l_ij[i][j]
           for j in range(3)]
          for i in range(3)]


def model_tensor(
    velocity: Sequence[FlowFieldVal],
    velocity_filtered: Sequence[FlowFieldVal],
    s: FlowFieldVal,
    s_filtered: FlowFieldVal,
    delta_square: float,
    grid_spacings: FloatSequence,
    filter_fn: FilterFn,
) -> TensorField:
  """Computes the model tensor Mᵢⱼ = Δ² (4 Bᵢⱼ - Âᵢⱼ).

  Here Aᵢⱼ = |S| Sᵢⱼ is computed from the velocity and then test-filtered, and
  Bᵢⱼ = |Ŝ| Ŝᵢⱼ is computed from the test-filtered velocity. The factor 4 is
  the square of the ratio between the test and the grid filter widths.

  The components are built one at a time, so that Aᵢⱼ, Âᵢⱼ, and Bᵢⱼ only
  exist for one component at any moment.

  Args:
    velocity: The 3 velocity components.
    velocity_filtered: The 3 test-filtered velocity components.
    s: The strain rate magnitude of `velocity`. It has to be 0 in the ghost
      cells, where Aᵢⱼ is undefined.
    s_filtered: The strain rate magnitude of `velocity_filtered`.
    delta_square: The square of the grid filter width.
    grid_spacings: The grid spacing in dimensions 0, 1, and 2.
    filter_fn: The test filter.

  Returns:
    The model tensor.
  """

  def anisotropic_stress(i, j):
    """Computes the component ij of the model tensor."""
    a_ij_filtered = filter_fn(
        s * strain_rate_component(velocity, i, j, grid_spacings))
    b_ij = s_filtered * strain_rate_component(
        velocity_filtered, i, j, grid_spacings)
    return delta_square * (
        parameters_lib.TEST_FILTER_RATIO_SQUARE * b_ij - a_ij_filtered)

  return [[anisotropic_stress(i, j) for j in range(3)] for i in range(3)]


def lilly_coefficient(
    lm: FlowFieldVal,
    mm: FlowFieldVal,
    epsilon: float,
) -> FlowFieldVal:
  """Computes the least-squares coefficient Cd = -0.5 LM / (MM + ε)."""
  return -0.5 * lm / (mm + epsilon)


def clip_coefficient(cd: FlowFieldVal) -> FlowFieldVal:
  """Clips the model coefficient to [CD_MIN, CD_MAX]."""
  return tf.clip_by_value(
      cd, parameters_lib.CD_MIN, parameters_lib.CD_MAX)


def eddy_viscosity(
    rho: FlowFieldVal,
    cd: FlowFieldVal,
    delta_square: float,
    s: FlowFieldVal,
) -> FlowFieldVal:
  """Computes the eddy viscosity μ_sgs = ρ Cd Δ² |S|."""
  return rho * cd * delta_square * s


def _validate_inputs(
    params: parameters_lib.SgsParameters,
    fields: Sequence[FlowFieldVal],
    names: Sequence[str],
) -> None:
  """Checks that all input fields match the configured grid."""
  for field, name in zip(fields, names):
    common_ops.validate_shape(field, params.field_shape, name)


def germano_terms(
    params: parameters_lib.SgsParameters,
    rho: FlowFieldVal,
    rho_u: FlowFieldVal,
    rho_v: FlowFieldVal,
    rho_w: FlowFieldVal,
) -> GermanoTerms:
  """Performs the dynamic procedure up to the clipped model coefficient.

  Args:
    params: The configuration of the closure.
    rho: The density, with valid ghost cells.
    rho_u: The momentum in dimension 0, with valid ghost cells.
    rho_v: The momentum in dimension 1, with valid ghost cells.
    rho_w: The momentum in dimension 2, with valid ghost cells.

  Returns:
    The deviatoric Leonard stress, the model tensor, the strain rate magnitude
    at the grid level, and the clipped model coefficient. All values are valid
    in the interior cells only.

  Raises:
    ValueError: If the shape of any input differs from the configured grid.
  """
  _validate_inputs(
      params, (rho, rho_u, rho_v, rho_w), ('rho', 'rho_u', 'rho_v', 'rho_w'))

  filter_fn = functools.partial(
      filters.test_filter, kernel=params.filter_kernel)
  zeros = tf.zeros_like(rho)

  velocity = primitive_velocity(rho, rho_u, rho_v, rho_w)
  velocity_filtered = tuple(filter_fn(u_i) for u_i in velocity)

  # |S| is only defined in the interior. Keeping it 0 in the ghost cells makes
  # |S| Sᵢⱼ vanish there before it is test-filtered.
  s = common_ops.replace_interior(
      zeros,
      strain_rate_magnitude(
          strain_rate_tensor(velocity, params.grid_spacings)))
  s_filtered = strain_rate_magnitude(
      strain_rate_tensor(velocity_filtered, params.grid_spacings))

  l_ij = remove_trace(leonard_stress(velocity, velocity_filtered, filter_fn))
  m_ij = model_tensor(velocity, velocity_filtered, s, s_filtered,
                      params.delta_square, params.grid_spacings, filter_fn)

  cd = clip_coefficient(
      lilly_coefficient(
          einsum_ij(l_ij, m_ij), einsum_ij(m_ij, m_ij), params.epsilon))
  cd = common_ops.replace_interior(zeros, cd)

  return GermanoTerms(
      l_ij=l_ij, m_ij=m_ij, strain_rate_magnitude=s, coefficient=cd)


def dynamic_smagorinsky(
    params: parameters_lib.SgsParameters,
    rho: FlowFieldVal,
    rho_u: FlowFieldVal,
    rho_v: FlowFieldVal,
    rho_w: FlowFieldVal,
    mu_sgs: Optional[Union[FlowFieldVal, tf.Variable]] = None,
) -> FlowFieldVal:
  """Computes the eddy viscosity with the dynamic Smagorinsky model.

  Args:
    params: The configuration of the closure.
    rho: The density, with valid ghost cells.
    rho_u: The momentum in dimension 0, with valid ghost cells.
    rho_v: The momentum in dimension 1, with valid ghost cells.
    rho_w: The momentum in dimension 2, with valid ghost cells.
    mu_sgs: The eddy viscosity field to be updated. If it is a `tf.Variable`,
      its interior cells are overwritten in place. Values in the ghost cells are
      kept in the result. If `None`, the ghost cells of the result are 0.

  Returns:
    The eddy viscosity, with the interior cells computed by the model.

  Raises:
    ValueError: If the shape of any input differs from the configured grid.
  """
  if mu_sgs is not None:
    _validate_inputs(params, (mu_sgs,), ('mu_sgs',))

  terms = germano_terms(params, rho, rho_u, rho_v, rho_w)
  mu_interior = eddy_viscosity(
      rho, terms.coefficient, params.delta_square, terms.strain_rate_magnitude)

  if mu_sgs is None:
    return common_ops.replace_interior(tf.zeros_like(rho), mu_interior)

  mu_updated = common_ops.replace_interior(
      tf.convert_to_tensor(mu_sgs), mu_interior)
  if isinstance(mu_sgs, tf.Variable):
    mu_sgs.assign(mu_updated)
  return mu_updated


class DynamicSmagorinskyModel(object):
  """The dynamic Smagorinsky closure bound to a configuration."""

  def __init__(self, params: parameters_lib.SgsParameters):
    """Initializes the model.

    Args:
      params: The configuration of the closure.
    """
    self._params = params
    logging.info(
        'Dynamic Smagorinsky model on a %r grid, delta^2 = %g, test filter '
        'kernel %r, Cd in [%g, %g].', params.grid_size, params.delta_square,
        params.filter_kernel, parameters_lib.CD_MIN, parameters_lib.CD_MAX)

  @property
  def params(self) -> parameters_lib.SgsParameters:
    return self._params

  def turbulent_viscosity(
      self,
      rho: FlowFieldVal,
      rho_u: FlowFieldVal,
      rho_v: FlowFieldVal,
      rho_w: FlowFieldVal,
      mu_sgs: Optional[Union[FlowFieldVal, tf.Variable]] = None,
  ) -> FlowFieldVal:
    """Computes the eddy viscosity. See `dynamic_smagorinsky`."""
    return dynamic_smagorinsky(
        self._params, rho, rho_u, rho_v, rho_w, mu_sgs)

  def coefficient(
      self,
      rho: FlowFieldVal,
      rho_u: FlowFieldVal,
      rho_v: FlowFieldVal,
      rho_w: FlowFieldVal,
  ) -> FlowFieldVal:
    """Computes the clipped model coefficient in the interior cells."""
    return germano_terms(
        self._params, rho, rho_u, rho_v, rho_w).coefficient
