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


import numpy as np
from dynamic_sgs.numerics import calculus
import tensorflow as tf

from absl.testing import parameterized


def _mesh(nx, ny, nz, dx, dy, dz):
  """Generates the mesh as 3 tensors of shape [nz, nx, ny]."""
  x = dx * np.arange(nx)
  y = dy * np.arange(ny)
  z = dz * np.arange(nz)
  zz, xx, yy = np.meshgrid(z, x, y, indexing='ij')
  return xx, yy, zz


class CalculusTest(tf.test.TestCase, parameterized.TestCase):

  def setUp(self):
    super(CalculusTest, self).setUp()
    self.grid_spacings = (0.1, 0.2, 0.5)
    self.xx, self.yy, self.zz = _mesh(6, 7, 8, *self.grid_spacings)

  @parameterized.named_parameters(
      ('Dim0', 0, 2.0),
      ('Dim1', 1, -3.0),
      ('Dim2', 2, 0.5),
  )
  def testDerivCenteredIsExactForLinearFunction(self, dim, expected_slope):
    f = tf.convert_to_tensor(
        2.0 * self.xx - 3.0 * self.yy + 0.5 * self.zz, dtype=tf.float32)

    res = self.evaluate(
        calculus.deriv_centered(f, dim, self.grid_spacings[dim]))

    axis = (1, 2, 0)[dim]
    interior = np.moveaxis(res, axis, 0)[1:-1]
    end_planes = np.moveaxis(res, axis, 0)[[0, -1]]

    with self.subTest(name='Interior'):
      self.assertAllClose(
          expected_slope * np.ones_like(interior), interior, atol=1e-4)

    with self.subTest(name='EndPlanesAreZero'):
      self.assertAllEqual(np.zeros_like(end_planes), end_planes)

  def testGradOrdersVariablesThenDirections(self):
    u = tf.convert_to_tensor(3.0 * self.yy, dtype=tf.float32)
    v = tf.convert_to_tensor(-1.0 * self.zz, dtype=tf.float32)

    res = self.evaluate(calculus.grad((u, v), self.grid_spacings))

    self.assertLen(res, 2)
    self.assertLen(res[0], 3)
    self.assertAllClose(3.0 * np.ones((8, 4, 5)),
                        res[0][1][:, 1:-1, 1:-1], atol=1e-4)
    self.assertAllClose(np.zeros((8, 4, 5)), res[0][0][:, 1:-1, 1:-1])
    self.assertAllClose(-1.0 * np.ones((6, 6, 7)),
                        res[1][2][1:-1, ...], atol=1e-4)

  def testCurlOfSolidBodyRotationIsTwiceTheAngularVelocity(self):
    omega = 1.5
    u = tf.convert_to_tensor(-omega * self.yy, dtype=tf.float32)
    v = tf.convert_to_tensor(omega * self.xx, dtype=tf.float32)
    w = tf.zeros_like(u)

    res = self.evaluate(calculus.curl((u, v, w), self.grid_spacings))

    inner = np.s_[1:-1, 1:-1, 1:-1]
    self.assertAllClose(np.zeros((6, 4, 5)), res[0][inner])
    self.assertAllClose(np.zeros((6, 4, 5)), res[1][inner])
    self.assertAllClose(
        2.0 * omega * np.ones((6, 4, 5)), res[2][inner], atol=1e-4)

  def testCurlRaisesValueErrorForTwoComponents(self):
    f = tf.zeros((4, 4, 4), dtype=tf.float32)

    with self.assertRaisesRegex(ValueError, 'exactly 3 components'):
      calculus.curl((f, f), self.grid_spacings)


if __name__ == '__main__':
  tf.test.main()
