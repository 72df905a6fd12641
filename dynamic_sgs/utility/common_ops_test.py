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
from dynamic_sgs.utility import common_ops
import tensorflow as tf

from absl.testing import parameterized


class CommonOpsTest(tf.test.TestCase, parameterized.TestCase):

  def setUp(self):
    super(CommonOpsTest, self).setUp()
    # A field with nz = 4, nx = 5, ny = 6, where the value encodes the index.
    self.f = np.reshape(np.arange(120, dtype=np.float32), (4, 5, 6))

  @parameterized.parameters((0, 1), (1, 2), (2, 0))
  def testTensorAxisMapsPhysicalDimensionToTensorAxis(self, dim, axis):
    self.assertEqual(common_ops.tensor_axis(dim), axis)

  def testTensorAxisRaisesValueErrorForInvalidDimension(self):
    with self.assertRaisesRegex(ValueError, 'Dimension has to be one of'):
      common_ops.tensor_axis(3)

  def testGetShapeReturnsShapeInPhysicalOrder(self):
    self.assertEqual(
        common_ops.get_shape(tf.convert_to_tensor(self.f)), (5, 6, 4))

  def testValidateShapeRaisesValueErrorForMismatchedShape(self):
    with self.assertRaisesRegex(ValueError, 'Field `rho` has shape'):
      common_ops.validate_shape(
          tf.convert_to_tensor(self.f), (4, 5, 5), 'rho')

  @parameterized.named_parameters(
      ('Dim0Lower', 0, 0, -2, np.s_[:, 0:3, :]),
      ('Dim1Center', 1, 1, -1, np.s_[:, :, 1:5]),
      ('Dim2Upper', 2, 2, 0, np.s_[2:4, :, :]),
      ('Dim0LastPlane', 0, -1, 0, np.s_[:, 4:5, :]),
  )
  def testSliceInDimProvidesCorrectSlice(self, dim, start, end, expected):
    res = self.evaluate(
        common_ops.slice_in_dim(tf.convert_to_tensor(self.f), dim, start, end))

    self.assertAllEqual(self.f[expected], res)

  def testStripHalosRemovesHalosInEachDimension(self):
    res = self.evaluate(
        common_ops.strip_halos(tf.convert_to_tensor(self.f), (1, 2, 1)))

    self.assertAllEqual(self.f[1:3, 1:4, 2:4], res)

  def testPadAddsValueToFacesInPhysicalOrder(self):
    res = self.evaluate(
        common_ops.pad(
            tf.convert_to_tensor(self.f), [[1, 0], [0, 2], [0, 0]], 7.0))

    with self.subTest(name='Shape'):
      self.assertEqual(res.shape, (4, 6, 8))

    with self.subTest(name='Padding'):
      self.assertAllEqual(res[:, 0, :], 7.0 * np.ones((4, 8)))
      self.assertAllEqual(res[:, :, 6:], 7.0 * np.ones((4, 6, 2)))

    with self.subTest(name='Content'):
      self.assertAllEqual(res[:, 1:, :6], self.f)

  def testReplaceInteriorKeepsOutermostLayer(self):
    f = tf.zeros((4, 5, 6), dtype=tf.float32)
    g = tf.ones((4, 5, 6), dtype=tf.float32)

    res = self.evaluate(common_ops.replace_interior(f, g))

    expected = np.zeros((4, 5, 6), dtype=np.float32)
    expected[1:-1, 1:-1, 1:-1] = 1.0
    self.assertAllEqual(expected, res)

  def testCheckFiniteReturnsFiniteField(self):
    res = self.evaluate(
        common_ops.check_finite(tf.convert_to_tensor(self.f), 'f'))

    self.assertAllEqual(self.f, res)

  def testCheckFiniteRaisesForNaN(self):
    f = np.copy(self.f)
    f[1, 2, 3] = np.nan

    with self.assertRaisesRegex(tf.errors.InvalidArgumentError,
                                'Field `mu_sgs` has non-finite values'):
      self.evaluate(
          common_ops.check_finite(tf.convert_to_tensor(f), 'mu_sgs'))


if __name__ == '__main__':
  tf.test.main()
