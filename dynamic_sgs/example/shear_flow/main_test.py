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


import os

from absl import flags
import numpy as np
from dynamic_sgs.base import parameters
from dynamic_sgs.example.shear_flow import main
from dynamic_sgs.utility import common_ops
import tensorflow as tf

from absl.testing import flagsaver

FLAGS = flags.FLAGS


class MainTest(tf.test.TestCase):

  def setUp(self):
    super(MainTest, self).setUp()
    if not FLAGS.is_parsed():
      FLAGS.mark_as_parsed()

    self.params = parameters.SgsParameters.create(
        grid_size=(8, 8, 8), grid_spacings=[2.0 * np.pi / 8] * 3)

  def testRunOnShearFlowGivesZeroEddyViscosity(self):
    states = main.shear_flow(self.params, 2.0, 1.0, 1.0e5)

    result = self.evaluate(main.run(self.params, states))

    self.assertAllClose(np.zeros(self.params.field_shape), result['mu_sgs'])
    self.assertAllClose(np.zeros(self.params.field_shape), result['c_d'])

  def testRunOnTaylorGreenVortexGivesBoundedEddyViscosity(self):
    states = main.taylor_green_vortex(self.params, 1.0, 1.0, 1.0e5)

    result = self.evaluate(main.run(self.params, states))

    with self.subTest(name='EddyViscosityIsFiniteAndNonNegative'):
      self.assertTrue(np.all(np.isfinite(result['mu_sgs'])))
      self.assertAllGreaterEqual(result['mu_sgs'], 0.0)

    with self.subTest(name='CoefficientIsBounded'):
      self.assertAllGreaterEqual(result['c_d'], parameters.CD_MIN)
      self.assertAllLessEqual(result['c_d'], parameters.CD_MAX)

  def testTaylorGreenVortexHasValidGhostCells(self):
    states = self.evaluate(
        main.taylor_green_vortex(self.params, 1.0, 1.0, 1.0e5))

    with self.subTest(name='Shape'):
      for value in states.values():
        self.assertEqual(self.params.field_shape, value.shape)

    with self.subTest(name='VelocityIsPeriodic'):
      # The ghost cell at index 0 is the image of the last interior cell.
      rho_u = states['rho_u']
      self.assertAllClose(rho_u[:, 0, :], rho_u[:, -2, :], atol=1e-6)

  def testContourPlotWritesImage(self):
    states = main.taylor_green_vortex(self.params, 1.0, 1.0, 1.0e5)
    inner = common_ops.strip_halos(states['rho_u'], [1, 1, 1]).numpy()
    output = os.path.join(self.create_tempdir().full_path, 'rho_u.png')

    main.contour_plot(inner, 2.0 * np.pi, 2.0 * np.pi, output)

    self.assertTrue(tf.io.gfile.exists(output))

  def testMainWritesTecplotFile(self):
    output_dir = self.create_tempdir().full_path

    with flagsaver.flagsaver(
        flow='shear', nx=4, ny=5, nz=6, dx=0.1, dy=0.1, dz=0.1, step=3,
        output_dir=output_dir):
      main.main(['main'])

    path = os.path.join(output_dir, '3.plt')
    self.assertTrue(tf.io.gfile.exists(path))
    with tf.io.gfile.GFile(path, 'r') as f:
      self.assertLen(f.read().splitlines(), 13 + 4 * 5 * 6)


if __name__ == '__main__':
  tf.test.main()
