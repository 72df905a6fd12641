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


"""Commonly used types for the sub-grid scale closure."""

from typing import Sequence, Tuple, TypeAlias

import tensorflow as tf

TF_DTYPE = tf.float32

# A 3D field with ghost cells, stored as a tensor of shape [nz, nx, ny].
FlowFieldVal: TypeAlias = tf.Tensor

VectorField = Tuple[FlowFieldVal, FlowFieldVal, FlowFieldVal]
# A rank-2 tensor field with `t[i][j]` being the component ij.
TensorField = Sequence[Sequence[FlowFieldVal]]

FilterKernel = Sequence[float]
FloatSequence = Sequence[float]
