# Copyright 2024 inuex35
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

"""Gravity vector of the model"""

import numpy as np

from ...backend.expression import Expression
from ..module import Capability, Module
from ..parameterization import ParamKind

STANDARD_GRAVITY_MAGNITUDE = 9.81


class Gravity(Module):
    """
    Gravity vector ``g_m = m * e_z`` in the mapping frame.

    Configured by the child ``Gravity``. If used, the magnitude ``m`` is the
    scalar calibration variable ``Gravity.magnitude`` (config
    ``Gravity/magnitude/value``), otherwise the constant
    ``Gravity/magnitude/value`` falling back to 9.81 m/s^2.
    """

    capabilities = Capability.CALIBRATABLE | Capability.GRAVITY

    def __init__(self, model, config, name: str = "Gravity"):
        super().__init__(model, name, config, used_by_default=False)
        self.magnitude_variable = self.create_cv_if_used("magnitude", ParamKind.SCALAR)
        if self.magnitude_variable is None:
            node = self.config.get_child("magnitude")
            self._constant_magnitude = node.get_double("value", STANDARD_GRAVITY_MAGNITUDE)
            self._vector_expression = Expression.constant(np.array([0.0, 0.0, self._constant_magnitude]))
        else:
            self._vector_expression = self.magnitude_variable.to_expression().map(
                lambda m: np.array([0.0, 0.0, float(m[0])]))

    def get_calibration_variables(self):
        return [self.magnitude_variable] if self.magnitude_variable is not None else []

    def get_vector_expression(self) -> Expression:
        return self._vector_expression

    def get_vector(self) -> np.ndarray:
        return np.asarray(self._vector_expression.evaluate(), dtype=np.double)

    def set_active(self, spatial: bool, temporal: bool):
        if self.magnitude_variable is not None:
            self.magnitude_variable.set_active(spatial)

    def write_config(self, out):
        out.write(f", g_m={self.get_vector()[2]:g}")
