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

"""Spatial calibration variables of a module: rotation and translation to its parent frame"""

from typing import List

import numpy as np

from ...attitude.quaternion import quat2rot, quat_identity
from ...attitude.transformation import Transformation
from ...backend.expression import Expression
from ..parameterization import ParamKind


class PoseCv:
    """
    Optional ``rotation`` and ``translation`` calibration variables.

    Unused components are the identity rotation and zero translation.

    Parameters
    ----------
    module : Module
        Owning module, whose config children ``rotation`` and ``translation``
        configure the variables
    """

    def __init__(self, module):
        self.rotation_variable = module.create_cv_if_used("rotation", ParamKind.ROTATION)
        self.translation_variable = module.create_cv_if_used("translation", ParamKind.POINT)

    def has_rotation(self) -> bool:
        return self.rotation_variable is not None

    def has_translation(self) -> bool:
        return self.translation_variable is not None

    def get_calibration_variables(self) -> List:
        return [cv for cv in (self.rotation_variable, self.translation_variable) if cv is not None]

    def set_active(self, spatial: bool):
        for cv in self.get_calibration_variables():
            cv.set_active(spatial)

    def get_rotation_quaternion_to_parent(self) -> np.ndarray:
        if self.rotation_variable is None:
            return quat_identity()
        return self.rotation_variable.get_value()

    def get_rotation_to_parent(self) -> np.ndarray:
        return quat2rot(self.get_rotation_quaternion_to_parent())

    def get_translation_to_parent(self) -> np.ndarray:
        if self.translation_variable is None:
            return np.zeros(3)
        return self.translation_variable.get_value()

    def get_transformation_to_parent(self) -> Transformation:
        return Transformation(self.get_rotation_to_parent(), self.get_translation_to_parent())

    def get_transformation_to_parent_expression(self) -> Expression:
        """Expression of ``T_parent_module`` over the used variables"""
        dvs = [cv.design_variable for cv in self.get_calibration_variables()]
        return Expression(self.get_transformation_to_parent, dvs)
