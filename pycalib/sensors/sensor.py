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

"""
Sensor base module.

A sensor is rigidly attached to its parent ``frame`` by the optional pose
variables ``rotation`` and ``translation`` and stamps its measurements with
an optional ``delay``: a measurement stamped ``t`` happened at
``t - delay``.
"""

import logging
from typing import List, Optional

import numpy as np

from ..attitude.transformation import Transformation
from ..backend.expression import Expression
from ..model.fragments.delay_cv import DelayCv
from ..model.fragments.pose_cv import PoseCv
from ..model.module import Capability, Module

logger = logging.getLogger(__name__)


class Sensor(Module):
    """
    Base class of all sensors.

    Parameters
    ----------
    model : Model
        Owning model
    name : str
        Sensor name
    config : ValueStore
        Configuration containing the child ``name`` with the parent ``frame``
        and the optional ``rotation``, ``translation`` and ``delay`` children
    """

    capabilities = Capability.OBSERVER | Capability.CALIBRATABLE | Capability.ACTIVATABLE | Capability.SENSOR

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        self.parent_frame = model.get_or_create_frame(self.config.get_string("frame")) if self.is_used() else None
        self.pose = PoseCv(self)
        self.delay = DelayCv(self)
        self.id = -1

    def get_calibration_variables(self) -> List:
        return self.pose.get_calibration_variables() + self.delay.get_calibration_variables()

    def register_with_model(self):
        super().register_with_model()
        self.id = self.model.register_sensor(self)

    def set_active(self, spatial: bool, temporal: bool):
        if self.is_used():
            self.pose.set_active(spatial)
            self.delay.set_active(temporal)

    # pose

    def has_rotation(self) -> bool:
        return self.pose.has_rotation()

    def has_translation(self) -> bool:
        return self.pose.has_translation()

    def get_rotation_quaternion_to_parent(self) -> np.ndarray:
        return self.pose.get_rotation_quaternion_to_parent()

    def get_translation_to_parent(self) -> np.ndarray:
        return self.pose.get_translation_to_parent()

    def get_transformation_to_parent(self) -> Transformation:
        return self.pose.get_transformation_to_parent()

    def get_transformation_to_parent_expression(self) -> Expression:
        return self.pose.get_transformation_to_parent_expression()

    # delay

    def has_delay(self) -> bool:
        return self.delay.has_delay()

    def get_delay(self) -> float:
        return self.delay.get_delay()

    def get_delay_expression(self) -> Expression:
        return self.delay.get_delay_expression()

    def get_delay_lower_bound(self) -> float:
        return self.delay.get_delay_lower_bound()

    def get_delay_upper_bound(self) -> float:
        return self.delay.get_delay_upper_bound()

    def get_trajectory(self, reference_frame):
        """Current batch trajectory of the parent frame in ``reference_frame``"""
        return self.model.get_trajectory(self.parent_frame, reference_frame).get_current_trajectory()

    def get_measurement_time_expression(self, timestamp: float):
        """Time of a measurement stamped ``timestamp``, an expression if the delay is estimated"""
        if not self.has_delay():
            return timestamp
        return Expression.constant(timestamp) - self.get_delay_expression()

    def get_transformation_expression_to_at_measurement_timestamp(
            self, calib, timestamp: float, frame, delay_bounded: bool = True) -> Expression:
        """
        Expression of ``T_frame_sensor`` at the time a measurement stamped ``timestamp`` was taken.

        Parameters
        ----------
        calib : BatchCalibrator
            Calibrator of the current batch
        timestamp : float
            Measurement timestamp in the sensor clock
        frame : Frame or str
            Reference frame of the trajectory used
        delay_bounded : bool
            Restrict the delay dependent time to ``[t - upperBound, t - lowerBound]``
        """
        trajectory = self.get_trajectory(frame)
        time = self.get_measurement_time_expression(timestamp)
        time_bounds: Optional[tuple] = None
        if delay_bounded and self.has_delay():
            time_bounds = (timestamp - self.get_delay_upper_bound(),
                           timestamp - self.get_delay_lower_bound())
        T_frame_parent = trajectory.get_transformation_expression_at(time, time_bounds)
        return Expression.combine(lambda T_fp, T_ps: T_fp * T_ps,
                                  T_frame_parent, self.get_transformation_to_parent_expression())

    def write_config(self, out):
        if self.parent_frame is not None:
            out.write(f", frame={self.parent_frame}")
        if self.has_translation():
            out.write(", hasTrans")
        if self.has_rotation():
            out.write(", hasRot")
        if self.has_delay():
            out.write(", hasDelay")
