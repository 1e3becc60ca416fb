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

"""Motion capture system and its tracked bodies"""

import logging
from typing import Optional

from ..attitude.quaternion import convert_quaternion
from ..attitude.transformation import Transformation
from ..backend.expression import Expression
from ..factors.pose_factor import PoseMeasurement
from ..model.fragments.delay_cv import DelayCv
from ..model.fragments.pose_cv import PoseCv
from ..model.module import Capability, Module
from .motion_capture_source import MotionCaptureSource
from .pose_sensor import AbstractPoseSensor

logger = logging.getLogger(__name__)


class MotionCaptureSystem(Module):
    """
    Motion capture system placed in its parent ``frame``.

    Owns the optional pose ``T_parent_mcs`` and a delay its sensors share
    when they have none of their own.
    """

    capabilities = Capability.CALIBRATABLE | Capability.MOTION_CAPTURE_SYSTEM

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        self.parent_frame = model.get_or_create_frame(self.config.get_string("frame")) if self.is_used() else None
        self.pose = PoseCv(self)
        self.delay = DelayCv(self)

    def get_calibration_variables(self):
        return self.pose.get_calibration_variables() + self.delay.get_calibration_variables()

    def set_active(self, spatial: bool, temporal: bool):
        if self.is_used():
            self.pose.set_active(spatial)
            self.delay.set_active(temporal)

    def get_parent_frame(self):
        return self.parent_frame

    def get_transformation_to_parent(self) -> Transformation:
        return self.pose.get_transformation_to_parent()

    def get_transformation_to_parent_expression(self) -> Expression:
        return self.pose.get_transformation_to_parent_expression()

    def write_config(self, out):
        out.write(f", frame={self.parent_frame}")
        if self.pose.has_translation():
            out.write(", hasTrans")
        if self.pose.has_rotation():
            out.write(", hasRot")
        if self.delay.has_delay():
            out.write(", hasDelay")


class MotionCaptureSensor(AbstractPoseSensor):
    """
    Body tracked by a motion capture system.

    Measures ``T_mcs_sensor``. Poses are either added directly or fetched from
    a ``MotionCaptureSource`` at the start of every batch, over the batch
    interval widened by the delay bounds.

    Parameters
    ----------
    motion_capture_system : MotionCaptureSystem
        System tracking this body
    name : str
        Sensor name
    config : ValueStore
        Configuration containing the child ``name``
    """

    def __init__(self, motion_capture_system: MotionCaptureSystem, name: str, config):
        super().__init__(motion_capture_system.model, name, config)
        self.motion_capture_system = motion_capture_system
        self.motion_capture_source: Optional[MotionCaptureSource] = None
        if self.is_used() and not self.has_delay():
            self.delay.share_from(motion_capture_system.delay)

    def set_motion_capture_source(self, source: MotionCaptureSource):
        self.motion_capture_source = source

    def get_motion_capture_source(self) -> Optional[MotionCaptureSource]:
        return self.motion_capture_source

    def get_target_frame(self):
        return self.motion_capture_system.get_parent_frame()

    def to_target_frame(self, measurement: PoseMeasurement) -> Transformation:
        return self.motion_capture_system.get_transformation_to_parent() * super().to_target_frame(measurement)

    def fetch_measurements_from_source(self, start: float, end: float):
        convention = self.model.quaternion_convention
        self.measurements = [PoseMeasurement(p.time, p.p, convert_quaternion(p.q, convention))
                             for p in self.motion_capture_source.get_poses(start, end)]
        return self.measurements

    def pre_process_new_window(self, calib):
        if self.motion_capture_source is None:
            return
        interval = calib.get_current_effective_batch_interval()
        if self.has_delay():
            interval = interval.extended(self.get_delay_lower_bound(), self.get_delay_upper_bound())
        poses = self.fetch_measurements_from_source(interval.start, interval.end)
        logger.info(f"Found {len(poses)} motion capture measurements for {self.name}")

    def get_predicted_pose_expression(self, calib, timestamp: float) -> Expression:
        T_parent_sensor = self.get_transformation_expression_to_at_measurement_timestamp(
            calib, timestamp, self.motion_capture_system.get_parent_frame())
        return Expression.combine(lambda T_pm, T_ps: T_pm.inverse() * T_ps,
                                  self.motion_capture_system.get_transformation_to_parent_expression(),
                                  T_parent_sensor)

    def write_config(self, out):
        super().write_config(out)
        out.write(f", system={self.motion_capture_system.name}")
