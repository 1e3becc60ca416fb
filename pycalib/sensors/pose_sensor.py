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
Pose sensors.

A pose sensor measures its own pose ``T_target_sensor`` in a target frame.
Measurements whose delay corrected time may leave the batch interval are
either dropped (no delay variable) or added as conditional error terms that
are only active while the corrected time lies inside the interval.
"""

import logging
from typing import List

from ..attitude.quaternion import convert_quaternion
from ..attitude.transformation import Transformation
from ..backend.error_term import add_condition
from ..backend.expression import Expression
from ..backend.m_estimator import get_m_estimator
from ..core.exceptions import ConsistencyError
from ..factors.pose_factor import PoseFactor, PoseMeasurement
from ..model.covariance import Covariance
from ..model.error_term_statistics import ErrorTermStatistics
from ..model.module import Capability
from .sensor import Sensor

logger = logging.getLogger(__name__)


class AbstractPoseSensor(Sensor):
    """
    Sensor measuring its pose in a target frame.

    Config
    ------
    covPosition, covOrientation : child
        ``sigma`` of the position and orientation noise (default identity)
    mEstimator : child, optional
        See ``get_m_estimator``
    """

    capabilities = Sensor.capabilities | Capability.POSE_SENSOR

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        self.cov_position = Covariance(self.config.get_child("covPosition"), 3)
        self.cov_orientation = Covariance(self.config.get_child("covOrientation"), 3)
        self.m_estimator = get_m_estimator(name, self.config.get_child("mEstimator"))
        self.measurements: List[PoseMeasurement] = []
        if self.is_used():
            logger.info(f"{name}: covPosition={self.cov_position}, covOrientation={self.cov_orientation}")

    def get_target_frame(self):
        raise NotImplementedError

    def to_target_frame(self, measurement: PoseMeasurement) -> Transformation:
        """Measured ``T_target_sensor``"""
        return Transformation.from_quaternion(measurement.q, measurement.p)

    def get_predicted_pose_expression(self, calib, timestamp: float) -> Expression:
        """Predicted value of a measurement stamped ``timestamp``"""
        raise NotImplementedError

    def add_measurement(self, q, p, t: float):
        """
        Add a pose measurement.

        Parameters
        ----------
        q : array_like
            Orientation [x, y, z, w] in the model's quaternion convention
        p : array_like
            Position
        t : float
            Timestamp
        """
        self.measurements.append(
            PoseMeasurement(t, p, convert_quaternion(q, self.model.quaternion_convention)))

    def get_measurements(self) -> List[PoseMeasurement]:
        return self.measurements

    def has_measurements(self) -> bool:
        return bool(self.measurements)

    def clear_measurements(self):
        self.measurements = []

    def add_measurement_error_terms(self, calib, ec, problem, observe_only: bool):
        group = self.name + "Pose"
        if not self.has_measurements():
            logger.warning(f"No measurements available for {group}")
            return

        statistics = ErrorTermStatistics(group, problem, observe_only, calib.get_time_origin())
        interval = calib.get_current_effective_batch_interval()
        u_low = interval.start + self.get_delay_upper_bound()
        u_upp = interval.end + self.get_delay_lower_bound()

        delay = self.get_delay_expression()
        current_delay = self.get_delay()
        if not self.delay.is_delay_within_bounds(current_delay):
            raise ConsistencyError(
                f"Delay of {self.name} already out of bounds: {current_delay:g} not in "
                f"[{self.get_delay_lower_bound():g}, {self.get_delay_upper_bound():g}]")

        sqrt_position = self.cov_position.get_value_sqrt()
        sqrt_orientation = self.cov_orientation.get_value_sqrt()
        for m in self.measurements:
            timestamp = m.time
            possibly_out_of_bounds = u_low > timestamp or u_upp < timestamp
            if possibly_out_of_bounds and not self.has_delay():
                logger.info(f"Dropping out of bounds pose measurement at {calib.secs_since_start(timestamp):g}!")
                continue

            error_term = PoseFactor(self.get_predicted_pose_expression(calib, timestamp), m,
                                    sqrt_position, sqrt_orientation, group, self.m_estimator)
            if possibly_out_of_bounds:
                logger.info(f"Adding conditional pose error term for measurement at "
                            f"{calib.secs_since_start(timestamp):g} because it could go out of bounds!")
                if u_low > timestamp:
                    error_term = add_condition(
                        error_term, lambda t=timestamp: t - float(delay.evaluate()) >= interval.start)
                if u_upp < timestamp:
                    error_term = add_condition(
                        error_term, lambda t=timestamp: t - float(delay.evaluate()) <= interval.end)
            statistics.add(timestamp, error_term)
        statistics.log()

    def write_config(self, out):
        super().write_config(out)
        out.write(f", targetFrame={self.get_target_frame()}")


class PoseSensor(AbstractPoseSensor):
    """
    Pose sensor measuring ``T_target_sensor`` with target frame ``targetFrame``.

    The prediction is the trajectory of the parent frame in the target frame
    composed with the sensor pose ``T_parent_sensor``.
    """

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        self.target_frame = (model.get_or_create_frame(self.config.get_string("targetFrame"))
                             if self.is_used() else None)

    def get_target_frame(self):
        return self.target_frame

    def get_predicted_pose_expression(self, calib, timestamp: float) -> Expression:
        return self.get_transformation_expression_to_at_measurement_timestamp(
            calib, timestamp, self.target_frame)
