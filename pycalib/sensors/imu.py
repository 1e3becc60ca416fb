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
Inertial measurement unit.

Accelerometer and gyroscope measurements are predicted from the trajectory
of the IMU's parent frame in the inertial frame::

    f_i = R_i_m (a_m + g_m) + b_a
    w_i = R_i_b w_b + b_g

where ``a_m`` is the acceleration of the IMU origin including the lever arm
terms. Biases are either constant vector calibration variables
(``biasVector``) or per batch splines (``biasSpline``) regularized by a
random walk model.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from ..backend.expression import Expression
from ..backend.m_estimator import get_m_estimator
from ..core.exceptions import ConfigurationError, ConsistencyError
from ..factors.accelerometer_factor import AccelerometerFactor
from ..factors.gyroscope_factor import GyroscopeFactor
from ..factors.integral_factor import add_quadratic_integral_error_terms
from ..model.error_term_statistics import ErrorTermStatistics
from ..model.fragments.trajectory_carrier import TrajectoryCarrier
from ..model.parameterization import ParamKind
from ..splines.bspline import EuclideanBSpline
from .sensor import Sensor

logger = logging.getLogger(__name__)


def _body_kinematics(trajectory, t: float) -> tuple:
    """Acceleration, rotation, angular velocity and angular acceleration at ``t``"""
    return (trajectory.get_acceleration(t), trajectory.get_rotation_matrix(t),
            trajectory.get_angular_velocity(t), trajectory.get_angular_acceleration(t))


def _imu_acceleration(kinematics, T_body_imu) -> np.ndarray:
    a_m, R_m_b, w_b, alpha_b = kinematics
    r = T_body_imu.translation
    return a_m + R_m_b @ (np.cross(alpha_b, r) + np.cross(w_b, np.cross(w_b, r)))


class Bias:
    """
    Sensor bias, constant or a spline over the batch.

    Parameters
    ----------
    module : Module
        Owning IMU
    name : str
        Bias name, e.g. ``accBias``
    config : ValueStore
        Config with the children ``biasVector`` (used by default) and
        ``biasSpline``
    """

    def __init__(self, module, name: str, config):
        self.name = name
        self.bias_vector = module.create_cv_if_used("biasVector", ParamKind.POINT, name=name, config=config)
        self.spline_carrier: Optional[TrajectoryCarrier] = None
        if self.bias_vector is None:
            self.spline_carrier = TrajectoryCarrier(config.get_child("biasSpline"))
        self.spline: Optional[EuclideanBSpline] = None

    def is_using_spline(self) -> bool:
        return self.spline_carrier is not None

    def get_calibration_variables(self) -> list:
        return [self.bias_vector] if self.bias_vector is not None else []

    def set_active(self, spatial: bool):
        if self.bias_vector is not None:
            self.bias_vector.set_active(spatial)

    def init_state(self, calib):
        if not self.is_using_spline():
            return
        interval = calib.get_current_effective_batch_interval()
        num_segments = self.spline_carrier.get_num_segments(interval.elapsed_time)
        logger.info(f"Using IMU bias numSegments={num_segments} for {interval.elapsed_time:g} seconds")
        self.spline = EuclideanBSpline(self.spline_carrier.spline_order, 3)
        self.spline.init_constant_uniform_spline(interval.start, interval.end, num_segments, np.zeros(3))

    def add_to_batch(self, state_active: bool, problem):
        if self.spline is not None:
            problem.add_spline_design_variables(self.spline, state_active)

    def get_bias_expression(self, t: float) -> Expression:
        if self.is_using_spline():
            if self.spline is None:
                raise ConsistencyError(f"Bias spline {self.name} used before init_state")
            return self.spline.get_expression_at(t)
        return self.bias_vector.to_expression()

    def add_random_walk_error_terms(self, receiver, group: str, random_walk: float,
                                    num_points: int = -1) -> float:
        """Integral of the squared bias derivative weighted by ``1 / random_walk``"""
        spline = self.spline
        if num_points < 0:
            num_points = (spline.num_segments + spline.order) * 2
        return add_quadratic_integral_error_terms(
            receiver, spline.t_min, spline.t_max, num_points,
            lambda t: spline.get_expression_at(t, 1), np.eye(3) / random_walk, group)


class Imu(Sensor):
    """
    IMU sensor module.

    Config
    ------
    inertiaFrame : str
        Frame the accelerations are relative to
    minimalMeasurementsPerBatch : int
        Fewer gyroscope measurements skip the error terms (default 100)
    acc/noise/{accXVariance, accYVariance, accZVariance, accRandomWalk} : float
    gyro/noise/{gyroXVariance, gyroYVariance, gyroZVariance, gyroRandomWalk} : float
    acc, gyro : child
        Bias configuration, see ``Bias``
    """

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        self.acc_bias = Bias(self, "accBias", self.config.get_child("acc"))
        self.gyro_bias = Bias(self, "gyroBias", self.config.get_child("gyro"))
        self.minimal_measurements_per_batch = self.config.get_int("minimalMeasurementsPerBatch", 100)
        self.m_estimator = get_m_estimator(name, self.config.get_child("mEstimator"))
        self.accelerometer_measurements: List[Tuple[float, np.ndarray]] = []
        self.gyroscope_measurements: List[Tuple[float, np.ndarray]] = []

        if self.is_used():
            if self.minimal_measurements_per_batch < 0:
                raise ConfigurationError(
                    f"minimalMeasurementsPerBatch of {name} must not be negative")
            self.inertia_frame = model.get_or_create_frame(self.config.get_string("inertiaFrame"))
            acc = self.config.get_child("acc/noise")
            gyro = self.config.get_child("gyro/noise")
            self.acc_covariance = np.diag([acc.get_double("accXVariance"), acc.get_double("accYVariance"),
                                           acc.get_double("accZVariance")])
            self.acc_random_walk = acc.get_double("accRandomWalk")
            self.gyro_covariance = np.diag([gyro.get_double("gyroXVariance"), gyro.get_double("gyroYVariance"),
                                            gyro.get_double("gyroZVariance")])
            self.gyro_random_walk = gyro.get_double("gyroRandomWalk")
        else:
            self.inertia_frame = None

    def get_calibration_variables(self) -> list:
        return (super().get_calibration_variables() + self.acc_bias.get_calibration_variables()
                + self.gyro_bias.get_calibration_variables())

    def set_active(self, spatial: bool, temporal: bool):
        super().set_active(spatial, temporal)
        if self.is_used():
            self.acc_bias.set_active(spatial)
            self.gyro_bias.set_active(spatial)

    def add_accelerometer_measurement(self, calib, value, timestamp: float):
        calib.add_measurement_timestamp(timestamp, self)
        self.accelerometer_measurements.append((float(timestamp), np.asarray(value, dtype=np.double).reshape(3)))

    def add_gyroscope_measurement(self, calib, value, timestamp: float):
        calib.add_measurement_timestamp(timestamp, self)
        self.gyroscope_measurements.append((float(timestamp), np.asarray(value, dtype=np.double).reshape(3)))

    def clear_measurements(self):
        self.accelerometer_measurements = []
        self.gyroscope_measurements = []

    def has_too_few_measurements(self) -> bool:
        return len(self.gyroscope_measurements) < self.minimal_measurements_per_batch

    def get_maximal_time_gap(self) -> float:
        gaps = [0.0]
        for measurements in (self.accelerometer_measurements, self.gyroscope_measurements):
            if len(measurements) > 1:
                gaps.append(float(np.max(np.diff([t for t, _ in measurements]))))
        return max(gaps)

    def init_state(self, calib) -> bool:
        if self.is_used():
            self.acc_bias.init_state(calib)
            self.gyro_bias.init_state(calib)
        return True

    def add_to_batch(self, state_activator, problem):
        state_active = state_activator.is_active(self)
        self.acc_bias.add_to_batch(state_active, problem)
        self.gyro_bias.add_to_batch(state_active, problem)

    def _kinematics_expression(self, timestamp: float) -> Expression:
        trajectory = self.get_trajectory(self.inertia_frame)
        time_bounds = None
        if self.has_delay():
            time_bounds = (timestamp - self.get_delay_upper_bound(), timestamp - self.get_delay_lower_bound())
        return trajectory.get_kinematics_expression_at(
            self.get_measurement_time_expression(timestamp), _body_kinematics, time_bounds)

    def _create_accelerometer_factor(self, g_m: Expression, timestamp: float, value, group: str):
        kinematics = self._kinematics_expression(timestamp)
        T_body_imu = self.get_transformation_to_parent_expression()
        a_m = Expression.combine(_imu_acceleration, kinematics, T_body_imu)
        R_i_m = Expression.combine(lambda k, T: (k[1] @ T.rotation).T, kinematics, T_body_imu)
        return AccelerometerFactor(a_m, R_i_m, g_m, self.acc_bias.get_bias_expression(timestamp),
                                   value, self.acc_covariance, group, self.m_estimator)

    def _create_gyroscope_factor(self, timestamp: float, value, group: str):
        kinematics = self._kinematics_expression(timestamp)
        w_i = Expression.combine(lambda k, T: T.rotation.T @ k[2], kinematics,
                                 self.get_transformation_to_parent_expression())
        return GyroscopeFactor(w_i, self.gyro_bias.get_bias_expression(timestamp),
                               value, self.gyro_covariance, group, self.m_estimator)

    def _add_imu_error_terms(self, calib, group: str, measurements, factory, problem, observe_only: bool):
        logger.info(f"Adding {len(measurements)} {group} error terms")
        statistics = ErrorTermStatistics(group, problem, observe_only, calib.get_time_origin())
        interval = calib.get_current_effective_batch_interval()
        for timestamp, value in measurements:
            if not interval.contains(timestamp):
                logger.info(f"{group} measurement out of spline range at {calib.secs_since_start(timestamp):g}s.")
                continue
            error_term = factory(timestamp, value, group)
            logger.trace(f"Cost function {group} : {error_term.evaluate_error():g} count: "
                         f"{statistics.counter} timestamp: {calib.secs_since_start(timestamp):g}s")
            statistics.add(timestamp, error_term)
        statistics.log()

    def add_measurement_error_terms(self, calib, ec, problem, observe_only: bool):
        if self.has_too_few_measurements():
            logger.warning(f"{self.name} has too few gyroscope measurements "
                           f"({len(self.gyroscope_measurements)} < {self.minimal_measurements_per_batch}), "
                           f"skipping its error terms")
            return
        accelerometer_name = self.name + "Accelerometer"
        gyroscope_name = self.name + "Gyroscope"

        for bias, name, random_walk in ((self.acc_bias, accelerometer_name, self.acc_random_walk),
                                        (self.gyro_bias, gyroscope_name, self.gyro_random_walk)):
            if bias.is_using_spline():
                statistics = ErrorTermStatistics(name + "Bias", problem, observe_only, calib.get_time_origin())
                bias.add_random_walk_error_terms(statistics, name + "Bias", random_walk)
                statistics.log()

        g_m = self.model.get_gravity().get_vector_expression()
        self._add_imu_error_terms(
            calib, accelerometer_name, self.accelerometer_measurements,
            lambda t, v, group: self._create_accelerometer_factor(g_m, t, v, group),
            problem, observe_only)
        self._add_imu_error_terms(
            calib, gyroscope_name, self.gyroscope_measurements,
            self._create_gyroscope_factor, problem, observe_only)

    def write_config(self, out):
        super().write_config(out)
        out.write(f", inertiaFrame={self.inertia_frame}, accBias="
                  f"{'spline' if self.acc_bias.is_using_spline() else 'vector'}, gyroBias="
                  f"{'spline' if self.gyro_bias.is_using_spline() else 'vector'}")
