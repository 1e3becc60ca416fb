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

"""Pose trajectory module"""

import logging
from typing import Optional

import numpy as np

from ..attitude.transformation import Transformation
from ..core.exceptions import ConfigurationError, ConsistencyError
from .error_term_statistics import ErrorTermStatistics
from .fragments.so3r3_trajectory import So3R3Trajectory
from .fragments.trajectory_carrier import So3R3TrajectoryCarrier
from .module import Capability, Module, ModuleLink

logger = logging.getLogger(__name__)


class PoseTrajectory(Module):
    """
    Trajectory of ``frame`` relative to ``referenceFrame`` over one batch.

    Every batch gets a fresh ``So3R3Trajectory``. If ``initWithPoseMeasurements``
    is set and the optional link ``McSensor`` resolves to a pose sensor
    observing ``frame`` in ``referenceFrame``, the splines are fitted to the
    sensor's measurements, otherwise they start constant at the identity.

    Config
    ------
    frame, referenceFrame : str
        Frame pair of the trajectory
    McSensor : str, optional
        Pose sensor used for initialization
    initWithPoseMeasurements : bool
        Default True
    splines : child
        See ``So3R3TrajectoryCarrier``
    whiteNoise : child, optional
        ``used`` (default False), ``invSigma`` (default 1) and ``numPoints``
        of the white noise acceleration regularizer
    """

    capabilities = Capability.TRAJECTORY | Capability.ACTIVATABLE

    def __init__(self, model, name: str, config):
        super().__init__(model, name, config)
        if self.is_used():
            self.frame = model.get_or_create_frame(self.config.get_string("frame"))
            self.reference_frame = model.get_or_create_frame(self.config.get_string("referenceFrame"))
        else:
            self.frame = self.reference_frame = None
        self.mc_sensor = ModuleLink(self, "McSensor", required=False, capability=Capability.POSE_SENSOR)
        self.init_with_pose_measurements = self.config.get_bool("initWithPoseMeasurements", True)
        self.carrier = So3R3TrajectoryCarrier(name, self.config.get_child("splines"))

        white_noise = self.config.get_child("whiteNoise")
        self.white_noise_used = white_noise.get_bool("used", False)
        self.white_noise_inv_sigma = white_noise.get_double("invSigma", 1.0)
        self.white_noise_num_points = white_noise.get_int("numPoints", -1)

        self._trajectory: Optional[So3R3Trajectory] = None

    def get_current_trajectory(self) -> So3R3Trajectory:
        if self._trajectory is None:
            raise ConsistencyError(f"{self.name} has no trajectory before the first batch")
        return self._trajectory

    def _collect_poses(self, sensor, interval):
        if str(sensor.parent_frame) != str(self.frame) or str(sensor.get_target_frame()) != str(self.reference_frame):
            raise ConfigurationError(
                f"{sensor.name} observes {sensor.parent_frame} in {sensor.get_target_frame()} and cannot "
                f"initialize {self.name} ({self.frame} in {self.reference_frame})")
        T_frame_sensor_inv = sensor.get_transformation_to_parent().inverse()
        delay = sensor.get_delay()
        times, translations, rotations = [], [], []
        for m in sensor.get_measurements():
            t = m.time - delay
            if not interval.covers(t):
                continue
            T_ref_frame: Transformation = sensor.to_target_frame(m) * T_frame_sensor_inv
            times.append(t)
            translations.append(T_ref_frame.translation)
            rotations.append(T_ref_frame.quaternion)
        return times, np.array(translations), np.array(rotations)

    def init_state(self, calib) -> bool:
        interval = calib.get_current_effective_batch_interval()
        self._trajectory = So3R3Trajectory(self.carrier)
        sensor = self.mc_sensor.get()
        if self.init_with_pose_measurements and sensor is not None:
            times, translations, rotations = self._collect_poses(sensor, interval)
            if times:
                logger.info(f"Initializing {self.name} with {len(times)} pose measurements of {sensor.name}")
                self._trajectory.fit_splines(interval, times, translations, rotations)
                return True
            logger.warning(f"No pose measurements of {sensor.name} within {interval} to initialize "
                           f"{self.name}, starting constant")
        self._trajectory.init_splines_constant(interval, calib.get_num_measurements_in_batch())
        return True

    def add_to_batch(self, state_activator, problem):
        self.get_current_trajectory().add_to_problem(state_activator.is_active(self), problem)

    def add_measurement_error_terms(self, calib, ec, problem, observe_only: bool):
        if not self.white_noise_used:
            return
        statistics = ErrorTermStatistics(self.name + "WhiteNoise", problem, observe_only,
                                         calib.get_time_origin())
        self.get_current_trajectory().add_white_noise_model_error_terms(
            statistics, self.name, self.white_noise_inv_sigma, self.white_noise_num_points)
        statistics.log()

    def write_config(self, out):
        out.write(f", frame={self.frame}, referenceFrame={self.reference_frame}, "
                  f"McSensor={self.mc_sensor.target_uid or 'NONE'}")
