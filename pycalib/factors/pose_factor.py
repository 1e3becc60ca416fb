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

"""Pose Factor comparing a predicted transformation with a pose measurement"""

from dataclasses import dataclass

import numpy as np
from scipy.linalg import block_diag

from ..attitude.quaternion import quat2rot
from ..attitude.so3 import so3_log
from ..backend.error_term import MeasurementErrorTerm
from ..backend.expression import Expression


@dataclass
class PoseMeasurement:
    """
    Pose measurement ``T_target_sensor``.

    Attributes
    ----------
    time : float
        Timestamp in the sensor clock (s)
    p : np.ndarray
        Position (3,)
    q : np.ndarray
        Orientation as internal JPL quaternion [x, y, z, w]
    """
    time: float
    p: np.ndarray
    q: np.ndarray

    def __post_init__(self):
        self.time = float(self.time)
        self.p = np.asarray(self.p, dtype=np.double).reshape(3)
        self.q = np.asarray(self.q, dtype=np.double).reshape(4)

    @property
    def rotation(self) -> np.ndarray:
        return quat2rot(self.q)


def pose_difference(predicted, measured) -> np.ndarray:
    """``[p_pred - p_meas; log(R_meas^T R_pred)]`` of two packed poses (12,)"""
    p_pred, R_pred = predicted[:3], predicted[3:].reshape(3, 3)
    p_meas, R_meas = measured[:3], measured[3:].reshape(3, 3)
    return np.concatenate([p_pred - p_meas,
                           so3_log(np.ascontiguousarray(R_meas.T @ R_pred))])


def _pack_pose(T) -> np.ndarray:
    return np.concatenate([T.translation, T.rotation.ravel()])


class PoseFactor(MeasurementErrorTerm):
    """
    Pose error term.

    The residual is the position difference followed by the rotation vector
    of ``R_meas^T R_pred`` (6,), weighted by the block diagonal square root
    covariance of position and orientation.

    Parameters
    ----------
    transformation : Expression
        Predicted transformation ``T_target_sensor`` (a ``Transformation`` value)
    measurement : PoseMeasurement
        Measured pose
    cov_position_sqrt, cov_orientation_sqrt : np.ndarray
        Square root covariances (3x3)
    group : str
        Error term group name
    """

    def __init__(self, transformation: Expression, measurement: PoseMeasurement,
                 cov_position_sqrt, cov_orientation_sqrt, group: str = "", m_estimator=None):
        packed = np.concatenate([measurement.p, measurement.rotation.ravel()])
        super().__init__(transformation.map(_pack_pose), packed,
                         group=group, m_estimator=m_estimator, difference=pose_difference,
                         dimension=6)
        self.pose_measurement = measurement
        self.set_covariance_sqrt(block_diag(cov_position_sqrt, cov_orientation_sqrt))
