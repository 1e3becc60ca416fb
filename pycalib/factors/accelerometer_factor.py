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

"""Accelerometer Factor for IMU specific force measurements"""

import numpy as np

from ..backend.error_term import MeasurementErrorTerm
from ..backend.expression import Expression


class AccelerometerFactor(MeasurementErrorTerm):
    """
    Accelerometer error term.

    Predicted specific force in the IMU frame::

        f_i = R_i_m (a_m + g_m) + b_a

    Parameters
    ----------
    a_m : Expression
        Acceleration of the IMU in the mapping frame (3,)
    R_i_m : Expression
        Rotation from the mapping frame to the IMU frame (3x3)
    g_m : Expression
        Gravity vector in the mapping frame (3,)
    bias : Expression
        Accelerometer bias (3,)
    measurement : array_like
        Measured specific force (3,)
    covariance : np.ndarray
        Measurement covariance (3x3)
    """

    def __init__(self, a_m: Expression, R_i_m: Expression, g_m: Expression, bias: Expression,
                 measurement, covariance, group: str = "", m_estimator=None):
        predicted = Expression.combine(
            lambda a, R, g, b: np.asarray(R) @ (np.asarray(a) + np.asarray(g)) + np.asarray(b).reshape(3),
            a_m, R_i_m, g_m, bias)
        super().__init__(predicted, measurement, covariance_sqrt=np.linalg.cholesky(covariance),
                         group=group, m_estimator=m_estimator)
