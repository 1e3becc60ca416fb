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

"""Gyroscope Factor for IMU angular velocity measurements"""

import numpy as np

from ..backend.error_term import MeasurementErrorTerm
from ..backend.expression import Expression


class GyroscopeFactor(MeasurementErrorTerm):
    """
    Gyroscope error term with prediction ``w_i + b_g``.

    Parameters
    ----------
    w_i : Expression
        Angular velocity of the IMU in the IMU frame (3,)
    bias : Expression
        Gyroscope bias (3,)
    measurement : array_like
        Measured angular velocity (3,)
    covariance : np.ndarray
        Measurement covariance (3x3)
    """

    def __init__(self, w_i: Expression, bias: Expression, measurement, covariance,
                 group: str = "", m_estimator=None):
        predicted = Expression.combine(
            lambda w, b: np.asarray(w).reshape(3) + np.asarray(b).reshape(3), w_i, bias)
        super().__init__(predicted, measurement, covariance_sqrt=np.linalg.cholesky(covariance),
                         group=group, m_estimator=m_estimator)
