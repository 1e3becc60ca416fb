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
Error term factors of the calibration problem.

- PoseFactor: pose measurements of pose and motion capture sensors
- AccelerometerFactor / GyroscopeFactor: IMU measurements
- Quadratic integral error terms: white noise and random walk models
"""

from .accelerometer_factor import AccelerometerFactor
from .gyroscope_factor import GyroscopeFactor
from .integral_factor import (QuadraticIntegralErrorTerm, add_quadratic_integral_error_terms,
                              quadrature_points)
from .pose_factor import PoseFactor, PoseMeasurement, pose_difference

__all__ = [
    'PoseFactor', 'PoseMeasurement', 'pose_difference',
    'AccelerometerFactor', 'GyroscopeFactor',
    'QuadraticIntegralErrorTerm', 'add_quadratic_integral_error_terms', 'quadrature_points',
]
