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
Attitude module for rotations and rigid transformations.

This module provides the rotation algebra used by calibration variables,
trajectories and pose error terms:
- JPL quaternions ``[x, y, z, w]`` and the external convention switch
- Axis-angle (rotation vector) conversions
- SO(3) exponential, logarithm and right Jacobian
- Rigid transformations ``T_parent_child``
"""

from .quaternion import (DEFAULT_EXTERNAL_CONVENTION, INTERNAL_CONVENTION, QuaternionConvention,
                         axis_angle2quat, convert_quaternion, needs_conjugation, quat2axis_angle,
                         quat2rot, quat_identity, quat_inv, quat_mult, quat_normalize)
from .so3 import skew, so3_exp, so3_log, so3_right_jacobian
from .transformation import Transformation, pose_to_string

__all__ = [
    'QuaternionConvention', 'INTERNAL_CONVENTION', 'DEFAULT_EXTERNAL_CONVENTION',
    'needs_conjugation', 'convert_quaternion',
    'quat_identity', 'quat_inv', 'quat_mult', 'quat_normalize',
    'axis_angle2quat', 'quat2axis_angle', 'quat2rot',
    'skew', 'so3_exp', 'so3_log', 'so3_right_jacobian',
    'Transformation', 'pose_to_string',
]
