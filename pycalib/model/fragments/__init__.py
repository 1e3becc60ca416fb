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

"""Reusable parts of modules: pose and delay variables, gravity, trajectories"""

from .delay_cv import DelayCv
from .gravity import STANDARD_GRAVITY_MAGNITUDE, Gravity
from .pose_cv import PoseCv
from .so3r3_trajectory import So3R3Trajectory, unwrap_rotation_vectors
from .trajectory_carrier import So3R3TrajectoryCarrier, TrajectoryCarrier

__all__ = [
    'DelayCv', 'PoseCv', 'Gravity', 'STANDARD_GRAVITY_MAGNITUDE',
    'So3R3Trajectory', 'unwrap_rotation_vectors',
    'TrajectoryCarrier', 'So3R3TrajectoryCarrier',
]
