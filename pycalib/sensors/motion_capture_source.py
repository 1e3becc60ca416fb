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

"""Sources of motion capture poses"""

from dataclasses import dataclass, field
from typing import Callable, List

import numpy as np


@dataclass
class PoseStamped:
    """
    Pose of a tracked body at ``time``.

    ``q`` is given in the quaternion convention of the model the poses are
    fed into.
    """
    time: float = 0.0
    p: np.ndarray = field(default_factory=lambda: np.zeros(3))
    q: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))


class MotionCaptureSource:
    """Provider of tracked poses over a time range"""

    def get_poses(self, start: float, end: float) -> List[PoseStamped]:
        """All poses with ``start <= time <= end``"""
        raise NotImplementedError


class FunctionMotionCaptureSource(MotionCaptureSource):
    """
    Synthetic source sampling ``function(start, now, pose)`` at a fixed rate.

    Parameters
    ----------
    function : callable
        Fills ``pose.p`` and ``pose.q`` for time ``now`` of a query starting at ``start``
    period : float
        Sampling period (s)
    """

    def __init__(self, function: Callable[[float, float, PoseStamped], None], period: float = 1e-2):
        self.function = function
        self.period = period

    def get_poses(self, start: float, end: float) -> List[PoseStamped]:
        poses = []
        n = int(np.floor((end - start) / self.period + 1e-9))
        for i in range(n + 1):
            pose = PoseStamped(time=start + i * self.period)
            self.function(start, pose.time, pose)
            poses.append(pose)
        return poses
