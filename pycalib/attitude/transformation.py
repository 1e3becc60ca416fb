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

"""Rigid body transformations"""

from typing import Optional

import numpy as np

from .quaternion import axis_angle2quat, quat2rot
from .so3 import so3_log


class Transformation:
    """
    Rigid transformation ``T_parent_child``.

    Maps child coordinates to parent coordinates: ``p_parent = R p_child + t``.

    Parameters
    ----------
    rotation : np.ndarray, optional
        Active rotation matrix (3x3), identity by default
    translation : np.ndarray, optional
        Position of the child origin in the parent frame, zero by default
    """

    __slots__ = ('rotation', 'translation')

    def __init__(self, rotation: Optional[np.ndarray] = None,
                 translation: Optional[np.ndarray] = None):
        self.rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.double)
        self.translation = np.zeros(3) if translation is None else np.asarray(translation, dtype=np.double).reshape(3)

    @classmethod
    def from_quaternion(cls, q: np.ndarray, translation: Optional[np.ndarray] = None) -> 'Transformation':
        """Build from an internal (JPL) quaternion [x, y, z, w]"""
        return cls(quat2rot(np.asarray(q, dtype=np.double)), translation)

    def __mul__(self, other: 'Transformation') -> 'Transformation':
        return Transformation(self.rotation @ other.rotation,
                              self.rotation @ other.translation + self.translation)

    def inverse(self) -> 'Transformation':
        r_t = self.rotation.T
        return Transformation(r_t, -r_t @ self.translation)

    def transform(self, point: np.ndarray) -> np.ndarray:
        return self.rotation @ np.asarray(point, dtype=np.double) + self.translation

    @property
    def rotation_vector(self) -> np.ndarray:
        return so3_log(np.ascontiguousarray(self.rotation))

    @property
    def quaternion(self) -> np.ndarray:
        return axis_angle2quat(self.rotation_vector)

    def __repr__(self):
        return f"Transformation(t={self.translation}, r={self.rotation_vector})"


def pose_to_string(transformation: Transformation) -> str:
    """Human readable pose ``P(t= x y z , r=rx ry rz)``"""
    t = ' '.join(f"{v:g}" for v in transformation.translation)
    r = ' '.join(f"{v:g}" for v in transformation.rotation_vector)
    return f"P(t= {t} , r={r})"
