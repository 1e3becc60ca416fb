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
Design variables of the optimization backend.

A design variable is a parameter block owned by the optimizer. It exposes its
parameters as a column vector, a minimal (tangent space) update operator and
the matching minimal difference. Only active design variables are optimized.
"""

import numpy as np

from ..attitude.quaternion import (axis_angle2quat, quat2axis_angle, quat2rot, quat_inv,
                                   quat_mult, quat_normalize)
from .expression import Expression


class DesignVariable:
    """Base class of optimizer owned parameter blocks"""

    def __init__(self):
        self._active = False
        self.block_index = -1

    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool):
        self._active = bool(active)

    def minimal_dimensions(self) -> int:
        raise NotImplementedError

    def get_parameters(self) -> np.ndarray:
        """Parameters as a column vector"""
        raise NotImplementedError

    def set_parameters(self, params):
        raise NotImplementedError

    def update(self, dx):
        """Apply a tangent space increment (box plus)"""
        raise NotImplementedError

    def minimal_difference(self, x_hat) -> np.ndarray:
        """Tangent space difference between the current value and parameters ``x_hat``"""
        raise NotImplementedError

    def to_expression(self) -> Expression:
        return Expression(self.value, (self,))

    def value(self) -> np.ndarray:
        return self.get_parameters().ravel()


class EuclideanPoint(DesignVariable):
    """Vector valued design variable of any dimension"""

    def __init__(self, value):
        super().__init__()
        self._p = np.array(value, dtype=np.double).reshape(-1)

    def minimal_dimensions(self) -> int:
        return self._p.size

    def get_parameters(self) -> np.ndarray:
        return self._p.reshape(-1, 1).copy()

    def set_parameters(self, params):
        self._p = np.array(params, dtype=np.double).reshape(self._p.size)

    def update(self, dx):
        self._p = self._p + np.asarray(dx, dtype=np.double).reshape(self._p.size)

    def minimal_difference(self, x_hat) -> np.ndarray:
        return self._p - np.asarray(x_hat, dtype=np.double).reshape(self._p.size)

    def value(self) -> np.ndarray:
        return self._p.copy()

    def __repr__(self):
        return f"EuclideanPoint({self._p})"


class Scalar(EuclideanPoint):
    """One dimensional design variable"""

    def __init__(self, value: float):
        super().__init__([value])

    def to_scalar(self) -> float:
        return float(self._p[0])

    def __repr__(self):
        return f"Scalar({self._p[0]:g})"


class RotationQuaternion(DesignVariable):
    """
    Rotation design variable stored as a JPL quaternion ``[x, y, z, w]``.

    Updates are applied from the left: ``q <- exp(dx) * q``.
    """

    def __init__(self, q=None):
        super().__init__()
        self._q = np.array([0.0, 0.0, 0.0, 1.0]) if q is None else quat_normalize(np.asarray(q, dtype=np.double))

    def minimal_dimensions(self) -> int:
        return 3

    def get_parameters(self) -> np.ndarray:
        return self._q.reshape(4, 1).copy()

    def set_parameters(self, params):
        self._q = quat_normalize(np.array(params, dtype=np.double).reshape(4))

    def update(self, dx):
        dq = axis_angle2quat(np.asarray(dx, dtype=np.double).reshape(3))
        self._q = quat_normalize(quat_mult(dq, self._q))

    def minimal_difference(self, x_hat) -> np.ndarray:
        q_hat = np.asarray(x_hat, dtype=np.double).reshape(4)
        return quat2axis_angle(quat_mult(self._q, quat_inv(q_hat)))

    def value(self) -> np.ndarray:
        return self._q.copy()

    def to_rotation_matrix_expression(self):
        return self.to_expression().map(quat2rot)

    def __repr__(self):
        return f"RotationQuaternion({self._q})"
