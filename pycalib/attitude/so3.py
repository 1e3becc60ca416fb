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
Rotation group SO(3) kernels.

Rotation vectors ``phi`` map to active rotation matrices via the matrix
exponential ``R = exp([phi]x)``. These kernels back the rotation splines of
trajectories and the rotational part of pose error terms.
"""

import numpy as np
from numba import njit


@njit(cache=True, fastmath=True)
def skew(v):
    """
    Skew symmetric matrix ``[v]x`` with ``[v]x w = v x w``.

    Parameters
    ----------
    v : array_like, shape (3,)
        Input vector

    Returns
    -------
    M : ndarray, shape (3, 3)
        Skew symmetric form of input vector
    """
    return np.array([[  0.0, -v[2],  v[1]],
                     [ v[2],   0.0, -v[0]],
                     [-v[1],  v[0],   0.0]],
                    dtype=np.double)


@njit(cache=True, fastmath=True)
def so3_exp(phi):
    """
    Exponential map from a rotation vector to a rotation matrix.

    Parameters
    ----------
    phi : array_like, shape (3,)
        Rotation vector (rad)

    Returns
    -------
    R : ndarray, shape (3, 3)
        Active rotation matrix
    """
    theta2 = phi[0]*phi[0] + phi[1]*phi[1] + phi[2]*phi[2]
    theta = np.sqrt(theta2)
    K = skew(phi)
    K2 = np.dot(K, K)
    if theta < 1e-8:
        a = 1.0 - theta2 / 6.0
        b = 0.5 - theta2 / 24.0
    else:
        a = np.sin(theta) / theta
        b = (1.0 - np.cos(theta)) / theta2
    return np.eye(3) + a * K + b * K2


@njit(cache=True, fastmath=True)
def so3_log(R):
    """
    Logarithm map from a rotation matrix to a rotation vector.

    Parameters
    ----------
    R : array_like, shape (3, 3)
        Active rotation matrix

    Returns
    -------
    phi : ndarray, shape (3,)
        Rotation vector with norm in [0, pi]
    """
    c = 0.5 * (R[0, 0] + R[1, 1] + R[2, 2] - 1.0)
    c = min(1.0, max(-1.0, c))
    theta = np.arccos(c)
    w = np.array([R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1]], dtype=np.double)
    if theta < 1e-8:
        return 0.5 * w
    if np.pi - theta < 1e-6:
        # w vanishes near pi, recover the axis from the symmetric part
        i = 0
        for j in range(1, 3):
            if R[j, j] > R[i, i]:
                i = j
        axis = np.empty(3, dtype=np.double)
        d = np.sqrt(max(0.5 * (R[i, i] + 1.0), 1e-300))
        for j in range(3):
            if j == i:
                axis[j] = d
            else:
                axis[j] = 0.5 * (R[i, j] + R[j, i]) / (2.0 * d)
        n = np.sqrt(axis[0]*axis[0] + axis[1]*axis[1] + axis[2]*axis[2])
        if axis[0]*w[0] + axis[1]*w[1] + axis[2]*w[2] < 0.0:
            n = -n
        return axis * (theta / n)
    return w * (0.5 * theta / np.sin(theta))


@njit(cache=True, fastmath=True)
def so3_right_jacobian(phi):
    """
    Right Jacobian of SO(3).

    Relates the rate of a rotation vector to the body angular velocity:
    ``omega_body = Jr(phi) dphi/dt``.

    Parameters
    ----------
    phi : array_like, shape (3,)
        Rotation vector (rad)

    Returns
    -------
    Jr : ndarray, shape (3, 3)
        Right Jacobian
    """
    theta2 = phi[0]*phi[0] + phi[1]*phi[1] + phi[2]*phi[2]
    theta = np.sqrt(theta2)
    K = skew(phi)
    K2 = np.dot(K, K)
    if theta < 1e-8:
        a = 0.5 - theta2 / 24.0
        b = 1.0 / 6.0 - theta2 / 120.0
    else:
        a = (1.0 - np.cos(theta)) / theta2
        b = (theta - np.sin(theta)) / (theta2 * theta)
    return np.eye(3) - a * K + b * K2
