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
JPL quaternion algebra.

Quaternions are stored as ``[x, y, z, w]`` (vector part first) and follow the
JPL multiplication convention, for which ``C(q * p) = C(q) C(p)`` holds for the
passive rotation matrices ``C``. This is the internal convention of all
rotation design variables; Hamilton quaternions with the same components
describe the inverse rotation and are converted by conjugation.

References:
    Indirect Kalman Filter for 3D Attitude Estimation
    - (2005) Nikolas Trawny, Stergios I. Roumeliotis
"""

from enum import Enum

import numpy as np
from numba import njit


class QuaternionConvention(Enum):
    """Sign conventions of externally supplied quaternion components"""
    HAMILTON = 'hamilton'
    JPL = 'jpl'

    @classmethod
    def parse(cls, name: str) -> 'QuaternionConvention':
        try:
            return cls(name.strip().lower())
        except ValueError:
            from ..core.exceptions import ConfigurationError
            raise ConfigurationError(f"Unknown quaternion convention '{name}'") from None


INTERNAL_CONVENTION = QuaternionConvention.JPL
DEFAULT_EXTERNAL_CONVENTION = QuaternionConvention.HAMILTON


def needs_conjugation(external: QuaternionConvention) -> bool:
    """True if quaternions in ``external`` convention must be conjugated"""
    return external != INTERNAL_CONVENTION


def convert_quaternion(q, external: QuaternionConvention) -> np.ndarray:
    """Convert between the ``external`` and the internal convention.

    Conjugation is an involution, so the same call converts in both
    directions.
    """
    q = np.asarray(q, dtype=np.double)
    return quat_inv(q) if needs_conjugation(external) else q.copy()


@njit(cache=True, fastmath=True)
def quat_identity():
    """Identity quaternion ``[0, 0, 0, 1]``"""
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat_inv(q):
    """
    Inverse (conjugate) of a unit quaternion.

    Parameters
    ----------
    q : array_like, shape (4,)
        Quaternion [x, y, z, w]

    Returns
    -------
    q_inv : ndarray, shape (4,)
        Conjugated quaternion [-x, -y, -z, w]
    """
    return np.array([-q[0], -q[1], -q[2], q[3]], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat_mult(q, p):
    """
    JPL quaternion product ``q * p``.

    Parameters
    ----------
    q, p : array_like, shape (4,)
        Quaternions [x, y, z, w]

    Returns
    -------
    r : ndarray, shape (4,)
        Product quaternion
    """
    qx, qy, qz, qw = q[0], q[1], q[2], q[3]
    px, py, pz, pw = p[0], p[1], p[2], p[3]
    # q_w p_v + p_w q_v - q_v x p_v
    x = qw*px + pw*qx - (qy*pz - qz*py)
    y = qw*py + pw*qy - (qz*px - qx*pz)
    z = qw*pz + pw*qz - (qx*py - qy*px)
    w = qw*pw - (qx*px + qy*py + qz*pz)
    return np.array([x, y, z, w], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat_normalize(q):
    n = np.sqrt(q[0]*q[0] + q[1]*q[1] + q[2]*q[2] + q[3]*q[3])
    return np.array([q[0]/n, q[1]/n, q[2]/n, q[3]/n], dtype=np.double)


@njit(cache=True, fastmath=True)
def axis_angle2quat(a):
    """
    Convert an axis-angle (rotation) vector to a quaternion.

    Parameters
    ----------
    a : array_like, shape (3,)
        Rotation vector, direction is the axis and norm the angle (rad)

    Returns
    -------
    q : ndarray, shape (4,)
        Unit quaternion [x, y, z, w]
    """
    angle = np.sqrt(a[0]*a[0] + a[1]*a[1] + a[2]*a[2])
    if angle < 1e-12:
        return quat_normalize(np.array([0.5*a[0], 0.5*a[1], 0.5*a[2], 1.0], dtype=np.double))
    s = np.sin(0.5*angle) / angle
    return np.array([a[0]*s, a[1]*s, a[2]*s, np.cos(0.5*angle)], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat2axis_angle(q):
    """
    Convert a quaternion to its axis-angle (rotation) vector.

    The inverse of ``axis_angle2quat`` for rotation angles below 2*pi.

    Parameters
    ----------
    q : array_like, shape (4,)
        Unit quaternion [x, y, z, w]

    Returns
    -------
    a : ndarray, shape (3,)
        Rotation vector (rad)
    """
    st = np.sqrt(q[0]*q[0] + q[1]*q[1] + q[2]*q[2])
    ct = q[3]
    if st < 1e-12:
        return np.array([2.0*q[0]/ct, 2.0*q[1]/ct, 2.0*q[2]/ct], dtype=np.double)
    theta = 2.0 * np.arctan2(st, ct)
    f = theta / st
    return np.array([q[0]*f, q[1]*f, q[2]*f], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat2rot(q):
    """
    Active rotation matrix of a JPL quaternion.

    ``quat2rot(axis_angle2quat(a))`` equals the matrix exponential of the
    skew symmetric form of ``a``.

    Parameters
    ----------
    q : array_like, shape (4,)
        Quaternion [x, y, z, w], normalized internally

    Returns
    -------
    R : ndarray, shape (3, 3)
        Rotation matrix mapping child to parent coordinates
    """
    qn = quat_normalize(q)
    x, y, z, w = qn[0], qn[1], qn[2], qn[3]
    d = 2.0*w*w - 1.0
    R = np.array([[d + 2*x*x,    2*(x*y - w*z), 2*(x*z + w*y)],
                  [2*(x*y + w*z), d + 2*y*y,    2*(y*z - w*x)],
                  [2*(x*z - w*y), 2*(y*z + w*x), d + 2*z*z]],
                 dtype=np.double)
    return R
