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
Batch trajectory made of a rotation vector spline and a translation spline.

The pose of ``frame`` in ``referenceFrame`` at time t is
``T(t) = (exp(phi(t)), p(t))``. With ``R = exp(phi)`` the body angular
velocity is ``w_b = J_r(phi) dphi/dt``.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ...attitude.quaternion import quat2rot
from ...attitude.so3 import so3_exp, so3_log, so3_right_jacobian
from ...attitude.transformation import Transformation
from ...backend.expression import Expression
from ...factors.integral_factor import add_quadratic_integral_error_terms
from ...splines.bspline import EuclideanBSpline
from .trajectory_carrier import So3R3TrajectoryCarrier

logger = logging.getLogger(__name__)

# central difference step for angular accelerations (s)
_ANGULAR_ACCELERATION_STEP = 1e-5


def unwrap_rotation_vectors(rotation_vectors: np.ndarray) -> np.ndarray:
    """Choose for every rotation vector the 2*pi equivalent closest to its predecessor"""
    result = np.array(rotation_vectors, dtype=np.double, copy=True)
    for i in range(1, len(result)):
        phi = result[i]
        angle = np.linalg.norm(phi)
        if angle < 1e-12:
            continue
        axis = phi / angle
        candidates = (phi, phi - 2.0 * np.pi * axis, phi + 2.0 * np.pi * axis)
        result[i] = min(candidates, key=lambda c: np.linalg.norm(c - result[i - 1]))
    return result


class So3R3Trajectory:
    """
    Rotation and translation splines of one batch.

    Parameters
    ----------
    carrier : So3R3TrajectoryCarrier
        Spline configuration
    """

    def __init__(self, carrier: So3R3TrajectoryCarrier):
        self.carrier = carrier
        self.rotation_spline = EuclideanBSpline(carrier.rot_spline_order, 3)
        self.translation_spline = EuclideanBSpline(carrier.trans_spline_order, 3)

    def get_rotation_spline(self) -> EuclideanBSpline:
        return self.rotation_spline

    def get_translation_spline(self) -> EuclideanBSpline:
        return self.translation_spline

    def fit_splines(self, interval, timestamps: Sequence[float], translations: np.ndarray,
                    rotations: np.ndarray):
        """
        Fit both splines to pose samples.

        Parameters
        ----------
        interval : Interval
            Batch interval, the spline time range
        timestamps : sequence of float
            Sample times
        translations : np.ndarray, shape (N, 3)
            Positions
        rotations : np.ndarray, shape (N, 4)
            Orientations as JPL quaternions
        """
        elapsed = interval.elapsed_time
        num_segments = self.carrier.get_num_segments(elapsed, len(timestamps))
        rot_lambda = self.carrier.rot_fitting_lambda * elapsed
        trans_lambda = self.carrier.trans_fitting_lambda * elapsed
        logger.info(f"Using for the {self.carrier.name} splines numSegments={num_segments}, because "
                    f"the batch is {elapsed:g}s long and splineKnotsPerSecond="
                    f"{self.carrier.knots_per_second:g}, rotFittingLambda="
                    f"{self.carrier.rot_fitting_lambda:g}, transFittingLambda="
                    f"{self.carrier.trans_fitting_lambda:g}")

        rotation_vectors = unwrap_rotation_vectors(
            np.array([so3_log(quat2rot(np.asarray(q, dtype=np.double))) for q in rotations]))
        self.translation_spline.init_uniform_spline(
            interval.start, interval.end, timestamps, translations, num_segments, trans_lambda)
        self.rotation_spline.init_uniform_spline(
            interval.start, interval.end, timestamps, rotation_vectors, num_segments, rot_lambda)

    def init_splines_constant(self, interval, num_measurements: int,
                              translation: Optional[np.ndarray] = None,
                              rotation_vector: Optional[np.ndarray] = None):
        elapsed = interval.elapsed_time
        num_segments = self.carrier.get_num_segments(elapsed, num_measurements)
        logger.info(f"Using for the {self.carrier.name} splines numSegments={num_segments}, because "
                    f"the batch is {elapsed:g}s long and splineKnotsPerSecond="
                    f"{self.carrier.knots_per_second:g}")
        translation = np.zeros(3) if translation is None else translation
        rotation_vector = np.zeros(3) if rotation_vector is None else rotation_vector
        self.translation_spline.init_constant_uniform_spline(
            interval.start, interval.end, num_segments, translation)
        self.rotation_spline.init_constant_uniform_spline(
            interval.start, interval.end, num_segments, rotation_vector)

    def add_to_problem(self, state_active: bool, problem):
        problem.add_spline_design_variables(self.rotation_spline, state_active)
        problem.add_spline_design_variables(self.translation_spline, state_active)

    def get_design_variables(self) -> list:
        return self.rotation_spline.get_design_variables() + self.translation_spline.get_design_variables()

    def get_rotation_matrix(self, t: float) -> np.ndarray:
        return so3_exp(self.rotation_spline.evaluate(t))

    def get_translation(self, t: float) -> np.ndarray:
        return self.translation_spline.evaluate(t)

    def get_transformation(self, t: float) -> Transformation:
        return Transformation(self.get_rotation_matrix(t), self.get_translation(t))

    def get_velocity(self, t: float) -> np.ndarray:
        return self.translation_spline.evaluate(t, 1)

    def get_acceleration(self, t: float) -> np.ndarray:
        return self.translation_spline.evaluate(t, 2)

    def get_angular_velocity(self, t: float) -> np.ndarray:
        """Angular velocity in the trajectory frame"""
        phi = self.rotation_spline.evaluate(t)
        return so3_right_jacobian(phi) @ self.rotation_spline.evaluate(t, 1)

    def get_angular_acceleration(self, t: float) -> np.ndarray:
        """Angular acceleration in the trajectory frame, by central differences"""
        h = _ANGULAR_ACCELERATION_STEP
        t0 = max(t - h, self.rotation_spline.t_min)
        t1 = min(t + h, self.rotation_spline.t_max)
        return (self.get_angular_velocity(t1) - self.get_angular_velocity(t0)) / (t1 - t0)

    def _design_variables_at(self, time, time_bounds):
        if isinstance(time, Expression):
            lower, upper = time_bounds if time_bounds is not None else (
                self.translation_spline.t_min, self.translation_spline.t_max)
            return (time.get_design_variables()
                    + self.rotation_spline.get_design_variables_between(lower, upper)
                    + self.translation_spline.get_design_variables_between(lower, upper))
        return (self.rotation_spline.get_design_variables_at(time)
                + self.translation_spline.get_design_variables_at(time))

    def _time_value(self, time) -> float:
        if isinstance(time, Expression):
            t = float(np.asarray(time.evaluate()).reshape(-1)[0])
            return min(max(t, self.translation_spline.t_min), self.translation_spline.t_max)
        return float(time)

    def get_transformation_expression_at(self, time, time_bounds: Optional[tuple] = None) -> Expression:
        """
        Expression of ``T_reference_frame`` at a fixed time or a time expression.

        For a time expression the control points covering ``time_bounds``
        (default: the whole batch) are dependencies of the expression.
        """
        return Expression(lambda: self.get_transformation(self._time_value(time)),
                          self._design_variables_at(time, time_bounds))

    def get_kinematics_expression_at(self, time, function, time_bounds: Optional[tuple] = None) -> Expression:
        """Expression of ``function(self, t)``, e.g. ``So3R3Trajectory.get_acceleration``"""
        return Expression(lambda: function(self, self._time_value(time)),
                          self._design_variables_at(time, time_bounds))

    def add_white_noise_model_error_terms(self, receiver, name: str, inv_sigma: float,
                                          num_points: int = -1) -> float:
        """Regularize translational and rotational accelerations as white noise"""
        sqrt_inv_r = np.eye(3) * inv_sigma
        cost = 0.0
        for spline, suffix in ((self.translation_spline, "WhiteNoiseAcceleration"),
                               (self.rotation_spline, "WhiteNoiseAngularAcceleration")):
            n = num_points if num_points > 0 else (spline.num_segments + spline.order) * 2
            cost += add_quadratic_integral_error_terms(
                receiver, spline.t_min, spline.t_max, n,
                lambda t, s=spline: s.get_expression_at(t, 2), sqrt_inv_r, name + suffix)
        return cost
