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
Uniform Euclidean B-splines with design variable control points.

The spline of order ``k + 1`` over ``[t_min, t_max]`` with ``N`` segments uses
the uniform knot vector ``t_min + dt * (-k, ..., N + k)`` and ``N + k``
control points. Each control point is an ``EuclideanPoint`` design variable,
so the optimizer can move the spline directly. Evaluation is delegated to
``scipy.interpolate.BSpline``.
"""

import logging
from typing import Optional, Union

import numpy as np
from scipy.interpolate import BSpline

from ..backend.design_variable import EuclideanPoint
from ..backend.expression import Expression

logger = logging.getLogger(__name__)

# tolerance on the time range, relative to the segment length
_TIME_EPS = 1e-9


class EuclideanBSpline:
    """
    Uniform B-spline in R^n.

    Parameters
    ----------
    order : int
        Spline order (degree + 1), 4 for cubic splines
    dimension : int
        Dimension of the spline values
    """

    def __init__(self, order: int = 4, dimension: int = 3):
        if order < 2:
            raise ValueError(f"Spline order must be at least 2, got {order}")
        self.order = int(order)
        self.degree = self.order - 1
        self.dimension = int(dimension)
        self._knots = None
        self._dt = 0.0
        self._num_segments = 0
        self._control_points = []

    def is_initialized(self) -> bool:
        return self._knots is not None

    @property
    def t_min(self) -> float:
        return float(self._knots[self.degree])

    @property
    def t_max(self) -> float:
        return float(self._knots[self.degree + self._num_segments])

    @property
    def num_segments(self) -> int:
        return self._num_segments

    @property
    def knots(self) -> np.ndarray:
        return self._knots.copy()

    def num_control_points(self) -> int:
        return self._num_segments + self.degree

    def _init_knots(self, t_min: float, t_max: float, num_segments: int):
        if not t_max > t_min:
            raise ValueError(f"Invalid spline time range [{t_min}, {t_max}]")
        if num_segments < 1:
            raise ValueError(f"Number of spline segments must be positive, got {num_segments}")
        self._num_segments = int(num_segments)
        self._dt = (t_max - t_min) / self._num_segments
        k = self.degree
        self._knots = t_min + self._dt * np.arange(-k, self._num_segments + k + 1, dtype=np.double)

    def _set_coefficients(self, coefficients: np.ndarray):
        self._control_points = [EuclideanPoint(c) for c in coefficients]

    def init_constant_uniform_spline(self, t_min: float, t_max: float, num_segments: int, value):
        """Initialize a spline with value ``value`` everywhere"""
        self._init_knots(t_min, t_max, num_segments)
        value = np.asarray(value, dtype=np.double).reshape(self.dimension)
        self._set_coefficients(np.tile(value, (self.num_control_points(), 1)))

    def init_uniform_spline(self, t_min: float, t_max: float, times, values,
                            num_segments: int, lambda_: float = 0.0):
        """
        Fit a spline to samples by regularized linear least squares.

        Parameters
        ----------
        t_min, t_max : float
            Time range of the spline
        times : array_like, shape (M,)
            Sample times, clipped to the time range
        values : array_like, shape (M, dimension)
            Sample values
        num_segments : int
            Number of uniform segments
        lambda_ : float
            Weight of the squared second differences of the control points
        """
        self._init_knots(t_min, t_max, num_segments)
        times = np.clip(np.asarray(times, dtype=np.double), self.t_min, self.t_max)
        values = np.asarray(values, dtype=np.double).reshape(len(times), self.dimension)
        n = self.num_control_points()

        B = BSpline.design_matrix(times, self._knots, self.degree).toarray()
        rows, rhs = [B], [values]
        if lambda_ > 0.0 and n > 2:
            D2 = np.diff(np.eye(n), n=2, axis=0)
            rows.append(np.sqrt(lambda_) * D2)
            rhs.append(np.zeros((n - 2, self.dimension)))
        coefficients, *_ = np.linalg.lstsq(np.vstack(rows), np.vstack(rhs), rcond=None)
        self._set_coefficients(coefficients)
        logger.debug(f"Fitted spline with {n} control points to {len(times)} samples")

    def get_coefficients(self) -> np.ndarray:
        return np.vstack([cp.value() for cp in self._control_points])

    def _check_time(self, t: float) -> float:
        if not self.is_initialized():
            raise ValueError("Spline is not initialized")
        eps = _TIME_EPS * self._dt
        if t < self.t_min - eps or t > self.t_max + eps:
            raise ValueError(f"Time {t} outside spline range [{self.t_min}, {self.t_max}]")
        return min(max(t, self.t_min), self.t_max)

    def evaluate(self, t: float, derivative: int = 0) -> np.ndarray:
        """Value (or derivative of order ``derivative``) at time ``t``"""
        t = self._check_time(float(t))
        spline = BSpline(self._knots, self.get_coefficients(), self.degree)
        return spline(t, nu=derivative)

    def segment_index(self, t: float) -> int:
        t = self._check_time(float(t))
        i = int(np.floor((t - self.t_min) / self._dt))
        return min(max(i, 0), self._num_segments - 1)

    def get_design_variables(self) -> list:
        return list(self._control_points)

    def get_design_variables_at(self, t: float) -> list:
        """Control points with non-zero basis functions at time ``t``"""
        i = self.segment_index(t)
        return self._control_points[i:i + self.order]

    def get_design_variables_between(self, t_start: float, t_end: float) -> list:
        i = self.segment_index(min(max(t_start, self.t_min), self.t_max))
        j = self.segment_index(min(max(t_end, self.t_min), self.t_max))
        return self._control_points[i:j + self.order]

    def get_expression_at(self, time: Union[float, Expression], derivative: int = 0,
                          time_bounds: Optional[tuple] = None) -> Expression:
        """
        Expression of the spline value at a fixed time or a time expression.

        A time expression (e.g. a timestamp corrected by an estimated delay)
        may move during optimization, so the expression depends on all
        control points covering ``time_bounds``, the whole spline by default.
        """
        if isinstance(time, Expression):
            lower, upper = time_bounds if time_bounds is not None else (self.t_min, self.t_max)
            dvs = time.get_design_variables() + self.get_design_variables_between(lower, upper)

            def evaluate():
                t = float(np.asarray(time.evaluate()).reshape(-1)[0])
                return self.evaluate(min(max(t, self.t_min), self.t_max), derivative)
            return Expression(evaluate, dvs)

        t = float(time)
        return Expression(lambda: self.evaluate(t, derivative), self.get_design_variables_at(t))

    def __repr__(self):
        if not self.is_initialized():
            return f"EuclideanBSpline(order={self.order}, dimension={self.dimension})"
        return (f"EuclideanBSpline(order={self.order}, dimension={self.dimension}, "
                f"range=[{self.t_min:g}, {self.t_max:g}], segments={self._num_segments})")
