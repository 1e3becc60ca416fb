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
Quadratic integral error terms.

The integral ``int_{t0}^{t1} |L f(t)|^2 dt`` of a vector valued expression
``f`` is approximated by Gauss-Legendre quadrature and split into one error
term per node, ``sqrt(w_k) L f(t_k)``. Used for white noise acceleration
regularizers of trajectories and random walk models of bias splines.
"""

import logging
from typing import Callable

import numpy as np

from ..backend.error_term import MeasurementErrorTerm
from ..backend.expression import Expression

logger = logging.getLogger(__name__)


def quadrature_points(t_min: float, t_max: float, num_points: int):
    """Gauss-Legendre nodes and weights on ``[t_min, t_max]``"""
    nodes, weights = np.polynomial.legendre.leggauss(num_points)
    half = 0.5 * (t_max - t_min)
    return t_min + half * (nodes + 1.0), half * weights


class QuadraticIntegralErrorTerm(MeasurementErrorTerm):
    """One quadrature node of a quadratic integral, with residual ``sqrt(w) L f(t)``"""

    def __init__(self, expression: Expression, sqrt_inv_r: np.ndarray, weight: float, group: str = ""):
        value = np.atleast_1d(np.asarray(expression.evaluate(), dtype=np.double))
        super().__init__(expression, np.zeros(value.size), group=group)
        self.set_sqrt_information(np.sqrt(weight) * np.atleast_2d(sqrt_inv_r))


def add_quadratic_integral_error_terms(receiver, t_min: float, t_max: float, num_points: int,
                                       expression_at: Callable[[float], Expression],
                                       sqrt_inv_r: np.ndarray, group: str = "") -> float:
    """
    Add the quadrature error terms of a quadratic integral to ``receiver``.

    Parameters
    ----------
    receiver : ErrorTermReceiver or ErrorTermStatistics
        Sink of the error terms
    t_min, t_max : float
        Integration range
    num_points : int
        Number of quadrature nodes
    expression_at : callable
        ``expression_at(t)`` returns the integrand expression at time t
    sqrt_inv_r : np.ndarray
        Square root of the integrand information matrix
    group : str
        Error term group name

    Returns
    -------
    float
        Initial value of the integral
    """
    times, weights = quadrature_points(t_min, t_max, num_points)
    total = 0.0
    for t, w in zip(times, weights):
        error_term = QuadraticIntegralErrorTerm(expression_at(float(t)), sqrt_inv_r, float(w), group)
        total += error_term.evaluate_error()
        if hasattr(receiver, "add"):
            receiver.add(float(t), error_term)
        else:
            receiver.add_error_term(error_term)
    logger.info(f"Added {num_points} {group} error terms, total initial cost {total:g}")
    return total
