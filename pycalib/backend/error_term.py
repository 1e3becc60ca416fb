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
Error terms of the optimization backend.

An error term evaluates a raw residual ``e`` from its design variables and
whitens it with a square-root information matrix ``L`` (``L^T L = R^-1``),
so that ``|L e|^2`` is the squared Mahalanobis distance. An optional
M-estimator scales the whitened residual.
"""

from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from .expression import _unique
from .m_estimator import MEstimator, NoMEstimator

CV_PRIOR_GROUP = "CvPrior"


class ErrorTermReceiver:
    """Sink for error terms produced while assembling a batch"""

    def add_error_term(self, error_term: 'ErrorTerm'):
        raise NotImplementedError


class ErrorTerm:
    """
    Weighted residual contributing to the optimization objective.

    Parameters
    ----------
    design_variables : iterable
        Design variables the residual depends on
    dimension : int
        Residual dimension
    group : str
        Name of the error term group, used for statistics
    """

    def __init__(self, design_variables: Iterable, dimension: int, group: str = ""):
        self._design_variables = _unique(design_variables)
        self.dimension = int(dimension)
        self.group = group
        self._sqrt_information = np.eye(self.dimension)
        self._m_estimator: MEstimator = NoMEstimator()

    def error(self) -> np.ndarray:
        """Raw, unweighted residual"""
        raise NotImplementedError

    def get_design_variables(self) -> list:
        return list(self._design_variables)

    def is_active(self) -> bool:
        return True

    def is_constant(self) -> bool:
        return not any(dv.is_active() for dv in self._design_variables)

    def set_sqrt_information(self, sqrt_information: np.ndarray):
        self._sqrt_information = np.atleast_2d(np.asarray(sqrt_information, dtype=np.double))

    def set_covariance_sqrt(self, covariance_sqrt: np.ndarray):
        self.set_sqrt_information(np.linalg.inv(np.atleast_2d(covariance_sqrt)))

    def set_inv_r(self, inv_r: np.ndarray):
        """Set the information matrix (inverse covariance)"""
        self.set_sqrt_information(np.linalg.cholesky(np.atleast_2d(inv_r)).T)

    def get_inv_r(self) -> np.ndarray:
        return self._sqrt_information.T @ self._sqrt_information

    def set_m_estimator(self, m_estimator: Optional[MEstimator]):
        self._m_estimator = m_estimator if m_estimator is not None else NoMEstimator()

    def get_m_estimator(self) -> MEstimator:
        return self._m_estimator

    def whitened_error(self) -> np.ndarray:
        return self._sqrt_information @ np.asarray(self.error(), dtype=np.double).reshape(self.dimension)

    def evaluate_error(self) -> float:
        """Squared Mahalanobis error ``e^T R^-1 e``"""
        w = self.whitened_error()
        return float(w @ w)

    def weighted_error(self) -> np.ndarray:
        """Whitened residual scaled by the M-estimator"""
        w = self.whitened_error()
        return w * self._m_estimator.residual_scale(float(w @ w))


class MeasurementErrorTerm(ErrorTerm):
    """
    Residual between an expression and a measurement.

    Parameters
    ----------
    expression : Expression
        Predicted value
    measurement : array_like
        Measured value
    covariance_sqrt : array_like, optional
        Square root of the measurement covariance, identity if None
    difference : callable, optional
        ``difference(predicted, measured)``, plain subtraction if None
    dimension : int, optional
        Residual dimension if it differs from the measurement size
    """

    def __init__(self, expression, measurement, covariance_sqrt=None, group: str = "",
                 m_estimator: Optional[MEstimator] = None,
                 difference: Optional[Callable] = None, dimension: Optional[int] = None):
        self.measurement = np.atleast_1d(np.asarray(measurement, dtype=np.double))
        super().__init__(expression.get_design_variables(), dimension or self.measurement.size, group)
        self.expression = expression
        self._difference = difference
        if covariance_sqrt is not None:
            self.set_covariance_sqrt(covariance_sqrt)
        self.set_m_estimator(m_estimator)

    def error(self) -> np.ndarray:
        predicted = np.atleast_1d(self.expression.evaluate())
        if self._difference is None:
            return predicted - self.measurement
        return self._difference(predicted, self.measurement)


class MarginalizationPriorErrorTerm(ErrorTerm):
    """
    Prior ``d - R * dx`` on the stacked minimal displacement of design variables.

    ``dx`` is the minimal difference of each design variable to its anchor
    value, which defaults to the value at construction time.
    """

    def __init__(self, design_variables: Sequence, d, R, anchors: Optional[Sequence] = None,
                 group: str = ""):
        self.d = np.asarray(d, dtype=np.double).reshape(-1)
        self.R = np.atleast_2d(np.asarray(R, dtype=np.double))
        super().__init__(design_variables, self.d.size, group)
        if anchors is None:
            anchors = [dv.get_parameters() for dv in self._design_variables]
        self.anchors = [np.array(a, dtype=np.double) for a in anchors]

    def error(self) -> np.ndarray:
        dx = np.concatenate([dv.minimal_difference(a).reshape(-1)
                             for dv, a in zip(self._design_variables, self.anchors)])
        return self.d - self.R @ dx


class ConditionalErrorTerm(ErrorTerm):
    """
    Error term that only counts while a runtime predicate holds.

    The predicate is evaluated against the live design variable values, so
    the term may switch on and off between solver iterations.
    """

    def __init__(self, error_term: ErrorTerm, predicate: Callable[[], bool]):
        self._inner = error_term
        self.predicate = predicate

    @property
    def inner(self) -> ErrorTerm:
        return self._inner

    @property
    def dimension(self) -> int:
        return self._inner.dimension

    @property
    def group(self) -> str:
        return self._inner.group

    def error(self) -> np.ndarray:
        return self._inner.error()

    def get_design_variables(self) -> list:
        return self._inner.get_design_variables()

    def is_active(self) -> bool:
        return bool(self.predicate()) and self._inner.is_active()

    def is_constant(self) -> bool:
        return self._inner.is_constant()

    def whitened_error(self) -> np.ndarray:
        return self._inner.whitened_error()

    def weighted_error(self) -> np.ndarray:
        return self._inner.weighted_error()

    def evaluate_error(self) -> float:
        return self._inner.evaluate_error()

    def get_inv_r(self) -> np.ndarray:
        return self._inner.get_inv_r()

    def get_m_estimator(self) -> MEstimator:
        return self._inner.get_m_estimator()


def add_condition(error_term: ErrorTerm, predicate: Callable[[], bool]) -> ConditionalErrorTerm:
    """Wrap ``error_term`` so it is only active while ``predicate()`` is true"""
    return ConditionalErrorTerm(error_term, predicate)
