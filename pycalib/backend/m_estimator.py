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

"""Robust cost functions (M-estimators) for error terms"""

import logging

import numpy as np

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class MEstimator:
    """Robust loss ``rho(s)`` of a squared Mahalanobis error ``s``"""

    name = ""

    def rho(self, squared_error: float) -> float:
        raise NotImplementedError

    def get_weight(self, squared_error: float) -> float:
        """Derivative of ``rho`` at ``squared_error``"""
        raise NotImplementedError

    def residual_scale(self, squared_error: float) -> float:
        """Factor applied to the whitened residual so its squared norm equals ``rho(s)``"""
        if squared_error <= 0.0:
            return 1.0
        return np.sqrt(self.rho(squared_error) / squared_error)


class NoMEstimator(MEstimator):
    """Plain squared loss"""

    name = "None"

    def rho(self, squared_error: float) -> float:
        return squared_error

    def get_weight(self, squared_error: float) -> float:
        return 1.0

    def residual_scale(self, squared_error: float) -> float:
        return 1.0


class CauchyMEstimator(MEstimator):
    """
    Cauchy loss ``rho(s) = sigma2 * log(1 + s / sigma2)``.

    Parameters
    ----------
    sigma2 : float
        Squared scale of the loss
    """

    name = "cauchy"

    def __init__(self, sigma2: float = 10.0):
        if sigma2 <= 0.0:
            raise ConfigurationError(f"Cauchy sigma^2 must be positive, got {sigma2}")
        self.sigma2 = float(sigma2)

    def rho(self, squared_error: float) -> float:
        return self.sigma2 * np.log1p(squared_error / self.sigma2)

    def get_weight(self, squared_error: float) -> float:
        return 1.0 / (1.0 + squared_error / self.sigma2)

    def __repr__(self):
        return f"CauchyMEstimator(sigma2={self.sigma2:g})"


def get_m_estimator(name: str, config) -> MEstimator:
    """
    Create an M-estimator from a configuration child.

    Parameters
    ----------
    name : str
        Name of the owner, used for logging only
    config : ValueStore
        Configuration with key ``name`` (empty, ``None`` or ``cauchy``) and,
        for Cauchy, the optional ``cauchySigma2`` (default 10)

    Returns
    -------
    MEstimator
    """
    estimator_name = config.get_string("name", "")
    if not estimator_name or estimator_name == "None":
        logger.info(f"Using no M-estimator for {name}")
        return NoMEstimator()
    if estimator_name == "cauchy":
        sigma2 = config.get_double("cauchySigma2", 10.0)
        logger.info(f"Using Cauchy M-estimator(sigma^2 = {sigma2:g}) for {name}")
        return CauchyMEstimator(sigma2)
    raise ConfigurationError(f"Unknown M-estimator '{estimator_name}' for {name}")
