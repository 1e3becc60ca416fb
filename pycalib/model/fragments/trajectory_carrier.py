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

"""Spline configuration of batch trajectories and bias models"""

import math

from ...core.exceptions import ConfigurationError


class TrajectoryCarrier:
    """
    Configuration of a single uniform spline.

    Keys: ``knotsPerSecond`` (default 1), ``splineOrder`` (default 4),
    ``fittingLambda`` (default 0).
    """

    def __init__(self, config):
        self.knots_per_second = config.get_double("knotsPerSecond", 1.0)
        self.spline_order = config.get_int("splineOrder", 4)
        self.fitting_lambda = config.get_double("fittingLambda", 0.0)
        if self.knots_per_second <= 0:
            raise ConfigurationError(f"knotsPerSecond must be positive, got {self.knots_per_second}")

    def get_num_segments(self, elapsed_time: float) -> int:
        return max(1, int(math.ceil(self.knots_per_second * elapsed_time)))


class So3R3TrajectoryCarrier:
    """
    Configuration of a rotation and a translation spline.

    Keys: ``knotsPerSecond``, ``rotSplineOrder``, ``rotFittingLambda``,
    ``transSplineOrder``, ``transFittingLambda``.

    Parameters
    ----------
    name : str
        Name of the owning module, used for logging
    config : ValueStore
        The ``splines`` child of the owner
    """

    def __init__(self, name: str, config):
        self.name = name
        self.knots_per_second = config.get_double("knotsPerSecond", 5.0)
        self.rot_spline_order = config.get_int("rotSplineOrder", 4)
        self.rot_fitting_lambda = config.get_double("rotFittingLambda", 1e-3)
        self.trans_spline_order = config.get_int("transSplineOrder", 4)
        self.trans_fitting_lambda = config.get_double("transFittingLambda", 1e-3)
        if self.knots_per_second <= 0:
            raise ConfigurationError(f"knotsPerSecond must be positive, got {self.knots_per_second}")

    def get_num_segments(self, elapsed_time: float, num_measurements: int) -> int:
        """Segments for a batch: limited by the knot rate unless measurements are sparser"""
        measurements_per_second = round(num_measurements / elapsed_time) if elapsed_time > 0 else 0
        if measurements_per_second > self.knots_per_second:
            return max(1, int(math.ceil(self.knots_per_second * elapsed_time)))
        return max(1, num_measurements)
