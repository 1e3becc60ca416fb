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

"""Temporal calibration variable of a module: the measurement delay"""

import logging
from typing import List, Optional

from ...backend.expression import Expression
from ...core.exceptions import ConfigurationError
from ..parameterization import ParamKind

logger = logging.getLogger(__name__)


class DelayCv:
    """
    Optional scalar ``delay`` with a-priori bounds.

    A measurement stamped ``t`` by the module happened at ``t - delay``.
    The bounds ``delay/lowerBound`` and ``delay/upperBound`` default to 0.

    Parameters
    ----------
    module : Module
        Owning module, whose config child ``delay`` configures the variable
    """

    def __init__(self, module):
        self.delay_variable = module.create_cv_if_used("delay", ParamKind.SCALAR)
        delay_config = module.config.get_child("delay")
        if self.delay_variable is not None:
            self.lower_bound = delay_config.get_double("lowerBound", 0.0)
            self.upper_bound = delay_config.get_double("upperBound", 0.0)
            if self.lower_bound > self.upper_bound:
                raise ConfigurationError(
                    f"Delay bounds of {module.name} are inverted: "
                    f"[{self.lower_bound}, {self.upper_bound}]")
        else:
            self.lower_bound = self.upper_bound = 0.0

    def has_delay(self) -> bool:
        return self.delay_variable is not None

    def share_from(self, other: 'DelayCv'):
        """Use the delay of another module"""
        self.delay_variable = other.delay_variable
        self.lower_bound = other.lower_bound
        self.upper_bound = other.upper_bound

    def get_calibration_variables(self) -> List:
        return [self.delay_variable] if self.delay_variable is not None else []

    def set_active(self, temporal: bool):
        if self.delay_variable is not None:
            self.delay_variable.set_active(temporal)

    def get_delay(self) -> float:
        if self.delay_variable is None:
            return 0.0
        return float(self.delay_variable.get_value()[0])

    def get_delay_expression(self) -> Expression:
        if self.delay_variable is None:
            return Expression.constant(0.0)
        return self.delay_variable.to_expression().map(lambda v: float(v[0]))

    def get_delay_lower_bound(self) -> float:
        return self.lower_bound

    def get_delay_upper_bound(self) -> float:
        return self.upper_bound

    def is_delay_within_bounds(self, delay: Optional[float] = None) -> bool:
        delay = self.get_delay() if delay is None else delay
        return self.lower_bound <= delay <= self.upper_bound
