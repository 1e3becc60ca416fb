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

"""Per group statistics of the error terms added to a batch"""

import logging
import math

logger = logging.getLogger(__name__)


class ErrorTermStatistics:
    """
    Error term receiver collecting statistics of one error term group.

    Forwards error terms to ``receiver`` unless ``observe_only`` is set, in
    which case the terms are only evaluated and counted.

    Parameters
    ----------
    name : str
        Error term group name
    receiver : ErrorTermReceiver
        Problem the error terms are forwarded to
    observe_only : bool
        Count without adding
    time_origin : float
        Subtracted from timestamps in reports
    """

    def __init__(self, name: str, receiver, observe_only: bool = False, time_origin: float = 0.0):
        self.name = name
        self.receiver = receiver
        self.observe_only = observe_only
        self.time_origin = time_origin
        self.counter = 0
        self.num_added = 0
        self.total_cost = 0.0
        self.min_time = math.inf
        self.max_time = -math.inf

    def add(self, timestamp, error_term) -> bool:
        """Count, evaluate and (unless observing) forward ``error_term``"""
        self.counter += 1
        self.total_cost += error_term.evaluate_error()
        if timestamp is not None:
            self.min_time = min(self.min_time, timestamp)
            self.max_time = max(self.max_time, timestamp)
        if self.observe_only:
            return False
        added = self.receiver.add_error_term(error_term)
        if added is not False:
            self.num_added += 1
        return added is not False

    def add_error_term(self, error_term) -> bool:
        return self.add(None, error_term)

    @property
    def mean_cost(self) -> float:
        return self.total_cost / self.counter if self.counter else 0.0

    def __str__(self):
        text = (f"{self.name}: {self.counter} error terms"
                f"{' (observed only)' if self.observe_only else ''}, "
                f"{self.num_added} added, total initial cost {self.total_cost:g}, "
                f"mean {self.mean_cost:g}")
        if self.counter and self.max_time >= self.min_time:
            text += (f", between {self.min_time - self.time_origin:g}s and "
                     f"{self.max_time - self.time_origin:g}s")
        return text

    def log(self, level=logging.INFO):
        logger.log(level, str(self))
