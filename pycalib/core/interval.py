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

"""Time intervals of measurement batches"""

from dataclasses import dataclass


@dataclass
class Interval:
    """Half-open time range ``[start, end)`` in seconds.

    Attributes
    ----------
    start : float
        First time of the interval
    end : float
        First time after the interval
    """
    start: float
    end: float

    def __post_init__(self):
        self.start = float(self.start)
        self.end = float(self.end)

    @property
    def elapsed_time(self) -> float:
        return self.end - self.start

    def contains(self, t: float) -> bool:
        """Check membership in ``[start, end)``"""
        return self.start <= t < self.end

    def covers(self, t: float) -> bool:
        """Check membership in the closed range ``[start, end]``"""
        return self.start <= t <= self.end

    def extended(self, lower: float, upper: float) -> 'Interval':
        """Interval with both ends moved, e.g. by delay bounds"""
        return Interval(self.start + lower, self.end + upper)

    def __str__(self):
        return f"[{self.start:g}, {self.end:g})"
