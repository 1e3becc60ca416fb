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

"""Core components of the calibration framework.

This module provides the foundation shared by all other packages:

- **Exceptions**: configuration, resolution and consistency errors
- **Value Store**: hierarchical configuration with live, optionally
  updateable value handles
- **Intervals**: time ranges of measurement batches
"""

from .exceptions import CalibrationError, ConfigurationError, ConsistencyError, ResolutionError
from .interval import Interval
from .value_store import ValueHandle, ValueStore

__all__ = [
    'CalibrationError', 'ConfigurationError', 'ConsistencyError', 'ResolutionError',
    'Interval',
    'ValueHandle', 'ValueStore',
]
