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

"""Exception taxonomy of the calibration framework.

Configuration and resolution errors represent operator mistakes in the
calibration setup, consistency errors represent a wrong calling sequence.
All of them abort the current batch.
"""


class CalibrationError(RuntimeError):
    """Base class of all fatal calibration errors"""


class ConfigurationError(CalibrationError, ValueError):
    """Malformed or missing configuration (sigma strings, duplicate names, empty links)"""


class ResolutionError(CalibrationError, LookupError):
    """A name could not be resolved to a frame, module, sensor or trajectory"""


class ConsistencyError(CalibrationError):
    """An operation was called in the wrong phase or state"""
