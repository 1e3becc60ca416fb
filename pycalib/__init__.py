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
pycalib - Modular Multi-Sensor Calibration Library

A Python library for batch calibration of spatial and temporal parameters of
robotic sensor setups: calibration variables loaded from and written back to
a hierarchical configuration, modules linked by name, spline trajectories,
pose, motion capture and IMU sensors, and a least squares backend.
"""

__version__ = "1.0.0"
__author__ = "pycalib Development Team"
__title__ = "pycalib"
__description__ = "Modular batch calibration of multi-sensor robotic systems"

from . import logger
from .core import *
from .attitude import *
from .model import *
from .sensors import *
from .calibrator import *
