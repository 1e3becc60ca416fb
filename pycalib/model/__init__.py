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

"""Calibration model: variables, modules, links and the model registry"""

from .parameterization import ParamKind, Parameterization, get_parameterization
from .covariance import Covariance
from .calibration_variable import CalibrationVariable
from .activation import ALL_ACTIVE, Activator, AllActiveActivator, EstConf, NamedActivator
from .module import Capability, Module, ModuleLink, ModulePhase
from .frame import Frame
from .error_term_statistics import ErrorTermStatistics
from .model import Model
from .pose_trajectory import PoseTrajectory

__all__ = [
    'ParamKind', 'Parameterization', 'get_parameterization',
    'Covariance',
    'CalibrationVariable',
    'ALL_ACTIVE', 'Activator', 'AllActiveActivator', 'EstConf', 'NamedActivator',
    'Capability', 'Module', 'ModuleLink', 'ModulePhase',
    'Frame',
    'ErrorTermStatistics',
    'Model',
    'PoseTrajectory',
]
