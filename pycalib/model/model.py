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
The calibration model.

The model owns the frames and modules of a calibration setup, aggregates the
calibration variables of all registered modules into one ordered list and
assigns contiguous optimizer indices to the active ones.
"""

import io
import logging
from typing import Iterable, List, Optional, TextIO

import numpy as np

from ..attitude.quaternion import DEFAULT_EXTERNAL_CONVENTION, QuaternionConvention
from ..core.exceptions import ConfigurationError, ResolutionError
from .calibration_variable import CalibrationVariable
from .fragments.gravity import Gravity
from .frame import Frame
from .module import Capability, Module, ModulePhase

logger = logging.getLogger(__name__)


class Model:
    """
    Registry of frames, modules and sensors plus the calibration variable index.

    Parameters
    ----------
    config : ValueStore
        Model configuration. ``quaternionConvention`` (``hamilton`` or ``jpl``)
        selects how raw quaternion components are read and written, the child
        ``Gravity`` configures the gravity module
    frames : iterable of Frame or str
        Initial frames
    quaternion_convention : QuaternionConvention, optional
        Overrides the configured convention
    """

    def __init__(self, config, frames: Iterable = (),
                 quaternion_convention: Optional[QuaternionConvention] = None):
        self.config = config
        if quaternion_convention is None:
            quaternion_convention = QuaternionConvention.parse(
                config.get_string("quaternionConvention", DEFAULT_EXTERNAL_CONVENTION.value))
        self.quaternion_convention = quaternion_convention
        self._frames = {}
        self._modules: List[Module] = []
        self._module_map = {}
        self._sensors = []
        self._sensor_map = {}
        self._sensor_counter = 0
        self._calibration_variables: List[CalibrationVariable] = []
        self._cv_ids = set()

        for frame in frames:
            self.add_frame(frame if isinstance(frame, Frame) else Frame(frame))

        self.gravity = Gravity(self, config)
        if self.gravity.is_used():
            self.add_module(self.gravity)

    # frames

    def add_frame(self, frame: Frame) -> Frame:
        if frame.name in self._frames:
            raise ConfigurationError(f"A frame with name {frame.name} already exists.")
        self._frames[frame.name] = frame
        return frame

    def create_frame(self, name: str) -> Frame:
        return self.add_frame(Frame(name))

    def get_frame(self, name: str) -> Frame:
        try:
            return self._frames[name]
        except KeyError:
            raise ResolutionError(f"A frame with name {name} doesn't exist.") from None

    def get_or_create_frame(self, name: str) -> Frame:
        if name not in self._frames:
            return self.create_frame(name)
        return self._frames[name]

    def has_frame(self, name: str) -> bool:
        return name in self._frames

    def get_frames(self) -> List[Frame]:
        return list(self._frames.values())

    # modules

    def add_module(self, module: Module):
        """Add a module and register it if it is used"""
        if module.name in self._module_map:
            raise ConfigurationError(f"A module with name {module.name} already exists.")
        self._modules.append(module)
        self._module_map[module.name] = module
        if module.is_used():
            module.register_with_model()
        logger.debug(f"Added module {module}")

    def add(self, *modules: Module):
        for module in modules:
            self.add_module(module)

    def add_modules_and_init(self, *modules: Module):
        """Add modules and resolve all links"""
        self.add(*modules)
        self.init()

    def init(self):
        self.resolve_all_links()

    def resolve_all_links(self):
        """Resolve the links of all registered modules not resolved yet"""
        for module in self._modules:
            if module.phase is ModulePhase.REGISTERED:
                module.resolve_links(self)

    def find_module(self, name: str) -> Optional[Module]:
        return self._module_map.get(name)

    def get_module(self, name: str) -> Module:
        module = self.find_module(name)
        if module is None:
            raise ResolutionError(f"A module with name {name} doesn't exist.")
        return module

    def get_modules(self) -> List[Module]:
        return list(self._modules)

    def get_used_modules(self) -> List[Module]:
        return [m for m in self._modules if m.is_used()]

    def get_gravity(self) -> Gravity:
        return self.gravity

    def get_trajectory(self, frame, reference_frame):
        """Trajectory module of ``frame`` relative to ``reference_frame``"""
        frame, reference_frame = str(frame), str(reference_frame)
        for module in self._modules:
            if (module.is_used() and module.has_capability(Capability.TRAJECTORY)
                    and str(module.frame) == frame and str(module.reference_frame) == reference_frame):
                return module
        raise ResolutionError(f"No trajectory of frame {frame} relative to {reference_frame}")

    # sensors

    def create_new_sensor_id(self) -> int:
        sensor_id = self._sensor_counter
        self._sensor_counter += 1
        return sensor_id

    def register_sensor(self, sensor) -> int:
        if sensor.name in (s.name for s in self._sensors):
            raise ConfigurationError(f"A sensor with name {sensor.name} already exists.")
        sensor_id = self.create_new_sensor_id()
        self._sensor_map[sensor_id] = sensor
        self._sensors.append(sensor)
        return sensor_id

    def get_sensor(self, sensor_id: int):
        try:
            return self._sensor_map[sensor_id]
        except KeyError:
            raise ResolutionError(f"Illegal sensor id used: {sensor_id}!") from None

    def get_sensor_name(self, sensor_id: int) -> str:
        return self.get_sensor(sensor_id).name

    def get_sensors(self, capability: Capability = Capability.NONE) -> list:
        return [s for s in self._sensors if s.has_capability(capability)]

    # calibration variables

    def add_calibration_variables(self, cvs: Iterable[Optional[CalibrationVariable]]):
        for cv in cvs:
            if cv is not None and id(cv) not in self._cv_ids:
                self._cv_ids.add(id(cv))
                self._calibration_variables.append(cv)
        self.update_cv_indices()

    def get_calibration_variables(self) -> List[CalibrationVariable]:
        return list(self._calibration_variables)

    def update_cv_indices(self):
        i = 0
        for cv in self._calibration_variables:
            if cv.is_activated():
                cv.index = i
                i += cv.dimension
            else:
                cv.index = -1

    def get_num_active_parameters(self) -> int:
        return sum(cv.dimension for cv in self._calibration_variables if cv.is_activated())

    def add_calib_priors(self, receiver):
        """Add a prior error term for every active calibration variable"""
        for cv in self._calibration_variables:
            if cv.is_activated():
                error_term = cv.create_prior_error_term()
                receiver.add_error_term(error_term)
                logger.info(f"Prior for {cv.name}: current error={error_term.evaluate_error():g} "
                            f"with covariance {cv.covariance}")

    def get_parameters(self) -> np.ndarray:
        """Stacked design variable parameters of all calibration variables"""
        if not self._calibration_variables:
            return np.zeros(0)
        return np.concatenate([cv.get_params().ravel() for cv in self._calibration_variables])

    def update_store(self):
        for cv in self._calibration_variables:
            cv.update_store()

    def reset_to_store(self):
        for cv in self._calibration_variables:
            cv.reset_to_store()

    # reports

    def print_calibration_variables(self, out: TextIO):
        for cv in self._calibration_variables:
            cv.print_values_nice_into(out)

    def format_calibration_variables(self) -> str:
        out = io.StringIO()
        self.print_calibration_variables(out)
        return out.getvalue()

    def print(self, out: TextIO):
        out.write(f"{type(self).__name__}:\n")
        for module in self._modules:
            module.write_info(out)
            out.write("\n")
        out.write("Calibration:\n")
        self.print_calibration_variables(out)

    def __str__(self):
        out = io.StringIO()
        self.print(out)
        return out.getvalue()
