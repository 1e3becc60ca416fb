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
Modules and module links.

A module is a named, configured part of the model (a sensor, a trajectory,
the gravity vector). It owns calibration variables, declares links to other
modules and takes part in every batch through the lifecycle hooks
``pre_process_new_window``, ``init_state``, ``add_to_batch``,
``add_error_terms`` and ``estimates_updated``.

Registration and link resolution happen exactly once, in that order, and are
tracked by ``ModulePhase``.
"""

import enum
import io
import logging
from typing import List, Optional, TextIO

from ..core.exceptions import ConfigurationError, ConsistencyError, ResolutionError
from .activation import EstConf
from .calibration_variable import CalibrationVariable
from .parameterization import ParamKind

logger = logging.getLogger(__name__)


class ModulePhase(enum.Enum):
    CONSTRUCTED = "constructed"
    REGISTERED = "registered"
    LINKS_RESOLVED = "links resolved"


class Capability(enum.Flag):
    """Optional module capabilities, queried instead of probing types"""
    NONE = 0
    OBSERVER = enum.auto()
    CALIBRATABLE = enum.auto()
    ACTIVATABLE = enum.auto()
    SENSOR = enum.auto()
    POSE_SENSOR = enum.auto()
    TRAJECTORY = enum.auto()
    MOTION_CAPTURE_SYSTEM = enum.auto()
    GRAVITY = enum.auto()


class Module:
    """
    Base class of all model modules.

    Parameters
    ----------
    model : Model
        Owning model
    name : str
        Module name, unique within the model and name of its config child
    config : ValueStore
        Configuration containing the child ``name``
    used_by_default : bool
        Value of ``used`` if not configured
    """

    capabilities = Capability.NONE

    def __init__(self, model, name: str, config, used_by_default: bool = True):
        self.model = model
        self.name = name
        self.config = config.get_child(name)
        self.used = self.config.get_bool("used", used_by_default)
        self.phase = ModulePhase.CONSTRUCTED
        self.links: List['ModuleLink'] = []
        self.observe_only = (self.has_capability(Capability.OBSERVER)
                             and self.config.get_bool("observeOnly", False))
        self.to_be_calibrated = (not self.has_capability(Capability.CALIBRATABLE)
                                 or self.config.get_bool("estimate", True))

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def is_used(self) -> bool:
        return self.used

    def is_registered(self) -> bool:
        return self.phase is not ModulePhase.CONSTRUCTED

    def is_observe_only(self) -> bool:
        return self.observe_only

    def is_to_be_calibrated(self) -> bool:
        return self.to_be_calibrated

    def create_cv_if_used(self, child: str, kind: ParamKind, name: Optional[str] = None,
                          used_by_default: bool = True, config=None) -> Optional[CalibrationVariable]:
        """
        Create a calibration variable from the config child ``child`` if it is used.

        The variable is named ``<module>.<name>``, ``name`` defaulting to ``child``.
        """
        node = (config if config is not None else self.config).get_child(child)
        if not self.is_used() or not node.get_bool("used", used_by_default):
            return None
        return CalibrationVariable(f"{self.name}.{name or child}", node, kind,
                                   self.model.quaternion_convention)

    def get_calibration_variables(self) -> List[CalibrationVariable]:
        """Calibration variables owned by this module"""
        return []

    def register_with_model(self):
        if not self.is_used():
            raise ConsistencyError(f"Only used modules may be registered (name={self.name})")
        if self.phase is not ModulePhase.CONSTRUCTED:
            raise ConsistencyError(f"Only register a module once! (name={self.name})")
        self.phase = ModulePhase.REGISTERED
        self.model.add_calibration_variables(self.get_calibration_variables())

    def resolve_links(self, registry):
        if self.phase is not ModulePhase.REGISTERED:
            raise ConsistencyError(
                f"Links of {self.name} can only be resolved once after registration "
                f"(phase={self.phase.value})")
        for link in self.links:
            link.resolve(registry)
        self.phase = ModulePhase.LINKS_RESOLVED

    def should_observe_only(self, ec: EstConf) -> bool:
        observe_only = self.is_observe_only()
        error_terms_inactive = (self.has_capability(Capability.ACTIVATABLE)
                                and not ec.error_term_activator.is_active(self))
        logger.info(f"{self.name} shouldObserveOnly: observe only={observe_only}, "
                    f"error terms inactive={error_terms_inactive}")
        return observe_only or error_terms_inactive

    def set_calibration_active(self, ec: EstConf):
        """Derive the module activity from the estimation config and re-index the model"""
        active = ((not self.has_capability(Capability.ACTIVATABLE)
                   or ec.calibration_activator.is_active(self))
                  and not self.is_observe_only()
                  and self.is_to_be_calibrated()
                  and self.is_calibration_intended(ec))
        self.set_active(active and ec.spatial_active, active and ec.temporal_active)
        self.model.update_cv_indices()

    def is_calibration_intended(self, ec: EstConf) -> bool:
        return True

    def set_active(self, spatial: bool, temporal: bool):
        pass

    def pre_process_new_window(self, calib):
        pass

    def init_state(self, calib) -> bool:
        return True

    def add_to_batch(self, state_activator, problem):
        pass

    def add_error_terms(self, calib, ec: EstConf, problem):
        if self.is_used():
            observe_only = self.should_observe_only(ec)
            logger.info(f"Adding measurement{' observer' if observe_only else ''} "
                        f"error terms for module {self.name}")
            self.add_measurement_error_terms(calib, ec, problem, observe_only)

    def add_measurement_error_terms(self, calib, ec: EstConf, problem, observe_only: bool):
        pass

    def estimates_updated(self, calib):
        pass

    def clear_measurements(self):
        pass

    def has_too_few_measurements(self) -> bool:
        return False

    def write_config(self, out: TextIO):
        pass

    def write_info(self, out: TextIO):
        out.write(f"{self.name}(used={self.is_used()}")
        if self.has_capability(Capability.OBSERVER):
            out.write(f", observeOnly={self.is_observe_only()}")
        if self.has_capability(Capability.CALIBRATABLE):
            out.write(f", toBeCalibrated={self.is_to_be_calibrated()}")
        self.write_config(out)
        out.write(")")

    def __str__(self):
        out = io.StringIO()
        self.write_info(out)
        return out.getvalue()

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, phase={self.phase.value})"


class ModuleLink:
    """
    Named reference from one module to another, resolved once by name.

    The target name is read from the owner's config key ``link_name``.

    Parameters
    ----------
    owner : Module
        Module declaring the link
    link_name : str
        Config key holding the target module name
    required : bool
        Required links must be configured and must resolve
    capability : Capability
        Capability the target must have

    Raises
    ------
    ConfigurationError
        If a required link is missing or empty in the config
    """

    def __init__(self, owner: Module, link_name: str, required: bool = True,
                 capability: Capability = Capability.NONE):
        self.name = f"{owner.name}.{link_name}"
        self.required = required
        self.capability = capability
        # unused modules never resolve their links
        if required and owner.is_used():
            self.target_uid = owner.config.get_string(link_name)
        else:
            self.target_uid = owner.config.get_string(link_name, "")
        if required and owner.is_used() and not self.target_uid:
            raise ConfigurationError(f"Empty required link: {self}")
        self._target = None
        self._resolved = False
        owner.links.append(self)

    def resolve(self, registry):
        if self._resolved:
            raise ConsistencyError(f"{self} is already resolved")
        self._resolved = True
        target = registry.find_module(self.target_uid) if self.target_uid else None
        if target is not None and target.is_used() and target.has_capability(self.capability):
            self._target = target
            logger.info(f"{self} successfully resolved to {target.name}")
            return
        if target is None:
            problem = " could not be resolved!"
        elif not target.is_used():
            problem = " resolves to unused module!"
        else:
            problem = " resolves to used module but of wrong type!"
        if self.required:
            logger.error(f"{self}{problem}")
            raise ResolutionError(f"{self}{problem}")
        logger.info(f"{self}{problem}")

    def is_resolved(self) -> bool:
        return self._target is not None

    def get(self) -> Optional[Module]:
        """Resolved target, None for an unresolved optional link"""
        if not self._resolved:
            raise ConsistencyError(f"{self} dereferenced before link resolution")
        return self._target

    def __bool__(self):
        return self.is_resolved()

    def __str__(self):
        return f"ModuleLink({self.name}->{self.target_uid or 'NONE'})"
