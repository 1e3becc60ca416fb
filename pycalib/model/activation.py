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

"""Activation policies deciding which modules are estimated in a batch"""

from dataclasses import dataclass, field
from typing import Iterable


class Activator:
    """Policy deciding whether a module is active"""

    def is_active(self, module) -> bool:
        raise NotImplementedError


class AllActiveActivator(Activator):
    """Every module is active"""

    def is_active(self, module) -> bool:
        return True

    def __repr__(self):
        return "AllActiveActivator()"


class NamedActivator(Activator):
    """
    Activates modules by name.

    Parameters
    ----------
    names : iterable of str
        Names of the selected modules
    exclude : bool
        If True, the selected modules are the inactive ones
    """

    def __init__(self, names: Iterable[str], exclude: bool = False):
        self.names = frozenset(names)
        self.exclude = exclude

    def is_active(self, module) -> bool:
        return (module.name in self.names) != self.exclude

    def __repr__(self):
        return f"NamedActivator({sorted(self.names)}, exclude={self.exclude})"


ALL_ACTIVE = AllActiveActivator()


def _activator_from_value_store(config, key: str) -> Activator:
    names = config.get_string(key, "")
    if not names:
        return ALL_ACTIVE
    exclude = names.startswith("!")
    names = names.lstrip("!")
    return NamedActivator([n.strip() for n in names.split(",") if n.strip()], exclude)


@dataclass
class EstConf:
    """
    Estimation configuration of one batch.

    Attributes
    ----------
    calibration_activator : Activator
        Modules whose calibration variables may be estimated
    error_term_activator : Activator
        Modules whose error terms enter the problem
    state_activator : Activator
        Modules whose batch states (e.g. trajectory splines) are estimated
    spatial_active : bool
        Estimate spatial calibration variables (poses, gravity, biases)
    temporal_active : bool
        Estimate temporal calibration variables (delays)
    """
    calibration_activator: Activator = field(default_factory=lambda: ALL_ACTIVE)
    error_term_activator: Activator = field(default_factory=lambda: ALL_ACTIVE)
    state_activator: Activator = field(default_factory=lambda: ALL_ACTIVE)
    spatial_active: bool = True
    temporal_active: bool = True

    @classmethod
    def from_value_store(cls, config) -> 'EstConf':
        """
        Read ``spatial``, ``temporal`` and optional module lists
        ``calibrationActive``, ``errorTermsActive``, ``stateActive``
        (comma separated names, a leading ``!`` inverts the selection).
        """
        return cls(
            calibration_activator=_activator_from_value_store(config, "calibrationActive"),
            error_term_activator=_activator_from_value_store(config, "errorTermsActive"),
            state_activator=_activator_from_value_store(config, "stateActive"),
            spatial_active=config.get_bool("spatial", True),
            temporal_active=config.get_bool("temporal", True),
        )
