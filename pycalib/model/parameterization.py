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
Parameterizations of calibration variable kinds.

Each kind converts between the optimizer native parameters of its design
variable and the packed (minimal) representation used for configuration,
persistence and display:

- POINT: ``EuclideanPoint``, components x, y, z, identity packing
- ROTATION: ``RotationQuaternion``, components roll, pitch, yaw holding the
  axis-angle vector, packed by quaternion to axis-angle conversion
- SCALAR: ``Scalar``, a single unnamed component stored as ``value``,
  identity packing

Rotations may alternatively be configured by raw quaternion components
``i, j, k, w`` interpreted in a selectable external convention.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Tuple

import numpy as np

from ..attitude.quaternion import (DEFAULT_EXTERNAL_CONVENTION, QuaternionConvention,
                                   axis_angle2quat, convert_quaternion, quat2axis_angle)
from ..backend.design_variable import DesignVariable, EuclideanPoint, RotationQuaternion, Scalar
from ..core.exceptions import ConsistencyError

logger = logging.getLogger(__name__)

QUATERNION_COMPONENTS = ("i", "j", "k", "w")


class ParamKind(Enum):
    """Closed set of calibration variable kinds"""
    POINT = "point"
    ROTATION = "rotation"
    SCALAR = "scalar"


def _identity(v: np.ndarray) -> np.ndarray:
    return np.asarray(v, dtype=np.double).reshape(-1).copy()


def _pack_rotation(q: np.ndarray) -> np.ndarray:
    return quat2axis_angle(np.asarray(q, dtype=np.double).reshape(4))


def _unpack_rotation(v: np.ndarray) -> np.ndarray:
    return axis_angle2quat(np.asarray(v, dtype=np.double).reshape(3))


@dataclass(frozen=True)
class Parameterization:
    """
    Conversion traits of one calibration variable kind.

    Attributes
    ----------
    kind : ParamKind
        Variant tag
    component_names : tuple of str
        Tangent component labels used in reports
    store_keys : tuple of str
        Configuration keys of the packed components
    pack : callable
        Design variable parameters -> packed vector
    unpack : callable
        Packed vector -> design variable parameters
    design_variable_type : type
        Design variable class created for this kind
    """
    kind: ParamKind
    component_names: Tuple[str, ...]
    store_keys: Tuple[str, ...]
    pack: Callable[[np.ndarray], np.ndarray]
    unpack: Callable[[np.ndarray], np.ndarray]
    design_variable_type: type

    @property
    def dimension(self) -> int:
        return len(self.component_names)

    def create_design_variable(self, params: np.ndarray) -> DesignVariable:
        params = np.asarray(params, dtype=np.double).reshape(-1)
        if self.kind is ParamKind.SCALAR:
            return Scalar(params[0])
        return self.design_variable_type(params)

    def create_loader(self, value_store, convention: QuaternionConvention = DEFAULT_EXTERNAL_CONVENTION
                      ) -> 'ComponentLoader':
        """Loader reading this kind from ``value_store``"""
        if self.kind is ParamKind.ROTATION and not value_store.has_key("yaw"):
            return ComponentLoader(
                QUATERNION_COMPONENTS,
                lambda v: convert_quaternion(v, convention),
                lambda q: convert_quaternion(q, convention))
        return ComponentLoader(self.store_keys, self.unpack, self.pack)


PARAMETERIZATIONS = {
    ParamKind.POINT: Parameterization(ParamKind.POINT, ("x", "y", "z"), ("x", "y", "z"),
                                      _identity, _identity, EuclideanPoint),
    ParamKind.ROTATION: Parameterization(ParamKind.ROTATION, ("roll", "pitch", "yaw"),
                                         ("roll", "pitch", "yaw"),
                                         _pack_rotation, _unpack_rotation, RotationQuaternion),
    ParamKind.SCALAR: Parameterization(ParamKind.SCALAR, ("",), ("value",),
                                       _identity, _identity, Scalar),
}


def get_parameterization(kind: ParamKind) -> Parameterization:
    return PARAMETERIZATIONS[kind]


class ComponentLoader:
    """
    Reads and writes the packed components of a variable through value handles.

    Parameters
    ----------
    keys : tuple of str
        Component keys in the value store
    to_params : callable
        Packed vector -> design variable parameters
    from_params : callable
        Design variable parameters -> packed vector
    """

    def __init__(self, keys, to_params: Callable, from_params: Callable):
        self.keys = tuple(keys)
        self._to_params = to_params
        self._from_params = from_params
        self._handles = None

    def load(self, value_store) -> np.ndarray:
        self._handles = [value_store.get_handle(key, float) for key in self.keys]
        packed = np.array([h.get() for h in self._handles], dtype=np.double)
        return self._to_params(packed)

    def _check_loaded(self, operation: str):
        if self._handles is None:
            raise ConsistencyError(f"{operation} must not be called before load")

    def store(self, params: np.ndarray):
        """Write ``params`` to all updateable handles, skipping the others"""
        self._check_loaded("store")
        packed = self._from_params(params)
        for handle, value in zip(self._handles, packed):
            if handle.is_updateable():
                handle.update(float(value))
            else:
                logger.warning(f"Trying to update a non updatable value handle '{handle.key}'")

    def is_updateable(self) -> bool:
        self._check_loaded("is_updateable")
        return any(h.is_updateable() for h in self._handles)
