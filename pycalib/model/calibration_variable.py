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
Calibration variables.

A calibration variable wraps one optimizer design variable and makes it a
named, persistable quantity: it is loaded from the value store at
construction, can be written back or reset, provides a prior error term
toward its last stored value and prints itself into calibration reports.
"""

import io
import logging
from typing import Callable, Optional, TextIO

import numpy as np

from ..attitude.quaternion import DEFAULT_EXTERNAL_CONVENTION, QuaternionConvention
from ..backend.error_term import (CV_PRIOR_GROUP, ErrorTerm, MarginalizationPriorErrorTerm,
                                  MeasurementErrorTerm)
from ..backend.expression import Expression
from .covariance import Covariance
from .parameterization import ParamKind, get_parameterization

logger = logging.getLogger(__name__)


class CalibrationVariable:
    """
    Named calibration quantity backed by a design variable.

    Parameters
    ----------
    name : str
        Unique name used in reports
    value_store : ValueStore
        Configuration node holding the packed components, ``sigma`` and
        ``estimate``
    kind : ParamKind
        Variable kind selecting the parameterization
    quaternion_convention : QuaternionConvention
        External convention of raw quaternion components

    Raises
    ------
    ConfigurationError
        If a packed component is missing or ``sigma`` is malformed
    """

    NAME_WIDTH = 20
    DISPLACEMENT_THRESHOLD = 1e-9

    def __init__(self, name: str, value_store, kind: ParamKind,
                 quaternion_convention: QuaternionConvention = DEFAULT_EXTERNAL_CONVENTION):
        self.name = name
        self.kind = kind
        self.parameterization = get_parameterization(kind)
        self._value_store = value_store
        self._loader = self.parameterization.create_loader(value_store, quaternion_convention)
        self.design_variable = self.parameterization.create_design_variable(
            self._loader.load(value_store))
        self.covariance = Covariance(value_store, self.dimension)
        self._upstream_value = self.get_params()
        self._estimate = value_store.get_handle("estimate", bool, True)
        self.index = -1

    @property
    def dimension(self) -> int:
        return self.design_variable.minimal_dimensions()

    def get_num_params(self) -> int:
        return self.get_params().size

    def get_params(self) -> np.ndarray:
        """Design variable parameters as a column vector"""
        return self.design_variable.get_parameters()

    def get_value(self) -> np.ndarray:
        return self.design_variable.value()

    def get_tangent_component_name(self, i: int) -> str:
        return self.parameterization.component_names[i]

    def get_minimal_components(self) -> np.ndarray:
        return self.parameterization.pack(self.get_params().ravel())

    def set_minimal_components(self, v):
        self.design_variable.set_parameters(self.parameterization.unpack(np.asarray(v, dtype=np.double)))

    def update_store(self):
        """Write the current value to the updateable value handles"""
        params = self.get_params()
        self._loader.store(params.ravel())
        self._upstream_value = params

    def reset_to_store(self):
        """Reload value and prior covariance from the value store"""
        params = self._loader.load(self._value_store)
        self.design_variable.set_parameters(params)
        self._upstream_value = self.get_params()
        self.covariance = Covariance(self._value_store, self.dimension)

    def get_displacement_to_last_update_value(self) -> np.ndarray:
        return self.design_variable.minimal_difference(self._upstream_value)

    def get_distance_to_last_update_value(self) -> float:
        return float(np.linalg.norm(self.get_displacement_to_last_update_value()))

    def is_updateable(self) -> bool:
        return self._loader.is_updateable()

    def is_to_be_estimated(self) -> bool:
        return bool(self._estimate.get())

    def is_activated(self) -> bool:
        return self.design_variable.is_active()

    def set_active(self, active: bool):
        """Activate for estimation, never if configured with ``estimate=false``"""
        self.design_variable.set_active(active and self.is_to_be_estimated())

    def get_prior_covariance_sqrt(self) -> np.ndarray:
        return self.covariance.get_value_sqrt()

    def to_expression(self) -> Expression:
        return self.design_variable.to_expression()

    def create_prior_error_term(self) -> ErrorTerm:
        """
        Prior toward the last stored value, weighted by the inverse prior covariance.

        Rotations use a marginalization prior on the tangent space
        displacement, all other kinds a direct measurement of the value.
        """
        cov_sqrt = self.get_prior_covariance_sqrt()
        if self.kind is ParamKind.ROTATION:
            error_term = MarginalizationPriorErrorTerm(
                [self.design_variable], np.zeros(self.dimension), np.eye(self.dimension),
                anchors=[self._upstream_value], group=CV_PRIOR_GROUP)
            error_term.set_inv_r(np.linalg.inv(cov_sqrt @ cov_sqrt.T))
            return error_term
        return MeasurementErrorTerm(self.to_expression(), self._upstream_value.ravel(),
                                    covariance_sqrt=cov_sqrt, group=CV_PRIOR_GROUP)

    def _activity_prefix(self) -> str:
        return "* " if self.is_activated() else "  "

    def _print_nice_into(self, out: TextIO, format_component: Callable[[int], str]):
        for j in range(self.dimension):
            label = self.get_tangent_component_name(j)[:1] or " "
            name = self.name if j == 0 else " "
            out.write(f"{self._activity_prefix()}{name:>{self.NAME_WIDTH}} {label}:"
                      f"{format_component(j)}\n")

    def print_functor_into(self, out: TextIO, f: Callable[[int], str], limit: Optional[int] = None):
        """Print ``f(index + j)`` per component, only for indexed (active) variables"""
        if self.index < 0:
            return
        if limit is not None and self.index + self.dimension > limit:
            raise IndexError(f"Index range of {self.name} exceeds {limit}")
        self._print_nice_into(out, lambda j: f(self.index + j))

    def print_values_nice_into(self, out: TextIO):
        p = self.get_minimal_components()
        disp = self.get_displacement_to_last_update_value()

        def format_component(i):
            text = f"{p[i]:8g}"
            if abs(disp[i]) > self.DISPLACEMENT_THRESHOLD:
                text += f" ({'+' if disp[i] > 0 else ''}{disp[i]:g})"
            return text
        self._print_nice_into(out, format_component)

    def format_values_nice(self) -> str:
        out = io.StringIO()
        self.print_values_nice_into(out)
        return out.getvalue()

    def __repr__(self):
        return (f"CalibrationVariable(name={self.name!r}, kind={self.kind.value}, "
                f"value={self.get_minimal_components()}, active={self.is_activated()})")
