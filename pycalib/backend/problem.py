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

"""Optimization problem: the receiver of design variables and error terms"""

import logging

from .error_term import ErrorTerm, ErrorTermReceiver

logger = logging.getLogger(__name__)


class DesignVariableReceiver:
    """Sink for design variables registered while assembling a batch"""

    def add_design_variable(self, design_variable):
        raise NotImplementedError


class OptimizationProblem(DesignVariableReceiver, ErrorTermReceiver):
    """
    Collection of design variables and error terms of one batch.

    Parameters
    ----------
    accept_constant_error_terms : bool
        If False, error terms without any active design variable are not
        added, as they cannot influence the solution
    """

    def __init__(self, accept_constant_error_terms: bool = False):
        self.accept_constant_error_terms = accept_constant_error_terms
        self.design_variables = []
        self.error_terms = []
        self._dv_ids = set()
        self.num_rejected_constant = 0

    def add_design_variable(self, design_variable):
        if id(design_variable) in self._dv_ids:
            return
        self._dv_ids.add(id(design_variable))
        self.design_variables.append(design_variable)

    def add_design_variables(self, design_variables, active=None):
        for dv in design_variables:
            if active is not None:
                dv.set_active(active)
            self.add_design_variable(dv)

    def add_spline_design_variables(self, spline, active: bool = True):
        """Add all control points of ``spline`` and set their activity"""
        self.add_design_variables(spline.get_design_variables(), active)

    def add_error_term(self, error_term: ErrorTerm) -> bool:
        if not self.accept_constant_error_terms and error_term.is_constant():
            self.num_rejected_constant += 1
            logger.debug(f"Skipping constant error term of group '{error_term.group}'")
            return False
        for dv in error_term.get_design_variables():
            self.add_design_variable(dv)
        self.error_terms.append(error_term)
        return True

    def get_active_design_variables(self) -> list:
        return [dv for dv in self.design_variables if dv.is_active()]

    def num_design_variables(self) -> int:
        return len(self.design_variables)

    def num_error_terms(self) -> int:
        return len(self.error_terms)

    def __repr__(self):
        return (f"OptimizationProblem(design_variables={len(self.design_variables)}, "
                f"error_terms={len(self.error_terms)})")
