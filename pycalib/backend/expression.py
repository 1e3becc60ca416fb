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
Expressions over design variables.

An expression is a lazily evaluated value depending on a set of design
variables. Derivatives are formed numerically by the optimizer, so an
expression only has to know how to evaluate itself and which design
variables it reads.
"""

from typing import Callable, Iterable

import numpy as np


def _unique(design_variables: Iterable) -> tuple:
    seen = set()
    result = []
    for dv in design_variables:
        if id(dv) not in seen:
            seen.add(id(dv))
            result.append(dv)
    return tuple(result)


class Expression:
    """
    Function of zero or more design variables.

    Parameters
    ----------
    function : callable
        Evaluates the expression from the current design variable values
    design_variables : iterable
        Design variables the function reads
    """

    __slots__ = ('_function', '_design_variables')

    def __init__(self, function: Callable[[], np.ndarray], design_variables: Iterable = ()):
        self._function = function
        self._design_variables = _unique(design_variables)

    def evaluate(self):
        return self._function()

    def get_design_variables(self) -> list:
        return list(self._design_variables)

    def is_constant(self) -> bool:
        """True if no design variable of the expression is active"""
        return not any(dv.is_active() for dv in self._design_variables)

    def map(self, function: Callable) -> 'Expression':
        """Expression of ``function(self.evaluate())``"""
        return Expression(lambda: function(self.evaluate()), self._design_variables)

    @staticmethod
    def combine(function: Callable, *expressions: 'Expression') -> 'Expression':
        """Expression of ``function(e1.evaluate(), e2.evaluate(), ...)``"""
        dvs = [dv for e in expressions for dv in e._design_variables]
        return Expression(lambda: function(*(e.evaluate() for e in expressions)), dvs)

    @staticmethod
    def constant(value) -> 'Expression':
        value = np.array(value, dtype=np.double)
        return Expression(lambda: value)

    def __add__(self, other: 'Expression') -> 'Expression':
        return Expression.combine(np.add, self, other)

    def __sub__(self, other: 'Expression') -> 'Expression':
        return Expression.combine(np.subtract, self, other)

    def __neg__(self) -> 'Expression':
        return self.map(np.negative)

    def __repr__(self):
        return f"Expression(design_variables={len(self._design_variables)})"
