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
Optimization backend.

Design variables, expressions and error terms are assembled into an
``OptimizationProblem`` which the ``Optimizer`` solves with
``scipy.optimize.least_squares``.
"""

from .design_variable import DesignVariable, EuclideanPoint, RotationQuaternion, Scalar
from .error_term import (CV_PRIOR_GROUP, ConditionalErrorTerm, ErrorTerm, ErrorTermReceiver,
                         MarginalizationPriorErrorTerm, MeasurementErrorTerm, add_condition)
from .expression import Expression
from .m_estimator import CauchyMEstimator, MEstimator, NoMEstimator, get_m_estimator
from .optimizer import OptimizationResult, Optimizer, OptimizerOptions
from .problem import DesignVariableReceiver, OptimizationProblem

__all__ = [
    'DesignVariable', 'EuclideanPoint', 'Scalar', 'RotationQuaternion',
    'Expression',
    'CV_PRIOR_GROUP', 'ErrorTerm', 'ErrorTermReceiver', 'MeasurementErrorTerm',
    'MarginalizationPriorErrorTerm', 'ConditionalErrorTerm', 'add_condition',
    'MEstimator', 'NoMEstimator', 'CauchyMEstimator', 'get_m_estimator',
    'DesignVariableReceiver', 'OptimizationProblem',
    'Optimizer', 'OptimizerOptions', 'OptimizationResult',
]
