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
Batch optimizer based on ``scipy.optimize.least_squares``.

The optimized vector is the stacked tangent space increment of all active
design variables around their values at the start of ``optimize``. The
Jacobian is formed by central differences, perturbing one design variable
at a time and only re-evaluating the error terms that depend on it.

Conditional error terms are gated by their predicates. The gate is
refreshed on every residual evaluation and kept fixed while the Jacobian at
the same point is formed, so a switching predicate never shows up as a
spurious derivative.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import least_squares
from scipy.sparse import lil_matrix

from .problem import OptimizationProblem

logger = logging.getLogger(__name__)


@dataclass
class OptimizerOptions:
    """Options of the batch optimizer.

    Attributes
    ----------
    max_iterations : int
        Maximum number of residual evaluations, -1 for no limit
    method : str
        ``trf``, ``dogbox`` or ``lm``
    function_tolerance : float
        Relative cost change tolerance
    gradient_tolerance : float
        Gradient norm tolerance
    step_tolerance : float
        Relative step size tolerance
    diff_step : float
        Central difference step in tangent space
    """
    max_iterations: int = -1
    method: str = "trf"
    function_tolerance: float = 1e-8
    gradient_tolerance: float = 1e-10
    step_tolerance: float = 1e-10
    diff_step: float = 1e-6

    @classmethod
    def from_value_store(cls, config) -> 'OptimizerOptions':
        return cls(
            max_iterations=config.get_int("maxIterations", cls.max_iterations),
            method=config.get_string("method", cls.method),
            function_tolerance=config.get_double("functionTolerance", cls.function_tolerance),
            gradient_tolerance=config.get_double("gradientTolerance", cls.gradient_tolerance),
            step_tolerance=config.get_double("stepTolerance", cls.step_tolerance),
            diff_step=config.get_double("diffStep", cls.diff_step),
        )


@dataclass
class OptimizationResult:
    """Result of one optimizer run (costs are ``0.5 * |r|^2``)"""
    success: bool
    initial_cost: float = 0.0
    final_cost: float = 0.0
    iterations: int = 0
    num_parameters: int = 0
    num_residuals: int = 0
    num_inactive_error_terms: int = 0
    message: str = ""


class Optimizer:
    """
    Nonlinear least squares optimizer for an ``OptimizationProblem``.

    Parameters
    ----------
    options : OptimizerOptions, optional
        Optimizer options, defaults if None
    """

    DENSE_JACOBIAN_LIMIT = 4_000_000

    def __init__(self, options: OptimizerOptions = None):
        self.options = options if options is not None else OptimizerOptions()

    def optimize(self, problem: OptimizationProblem) -> OptimizationResult:
        active = problem.get_active_design_variables()
        terms = problem.error_terms

        col_offsets = np.cumsum([0] + [dv.minimal_dimensions() for dv in active])
        row_offsets = np.cumsum([0] + [t.dimension for t in terms])
        n, m = int(col_offsets[-1]), int(row_offsets[-1])

        if n == 0 or m == 0:
            cost = 0.5 * sum(float(np.sum(t.weighted_error() ** 2)) for t in terms if t.is_active())
            logger.warning(f"Nothing to optimize: {n} parameters, {m} residuals")
            return OptimizationResult(success=True, initial_cost=cost, final_cost=cost,
                                      num_parameters=n, num_residuals=m,
                                      message="nothing to optimize")

        linearization_points = [dv.get_parameters() for dv in active]
        dv_position = {id(dv): j for j, dv in enumerate(active)}
        dependent_terms = [[] for _ in active]
        for i, t in enumerate(terms):
            for dv in t.get_design_variables():
                j = dv_position.get(id(dv))
                if j is not None:
                    dependent_terms[j].append(i)

        gate = np.ones(len(terms), dtype=bool)

        def set_variable(j, x):
            dv = active[j]
            dv.set_parameters(linearization_points[j])
            dv.update(x[col_offsets[j]:col_offsets[j + 1]])

        def set_state(x):
            for j in range(len(active)):
                set_variable(j, x)

        def residuals(x):
            set_state(x)
            r = np.zeros(m)
            for i, t in enumerate(terms):
                gate[i] = t.is_active()
                if gate[i]:
                    r[row_offsets[i]:row_offsets[i + 1]] = t.weighted_error()
            return r

        def jacobian(x):
            set_state(x)
            J = lil_matrix((m, n))
            h = self.options.diff_step
            for j, rows in enumerate(dependent_terms):
                rows = [i for i in rows if gate[i]]
                if not rows:
                    continue
                for k in range(col_offsets[j], col_offsets[j + 1]):
                    x_step = x.copy()
                    x_step[k] = x[k] + h
                    set_variable(j, x_step)
                    plus = [terms[i].weighted_error() for i in rows]
                    x_step[k] = x[k] - h
                    set_variable(j, x_step)
                    minus = [terms[i].weighted_error() for i in rows]
                    for i, p, q in zip(rows, plus, minus):
                        J[row_offsets[i]:row_offsets[i + 1], k] = ((p - q) / (2.0 * h)).reshape(-1, 1)
                set_variable(j, x)
            if self.options.method == "lm" or m * n <= self.DENSE_JACOBIAN_LIMIT:
                return J.toarray()
            return J.tocsr()

        x0 = np.zeros(n)
        initial_cost = 0.5 * float(np.sum(residuals(x0) ** 2))
        logger.info(f"Optimizing {n} parameters over {len(terms)} error terms "
                    f"({m} residuals), initial cost {initial_cost:.6g}")

        max_nfev = None if self.options.max_iterations < 0 else self.options.max_iterations
        result = least_squares(
            fun=residuals,
            x0=x0,
            jac=jacobian,
            method=self.options.method,
            ftol=self.options.function_tolerance,
            xtol=self.options.step_tolerance,
            gtol=self.options.gradient_tolerance,
            max_nfev=max_nfev,
            verbose=0,
        )

        final = residuals(result.x)
        final_cost = 0.5 * float(np.sum(final ** 2))
        num_inactive = int(np.count_nonzero(~gate))
        logger.info(f"Optimization finished after {result.nfev} evaluations: cost "
                    f"{initial_cost:.6g} -> {final_cost:.6g} ({result.message})")
        if num_inactive:
            logger.info(f"{num_inactive} conditional error terms inactive at the solution")

        return OptimizationResult(
            success=bool(result.success),
            initial_cost=initial_cost,
            final_cost=final_cost,
            iterations=int(result.nfev),
            num_parameters=n,
            num_residuals=m,
            num_inactive_error_terms=num_inactive,
            message=str(result.message),
        )
